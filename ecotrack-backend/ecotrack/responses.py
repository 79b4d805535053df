from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


def list_response(data: List[Any], status_code: int = 200, **extra: Any) -> JSONResponse:
    """{success, count, data} envelope with caching disabled"""
    content: Dict[str, Any] = {"success": True, "count": len(data), "data": data}
    content.update(extra)
    return JSONResponse(content=content, status_code=status_code, headers=NO_CACHE_HEADERS)


def live_response(content: Dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=NO_CACHE_HEADERS)


def error_response(method: str, status_code: int, error: str, extra: Optional[Dict[str, Any]] = None) -> JSONResponse:
    """
    Failure envelope. GET responses also carry an empty data list so a
    dashboard can render an empty state instead of crashing.
    """
    content: Dict[str, Any] = {"success": False, "error": error}
    headers = None
    if method == "GET":
        content.update({"count": 0, "data": []})
        headers = NO_CACHE_HEADERS
    if extra:
        content.update(extra)
    return JSONResponse(content=content, status_code=status_code, headers=headers)

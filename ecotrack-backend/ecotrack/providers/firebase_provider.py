import asyncio
import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import firebase_admin
from firebase_admin import credentials, db as rtdb

from ecotrack.database import isoformat_utc, get_utc_datetime
from ecotrack.errors import RealtimeStoreError

logger = logging.getLogger(__name__)

SubscriptionCallback = Callable[[str, Any], None]


def _split(path: str) -> List[str]:
    return [part for part in path.strip("/").split("/") if part]


class FirebaseProvider:
    """Provider for the Firebase Realtime Database using the firebase-admin SDK"""

    def __init__(self, database_url: str, credentials_path: str = "", app_name: str = "ecotrack"):
        self.database_url = database_url
        self.credentials_path = credentials_path
        self.app_name = app_name
        self._app: Optional[firebase_admin.App] = None
        self._listeners: List[Any] = []

        self.mock_mode = not database_url
        self._mock_tree: Dict[str, Any] = {}
        self._mock_subscribers: List[Tuple[str, SubscriptionCallback]] = []
        self._mock_lock = threading.Lock()

        if self.mock_mode:
            logger.warning("Firebase provider running in MOCK MODE - FIREBASE_DATABASE_URL not configured")
        else:
            logger.info(f"Firebase provider running in PRODUCTION MODE ({database_url})")

    @property
    def app(self) -> firebase_admin.App:
        """Get or create the firebase-admin App bound to this database"""
        if self._app is None:
            if self.credentials_path:
                cred = credentials.Certificate(self.credentials_path)
            else:
                cred = credentials.ApplicationDefault()
            self._app = firebase_admin.initialize_app(
                cred, {"databaseURL": self.database_url}, name=self.app_name
            )
        return self._app

    def _reference(self, path: str):
        return rtdb.reference(path, app=self.app)

    # ---------- mock tree ----------
    def _mock_get(self, path: str) -> Any:
        with self._mock_lock:
            node: Any = self._mock_tree
            for part in _split(path):
                if not isinstance(node, dict) or part not in node:
                    return None
                node = node[part]
            return copy.deepcopy(node)

    def _mock_set(self, path: str, value: Any) -> None:
        parts = _split(path)
        with self._mock_lock:
            if not parts:
                self._mock_tree = copy.deepcopy(value) if isinstance(value, dict) else {}
            else:
                node = self._mock_tree
                for part in parts[:-1]:
                    child = node.get(part)
                    if not isinstance(child, dict):
                        child = {}
                        node[part] = child
                    node = child
                if value is None:
                    node.pop(parts[-1], None)
                else:
                    node[parts[-1]] = copy.deepcopy(value)
            subscribers = list(self._mock_subscribers)

        for sub_path, callback in subscribers:
            sub_parts = _split(sub_path)
            if parts[:len(sub_parts)] == sub_parts:
                relative = "/" + "/".join(parts[len(sub_parts):])
                callback(relative, copy.deepcopy(value))

    # ---------- one-shot reads/writes ----------
    async def get_value(self, path: str) -> Any:
        """Read the value stored at a path, None if the path does not exist"""
        if self.mock_mode:
            logger.debug(f"MOCK: Reading {path}")
            return self._mock_get(path)

        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._reference(path).get)
        except Exception as e:
            logger.error(f"Error reading {path} from Firebase: {str(e)}")
            raise RealtimeStoreError(path, str(e)) from e

    async def set_value(self, path: str, value: Any) -> None:
        if self.mock_mode:
            logger.info(f"MOCK: Writing {path} = {value!r}")
            self._mock_set(path, value)
            return

        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._reference(path).set, value)
        except Exception as e:
            logger.error(f"Error writing {path} to Firebase: {str(e)}")
            raise RealtimeStoreError(path, str(e)) from e

    async def get_room_snapshot(self, room_id: str) -> Optional[Dict[str, Any]]:
        """Latest temperature/humidity/light/motion values published for a room"""
        data = await self.get_value(f"rooms/{room_id}")
        return data if isinstance(data, dict) else None

    async def get_power_snapshot(self, key: str = "pzem") -> Optional[Dict[str, Any]]:
        """Latest PZEM meter values"""
        data = await self.get_value(key)
        return data if isinstance(data, dict) else None

    async def get_relay_state(self, relay_id: str) -> Optional[bool]:
        data = await self.get_value(f"relays/{relay_id}/state")
        return None if data is None else bool(data)

    async def set_relay_state(self, relay_id: str, state: bool) -> None:
        """Write the desired state; the ESP32 firmware actuates the relay from it"""
        await self.set_value(f"relays/{relay_id}/state", bool(state))

    async def get_device_status(self, device_id: str) -> Dict[str, Any]:
        """Report a device as online only when it says so itself"""
        try:
            device = await self.get_value(f"devices/{device_id}")
        except RealtimeStoreError:
            return {"status": "offline", "lastSeen": None, "timestamp": isoformat_utc(get_utc_datetime())}

        online = isinstance(device, dict) and device.get("online") is True
        return {
            "status": "online" if online else "offline",
            "lastSeen": device.get("lastSeen") if isinstance(device, dict) else None,
            "timestamp": isoformat_utc(get_utc_datetime()),
        }

    # ---------- push subscriptions ----------
    def subscribe(self, path: str, callback: SubscriptionCallback) -> Callable[[], None]:
        """Call back with (relative path, data) on every change below a path"""
        if self.mock_mode:
            entry = (path, callback)
            with self._mock_lock:
                self._mock_subscribers.append(entry)

            def unsubscribe():
                with self._mock_lock:
                    if entry in self._mock_subscribers:
                        self._mock_subscribers.remove(entry)
            return unsubscribe

        def listener(event):
            try:
                callback(event.path, event.data)
            except Exception as e:
                logger.error(f"Subscription callback for {path} failed: {str(e)}")

        try:
            registration = self._reference(path).listen(listener)
        except Exception as e:
            logger.error(f"Error subscribing to {path}: {str(e)}")
            raise RealtimeStoreError(path, str(e)) from e

        self._listeners.append(registration)

        def unsubscribe():
            registration.close()
            if registration in self._listeners:
                self._listeners.remove(registration)
        return unsubscribe

    def close(self) -> None:
        for registration in list(self._listeners):
            try:
                registration.close()
            except Exception as e:
                logger.warning(f"Error closing Firebase listener: {str(e)}")
        self._listeners.clear()
        with self._mock_lock:
            self._mock_subscribers.clear()
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None

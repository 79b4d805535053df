from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError


class DatabaseUnavailableError(Exception):
    """The relational store cannot be reached (or the pool is exhausted)."""

    def __init__(self, message: str = "Database unavailable"):
        super().__init__(message)


class RealtimeStoreError(Exception):
    """A read or write against the realtime database failed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Realtime database error at '{path}': {message}")


class RelayHistoryError(Exception):
    """The live relay command went through but its relational record did not."""

    def __init__(self, relay_id: str, state: bool, cause: Exception):
        self.relay_id = relay_id
        self.state = state
        self.cause = cause
        super().__init__(f"Relay {relay_id} set to {state} but state history was not recorded")

    @property
    def is_connectivity_error(self) -> bool:
        return is_connectivity_error(self.cause)


CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, DatabaseUnavailableError)


def is_connectivity_error(exc: BaseException) -> bool:
    return isinstance(exc, CONNECTIVITY_ERRORS)

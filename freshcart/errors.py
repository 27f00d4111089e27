from typing import Any


class StoreError(Exception):
    def __init__(self, msg: str, extra: dict[str, Any] = None):
        super().__init__(msg)
        self.msg = msg
        self.extra = extra

    def __eq__(self, other):
        return type(self) is type(other) and self.msg == other.msg and self.extra == other.extra

    def __hash__(self):
        return hash((type(self).__name__, self.msg))


class FormValidationError(StoreError):
    """Raised for invalid input caught before any request is sent."""


class NetworkError(StoreError):
    """Raised when a request times out or the connection fails."""


class ApiError(StoreError):
    def __init__(self, msg: str, status_code: int, extra: dict[str, Any] = None):
        super().__init__(msg, extra)
        self.status_code = status_code


class ConflictError(ApiError):
    """Server-reported business rule failure, e.g. a category still in use."""


class NotFoundError(ApiError): ...


class CartStorageError(StoreError): ...

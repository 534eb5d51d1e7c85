from __future__ import annotations


class ShipwrightHTTPError(RuntimeError):
    """Base error for outbound collaborator calls."""


class ShipwrightHTTPStatusError(ShipwrightHTTPError):
    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ShipwrightHTTPNetworkError(ShipwrightHTTPError):
    """Raised when request retries are exhausted for transport errors."""


class ShipwrightHTTPTimeoutError(ShipwrightHTTPNetworkError):
    pass

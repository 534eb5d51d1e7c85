from .client import get_http_client, request_with_retry
from .errors import (
    ShipwrightHTTPError,
    ShipwrightHTTPNetworkError,
    ShipwrightHTTPStatusError,
    ShipwrightHTTPTimeoutError,
)

__all__ = [
    "get_http_client",
    "request_with_retry",
    "ShipwrightHTTPError",
    "ShipwrightHTTPNetworkError",
    "ShipwrightHTTPStatusError",
    "ShipwrightHTTPTimeoutError",
]

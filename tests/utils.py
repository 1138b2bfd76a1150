from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

# 2026-01-01T00:00:00Z
NOW = 1767225600

HOUR = 3600
DAY = 24 * HOUR


class FrozenClock:
    """Manually advanced replacement for time.time"""

    def __init__(self, start: float):
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float):
        self.current += seconds


def make_client(app: FastAPI) -> AsyncClient:
    """Create an async HTTP client for the app."""
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def make_request(headers: dict[str, str] | None = None, path: str = "/") -> Request:
    """Build a bare HTTP request with the given headers."""
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "state": {},
    }
    return Request(scope)

"""
Isobel Dashboard - Auth Request/Response Adapter
================================================

Converts between Starlette requests/responses and the identity
subsystem's own request and response types.

DESIGN:
    The identity subsystem never sees a framework object. It takes an
    AuthRequest (method, url, headers, body) and returns an AuthResponse
    (status, headers, body). Headers are lists of pairs, not dicts, so a
    response can carry several Set-Cookie headers.
"""

import json
from dataclasses import dataclass, field
from http.cookies import SimpleCookie
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit

from starlette.requests import Request, cookie_parser
from starlette.responses import Response

Headers = List[Tuple[str, str]]


# =============================================================================
# Framework-neutral Types
# =============================================================================

@dataclass
class AuthRequest:
    """Inbound request as the identity subsystem sees it."""

    method: str
    url: str
    headers: Headers = field(default_factory=list)
    body: bytes = b""

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def query(self) -> Dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query))

    def header(self, name: str) -> Optional[str]:
        """First header with this name (case-insensitive)."""
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None

    @property
    def cookies(self) -> Dict[str, str]:
        cookies: Dict[str, str] = {}
        for key, value in self.headers:
            if key.lower() == "cookie":
                cookies.update(cookie_parser(value))
        return cookies

    def form(self) -> Dict[str, str]:
        """Parse a urlencoded or JSON body. Anything else is empty."""
        if not self.body:
            return {}
        content_type = (self.header("content-type") or "").split(";")[0].strip().lower()
        if content_type == "application/json":
            try:
                data = json.loads(self.body)
            except ValueError:
                return {}
            return {k: str(v) for k, v in data.items()} if isinstance(data, dict) else {}
        if content_type == "application/x-www-form-urlencoded":
            return dict(parse_qsl(self.body.decode("latin-1")))
        return {}


@dataclass
class AuthResponse:
    """Outbound response produced by the identity subsystem."""

    status: int = 200
    headers: Headers = field(default_factory=list)
    body: bytes = b""

    @classmethod
    def json(cls, data: Any, status: int = 200) -> "AuthResponse":
        return cls(
            status=status,
            headers=[("content-type", "application/json")],
            body=json.dumps(data).encode(),
        )

    @classmethod
    def redirect(cls, location: str, status: int = 302) -> "AuthResponse":
        return cls(status=status, headers=[("location", location)])

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None

    def set_cookie(
        self,
        name: str,
        value: str,
        max_age: Optional[int] = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
        path: str = "/",
    ) -> None:
        """Append a Set-Cookie header. max_age=0 expires the cookie."""
        cookie: SimpleCookie = SimpleCookie()
        cookie[name] = value
        morsel = cookie[name]
        morsel["path"] = path
        morsel["samesite"] = samesite
        if max_age is not None:
            morsel["max-age"] = max_age
        if secure:
            morsel["secure"] = True
        if httponly:
            morsel["httponly"] = True
        self.headers.append(("set-cookie", morsel.OutputString()))

    def delete_cookie(self, name: str, secure: bool = False) -> None:
        self.set_cookie(name, "", max_age=0, secure=secure)

    @property
    def set_cookies(self) -> List[str]:
        return [value for key, value in self.headers if key.lower() == "set-cookie"]


# =============================================================================
# Starlette Conversion
# =============================================================================

async def from_starlette(request: Request) -> AuthRequest:
    """Build an AuthRequest from a Starlette request, reading the body."""
    body = await request.body() if request.method not in ("GET", "HEAD") else b""
    return AuthRequest(
        method=request.method,
        url=str(request.url),
        headers=list(request.headers.items()),
        body=body,
    )


def to_starlette(response: AuthResponse) -> Response:
    """Build a Starlette response, keeping repeated headers."""
    result = Response(content=response.body, status_code=response.status)
    for key, value in response.headers:
        result.headers.append(key, value)
    return result


__all__ = ["AuthRequest", "AuthResponse", "from_starlette", "to_starlette"]

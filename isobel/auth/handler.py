"""
Isobel Dashboard - Auth Handler
===============================

The identity subsystem behind /api/auth/*: Discord OAuth sign-in,
database sessions and sign-out.

Routes (relative to /api/auth):
    GET       /providers          Configured providers
    GET       /csrf               CSRF token (double-submit cookie)
    GET|POST  /signin/discord     Redirect to Discord consent screen
    GET       /callback/discord   Finish sign-in, set session cookie
    GET       /session            Session JSON or null
    POST      /signout            End the session

DESIGN:
    The handler only speaks AuthRequest/AuthResponse (see adapter.py) so
    it can be driven by the FastAPI catch-all route and by the session
    resolver alike. OAuth state is a short-lived HS256 JWT whose nonce is
    also kept in a cookie, binding the callback to the browser that
    started the sign-in.
"""

import secrets
import sqlite3
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote, urlsplit

import jwt
from jwt.exceptions import InvalidTokenError

from isobel.auth.adapter import AuthRequest, AuthResponse
from isobel.auth.discord_oauth import DiscordOAuthClient, DiscordOAuthError
from isobel.core.config import Config, get_config
from isobel.core.constants import (
    AUTH_BASE_PATH,
    CSRF_COOKIE_NAME,
    OAUTH_STATE_TTL,
    SECURE_COOKIE_PREFIX,
    SESSION_COOKIE_NAME,
    STATE_COOKIE_NAME,
)
from isobel.core.database import DatabaseManager, get_db
from isobel.core.logger import logger
from isobel.utils.lazy import InitOnce

Route = Callable[[AuthRequest], Awaitable[AuthResponse]]

STATE_ALGORITHM = "HS256"
PROVIDER = "discord"


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _avatar_url(profile: Dict[str, Any]) -> Optional[str]:
    avatar = profile.get("avatar")
    if not avatar:
        return None
    ext = "gif" if avatar.startswith("a_") else "png"
    return f"https://cdn.discordapp.com/avatars/{profile['id']}/{avatar}.{ext}"


class AuthHandler:
    """Serves every /api/auth/* request."""

    def __init__(
        self,
        config: Config,
        oauth: Optional[DiscordOAuthClient] = None,
        db: Optional[DatabaseManager] = None,
    ) -> None:
        self._config = config
        self._oauth = oauth or DiscordOAuthClient(
            config.discord_client_id,
            config.discord_client_secret,
        )
        self._db = db
        self._routes: Dict[str, Dict[str, Route]] = {
            "providers": {"GET": self._providers},
            "csrf": {"GET": self._csrf},
            f"signin/{PROVIDER}": {"GET": self._signin, "POST": self._signin},
            f"callback/{PROVIDER}": {"GET": self._callback},
            "session": {"GET": self._session},
            "signout": {"POST": self._signout},
        }

    @property
    def db(self) -> DatabaseManager:
        return self._db if self._db is not None else get_db()

    @property
    def redirect_uri(self) -> str:
        return f"{self._config.auth_url}{AUTH_BASE_PATH}/callback/{PROVIDER}"

    def cookie_name(self, name: str) -> str:
        """Cookie names get the __Secure- prefix on HTTPS deployments."""
        if self._config.uses_secure_cookies:
            return f"{SECURE_COOKIE_PREFIX}{name}"
        return name

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def handle(self, request: AuthRequest) -> AuthResponse:
        """Route an auth request. Unknown paths get 404, wrong methods 405."""
        path = request.path.rstrip("/")
        if path != AUTH_BASE_PATH and not path.startswith(f"{AUTH_BASE_PATH}/"):
            return AuthResponse.json({"error": "Not found"}, status=404)

        action = path[len(AUTH_BASE_PATH):].strip("/")
        methods = self._routes.get(action)
        if methods is None:
            return AuthResponse.json({"error": "Not found"}, status=404)

        route = methods.get(request.method.upper())
        if route is None:
            response = AuthResponse.json({"error": "Method not allowed"}, status=405)
            response.headers.append(("allow", ", ".join(methods)))
            return response

        return await route(request)

    # =========================================================================
    # Providers & CSRF
    # =========================================================================

    async def _providers(self, request: AuthRequest) -> AuthResponse:
        base = f"{self._config.auth_url}{AUTH_BASE_PATH}"
        return AuthResponse.json({
            PROVIDER: {
                "id": PROVIDER,
                "name": "Discord",
                "type": "oauth",
                "signinUrl": f"{base}/signin/{PROVIDER}",
                "callbackUrl": f"{base}/callback/{PROVIDER}",
            }
        })

    async def _csrf(self, request: AuthRequest) -> AuthResponse:
        name = self.cookie_name(CSRF_COOKIE_NAME)
        token = request.cookies.get(name) or secrets.token_urlsafe(32)
        response = AuthResponse.json({"csrfToken": token})
        response.set_cookie(name, token, secure=self._config.uses_secure_cookies)
        return response

    def _csrf_valid(self, request: AuthRequest, submitted: Optional[str]) -> bool:
        expected = request.cookies.get(self.cookie_name(CSRF_COOKIE_NAME))
        if not submitted or not expected:
            return False
        return secrets.compare_digest(submitted, expected)

    # =========================================================================
    # Sign-in
    # =========================================================================

    def safe_callback_url(self, url: Optional[str]) -> str:
        """
        Keep post-login redirects on the dashboard.

        Relative paths and URLs on the dashboard origin are kept. In
        development any localhost origin is allowed (the dev server runs
        on its own port). Anything else falls back to the dashboard root.
        """
        default = f"{self._config.auth_url}/"
        if not url:
            return default
        if url.startswith("/") and not url.startswith("//"):
            return f"{self._config.auth_url}{url}"

        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return default

        dashboard = urlsplit(self._config.auth_url)
        if (parts.scheme, parts.netloc) == (dashboard.scheme, dashboard.netloc):
            return url
        if not self._config.is_production and parts.hostname in ("localhost", "127.0.0.1"):
            return url
        return default

    def _encode_state(self, nonce: str, callback_url: str) -> str:
        now = int(time.time())
        return jwt.encode(
            {
                "nonce": nonce,
                "callbackUrl": callback_url,
                "iat": now,
                "exp": now + OAUTH_STATE_TTL,
            },
            self._config.auth_secret,
            algorithm=STATE_ALGORITHM,
        )

    async def _signin(self, request: AuthRequest) -> AuthResponse:
        if request.method.upper() == "POST":
            form = request.form()
            if not self._csrf_valid(request, form.get("csrfToken")):
                logger.warning("Sign-in Rejected", [
                    ("Reason", "Missing or invalid CSRF token"),
                ])
                return AuthResponse.json({"error": "Invalid CSRF token"}, status=403)
            callback_url = form.get("callbackUrl")
        else:
            callback_url = request.query.get("callbackUrl")

        nonce = secrets.token_urlsafe(16)
        state = self._encode_state(nonce, self.safe_callback_url(callback_url))

        response = AuthResponse.redirect(self._oauth.authorize_url(self.redirect_uri, state))
        response.set_cookie(
            self.cookie_name(STATE_COOKIE_NAME),
            nonce,
            max_age=OAUTH_STATE_TTL,
            secure=self._config.uses_secure_cookies,
        )
        return response

    def _fail(self, code: str) -> AuthResponse:
        response = AuthResponse.redirect(f"{self._config.auth_url}/?error={quote(code)}")
        response.delete_cookie(self.cookie_name(STATE_COOKIE_NAME), secure=self._config.uses_secure_cookies)
        return response

    def _verify_state(self, request: AuthRequest, state: str) -> Optional[Dict[str, Any]]:
        try:
            payload = jwt.decode(state, self._config.auth_secret, algorithms=[STATE_ALGORITHM])
        except InvalidTokenError as e:
            logger.warning("OAuth State Rejected", [
                ("Error Type", type(e).__name__),
            ])
            return None

        nonce = request.cookies.get(self.cookie_name(STATE_COOKIE_NAME))
        if not nonce or not secrets.compare_digest(str(payload.get("nonce", "")), nonce):
            logger.warning("OAuth State Rejected", [
                ("Reason", "Nonce does not match browser cookie"),
            ])
            return None
        return payload

    async def _callback(self, request: AuthRequest) -> AuthResponse:
        query = request.query

        if "error" in query:
            logger.info("Discord Consent Declined", [
                ("Error", query["error"][:50]),
            ])
            return self._fail("AccessDenied")

        code, state = query.get("code"), query.get("state")
        if not code or not state:
            return self._fail("OAuthCallbackError")

        payload = self._verify_state(request, state)
        if payload is None:
            return self._fail("OAuthCallbackError")

        try:
            tokens = await self._oauth.exchange_code(code, self.redirect_uri)
            profile = await self._oauth.fetch_user(tokens["access_token"])
        except (DiscordOAuthError, KeyError) as e:
            logger.warning("Discord Sign-in Failed", [
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            return self._fail("OAuthCallbackError")

        guilds = await self._fetch_guilds(tokens["access_token"])
        user_id = await self.record_sign_in(profile, tokens, guilds)

        max_age = self._config.session_max_age_days * 86400
        session_token, _ = await self.db.create_session(user_id, max_age)

        response = AuthResponse.redirect(payload.get("callbackUrl") or f"{self._config.auth_url}/")
        response.set_cookie(
            self.cookie_name(SESSION_COOKIE_NAME),
            session_token,
            max_age=max_age,
            secure=self._config.uses_secure_cookies,
        )
        response.delete_cookie(self.cookie_name(STATE_COOKIE_NAME), secure=self._config.uses_secure_cookies)

        logger.tree("User Signed In", [
            ("User", user_id),
            ("Discord ID", str(profile.get("id"))),
            ("Username", profile.get("username") or "Unknown"),
            ("Guilds", str(len(guilds))),
        ], emoji="🔓")

        return response

    async def _fetch_guilds(self, access_token: str) -> List[Dict[str, Any]]:
        """Guild list for sign-in. A failure here never blocks sign-in."""
        try:
            guilds = await self._oauth.fetch_guilds(access_token)
        except DiscordOAuthError as e:
            logger.warning("Guild Fetch Failed", [
                ("Error", str(e)[:100]),
            ])
            return []
        return guilds if isinstance(guilds, list) else []

    async def record_sign_in(
        self,
        profile: Dict[str, Any],
        tokens: Dict[str, Any],
        guilds: List[Dict[str, Any]],
    ) -> str:
        """
        Persist a successful Discord sign-in.

        The identity and account are always written. A failure saving the
        Discord profile or guilds is logged and the sign-in still succeeds.

        Returns:
            Internal user ID.
        """
        discord_id = str(profile["id"])
        expires_in = tokens.get("expires_in")

        user_id = await self.db.upsert_oauth_user(
            PROVIDER,
            discord_id,
            name=profile.get("global_name") or profile.get("username"),
            email=profile.get("email"),
            image=_avatar_url(profile),
            tokens={
                **tokens,
                "expires_at": time.time() + expires_in if expires_in else None,
            },
        )

        try:
            await self.db.upsert_discord_user(user_id, profile)
            if guilds:
                await self.db.save_user_guilds(discord_id, guilds)
        except (sqlite3.Error, KeyError) as e:
            logger.error("Saving Discord Data Failed", [
                ("User", user_id),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])

        return user_id

    # =========================================================================
    # Session & Sign-out
    # =========================================================================

    async def _session(self, request: AuthRequest) -> AuthResponse:
        name = self.cookie_name(SESSION_COOKIE_NAME)
        token = request.cookies.get(name)
        if not token:
            return AuthResponse.json(None)

        record = await self.db.get_session(token)
        if record is None:
            response = AuthResponse.json(None)
            response.delete_cookie(name, secure=self._config.uses_secure_cookies)
            return response

        user: Dict[str, Any] = {
            "id": record["user_id"],
            "name": record["name"],
            "email": record["email"],
            "image": record["image"],
        }
        if record["discord_id"]:
            user["discordId"] = record["discord_id"]

        return AuthResponse.json({"user": user, "expires": _iso(record["expires_at"])})

    async def _signout(self, request: AuthRequest) -> AuthResponse:
        name = self.cookie_name(SESSION_COOKIE_NAME)
        token = request.cookies.get(name)
        if token and await self.db.delete_session(token):
            logger.info("User Signed Out")

        response = AuthResponse.json({"url": f"{self._config.auth_url}/"})
        response.delete_cookie(name, secure=self._config.uses_secure_cookies)
        return response


# =============================================================================
# Global Instance
# =============================================================================

_handler: InitOnce[AuthHandler] = InitOnce("AuthHandler", lambda: AuthHandler(get_config()))


def get_auth_handler() -> AuthHandler:
    """Get the process-wide auth handler."""
    return _handler.get()


def set_auth_handler(handler: AuthHandler) -> AuthHandler:
    """Install a specific handler if none exists yet (tests, embedding)."""
    return _handler.init(lambda: handler)


def reset_auth_handler() -> None:
    _handler.reset()


__all__ = [
    "AuthHandler",
    "get_auth_handler",
    "set_auth_handler",
    "reset_auth_handler",
]

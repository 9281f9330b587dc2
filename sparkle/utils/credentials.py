"""
Sparkle Client — Session credential store.

The bearer token lives in a single cookie with a fixed one-day expiry, held in
an ``httpx.Cookies`` jar.  When ``COOKIE_JAR_PATH`` is configured the jar is a
``MozillaCookieJar`` persisted to disk, so a token survives process restarts
until the cookie expires.  Nothing else is persisted client-side.
"""

from __future__ import annotations

import time
from http.cookiejar import Cookie, CookieJar, MozillaCookieJar
from pathlib import Path
from typing import Callable

import httpx
import structlog

from sparkle.config import get_settings
from sparkle.utils.encryption import InvalidToken, decrypt_token, encrypt_token

logger = structlog.get_logger("sparkle.credentials")

_SECONDS_PER_DAY = 86_400


class CredentialStore:
    """get / set / clear for the session token cookie."""

    def __init__(
        self,
        jar_path: str | None = None,
        cookie_name: str | None = None,
        domain: str | None = None,
        ttl_days: int | None = None,
        fernet_key: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        settings = get_settings()
        self.cookie_name = cookie_name or settings.TOKEN_COOKIE_NAME
        self.domain = domain or settings.COOKIE_DOMAIN
        self.ttl_days = ttl_days or settings.TOKEN_TTL_DAYS
        self._fernet_key = (
            fernet_key if fernet_key is not None else settings.CREDENTIAL_FERNET_KEY
        )
        self._clock = clock

        path = jar_path if jar_path is not None else settings.COOKIE_JAR_PATH
        self._path: Path | None = Path(path).expanduser() if path else None

        jar: CookieJar
        if self._path is not None:
            jar = MozillaCookieJar(str(self._path))
            if self._path.exists():
                try:
                    jar.load(ignore_discard=True, ignore_expires=True)
                except OSError as exc:
                    # A corrupt jar means no session, not a crash.
                    logger.warning("cookie_jar_unreadable", path=str(self._path), error=str(exc))
        else:
            jar = CookieJar()
        self.cookies = httpx.Cookies(jar)

    # ── Public API ────────────────────────────────────────────────────────

    def get(self) -> str | None:
        cookie = self._find()
        if cookie is None:
            return None
        if cookie.expires is not None and cookie.expires <= self._clock():
            logger.info("token_cookie_expired")
            self.clear()
            return None
        if not self._fernet_key:
            return cookie.value
        try:
            return decrypt_token(cookie.value or "", self._fernet_key)
        except InvalidToken:
            logger.warning("token_cookie_undecryptable")
            self.clear()
            return None

    def set(self, token: str) -> None:
        value = encrypt_token(token, self._fernet_key) if self._fernet_key else token
        expires = int(self._clock()) + self.ttl_days * _SECONDS_PER_DAY
        self.cookies.jar.set_cookie(self._build_cookie(value, expires))
        self._save()
        logger.info("token_stored", expires=expires, encrypted=bool(self._fernet_key))

    def clear(self) -> None:
        try:
            self.cookies.jar.clear(self.domain, "/", self.cookie_name)
        except KeyError:
            pass  # nothing stored
        self._save()
        logger.info("token_cleared")

    def __bool__(self) -> bool:
        return self.get() is not None

    # ── Internals ─────────────────────────────────────────────────────────

    def _find(self) -> Cookie | None:
        for cookie in self.cookies.jar:
            if cookie.name == self.cookie_name and cookie.domain == self.domain:
                return cookie
        return None

    def _build_cookie(self, value: str, expires: int) -> Cookie:
        return Cookie(
            version=0,
            name=self.cookie_name,
            value=value,
            port=None,
            port_specified=False,
            domain=self.domain,
            domain_specified=False,
            domain_initial_dot=False,
            path="/",
            path_specified=True,
            secure=False,
            expires=expires,
            discard=False,
            comment=None,
            comment_url=None,
            rest={},
        )

    def _save(self) -> None:
        if self._path is None or not isinstance(self.cookies.jar, MozillaCookieJar):
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self.cookies.jar.save(ignore_discard=True, ignore_expires=True)
        self._path.chmod(0o600)

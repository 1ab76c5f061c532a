# src/punchlist/auth/identity.py

from __future__ import annotations

import hashlib
import logging
import uuid
from collections.abc import Callable

from ..core.ports import Identity
from ..errors import AuthenticationError
from ..store.base import StoreSubscription

logger = logging.getLogger(__name__)

AuthCallback = Callable[[Identity | None], None]


class LocalIdentityProvider:
    """
    In-process identity provider.

    - anonymous sign-in mints a random uid
    - token sign-in derives a stable uid from the token (the token is opaque
      here; verifying it belongs to whoever issued it)
    - listeners get the current identity on registration and on every change
    """

    def __init__(self) -> None:
        self._current: Identity | None = None
        self._listeners: dict[int, AuthCallback] = {}
        self._next_id = 1

    @property
    def current(self) -> Identity | None:
        return self._current

    async def sign_in_anonymous(self) -> Identity:
        identity = Identity(uid=uuid.uuid4().hex, is_anonymous=True)
        self._set(identity)
        logger.info("Signed in anonymously uid=%s", identity.uid)
        return identity

    async def sign_in_with_token(self, token: str) -> Identity:
        token = (token or "").strip()
        if not token:
            raise AuthenticationError("Authentication failed: empty token.")
        uid = hashlib.sha256(token.encode("utf-8")).hexdigest()[:28]
        identity = Identity(uid=uid, is_anonymous=False)
        self._set(identity)
        logger.info("Signed in with token uid=%s", identity.uid)
        return identity

    def sign_out(self) -> None:
        self._set(None)
        logger.info("Signed out")

    def on_auth_state_changed(self, callback: AuthCallback) -> StoreSubscription:
        listener_id = self._next_id
        self._next_id += 1
        self._listeners[listener_id] = callback

        sub = StoreSubscription(lambda: self._listeners.pop(listener_id, None), "auth-state")
        self._fire(callback, self._current)
        return sub

    def _set(self, identity: Identity | None) -> None:
        self._current = identity
        for cb in list(self._listeners.values()):
            self._fire(cb, identity)

    @staticmethod
    def _fire(cb: AuthCallback, identity: Identity | None) -> None:
        try:
            cb(identity)
        except Exception:
            logger.exception("Auth state listener crashed")


async def ensure_signed_in(provider, token: str | None) -> Identity:
    """
    Return the current identity, signing in first if there is none.

    Uses the token when one is supplied, anonymous sign-in otherwise.
    Any failure is raised as AuthenticationError.
    """
    current = provider.current
    if current is not None:
        return current
    try:
        if token:
            return await provider.sign_in_with_token(token)
        return await provider.sign_in_anonymous()
    except AuthenticationError:
        raise
    except Exception as e:
        raise AuthenticationError(f"Authentication failed: {e}") from e

"""Session facts: auth token and the user's profile.

Owned by the authentication flow; the transport reads the token and the
session gate reacts to changes. Listeners fire only on actual changes.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

SessionListener = Callable[["SessionStore"], None]


class SessionStore:
    """In-memory holder for the bearer token and the current profile."""

    def __init__(self, token: str | None = None, profile: Any | None = None) -> None:
        self._token = token
        self._profile = profile
        self._listeners: list[SessionListener] = []

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def profile(self) -> Any | None:
        return self._profile

    @property
    def has_profile(self) -> bool:
        return self._profile is not None

    def set_token(self, token: str) -> None:
        if not token:
            raise ValueError("token must be a non-empty string")
        self._update(token=token, profile=self._profile)

    def clear_token(self) -> None:
        self._update(token=None, profile=self._profile)

    def set_profile(self, profile: Any) -> None:
        if profile is None:
            raise ValueError("use clear_profile() to drop the profile")
        self._update(token=self._token, profile=profile)

    def clear_profile(self) -> None:
        self._update(token=self._token, profile=None)

    def logout(self) -> None:
        """Drop token and profile together (one notification)."""
        self._update(token=None, profile=None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, *, token: str | None, profile: Any | None) -> None:
        if token == self._token and profile == self._profile:
            return
        self._token = token
        self._profile = profile
        for listener in list(self._listeners):
            listener(self)

"""
Auth-state subscriptions.

Consumers that need to refresh when the signed-in user changes subscribe to an
``AuthStateChannel`` and must release the returned ``Subscription`` when they
are done (``unsubscribe()`` or ``with channel.subscribe(...)``).

The application builds one channel per lifespan (``PortalServices.auth_events``)
on the same gate that authorizes requests. Whatever hosts the sign-in flow
publishes to it when the session changes; subscribers get the caller that
the gate resolves for the new claims.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from quoteportal.auth.gate import Caller, AuthorizationGate

logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


Listener = Callable[[AuthEvent, Caller], None]


class Subscription:
    def __init__(self, channel: "AuthStateChannel", listener: Listener) -> None:
        self._channel = channel
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._channel._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.unsubscribe()


class AuthStateChannel:
    def __init__(self, gate: AuthorizationGate) -> None:
        self.gate = gate
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []

    def subscribe(self, listener: Listener) -> Subscription:
        subscription = Subscription(self, listener)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: AuthEvent, claims: Optional[Dict[str, Any]]) -> Caller:
        caller = self.gate.resolve(claims if event != AuthEvent.SIGNED_OUT else None)
        with self._lock:
            targets = list(self._subscriptions)
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription._listener(event, caller)
            except Exception:
                logger.exception("Auth state listener failed for event %s", event.value)
        return caller

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

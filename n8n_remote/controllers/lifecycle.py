"""Fetch lifecycle shared by the list and detail controllers.

Invariants:
1. Exactly one ``FetchLifecycle`` value is active per controller
2. Every fetch is tagged with the generation current at issue time
3. A result whose tag differs from the current generation is dropped, never applied
4. Only a generation-valid result may move the lifecycle
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import structlog

from n8n_remote.core.errors import ApiError, ErrorKind, normalize_error, user_message

logger = structlog.get_logger(__name__)


class FetchLifecycle(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    REFRESHING = "refreshing"
    LOADING_MORE = "loading_more"
    FAILED = "failed"

    @property
    def in_flight(self) -> bool:
        return self in (FetchLifecycle.LOADING, FetchLifecycle.REFRESHING, FetchLifecycle.LOADING_MORE)


@dataclass(frozen=True)
class FailureInfo:
    message: str
    kind: ErrorKind
    error: ApiError

    @classmethod
    def from_exception(cls, exc: BaseException) -> FailureInfo:
        if not isinstance(exc, ApiError):
            logger.exception("unexpected_controller_error", error_type=type(exc).__name__)
        error = normalize_error(exc)
        return cls(message=user_message(error), kind=error.kind, error=error)


class Generation:
    """Monotonic fetch-context counter (soft cancellation)."""

    def __init__(self) -> None:
        self._value = 0

    @property
    def current(self) -> int:
        return self._value

    def advance(self) -> int:
        self._value += 1
        return self._value

    def is_current(self, tag: int) -> bool:
        return tag == self._value


Listener = Callable[[Any], None]


class StateNotifier:
    """Push snapshots to UI listeners after every applied state change."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> Any:
        raise NotImplementedError

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                # a broken view must not corrupt controller state
                logger.exception("state_listener_failed", listener=getattr(listener, "__name__", repr(listener)))

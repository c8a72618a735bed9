"""Detail controller: fetch, act on and delete a single entity.

Shares the list controller's lifecycle discipline minus pagination:
``LOADING`` when nothing is shown yet, ``REFRESHING`` when stale data stays
visible, generation-tagged results, errors kept as state.

Actions may return a *different* entity than the subject (an execution retry
creates a new execution). In that case the controller re-targets itself to
the returned entity instead of patching the old one.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, TypeVar

import structlog

from n8n_remote.api.models import Entity
from n8n_remote.controllers.lifecycle import FailureInfo, FetchLifecycle, Generation, StateNotifier
from n8n_remote.core.errors import ErrorKind

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Entity)

FetchOne = Callable[[str], Awaitable[T]]
ActionFn = Callable[[str, Mapping[str, Any]], Awaitable[Optional[T]]]
DeleteOne = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class DetailSnapshot(Generic[T]):
    entity: Optional[T] = None
    entity_id: Optional[str] = None
    lifecycle: FetchLifecycle = FetchLifecycle.IDLE
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    acting: Optional[str] = None
    act_error: Optional[str] = None
    act_error_kind: Optional[ErrorKind] = None
    deleted: bool = False

    @property
    def is_loading(self) -> bool:
        return self.lifecycle == FetchLifecycle.LOADING

    @property
    def is_refreshing(self) -> bool:
        return self.lifecycle == FetchLifecycle.REFRESHING

    @property
    def is_acting(self) -> bool:
        return self.acting is not None


class DetailController(StateNotifier, Generic[T]):
    def __init__(
        self,
        fetch_one: FetchOne[T],
        *,
        actions: Optional[Mapping[str, ActionFn[T]]] = None,
        delete_one: Optional[DeleteOne] = None,
        entity_id: Optional[str] = None,
        name: str = "detail",
    ) -> None:
        super().__init__()
        self._fetch_one = fetch_one
        self._actions: dict[str, ActionFn[T]] = dict(actions or {})
        self._delete_one = delete_one
        self._name = name

        self._entity_id = entity_id
        self._entity: Optional[T] = None
        self._lifecycle = FetchLifecycle.IDLE
        self._failure: Optional[FailureInfo] = None
        self._acting: Optional[str] = None
        self._act_failure: Optional[FailureInfo] = None
        self._deleted = False
        self._generation = Generation()

    @property
    def snapshot(self) -> DetailSnapshot[T]:
        return DetailSnapshot(
            entity=self._entity,
            entity_id=self._entity_id,
            lifecycle=self._lifecycle,
            error=self._failure.message if self._failure else None,
            error_kind=self._failure.kind if self._failure else None,
            acting=self._acting,
            act_error=self._act_failure.message if self._act_failure else None,
            act_error_kind=self._act_failure.kind if self._act_failure else None,
            deleted=self._deleted,
        )

    @property
    def entity(self) -> Optional[T]:
        return self._entity

    @property
    def entity_id(self) -> Optional[str]:
        return self._entity_id

    @property
    def generation(self) -> int:
        return self._generation.current

    async def fetch(self, entity_id: Optional[str] = None) -> Optional[T]:
        """Load (or reload) the subject. A different id re-targets the controller."""
        target = entity_id if entity_id is not None else self._entity_id
        if target is None:
            raise ValueError(f"{self._name}: no entity id to fetch")
        if target != self._entity_id:
            self._entity_id = target
            self._entity = None
            self._act_failure = None

        generation = self._generation.advance()
        self._deleted = False
        self._lifecycle = FetchLifecycle.REFRESHING if self._entity is not None else FetchLifecycle.LOADING
        self._failure = None
        self._notify()

        try:
            entity = await self._fetch_one(target)
        except Exception as exc:
            if not self._generation.is_current(generation):
                return None
            self._failure = FailureInfo.from_exception(exc)
            self._lifecycle = FetchLifecycle.FAILED
            self._notify()
            logger.warning(
                "detail_fetch_failed",
                controller=self._name,
                entity_id=target,
                kind=self._failure.kind.value,
            )
            return None

        if not self._generation.is_current(generation):
            logger.debug("detail_stale_fetch_dropped", controller=self._name, entity_id=target)
            return None
        self._entity = entity
        self._lifecycle = FetchLifecycle.IDLE
        self._notify()
        return entity

    async def refresh(self) -> Optional[T]:
        return await self.fetch()

    async def act(self, kind: str, payload: Optional[Mapping[str, Any]] = None) -> Optional[T]:
        """Run a side-effecting action against the subject.

        Returns the entity the server sent back, or ``None`` when the action
        failed (see ``snapshot.act_error``) or another action is running.
        """
        action = self._actions[kind]
        if self._acting is not None:
            return None
        target = self._entity_id
        if target is None:
            raise ValueError(f"{self._name}: no entity to act on")

        self._acting = kind
        self._act_failure = None
        self._notify()
        try:
            result = await action(target, payload or {})
        except Exception as exc:
            self._acting = None
            self._act_failure = FailureInfo.from_exception(exc)
            self._notify()
            logger.warning(
                "detail_action_failed",
                controller=self._name,
                action=kind,
                entity_id=target,
                kind=self._act_failure.kind.value,
            )
            return None

        self._acting = None
        if result is not None and self._entity_id == target:
            self._apply_action_result(kind, target, result)
        self._notify()
        return result

    async def delete(self, entity_id: Optional[str] = None) -> bool:
        """Delete on the server; completes only after the server confirmed."""
        if self._delete_one is None:
            raise RuntimeError(f"{self._name}: delete is not supported")
        target = entity_id if entity_id is not None else self._entity_id
        if target is None:
            raise ValueError(f"{self._name}: no entity to delete")
        if self._acting is not None:
            return False

        self._acting = "delete"
        self._act_failure = None
        self._notify()
        try:
            await self._delete_one(target)
        except Exception as exc:
            self._acting = None
            self._act_failure = FailureInfo.from_exception(exc)
            self._notify()
            logger.warning("detail_delete_failed", controller=self._name, entity_id=target, kind=self._act_failure.kind.value)
            return False

        self._acting = None
        if target == self._entity_id:
            self._generation.advance()
            self._entity = None
            self._deleted = True
            self._lifecycle = FetchLifecycle.IDLE
            self._failure = None
        self._notify()
        logger.info("detail_entity_deleted", controller=self._name, entity_id=target)
        return True

    def _apply_action_result(self, kind: str, target: str, result: T) -> None:
        # supersede any fetch still in flight for the pre-action state
        self._generation.advance()
        if result.id != target:
            logger.info("detail_retargeted", controller=self._name, action=kind, previous=target, current=result.id)
            self._entity_id = result.id
        self._entity = result
        self._lifecycle = FetchLifecycle.IDLE
        self._failure = None

"""Paginated list controller shared by every list screen.

Invariants:
1. ``items`` is the concatenation of all pages applied since the last
   refresh or filter change; the controller never re-sorts or de-duplicates
2. ``has_more`` is true iff the last page had a next cursor AND at least one item
3. Refresh and filter changes advance the generation; a page fetched under an
   older generation is dropped on arrival (soft cancellation)
4. A failed refresh/load_more never clears items already shown
5. A failed mutate rolls back only the fields it patched, on that item only;
   once every mutation on a field has settled, the field holds the newest
   value the server accepted (or its pre-mutation value)

All public operations run synchronously up to their first ``await``, so the
state they set before suspending is visible to the UI immediately.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterable, Mapping, Optional, TypeVar

import structlog

from n8n_remote.api.models import Entity, Page
from n8n_remote.controllers.lifecycle import FailureInfo, FetchLifecycle, Generation, StateNotifier
from n8n_remote.core.errors import ApiError, ErrorKind

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=Entity)

FetchPage = Callable[[Mapping[str, Any], Optional[str], int], Awaitable[Page[T]]]
ApplyFn = Callable[[str, Mapping[str, Any]], Awaitable[Optional[T]]]


@dataclass(frozen=True)
class ListSnapshot(Generic[T]):
    items: tuple[T, ...] = ()
    cursor: Optional[str] = None
    total_count: Optional[int] = None
    has_more: bool = True
    lifecycle: FetchLifecycle = FetchLifecycle.IDLE
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    filters: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_loading(self) -> bool:
        return self.lifecycle == FetchLifecycle.LOADING

    @property
    def is_refreshing(self) -> bool:
        return self.lifecycle == FetchLifecycle.REFRESHING

    @property
    def is_loading_more(self) -> bool:
        return self.lifecycle == FetchLifecycle.LOADING_MORE

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.lifecycle.in_flight


@dataclass(frozen=True)
class MutationOutcome(Generic[T]):
    ok: bool
    entity: Optional[T] = None
    error: Optional[ApiError] = None
    message: Optional[str] = None


_MISSING = object()


@dataclass
class _PendingFields:
    """Unsettled optimistic writes on one item.

    ``stacks[field]`` holds ``(seq, value)`` per mutation still in flight, oldest
    first; ``baseline[field]`` is the last value the server stood behind.
    """

    stacks: dict[str, list[tuple[int, Any]]] = field(default_factory=dict)
    baseline: dict[str, Any] = field(default_factory=dict)


class PaginatedListController(StateNotifier, Generic[T]):
    """Cursor-paginated view over one collection endpoint.

    ``fetch_page(filters, cursor, limit)`` is the only way the controller talks
    to the server; the cursor it receives back is stored and never inspected.
    """

    def __init__(
        self,
        fetch_page: FetchPage[T],
        *,
        page_size: int = 20,
        filters: Optional[Mapping[str, Any]] = None,
        debounce_keys: Iterable[str] = (),
        debounce_seconds: float = 0.3,
        name: str = "list",
    ) -> None:
        super().__init__()
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._fetch_page = fetch_page
        self._page_size = page_size
        self._filters: dict[str, Any] = {k: v for k, v in (filters or {}).items() if v is not None}
        self._debounce_keys = frozenset(debounce_keys)
        self._debounce_seconds = debounce_seconds
        self._name = name

        self._items: list[T] = []
        self._cursor: Optional[str] = None
        self._total_count: Optional[int] = None
        self._has_more = True
        self._loaded = False
        self._lifecycle = FetchLifecycle.IDLE
        self._failure: Optional[FailureInfo] = None

        self._generation = Generation()
        self._refresh_task: Optional[asyncio.Task[bool]] = None
        self._refresh_generation = -1
        self._pending_filter_task: Optional[asyncio.Task[None]] = None
        self._mutation_seq = 0
        self._pending: dict[str, _PendingFields] = {}

    # ── Read side ────────────────────────────────────────

    @property
    def snapshot(self) -> ListSnapshot[T]:
        return ListSnapshot(
            items=tuple(self._items),
            cursor=self._cursor,
            total_count=self._total_count,
            has_more=self._has_more,
            lifecycle=self._lifecycle,
            error=self._failure.message if self._failure else None,
            error_kind=self._failure.kind if self._failure else None,
            filters=dict(self._filters),
        )

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._filters)

    @property
    def generation(self) -> int:
        return self._generation.current

    @property
    def page_size(self) -> int:
        return self._page_size

    # ── Commands ─────────────────────────────────────────

    async def refresh(self) -> None:
        """Replace the list with the first page under the current filters.

        A refresh already in flight for the current filters is joined rather
        than duplicated.
        """
        task = self._refresh_task
        if task is None or task.done() or self._refresh_generation != self._generation.current:
            task = self._start_refresh()
        await asyncio.shield(task)

    async def load_more(self) -> None:
        """Append the next page. No-op when exhausted or while any fetch runs."""
        if not self._has_more or self._lifecycle.in_flight:
            return
        if not self._loaded:
            await self.refresh()
            return
        generation = self._generation.current
        self._lifecycle = FetchLifecycle.LOADING_MORE
        self._failure = None
        self._notify()
        await self._fetch(generation, dict(self._filters), self._cursor, replace=False)

    def set_filter(self, key: str, value: Any) -> asyncio.Task[None]:
        """Change one filter; ``None`` removes it. See ``set_filters``."""
        return self.set_filters({key: value})

    def set_filters(self, changes: Mapping[str, Any]) -> asyncio.Task[None]:
        """Reset the list synchronously and schedule a refresh under the new filters.

        Text filters listed in ``debounce_keys`` wait ``debounce_seconds`` before
        the request goes out; if another filter change lands in the meantime the
        scheduled refresh never fires.
        """
        filters = dict(self._filters)
        for key, value in changes.items():
            if value is None:
                filters.pop(key, None)
            else:
                filters[key] = value
        self._filters = filters

        generation = self._generation.advance()
        self._items = []
        self._cursor = None
        self._total_count = None
        self._has_more = True
        self._loaded = False
        self._lifecycle = FetchLifecycle.LOADING
        self._failure = None
        self._notify()

        delay = self._debounce_seconds if self._debounce_keys.intersection(changes) else 0.0
        logger.debug("list_filter_changed", controller=self._name, generation=generation, keys=sorted(changes), delay=delay)
        task = asyncio.get_running_loop().create_task(self._refresh_when_settled(generation, delay))
        self._pending_filter_task = task
        return task

    async def mutate(self, entity_id: str, patch: Mapping[str, Any], apply_fn: ApplyFn[T]) -> MutationOutcome[T]:
        """Optimistically patch one item, then reconcile it with the server.

        ``apply_fn(entity_id, patch)`` performs the server call. Its returned
        entity replaces the item by id; on failure the patched fields are
        rolled back and the error is returned (and shown on the snapshot), not
        raised.

        Several mutations may be pending on one item. Each field remembers its
        last server-confirmed value and the optimistic values still in flight,
        so whichever mutation settles last leaves the field at the newest
        value the server has not rejected.
        """
        self._mutation_seq += 1
        seq = self._mutation_seq
        optimistic: dict[str, Any] = dict(patch)

        pending = self._pending.setdefault(entity_id, _PendingFields())
        index = self._index_of(entity_id)
        item = self._items[index] if index is not None else None
        for key, value in optimistic.items():
            stack = pending.stacks.setdefault(key, [])
            if not stack and item is not None:
                pending.baseline[key] = getattr(item, key, None)
            stack.append((seq, value))
        if index is not None:
            self._items[index] = item.model_copy(update=optimistic)
            self._notify()

        try:
            confirmed = await apply_fn(entity_id, patch)
        except Exception as exc:
            failure = FailureInfo.from_exception(exc)
            self._rollback(entity_id, seq, optimistic)
            self._failure = failure
            self._notify()
            logger.warning(
                "list_mutation_failed",
                controller=self._name,
                entity_id=entity_id,
                kind=failure.kind.value,
                fields=sorted(optimistic),
            )
            return MutationOutcome(ok=False, error=failure.error, message=failure.message)

        self._reconcile(entity_id, seq, optimistic, confirmed)
        self._notify()
        return MutationOutcome(ok=True, entity=confirmed)

    def remove(self, entity_id: str) -> bool:
        """Drop one item after the server confirmed its deletion."""
        index = self._index_of(entity_id)
        if index is None:
            return False
        del self._items[index]
        if self._total_count:
            self._total_count -= 1
        self._notify()
        return True

    def clear_error(self) -> None:
        self._failure = None
        if self._lifecycle == FetchLifecycle.FAILED:
            self._lifecycle = FetchLifecycle.IDLE
        self._notify()

    async def wait_idle(self) -> None:
        """Await the refresh scheduled by the last filter change, if it is still pending."""
        task = self._pending_filter_task
        if task is not None and not task.done():
            await asyncio.shield(task)

    # ── Internals ────────────────────────────────────────

    def _start_refresh(self) -> asyncio.Task[bool]:
        generation = self._generation.advance()
        self._lifecycle = FetchLifecycle.REFRESHING if self._loaded else FetchLifecycle.LOADING
        self._failure = None
        self._notify()
        task = asyncio.get_running_loop().create_task(
            self._fetch(generation, dict(self._filters), None, replace=True)
        )
        self._refresh_task = task
        self._refresh_generation = generation
        return task

    async def _refresh_when_settled(self, generation: int, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        if not self._generation.is_current(generation):
            logger.debug("list_filter_refresh_superseded", controller=self._name, generation=generation)
            return
        await self.refresh()

    async def _fetch(
        self,
        generation: int,
        filters: dict[str, Any],
        cursor: Optional[str],
        *,
        replace: bool,
    ) -> bool:
        try:
            page = await self._fetch_page(filters, cursor, self._page_size)
        except Exception as exc:
            if not self._generation.is_current(generation):
                logger.debug("list_stale_failure_dropped", controller=self._name, generation=generation)
                return False
            self._failure = FailureInfo.from_exception(exc)
            self._lifecycle = FetchLifecycle.FAILED
            self._notify()
            logger.warning(
                "list_fetch_failed",
                controller=self._name,
                replace=replace,
                kind=self._failure.kind.value,
                status=self._failure.error.status_code,
            )
            return False

        if not self._generation.is_current(generation):
            logger.debug(
                "list_stale_page_dropped",
                controller=self._name,
                generation=generation,
                current=self._generation.current,
            )
            return False

        if replace:
            self._items = list(page.data)
            self._total_count = page.total_count
        else:
            self._items.extend(page.data)
            if page.total_count is not None:
                self._total_count = page.total_count
        self._cursor = page.next_cursor or None
        # a cursor paired with an empty page counts as exhausted
        self._has_more = bool(page.next_cursor) and len(page.data) > 0
        self._loaded = True
        self._lifecycle = FetchLifecycle.IDLE
        self._failure = None
        self._notify()
        logger.debug(
            "list_page_applied",
            controller=self._name,
            replace=replace,
            received=len(page.data),
            total=len(self._items),
            has_more=self._has_more,
        )
        return True

    def _index_of(self, entity_id: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == entity_id:
                return index
        return None

    def _settle_field(self, pending: _PendingFields, key: str, seq: int) -> Any:
        """Drop mutation ``seq`` from one field; return the value now owed to it."""
        stack = [entry for entry in pending.stacks.get(key, []) if entry[0] != seq]
        if stack:
            pending.stacks[key] = stack
            return stack[-1][1]
        pending.stacks.pop(key, None)
        return pending.baseline.pop(key, _MISSING)

    def _rollback(self, entity_id: str, seq: int, optimistic: Mapping[str, Any]) -> None:
        pending = self._pending.get(entity_id)
        if pending is None:
            return
        index = self._index_of(entity_id)
        item = self._items[index] if index is not None else None
        restore: dict[str, Any] = {}
        for key in optimistic:
            shown = pending.stacks[key][-1][1] if pending.stacks.get(key) else _MISSING
            target = self._settle_field(pending, key, seq)
            # a refresh may have replaced the item meanwhile; keep fields the server changed
            if item is not None and target is not _MISSING and getattr(item, key, None) == shown:
                restore[key] = target
        if not pending.stacks:
            del self._pending[entity_id]
        if restore:
            self._items[index] = item.model_copy(update=restore)

    def _reconcile(self, entity_id: str, seq: int, optimistic: Mapping[str, Any], confirmed: Optional[T]) -> None:
        pending = self._pending.get(entity_id)
        if pending is not None:
            for key, value in optimistic.items():
                self._settle_field(pending, key, seq)
                if key in pending.stacks:
                    # newer optimistic values stay visible; this one is now the server's
                    pending.baseline[key] = getattr(confirmed, key, value) if confirmed is not None else value
            if not pending.stacks:
                del self._pending[entity_id]
        if confirmed is None:
            return
        index = self._index_of(entity_id)
        if index is None:
            return
        pending = self._pending.get(entity_id)
        if pending is None:
            self._items[index] = confirmed
            return
        # fields other in-flight mutations patched keep their optimistic value
        item = self._items[index]
        self._items[index] = confirmed.model_copy(update={key: getattr(item, key, None) for key in pending.stacks})

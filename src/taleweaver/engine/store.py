"""Single-owner state store.

The StateStore is the only place the authoritative ``GameState`` changes.
One worker task drains a queue of mutation commands strictly in order.
Each command runs against a private deep copy of the latest snapshot and
is committed atomically when it returns; a command that raises commits
nothing. Readers always see a complete snapshot and must re-read
``store.snapshot`` after every suspension point instead of holding on to
an older one.

Example:
    >>> store = StateStore(GameState())
    >>> def pause(state: GameState) -> None:
    ...     state.round.is_paused = True
    >>> await store.apply(pause, label="pause")
    >>> store.snapshot.round.is_paused
    True
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from taleweaver.core.constants import WORLD_TIME_KEY
from taleweaver.core.exceptions import StateStoreError
from taleweaver.core.logging import get_logger
from taleweaver.models.enums import LogType
from taleweaver.models.game_state import GameState, LogEntry


logger = get_logger(__name__)

Mutation = Callable[[GameState], Any]
"""A command: mutates the given private copy (its return value is passed back)."""


@dataclass
class _Command:
    mutation: Mutation
    label: str
    future: asyncio.Future[Any] = field(repr=False)


def stamp_log(state: GameState, content: str, **overrides: Any) -> LogEntry:
    """Append a story log entry stamped with the current round context.

    The entry records the round, turn, active location, present characters
    and story time unless overridden.

    Args:
        state: The state being mutated (a private copy inside a command).
        content: Log text.
        **overrides: LogEntry fields to override (e.g. ``type``, ``is_reaction``).

    Returns:
        The appended entry.
    """
    location_id = overrides.pop("location_id", state.map.active_location_id)
    present = overrides.pop(
        "present_char_ids",
        [c.id for c in state.characters_at(location_id)],
    )
    entry = LogEntry(
        round=state.round.round_number,
        turn_index=state.round.turn_index,
        location_id=location_id,
        present_char_ids=present,
        content=content,
        timestamp=state.world.text(WORLD_TIME_KEY),
        **overrides,
    )
    state.world.history.append(entry)
    return entry


class StateStore:
    """Owner of the authoritative game-state snapshot.

    Attributes:
        version: Number of committed commands.
    """

    def __init__(self, state: GameState) -> None:
        """Initialize the store.

        Args:
            state: Initial snapshot; the store keeps its own copy.
        """
        self._state = state.model_copy(deep=True)
        self.version = 0
        self._queue: asyncio.Queue[_Command | None] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def snapshot(self) -> GameState:
        """The latest committed snapshot (treat as read-only)."""
        return self._state

    def _ensure_worker(self) -> asyncio.Queue[_Command | None]:
        if self._queue is None or self._worker is None or self._worker.done():
            self._queue = asyncio.Queue()
            self._worker = asyncio.get_running_loop().create_task(
                self._run(self._queue), name="taleweaver-state-store"
            )
        return self._queue

    async def _run(self, queue: asyncio.Queue[_Command | None]) -> None:
        while True:
            command = await queue.get()
            try:
                if command is None:
                    return
                self._execute(command)
            finally:
                queue.task_done()

    def _execute(self, command: _Command) -> None:
        if command.future.cancelled():
            return
        working = self._state.model_copy(deep=True)
        try:
            result = command.mutation(working)
        except Exception as exc:
            logger.debug(
                "State command rolled back",
                label=command.label,
                error=str(exc),
            )
            command.future.set_exception(exc)
            return

        if isinstance(result, GameState):
            working, result = result, None
        self._state = working
        self.version += 1
        command.future.set_result(result)

    async def apply(self, mutation: Mutation, *, label: str = "mutation") -> Any:
        """Run a mutation against the latest snapshot and commit it.

        Args:
            mutation: Function receiving a private copy of the snapshot. It
                may mutate the copy in place or return a replacement
                ``GameState``; any other return value is passed back.
            label: Name of the command for diagnostics.

        Returns:
            The mutation's return value.

        Raises:
            StateStoreError: If the store is closed.
            Exception: Whatever the mutation raised; nothing was committed.
        """
        if self._closed:
            raise StateStoreError(
                "State store is closed",
                details={"label": label},
            )
        queue = self._ensure_worker()
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        await queue.put(_Command(mutation=mutation, label=label, future=future))
        return await future

    async def add_log(self, content: str, **overrides: Any) -> LogEntry:
        """Append a story log entry (see ``stamp_log``)."""
        return await self.apply(
            lambda state: stamp_log(state, content, **overrides),
            label="add_log",
        )

    async def system_log(self, content: str) -> LogEntry:
        """Append a system story log entry."""
        return await self.add_log(content, type=LogType.SYSTEM)

    async def update_trigger(self, trigger_id: str, **changes: Any) -> None:
        """Apply field changes to a trigger.

        Args:
            trigger_id: Trigger to update.
            **changes: Field values, e.g. ``max_triggers=0, enabled=False``.
        """

        def mutate(state: GameState) -> None:
            for index, trigger in enumerate(state.triggers):
                if trigger.id == trigger_id:
                    state.triggers[index] = trigger.model_copy(update=changes)
                    return
            logger.warning("Trigger not found for update", trigger_id=trigger_id)

        await self.apply(mutate, label="update_trigger")

    async def close(self) -> None:
        """Stop the worker after draining queued commands."""
        self._closed = True
        if self._queue is not None and self._worker is not None and not self._worker.done():
            await self._queue.put(None)
            await self._worker
        self._worker = None
        self._queue = None


__all__ = [
    "Mutation",
    "StateStore",
    "stamp_log",
]

"""Polling client that keeps a read-only player display in step with the controller."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from turnsync.backend.models import Combatant, MalformedEncounterError, parse_encounter_state
from turnsync.backend.projection import Projection, project
from turnsync.backend.resolver import DEFAULT_OPTIONS, ResolverOptions, active_display_name
from turnsync.backend.sequencer import SequenceItem, sequence
from turnsync.client.source import EncounterFetchError, EncounterSource
from turnsync.client.transitions import Commit, TransitionMachine, TransitionState

logger = logging.getLogger(__name__)


class IntentKind(str, Enum):
    ADVANCE = "advance"
    ROUND_CHANGE = "round_change"
    RENAME = "rename"
    JUMP = "jump"
    INITIATIVE_ROLLED = "initiative_rolled"
    SUSPENDED = "suspended"
    RESUMED = "resumed"


@dataclass(frozen=True)
class TransitionIntent:
    kind: IntentKind
    round: int
    display_index: int
    previous_index: int | None = None
    active_id: str | None = None
    fade: bool = False


@dataclass(frozen=True)
class PlayerView:
    round: int
    display_index: int
    visible_order: tuple[Combatant, ...]
    entries: tuple[SequenceItem, ...]
    transitioning: bool
    suspended: bool
    active_name: str
    encounter_name: str = ""


IntentCallback = Callable[[TransitionIntent], None]


class SyncClient:
    def __init__(
        self,
        source: EncounterSource,
        *,
        interval: float = 3.0,
        transition_duration: float = 0.6,
        fetch_timeout: float = 5.0,
        options: ResolverOptions = DEFAULT_OPTIONS,
        on_intent: IntentCallback | None = None,
    ) -> None:
        self._source = source
        self.interval = interval
        self.fetch_timeout = fetch_timeout
        self.options = options
        self._on_intent = on_intent
        self._transitions = TransitionMachine(duration=transition_duration, on_commit=self._commit)

        self._projection: Projection | None = None
        self._committed = Commit(round=1, display_index=0)
        self._all_rolled = False

        self._next_seq = 0
        self._applied_seq = 0
        self._in_flight = False
        self._task: asyncio.Task[None] | None = None

    # ---------- reads ----------
    @property
    def projection(self) -> Projection | None:
        return self._projection

    @property
    def committed(self) -> Commit:
        return self._committed

    @property
    def transition_state(self) -> TransitionState:
        return self._transitions.state

    @property
    def view(self) -> PlayerView:
        projection = self._projection
        if projection is None:
            return PlayerView(
                round=self._committed.round,
                display_index=0,
                visible_order=(),
                entries=(),
                transitioning=False,
                suspended=False,
                active_name="",
            )
        order = projection.visible_order
        index = self._committed.display_index % len(order) if order else 0
        suspended = projection.suspended
        return PlayerView(
            round=self._committed.round,
            display_index=index,
            visible_order=order,
            entries=() if suspended else sequence(order, index, self._committed.round),
            transitioning=self._transitions.state is TransitionState.TRANSITIONING,
            suspended=suspended,
            active_name="" if suspended else active_display_name(order, index),
            encounter_name=projection.encounter_name,
        )

    # ---------- polling ----------
    async def poll_once(self) -> bool:
        """Fetch and apply one snapshot; returns whether a new projection was applied."""
        if self._in_flight:
            logger.debug("[SyncClient] Previous poll still in flight, skipping tick")
            return False
        self._next_seq += 1
        seq = self._next_seq
        self._in_flight = True
        try:
            record = await asyncio.wait_for(self._source.fetch(), timeout=self.fetch_timeout)
        except EncounterFetchError as exc:
            logger.warning(f"[SyncClient] Poll {seq} failed, keeping last projection: {exc}")
            return False
        except asyncio.TimeoutError:
            logger.warning(f"[SyncClient] Poll {seq} timed out after {self.fetch_timeout}s")
            return False
        finally:
            self._in_flight = False
        return self.receive(seq, record)

    def receive(self, seq: int, record: Mapping[str, Any]) -> bool:
        """Apply a fetched record tagged with its request sequence number.

        Responses older than the newest applied one are discarded, as are
        malformed ones; the last-known-good projection stays untouched.
        Called outside a running event loop, forward scrolls commit at once
        instead of animating.
        """
        if seq <= self._applied_seq:
            logger.debug(f"[SyncClient] Discarding stale response {seq} (applied {self._applied_seq})")
            return False
        try:
            state = parse_encounter_state(record)
        except MalformedEncounterError as exc:
            logger.warning(f"[SyncClient] Discarding malformed response {seq}: {exc}")
            return False
        self._applied_seq = seq
        self._apply(project(state, self.options))
        return True

    async def run(self) -> None:
        logger.info(f"[SyncClient] Polling every {self.interval}s")
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        dropped = self._transitions.pending
        self._transitions.cancel()
        logger.info(f"[SyncClient] Stopped, dropped {dropped} pending transition(s)")

    async def __aenter__(self) -> "SyncClient":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ---------- diffing ----------
    def _apply(self, new: Projection) -> None:
        previous = self._projection
        self._projection = new

        if new.suspended:
            if previous is None or not previous.suspended:
                self._transitions.force_complete()
                self._emit(IntentKind.SUSPENDED, new)
            return

        self._check_initiative_rolled(new)
        target = Commit(round=new.round, display_index=new.display_index)

        if previous is None:
            self._transitions.commit_now(target)
            return

        if previous.suspended:
            self._transitions.commit_now(target)
            self._emit(IntentKind.RESUMED, new, previous_index=previous.display_index)
            return

        index_changed = new.display_index != previous.display_index
        round_changed = new.round != previous.round
        identity_changed = new.active_key != previous.active_key

        if index_changed or round_changed:
            total = len(new.visible_order)
            moved_forward = total > 0 and new.display_index == (previous.display_index + 1) % total
            if moved_forward or round_changed:
                kind = IntentKind.ROUND_CHANGE if round_changed else IntentKind.ADVANCE
                self._transitions.request(target)
                self._emit(kind, new, previous_index=previous.display_index, fade=identity_changed)
            else:
                self._transitions.commit_now(target)
                self._emit(IntentKind.JUMP, new, previous_index=previous.display_index, fade=identity_changed)
        elif identity_changed:
            self._transitions.commit_now(target)
            self._emit(IntentKind.RENAME, new, previous_index=previous.display_index, fade=True)

    def _check_initiative_rolled(self, new: Projection) -> None:
        complete = new.initiative_complete
        if complete and not self._all_rolled:
            logger.info(f"[SyncClient] Initiative rolled for {len(new.visible_order)} combatants")
            self._emit(IntentKind.INITIATIVE_ROLLED, new)
        self._all_rolled = complete

    def _commit(self, commit: Commit) -> None:
        logger.debug(f"[SyncClient] Committed round {commit.round}, index {commit.display_index}")
        self._committed = commit

    def _emit(
        self,
        kind: IntentKind,
        projection: Projection,
        previous_index: int | None = None,
        fade: bool = False,
    ) -> None:
        active = projection.active
        intent = TransitionIntent(
            kind=kind,
            round=projection.round,
            display_index=projection.display_index,
            previous_index=previous_index,
            active_id=active.id if active is not None else None,
            fade=fade,
        )
        logger.debug(f"[SyncClient] {intent}")
        if self._on_intent is not None:
            self._on_intent(intent)

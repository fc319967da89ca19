"""Idle/Transitioning state machine that delays committing a scrolled turn."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class TransitionState(str, Enum):
    IDLE = "idle"
    TRANSITIONING = "transitioning"


@dataclass(frozen=True)
class Commit:
    round: int
    display_index: int


class TransitionMachine:
    """Applies commits through ``on_commit``, either after ``duration`` or at once.

    One event-loop timer drives the machine. Requests arriving while a
    transition runs are queued and played in order; none is dropped.
    Without a running loop there is nothing to time the scroll with, so
    requests commit immediately.
    """

    def __init__(self, duration: float, on_commit: Callable[[Commit], None]) -> None:
        self.duration = duration
        self._on_commit = on_commit
        self._state = TransitionState.IDLE
        self._in_flight: Commit | None = None
        self._queue: deque[Commit] = deque()
        self._timer: asyncio.TimerHandle | None = None

    @property
    def state(self) -> TransitionState:
        return self._state

    @property
    def pending(self) -> int:
        return len(self._queue) + (1 if self._in_flight is not None else 0)

    def request(self, commit: Commit) -> None:
        if self._state is TransitionState.TRANSITIONING:
            logger.debug(f"[Transition] Queued {commit} behind {self._in_flight}")
            self._queue.append(commit)
            return
        self._start(commit)

    def commit_now(self, commit: Commit) -> None:
        self.force_complete()
        self._on_commit(commit)

    def force_complete(self) -> None:
        """Apply the in-flight and queued commits immediately, in order."""
        self._cancel_timer()
        in_flight, self._in_flight = self._in_flight, None
        self._state = TransitionState.IDLE
        if in_flight is not None:
            self._on_commit(in_flight)
        while self._queue:
            self._on_commit(self._queue.popleft())

    def cancel(self) -> None:
        """Drop everything without committing; used on viewer teardown."""
        self._cancel_timer()
        self._in_flight = None
        self._queue.clear()
        self._state = TransitionState.IDLE

    def _start(self, commit: Commit) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"[Transition] No running loop, committing {commit} at once")
            self._on_commit(commit)
            return
        self._state = TransitionState.TRANSITIONING
        self._in_flight = commit
        self._timer = loop.call_later(self.duration, self._finish)

    def _finish(self) -> None:
        self._timer = None
        commit, self._in_flight = self._in_flight, None
        self._state = TransitionState.IDLE
        if commit is not None:
            self._on_commit(commit)
        if self._queue:
            self._start(self._queue.popleft())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

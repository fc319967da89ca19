"""Viewer-side polling and transition handling."""

from .source import EncounterFetchError, EncounterSource, HttpEncounterSource, StoreEncounterSource
from .sync import IntentKind, PlayerView, SyncClient, TransitionIntent
from .transitions import Commit, TransitionMachine, TransitionState

__all__ = [
    "Commit",
    "EncounterFetchError",
    "EncounterSource",
    "HttpEncounterSource",
    "IntentKind",
    "PlayerView",
    "StoreEncounterSource",
    "SyncClient",
    "TransitionIntent",
    "TransitionMachine",
    "TransitionState",
]

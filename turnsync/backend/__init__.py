"""Backend package for turn-order sync."""

from .config import ServerSettings, SyncSettings, configure_logging, load_settings, load_sync_settings
from .models import Combatant, EncounterState, LairActionMarker, MalformedEncounterError, parse_encounter_state
from .projection import Projection, player_view_payload, project
from .resolver import ResolvedOrder, ResolverOptions, resolve
from .sequencer import RenderEntry, RoundBoundaryMarker, sequence
from .state import build_initial_state
from .store import EncounterStore, InMemoryEncounterStore, create_store

__all__ = [
    "build_initial_state",
    "Combatant",
    "configure_logging",
    "create_store",
    "EncounterState",
    "EncounterStore",
    "InMemoryEncounterStore",
    "LairActionMarker",
    "load_settings",
    "load_sync_settings",
    "MalformedEncounterError",
    "parse_encounter_state",
    "player_view_payload",
    "project",
    "Projection",
    "RenderEntry",
    "resolve",
    "ResolvedOrder",
    "ResolverOptions",
    "RoundBoundaryMarker",
    "sequence",
    "ServerSettings",
    "SyncSettings",
]

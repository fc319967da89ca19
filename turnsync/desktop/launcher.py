"""Launcher for the encounter API and a terminal player display."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Sequence

import httpx

from turnsync.backend.config import SyncSettings, configure_logging, load_settings, load_sync_settings
from turnsync.backend.sequencer import RenderEntry, RoundBoundaryMarker
from turnsync.client.source import HttpEncounterSource
from turnsync.client.sync import IntentKind, PlayerView, SyncClient, TransitionIntent

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[2]
APP_PATH = "turnsync.backend.api:app"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    server_settings = load_settings()
    parser = argparse.ArgumentParser(description="Turn order sync launcher")
    parser.add_argument("--role", choices=["server", "player"], required=True)
    parser.add_argument("--server", default=None, help="API base URL (default: TURNSYNC_SERVER_URL)")
    parser.add_argument("--encounter-id", default=None, help="follow the current encounter when omitted")
    parser.add_argument("--interval", type=float, default=None, help="poll interval in seconds")
    parser.add_argument("--start-server", action="store_true")
    parser.add_argument("--log-level", default=server_settings.log_level)
    return parser.parse_args(argv)


def wait_for_server(
    server_url: str,
    timeout_s: float = 8.0,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """Poll the follow-mode endpoint until the API answers; 404 (no encounter yet) counts as up."""
    deadline = time.monotonic() + timeout_s
    with httpx.Client(timeout=0.5, transport=transport) as client:
        while time.monotonic() < deadline:
            try:
                response = client.get(f"{server_url}/api/encounters/current/active")
            except httpx.HTTPError:
                response = None
            if response is not None and response.status_code < 500:
                return True
            time.sleep(0.2)
    logger.warning(f"[Launcher] No answer from {server_url} after {timeout_s}s")
    return False


def maybe_start_server(server_url: str) -> subprocess.Popen[str] | None:
    url = httpx.URL(server_url)
    host = url.host or "127.0.0.1"
    port = url.port or load_settings().port
    command = [sys.executable, "-m", "uvicorn", APP_PATH, "--host", host, "--port", str(port)]
    logger.info(f"[Launcher] Starting API on {host}:{port}")
    process = subprocess.Popen(command, cwd=str(ROOT_DIR), env=os.environ.copy())
    if wait_for_server(server_url):
        return process
    process.terminate()
    return None


def render_view(view: PlayerView) -> str:
    """Plain-text rendering of the player screen, current turn on top."""
    if view.suspended:
        return ""
    if not view.entries:
        return "Combat is about to start.\nROLL INITIATIVE!"

    title = view.encounter_name or "Encounter"
    lines = [f"{title} - Round {view.round}", f"Now: {view.active_name}", ""]
    for item in view.entries:
        if isinstance(item, RoundBoundaryMarker):
            lines.append(f"  ---- Round {item.round_number} ----" if item.round_number else "  ----")
            continue
        if not isinstance(item, RenderEntry):
            continue
        combatant = item.entry
        if item.render_index == 0:
            prefix = ">"
        elif item.render_index == 1:
            prefix = "+"
        else:
            prefix = str(item.render_index + 1)
        indent = "    " if combatant.sidekick_of else ""
        suffix = " (concentrating)" if combatant.concentration else ""
        if combatant.conditions:
            suffix += f" [{', '.join(sorted(combatant.conditions))}]"
        lines.append(f"{prefix:>3} {indent}{combatant.name}{suffix}")
    return "\n".join(lines)


def _announce(intent: TransitionIntent) -> None:
    if intent.kind is IntentKind.INITIATIVE_ROLLED:
        print("*** Roll Initiative! ***", flush=True)
    elif intent.kind is IntentKind.SUSPENDED:
        print("\n" * 3, flush=True)


async def watch(settings: SyncSettings, refresh_s: float = 0.1) -> None:
    source = HttpEncounterSource(
        base_url=settings.server_url,
        encounter_id=settings.encounter_id,
        timeout=settings.fetch_timeout,
    )
    client = SyncClient(
        source,
        interval=settings.poll_interval,
        transition_duration=settings.transition_seconds,
        fetch_timeout=settings.fetch_timeout,
        options=settings.resolver_options,
        on_intent=_announce,
    )
    last_frame: str | None = None
    try:
        async with client:
            while True:
                frame = render_view(client.view)
                if frame != last_frame:
                    print(frame + "\n", flush=True)
                    last_frame = frame
                await asyncio.sleep(refresh_s)
    finally:
        await source.aclose()


def serve(host: str, port: int, log_level: str) -> None:
    import uvicorn

    uvicorn.run(APP_PATH, host=host, port=port, log_level=log_level.lower())


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.role == "server":
        settings = load_settings()
        serve(host=settings.host, port=settings.port, log_level=args.log_level)
        return 0

    base = load_sync_settings()
    settings = SyncSettings(
        server_url=(args.server or base.server_url).rstrip("/"),
        encounter_id=args.encounter_id or base.encounter_id,
        poll_interval=args.interval if args.interval is not None else base.poll_interval,
        transition_seconds=base.transition_seconds,
        fetch_timeout=base.fetch_timeout,
        sidekick_redirection=base.sidekick_redirection,
        lair_actions=base.lair_actions,
    )

    server_process: subprocess.Popen[str] | None = None
    if args.start_server:
        server_process = maybe_start_server(settings.server_url)
        if server_process is None:
            print("Server could not be started.", file=sys.stderr)
            return 1
    elif not wait_for_server(settings.server_url):
        print("Server not reachable. Use --start-server or run --role server first.", file=sys.stderr)
        return 1

    try:
        asyncio.run(watch(settings))
    except KeyboardInterrupt:
        logger.info("[Launcher] Player display closed")
    finally:
        if server_process is not None:
            server_process.terminate()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

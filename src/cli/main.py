"""Tracker CLI entry points.
This module exposes the run-once command and read-only inspection commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Sequence

from core.config import TrackerConfig
from core.errors import TrackerError
from core.source_profile import builtin_source_names
from store.snapshot_payload import format_instant, snapshot_to_payload
from store.tracker_sdk import TrackerClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="covid-tracker", description="Brazil COVID-19 snapshot tracker"
    )
    parser.add_argument("--data-root", help="Override TRACKER_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    run_parser = subparsers.add_parser("run", help="Fetch the source once and persist snapshots")
    _add_source_argument(run_parser)
    run_parser.add_argument("--profile-file", help="YAML source profile overriding built-ins")
    latest_parser = subparsers.add_parser("latest", help="Print the latest snapshot JSON")
    _add_source_argument(latest_parser)
    history_parser = subparsers.add_parser("history", help="List history records")
    _add_source_argument(history_parser)
    subparsers.add_parser("sources", help="List built-in source profiles")
    return parser


def main(argv: Sequence[str] | None = None, client: TrackerClient | None = None) -> int:
    """Run the tracker CLI.

    Args:
        argv: Optional argument vector.
        client: Optional preconfigured SDK client.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(client, args.data_root)
        if args.command == "run":
            return _run_run_command(client, args)
        if args.command == "latest":
            return _run_latest_command(client, args)
        if args.command == "history":
            return _run_history_command(client, args)
        if args.command == "sources":
            return _run_sources_command()
    except TrackerError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _add_source_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source", help="Source profile name (defaults to TRACKER_SOURCE)")


def _build_client(client: TrackerClient | None, data_root: str | None) -> TrackerClient:
    """Build SDK client with optional data-root override.

    Args:
        client: Optional preconfigured client.
        data_root: Optional override path.

    Returns:
        Configured SDK client.
    """
    if client is None:
        client = TrackerClient(TrackerConfig.from_env())
    if data_root:
        client = client.with_data_root(data_root)
    return client


def _run_run_command(client: TrackerClient, args: argparse.Namespace) -> int:
    """Handle run command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    profile_file = Path(args.profile_file).expanduser() if args.profile_file else None
    result = client.run(args.source, profile_file)
    summary = {
        "source": result.source_name,
        "lastUpdatedAtSource": format_instant(result.latest_source_timestamp),
        "candidates": result.candidate_count,
        "appended": result.appended_count,
        "warnings": list(result.warnings),
    }
    print(json.dumps(summary, sort_keys=True))
    return 0


def _run_latest_command(client: TrackerClient, args: argparse.Namespace) -> int:
    """Handle latest command.

    Returns:
        Exit code; 1 when no snapshot exists yet.
    """
    snapshot = client.latest(args.source)
    if snapshot is None:
        print("error: no latest snapshot yet; run the tracker first", file=sys.stderr)
        return 1
    print(json.dumps(snapshot_to_payload(snapshot), indent=2, ensure_ascii=False))
    return 0


def _run_history_command(client: TrackerClient, args: argparse.Namespace) -> int:
    """Handle history command."""
    for snapshot in client.history(args.source):
        print(
            f"{format_instant(snapshot.source_timestamp)}\t"
            f"{snapshot.metrics.get('infected', '-')}\t"
            f"{snapshot.metrics.get('deceased', '-')}"
        )
    return 0


def _run_sources_command() -> int:
    for name in builtin_source_names():
        print(name)
    return 0

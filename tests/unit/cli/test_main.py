"""Unit tests for CLI command handling."""

from __future__ import annotations

import json
from dataclasses import replace

from cli.main import main
from core.config import TrackerConfig
from core.source_profile import BUILTIN_SOURCE_PROFILES
from store.tracker_sdk import TrackerClient
from tests.fetch_stubs import StubFetcher
from tests.fixture_paths import fixture_text

_DASHBOARD_URL = BUILTIN_SOURCE_PROFILES["dashboard-csv"].source_url


def _client(tmp_path, status_code: int = 200) -> TrackerClient:
    config = replace(TrackerConfig.from_env(), data_root=tmp_path, s3_publish_uri=None)
    fetcher = StubFetcher(
        {_DASHBOARD_URL: (status_code, fixture_text("dashboard/brazil_export.csv"))}
    )
    return TrackerClient(config, fetcher)


def test_cli_run_prints_summary(tmp_path, capsys) -> None:
    """CLI run should print the appended count and source instant."""
    exit_code = main(["run", "--source", "dashboard-csv"], client=_client(tmp_path))
    summary = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and (summary["appended"], summary["lastUpdatedAtSource"]) == (
        1,
        "2020-04-05T21:00:00.000Z",
    )


def test_cli_run_reports_fetch_failure(tmp_path, capsys) -> None:
    """CLI run should exit non-zero with an error line on failure."""
    exit_code = main(["run", "--source", "dashboard-csv"], client=_client(tmp_path, 503))

    assert exit_code == 1 and capsys.readouterr().err.splitlines()[-1].startswith("error:")


def test_cli_latest_prints_published_payload(tmp_path, capsys) -> None:
    """CLI latest should print the latest snapshot JSON."""
    client = _client(tmp_path)
    main(["run", "--source", "dashboard-csv"], client=client)
    capsys.readouterr()

    exit_code = main(["latest", "--source", "dashboard-csv"], client=client)
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0 and payload["deceased"] == 378


def test_cli_latest_without_runs_fails(tmp_path) -> None:
    """CLI latest should fail before the first run."""
    assert main(["latest", "--source", "dashboard-csv"], client=_client(tmp_path)) == 1


def test_cli_history_lists_records(tmp_path, capsys) -> None:
    """CLI history should print one line per record."""
    client = _client(tmp_path)
    main(["run", "--source", "dashboard-csv"], client=client)
    capsys.readouterr()

    main(["history", "--source", "dashboard-csv"], client=client)

    assert capsys.readouterr().out.splitlines() == ["2020-04-05T21:00:00.000Z\t3780\t378"]


def test_cli_sources_lists_builtin_profiles(capsys) -> None:
    """CLI sources should print every built-in profile name."""
    exit_code = main(["sources"])

    assert exit_code == 0 and "portal-api" in capsys.readouterr().out.split()

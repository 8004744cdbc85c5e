"""Diagnostic capture for rejected payloads and candidates.

Captures are keyed by error kind plus a random disambiguator so that
repeated failures of the same kind never overwrite each other.
"""

from __future__ import annotations

import json
from dataclasses import is_dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

from core.constants import DIAGNOSTIC_KEY_LENGTH, DIAGNOSTICS_DIR_NAME
from core.logging_config import get_logger
from core.types import Snapshot
from store.snapshot_payload import snapshot_to_payload

_LOGGER = get_logger(__name__)


class DiagnosticStore:
    """Side store of offending inputs for offline inspection."""

    def __init__(self, source_root: Path) -> None:
        self._diagnostics_dir = source_root / DIAGNOSTICS_DIR_NAME
        self._diagnostics_dir.mkdir(parents=True, exist_ok=True)

    def capture(self, kind: str, payload: Any) -> str:
        """Persist ``payload`` under a fresh key for ``kind``.

        Args:
            kind: Error kind slug.
            payload: Raw text, decoded JSON, or a candidate snapshot.

        Returns:
            Key of the written capture (file name without directory).
        """
        key = f"{kind}-{uuid4().hex[:DIAGNOSTIC_KEY_LENGTH]}"
        if isinstance(payload, (str, bytes)):
            file_name = f"{key}.txt"
            body = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
        else:
            file_name = f"{key}.json"
            body = json.dumps(_to_jsonable(payload), indent=2, ensure_ascii=False, default=str)
        (self._diagnostics_dir / file_name).write_text(body, encoding="utf-8")
        _LOGGER.warning("diagnostic_captured", kind=kind, key=file_name)
        return file_name

    def list_captures(self) -> list[str]:
        """Return capture file names in sorted order."""
        return sorted(path.name for path in self._diagnostics_dir.glob("*") if path.is_file())


def _to_jsonable(payload: Any) -> Any:
    if isinstance(payload, Snapshot):
        return snapshot_to_payload(payload)
    if is_dataclass(payload) and not isinstance(payload, type):
        return repr(payload)
    return payload

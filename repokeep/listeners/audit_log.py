"""Audit log listener — one JSON line per removed artifact file.

Layout: {base_path}/{repository_id}.jsonl
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from repokeep.core.checksums import canonical_json_bytes

logger = logging.getLogger(__name__)


class AuditLogListener:
    """Appends removal records to per-repository JSON Lines files.

    Parameters
    ----------
    base_path:
        Directory for the audit files.  Defaults to ``.repokeep/audit``.
    """

    def __init__(self, base_path: Path | str | None = None) -> None:
        self._base = Path(base_path) if base_path else Path(".repokeep/audit")
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def listener_name(self) -> str:
        return "audit_log"

    def log_path(self, repository_id: str) -> Path:
        return self._base / f"{repository_id}.jsonl"

    def delete_artifact(
        self,
        metadata_repository: Any,
        repository_id: str,
        namespace: str,
        project: str,
        version: str,
        filename: str,
    ) -> None:
        record = {
            "event": "artifact_deleted",
            "repository_id": repository_id,
            "namespace": namespace,
            "project": project,
            "version": version,
            "filename": filename,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
        target = self.log_path(repository_id)
        with self._lock, target.open("ab") as fh:
            fh.write(canonical_json_bytes(record) + b"\n")
        logger.debug("AuditLogListener: recorded %s in %s", filename, target)

    def read_events(self, repository_id: str) -> list[dict]:
        """Read every record logged for a repository."""
        target = self.log_path(repository_id)
        if not target.exists():
            return []
        return [
            json.loads(line)
            for line in target.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]

"""Apply edit sets to disk with backup and rollback."""

from __future__ import annotations

import json
import logging
import shutil
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .edits import EditSet

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Result of writing a move to disk."""
    success: bool
    files_changed: List[str] = field(default_factory=list)
    backup_id: Optional[str] = None
    error: Optional[str] = None

    def __str__(self) -> str:
        if self.success:
            return f"Applied changes to {len(self.files_changed)} file(s)"
        return f"Failed: {self.error}"


def read_buffer(path: str) -> str:
    """Current content of *path*; a missing file reads as empty."""
    file_path = Path(path)
    if not file_path.exists():
        return ""
    with open(file_path, "r", encoding="utf-8", newline="") as fh:
        return fh.read()


class ChangeWriter:
    """Writes edit sets back to their files.

    Every file that exists before the write is copied into
    ``<backup_dir>/<backup id>/`` together with a ``metadata.json`` listing
    what was touched, so a move can be undone with :meth:`rollback`.
    """

    def __init__(self, backup_dir: Optional[Path] = None):
        if backup_dir is None:
            from .config import BACKUP_DIR
            backup_dir = BACKUP_DIR
        self.backup_dir = Path(backup_dir)

    def render(self, edits: Mapping[str, EditSet]) -> Dict[str, Tuple[str, str]]:
        """``path -> (current content, content after the edits)``."""
        rendered = {}
        for path, edit_set in edits.items():
            original = read_buffer(path)
            rendered[path] = (original, edit_set.apply(original))
        return rendered

    def apply(self, edits: Mapping[str, EditSet], backup: bool = True) -> ApplyResult:
        """Apply *edits* to the filesystem.

        Args:
            edits: Edit sets keyed by absolute path
            backup: Whether to back up the touched files first

        Returns:
            ApplyResult with success status and details
        """
        targets = {p: e for p, e in edits.items() if len(e)}
        try:
            rendered = self.render(targets)
        except (OSError, ValueError) as e:
            return ApplyResult(success=False, error=str(e))

        backup_id = self._create_backup(list(rendered)) if backup else None

        files_changed = []
        try:
            for path, (_, content) in rendered.items():
                file_path = Path(path)
                file_path.parent.mkdir(parents=True, exist_ok=True)
                with open(file_path, "w", encoding="utf-8", newline="") as fh:
                    fh.write(content)
                files_changed.append(path)
                logger.debug("wrote %s (%d chars)", path, len(content))
        except OSError as e:
            logger.error("Writing changes failed: %s", e)
            if backup_id:
                self.rollback(backup_id)
            return ApplyResult(success=False, error=str(e))

        return ApplyResult(success=True, files_changed=files_changed, backup_id=backup_id)

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def _create_backup(self, paths: List[str]) -> str:
        """Copy the current state of *paths* and return the backup ID."""
        backup_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        backup_path = self.backup_dir / backup_id
        backup_path.mkdir(parents=True, exist_ok=True)

        metadata = {
            "timestamp": datetime.now().isoformat(),
            "files": [],
        }
        for index, path in enumerate(paths):
            file_path = Path(path)
            if file_path.exists():
                backup_file = backup_path / f"{index}_{file_path.name}"
                shutil.copy2(file_path, backup_file)
                metadata["files"].append({"original": path, "backup": str(backup_file)})
            else:
                metadata["files"].append({"original": path, "backup": None})

        (backup_path / "metadata.json").write_text(json.dumps(metadata, indent=2))
        logger.info("Backed up %d file(s) as %s", len(paths), backup_id)
        return backup_id

    def rollback(self, backup_id: str) -> bool:
        """Restore the files saved under *backup_id*.

        Files that did not exist before the move are removed again.
        """
        backup_path = self.backup_dir / backup_id
        metadata_file = backup_path / "metadata.json"
        if not metadata_file.exists():
            return False

        try:
            metadata = json.loads(metadata_file.read_text())
            for file_info in metadata["files"]:
                original_path = Path(file_info["original"])
                if file_info["backup"] is None:
                    if original_path.exists():
                        original_path.unlink()
                    continue
                backup_file = Path(file_info["backup"])
                if backup_file.exists():
                    shutil.copy2(backup_file, original_path)
            return True
        except (OSError, ValueError, KeyError) as e:
            logger.error("Rollback of %s failed: %s", backup_id, e)
            return False

    def list_backups(self) -> List[dict]:
        """All available backups, newest first."""
        if not self.backup_dir.exists():
            return []
        backups = []
        for backup_dir in self.backup_dir.iterdir():
            metadata_file = backup_dir / "metadata.json"
            if backup_dir.is_dir() and metadata_file.exists():
                metadata = json.loads(metadata_file.read_text())
                metadata["backup_id"] = backup_dir.name
                backups.append(metadata)
        return sorted(backups, key=lambda x: x["timestamp"], reverse=True)

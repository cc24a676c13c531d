"""Configuration paths for cppmove."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CPPMOVE_HOME", str(Path.home() / ".cppmove"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
BACKUP_DIR = BASE_DIR / "backups"
LOCAL_CONFIG_NAME = ".cppmove.toml"

DEFAULT_STYLE = "llvm"
# Styles accepted by the cleanup pass; "none" disables it.
SUPPORTED_STYLES = ("llvm", "google", "chromium", "mozilla", "webkit", "file", "none")

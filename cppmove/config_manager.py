"""TOML settings for the ``[move]`` table.

Settings come from ``$CPPMOVE_HOME/config.toml`` and are overlaid by a
``.cppmove.toml`` found in the working directory::

    [move]
    fallback_style = "llvm"
    include_dirs = ["include", "third_party"]
    backup = true
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config

logger = logging.getLogger(__name__)

DEFAULT_MOVE_CONFIG: Dict[str, Any] = {
    "fallback_style": config.DEFAULT_STYLE,
    "include_dirs": [],
    "backup": True,
}


def _read_table(path: Path) -> Dict[str, Any]:
    """The ``[move]`` table of *path*, or an empty dict."""
    if not path.is_file():
        return {}
    try:
        with open(path, "r") as f:
            data = toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return {}
    table = data.get("move", {})
    if not isinstance(table, dict):
        logger.warning("Ignoring [move] in %s: not a table", path)
        return {}
    return table


def load_config(project_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Merged ``[move]`` settings.

    Relative ``include_dirs`` of the project-local file are resolved against
    the directory that holds it.
    """
    merged = dict(DEFAULT_MOVE_CONFIG)
    merged.update(_read_table(config.CONFIG_FILE))

    project_dir = Path(project_dir or Path.cwd())
    local = _read_table(project_dir / config.LOCAL_CONFIG_NAME)
    if "include_dirs" in local:
        local["include_dirs"] = [str(project_dir / d) for d in local["include_dirs"]]
    merged.update(local)

    style = str(merged.get("fallback_style", config.DEFAULT_STYLE))
    if style.lower() not in config.SUPPORTED_STYLES:
        logger.warning("Unknown fallback_style '%s', using %s", style, config.DEFAULT_STYLE)
        style = config.DEFAULT_STYLE
    merged["fallback_style"] = style
    merged["include_dirs"] = [str(d) for d in merged.get("include_dirs") or []]
    merged["backup"] = bool(merged.get("backup", True))
    return merged


def save_config(settings: Dict[str, Any]) -> bool:
    """Write *settings* into the ``[move]`` table of the user config.

    Other tables in the file are preserved.
    """
    data: Dict[str, Any] = {}
    if config.CONFIG_FILE.is_file():
        try:
            with open(config.CONFIG_FILE, "r") as f:
                data = toml.load(f)
        except (OSError, toml.TomlDecodeError) as e:
            logger.warning("Overwriting unreadable config %s: %s", config.CONFIG_FILE, e)
    data.setdefault("move", {}).update(settings)
    try:
        config.BASE_DIR.mkdir(parents=True, exist_ok=True)
        with open(config.CONFIG_FILE, "w") as f:
            toml.dump(data, f)
        return True
    except OSError as e:
        logger.error("Could not write %s: %s", config.CONFIG_FILE, e)
        return False

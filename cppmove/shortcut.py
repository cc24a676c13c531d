"""Whole-file move used when the donor header ends up empty."""

from __future__ import annotations

import logging
from typing import Optional

from .context import MoveContext
from .edits import Edit, EditSet
from .include_tracker import IncludeTracker
from .models import IncludeDirective
from .symbol_locator import SymbolLocator

logger = logging.getLogger(__name__)


def should_move_whole_files(ctx: MoveContext, locator: SymbolLocator) -> bool:
    """Typedefs, enums and plain variables left behind do not block the move."""
    return bool(ctx.spec.old_header) and locator.header_is_emptied()


def move_whole_files(ctx: MoveContext, tracker: IncludeTracker) -> None:
    spec = ctx.spec
    move_all(ctx, spec.old_header, spec.new_header)
    redirect = tracker.old_header_include(spec.old_cc) if spec.old_cc else None
    move_all(ctx, spec.old_cc, spec.new_cc, redirect)


def move_all(
    ctx: MoveContext,
    old_file: str,
    new_file: str,
    redirect: Optional[IncludeDirective] = None,
) -> None:
    """Empty *old_file* and copy its content into *new_file*.

    When *redirect* is given, its filename token is rewritten to the
    destination header in the copy, keeping the original quoting.
    """
    if not old_file:
        return
    old_path = ctx.resolver.resolve(old_file)
    try:
        code = ctx.snapshot.text(old_path)
    except OSError as exc:
        ctx.note(f"Failed to get file: {old_file} ({exc})", path=old_path, level="error")
        return

    ctx.file_edits[old_path] = EditSet(old_path, [Edit(0, len(code), "")])
    if not new_file:
        return

    if redirect is not None and ctx.spec.new_header:
        name = ctx.spec.new_header
        token = f"<{name}>" if redirect.angled else f'"{name}"'
        code = code[:redirect.filename_start] + token + code[redirect.filename_end:]

    new_path = ctx.resolver.resolve(new_file)
    logger.info("Moving all of %s to %s", old_file, new_file)
    ctx.file_edits[new_path] = EditSet(new_path, [Edit(0, 0, code)])

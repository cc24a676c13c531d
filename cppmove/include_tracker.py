"""Record the include directives of the donor files."""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

from .context import MoveContext
from .models import IncludeDirective, include_line

logger = logging.getLogger(__name__)


class IncludeTracker:
    """Collects the includes to replay at the top of the destination files.

    Includes of the donor header itself are not replayed; their filename
    ranges are remembered per containing file so the whole-file move can
    point them at the destination header instead.
    """

    def __init__(self, ctx: MoveContext) -> None:
        self.ctx = ctx
        self.old_header = ctx.old_header
        self.old_cc = ctx.old_cc
        self.header_includes: List[str] = []
        self.cc_includes: List[str] = []
        if ctx.spec.new_header:
            self.cc_includes.append(include_line(ctx.spec.new_header))
        self._old_header_includes: Dict[str, IncludeDirective] = {}

    def add(self, directive: IncludeDirective) -> None:
        resolver = self.ctx.resolver
        target = resolver.resolve(os.path.join(directive.search_path, directive.spelling))
        owner = resolver.resolve(directive.path)

        if self.old_header and target == self.old_header:
            logger.debug("%s includes the donor header", owner)
            self._old_header_includes[owner] = directive
            return

        if self.old_header and owner == self.old_header:
            self.header_includes.append(directive.line)
        elif self.old_cc and owner == self.old_cc:
            self.cc_includes.append(directive.line)

    def old_header_include(self, path: str) -> Optional[IncludeDirective]:
        """The directive in *path* that includes the donor header, if any."""
        return self._old_header_includes.get(self.ctx.resolver.resolve(path))

"""
Resolution of raw references to existing files.

Mirrors compiler-style module resolution:

* ``/x``      -> relative to the mini-program root
* ``@alias/x`` -> each alias target in declared order, first hit wins
* ``./x``     -> relative to the referencing file
* ``x``       -> relative to the referencing file, then to the mini-program root

For every candidate base the exact file (when it already has a known
extension), then ``base + ext`` for each allowed extension, then
``base/index + ext`` are tried. Unresolvable references yield ``None``.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

from .aliases import AliasTable
from .extractors import is_external_or_dynamic
from .filetypes import KNOWN_EXTENSIONS
from .log_setup import TRACE

logger = logging.getLogger(__name__)


class PathResolver:
    def __init__(self, miniapp_root: str | Path, alias_table: Optional[AliasTable] = None) -> None:
        self.miniapp_root = os.path.normpath(str(Path(miniapp_root).resolve()))
        self.alias_table = alias_table
        if self.alias_table is not None:
            self.alias_table.initialize()

    def candidate_bases(self, raw_ref: str, source_file: str) -> List[str]:
        """Absolute, extension-less candidate paths for ``raw_ref`` in order."""
        source_dir = os.path.dirname(source_file)

        if os.path.isabs(raw_ref) and raw_ref.startswith(self.miniapp_root + os.sep):
            return [os.path.normpath(raw_ref)]
        if raw_ref.startswith("/"):
            return [os.path.normpath(os.path.join(self.miniapp_root, raw_ref.lstrip("/")))]

        if self.alias_table is not None:
            match = self.alias_table.resolve_prefix(raw_ref)
            if match is not None:
                return [os.path.normpath(os.path.join(t, match.remainder)) for t in match.targets]

        if raw_ref.startswith("."):
            return [os.path.normpath(os.path.join(source_dir, raw_ref))]

        bases = [os.path.normpath(os.path.join(source_dir, raw_ref))]
        from_root = os.path.normpath(os.path.join(self.miniapp_root, raw_ref))
        if from_root not in bases:
            bases.append(from_root)
        return bases

    def resolve(self, raw_ref: str, source_file: str, allowed_extensions: Sequence[str]) -> Optional[str]:
        raw_ref = raw_ref.strip()
        if is_external_or_dynamic(raw_ref):
            return None

        for base in self.candidate_bases(raw_ref, source_file):
            found = find_existing_path(base, allowed_extensions)
            if found is not None:
                logger.log(TRACE, "Resolved %r from %s -> %s", raw_ref, source_file, found)
                return found

        logger.debug("Unresolved reference %r in %s (extensions %s)", raw_ref, source_file, list(allowed_extensions))
        return None


def find_existing_path(composed: str, allowed_extensions: Sequence[str]) -> Optional[str]:
    """Return the file ``composed`` denotes, trying extensions then index files."""
    _, ext = os.path.splitext(composed)
    if ext.lower() in KNOWN_EXTENSIONS and os.path.isfile(composed):
        return composed

    for ext in allowed_extensions:
        candidate = composed + ext
        if os.path.isfile(candidate):
            return candidate

    if os.path.isdir(composed):
        for ext in allowed_extensions:
            candidate = os.path.join(composed, "index" + ext)
            if os.path.isfile(candidate):
                return candidate
    return None

"""
Import alias table.

Aliases are merged from three sources, lowest priority first:

1. ``compilerOptions.paths`` of ``tsconfig.json`` / ``jsconfig.json``, found at
   the project root or in one of up to three parent directories;
2. the ``aliases`` section of the mplens configuration file;
3. aliases passed by the caller.

A later source overwrites an earlier one key by key. Every alias maps to an
ordered list of absolute directories; resolution tries them in order.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

COMPILER_CONFIG_NAMES = ("tsconfig.json", "jsconfig.json")

AliasSpec = Mapping[str, Union[str, Sequence[str]]]

# A JSON string, or a // / /* */ comment; strings are matched first so that
# "http://..." inside a value is left alone.
_JSONC_TOKEN_RE = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


def loads_jsonc(text: str):
    """Parse JSON that may contain comments and trailing commas (tsconfig style)."""

    def _drop_comment(m: re.Match) -> str:
        token = m.group(0)
        return token if token.startswith('"') else ""

    stripped = _JSONC_TOKEN_RE.sub(_drop_comment, text)
    stripped = _TRAILING_COMMA_RE.sub(r"\1", stripped)
    return json.loads(stripped)


def _strip_wildcard(value: str) -> str:
    if value.endswith("/*"):
        return value[:-2]
    if value == "*":
        return ""
    return value


@dataclass(frozen=True)
class AliasMatch:
    alias: str
    targets: List[str]
    remainder: str


def find_compiler_config(start_dir: str | Path, max_parent_levels: int = 3) -> Optional[Path]:
    """Locate ``tsconfig.json``/``jsconfig.json`` at ``start_dir`` or above it."""
    current = Path(start_dir).resolve()
    for _level in range(max_parent_levels + 1):
        for name in COMPILER_CONFIG_NAMES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def load_compiler_aliases(config_path: str | Path) -> Dict[str, List[str]]:
    """Read ``baseUrl`` + ``paths`` from a compiler config as absolute targets."""
    config_path = Path(config_path)
    try:
        data = loads_jsonc(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Failed to read aliases from %s: %s", config_path, e)
        return {}

    options = data.get("compilerOptions") if isinstance(data, dict) else None
    if not isinstance(options, dict):
        return {}
    paths = options.get("paths")
    if not isinstance(paths, dict):
        return {}

    base_url = options.get("baseUrl") or "."
    base_dir = (config_path.parent / str(base_url)).resolve()

    result: Dict[str, List[str]] = {}
    for alias, targets in paths.items():
        if isinstance(targets, str):
            targets = [targets]
        if not isinstance(targets, list):
            continue
        key = _strip_wildcard(str(alias))
        if not key:
            # "*" catch-all mappings are module-resolution fallbacks, not aliases
            continue
        resolved = [
            os.path.normpath(str(base_dir / _strip_wildcard(str(t))))
            for t in targets
            if isinstance(t, str)
        ]
        if resolved:
            result[key] = resolved
    return result


class AliasTable:
    def __init__(
        self,
        project_root: str | Path,
        config_aliases: Optional[AliasSpec] = None,
        aliases: Optional[AliasSpec] = None,
        max_parent_levels: int = 3,
    ) -> None:
        self.project_root = Path(project_root).resolve()
        self._config_aliases = dict(config_aliases or {})
        self._caller_aliases = dict(aliases or {})
        self.max_parent_levels = max_parent_levels
        self._aliases: Dict[str, List[str]] = {}
        self._initialized = False
        self.compiler_config: Optional[Path] = None

    def _normalize_targets(self, targets: Union[str, Sequence[str]]) -> List[str]:
        if isinstance(targets, str):
            targets = [targets]
        out: List[str] = []
        for t in targets:
            if not isinstance(t, str) or not t:
                continue
            t = _strip_wildcard(t)
            p = Path(t)
            if not p.is_absolute():
                p = self.project_root / p
            out.append(os.path.normpath(str(p)))
        return out

    def initialize(self) -> bool:
        """Load and merge all alias sources. Returns True if any alias exists."""
        if self._initialized:
            return bool(self._aliases)

        self.compiler_config = find_compiler_config(self.project_root, self.max_parent_levels)
        if self.compiler_config is not None:
            found = load_compiler_aliases(self.compiler_config)
            if found:
                logger.debug("Loaded %d aliases from %s", len(found), self.compiler_config)
            self._aliases.update(found)

        for source in (self._config_aliases, self._caller_aliases):
            for alias, targets in source.items():
                key = _strip_wildcard(str(alias)).rstrip("/")
                normalized = self._normalize_targets(targets)
                if key and normalized:
                    self._aliases[key] = normalized

        self._initialized = True
        if self._aliases:
            logger.debug("Alias table: %s", self._aliases)
        return bool(self._aliases)

    def aliases(self) -> Dict[str, List[str]]:
        self.initialize()
        return {k: list(v) for k, v in self._aliases.items()}

    def resolve_prefix(self, ref: str) -> Optional[AliasMatch]:
        """Return the first alias that equals ``ref`` or prefixes it before a ``/``."""
        self.initialize()
        for alias, targets in self._aliases.items():
            if ref == alias:
                return AliasMatch(alias, list(targets), "")
            if ref.startswith(alias + "/"):
                return AliasMatch(alias, list(targets), ref[len(alias) + 1:])
        return None

    def is_alias(self, ref: str) -> bool:
        return self.resolve_prefix(ref) is not None

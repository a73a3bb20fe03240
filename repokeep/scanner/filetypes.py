"""File type filter — which repository paths the purge scan skips.

Patterns are ``/``-separated globs matched against repository-relative
paths: ``*`` and ``?`` stay within one segment, ``**`` spans segments and
a leading ``**/`` also matches at the root.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from repokeep.config import DEFAULT_EXCLUDED_PATTERNS


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a ``**``-aware glob into an anchored regular expression."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


class FileTypeFilter:
    """Decides whether a repository path is excluded from purging.

    Parameters
    ----------
    patterns:
        Exclusion globs.  Defaults to version indexes, checksum and
        signature files, hidden trees and lock files.
    """

    def __init__(self, patterns: Iterable[str] | None = None) -> None:
        self._patterns = tuple(DEFAULT_EXCLUDED_PATTERNS if patterns is None else patterns)
        self._compiled = [glob_to_regex(p) for p in self._patterns]

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def is_excluded(self, relative_path: str) -> bool:
        path = relative_path.replace("\\", "/").strip("/")
        return any(regex.match(path) for regex in self._compiled)

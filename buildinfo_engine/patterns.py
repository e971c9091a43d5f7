import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Tuple

_PATTERN_SEPARATORS = re.compile(r"[;\s]+")


def split_patterns(patterns: str) -> Tuple[str, ...]:
    """Splits a ';' or whitespace delimited pattern list, dropping blanks."""
    if not patterns:
        return ()
    return tuple(token for token in _PATTERN_SEPARATORS.split(patterns) if token)


@dataclass(frozen=True)
class IncludeExcludePatterns:
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()

    @classmethod
    def from_strings(cls, include_patterns: str = "", exclude_patterns: str = "") -> 'IncludeExcludePatterns':
        return cls(include=split_patterns(include_patterns), exclude=split_patterns(exclude_patterns))

    @classmethod
    def include_all(cls) -> 'IncludeExcludePatterns':
        return cls()


def _matches_any(key: str, tokens: Tuple[str, ...]) -> bool:
    return any(fnmatchcase(key, token) for token in tokens)


def path_conflicts(key: str, patterns: IncludeExcludePatterns) -> bool:
    """
    Returns True if ``key`` must be left out.
    Exclusions win over inclusions; an empty include list keeps everything not excluded.
    """
    if _matches_any(key, patterns.exclude):
        return True
    if patterns.include:
        return not _matches_any(key, patterns.include)
    return False

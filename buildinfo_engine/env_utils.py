import re
from typing import Dict, Mapping, Optional

from .logger_setup import logger

# Looked up in this order, first non-blank value wins
VCS_REVISION_VARIABLES = ("SVN_REVISION", "GIT_COMMIT", "P4_CHANGELIST")

BUILD_NAME_SEPARATOR = " :: "

_MACRO_PATTERN = re.compile(r"\$\{([a-zA-Z0-9_.\-]+)\}|\$([a-zA-Z_][a-zA-Z0-9_]*)")
_MATRIX_PARAM_SEPARATORS = re.compile(r"[;\s]+")


def diff_only_left(left: Mapping[str, str], right: Mapping[str, str]) -> Dict[str, str]:
    """Entries of ``left`` that ``right`` lacks or holds with another value."""
    return {key: value for key, value in left.items() if key not in right or right[key] != value}


def get_vcs_revision(env: Mapping[str, str]) -> Optional[str]:
    for variable in VCS_REVISION_VARIABLES:
        revision = env.get(variable)
        if revision and revision.strip():
            return revision
    return None


def sanitize_build_name(build_name: Optional[str]) -> Optional[str]:
    """Replaces occurrences of '/' with ' :: ' so folder jobs don't clash with path-like names."""
    if build_name is None:
        return None
    return build_name.replace("/", BUILD_NAME_SEPARATOR)


def replace_macro(value: Optional[str], env: Mapping[str, str]) -> Optional[str]:
    """Expands $VAR and ${VAR} references found in env; unknown references are kept as is."""
    if value is None:
        return None

    def _substitute(match):
        name = match.group(1) or match.group(2)
        if name in env:
            return env[name]
        return match.group(0)

    return _MACRO_PATTERN.sub(_substitute, value)


def parse_matrix_params(matrix_params: str, env: Mapping[str, str]) -> Dict[str, str]:
    """
    Parses "key1=value1; key2=value2" into a dict.
    Pairs are split on the first '='; anything without both a key and a value is skipped.
    """
    params = {}
    if not matrix_params or not matrix_params.strip():
        return params

    for pair in _MATRIX_PARAM_SEPARATORS.split(matrix_params):
        if not pair:
            continue
        parts = pair.split("=", 1)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            logger.debug(f"Skipping malformed matrix param '{pair}'")
            continue
        params[parts[0]] = replace_macro(parts[1], env)
    return params

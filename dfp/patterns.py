from __future__ import annotations

import re

WILDCARD = "*"

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]+")


def glob(pattern: str, candidate: str) -> bool:
    """Test a string against a wildcard pattern.

    Only ``*`` is special. Literal segments between wildcards are matched
    left to right, each at its first occurrence in what is left of the
    candidate (no backtracking). Without a leading ``*`` the first segment
    must be a prefix; without a trailing ``*`` the remainder must end with
    the last segment. A pattern without any ``*`` is an exact compare.
    """
    if not pattern:
        return candidate == pattern

    if pattern == WILDCARD:
        return True

    parts = pattern.split(WILDCARD)
    if len(parts) == 1:
        return candidate == pattern

    leading = pattern.startswith(WILDCARD)
    trailing = pattern.endswith(WILDCARD)
    end = len(parts) - 1

    rest = candidate
    for i in range(end):
        idx = rest.find(parts[i])
        if i == 0 and not leading and idx != 0:
            return False
        if idx < 0:
            return False
        rest = rest[idx + len(parts[i]):]

    return trailing or rest.endswith(parts[end])


def glob_to_regex(pattern: str) -> str:
    """Anchored regular expression accepting exactly what ``glob`` accepts.

    Taking the first occurrence of every middle segment never rejects a
    string that some other split would accept, so ``.*`` between escaped
    segments is equivalent.
    """
    return "^" + ".*".join(re.escape(part) for part in pattern.split(WILDCARD)) + "$"


def glob_any(patterns: list[str], candidate: str) -> bool:
    return any(glob(p, candidate) for p in patterns)


def replace_non_alphabet_and_numbers(values: list[str]) -> str:
    """Join values with '_' and collapse every non-alphanumeric run to '_'.

    Used to derive HAProxy ACL/backend identifiers from service data.
    """
    return _NON_ALNUM_RE.sub("_", "_".join(values))

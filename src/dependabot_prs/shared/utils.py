from __future__ import annotations

from typing import NamedTuple, Optional


DEPENDABOT_LOGIN = "dependabot[bot]"
DEPENDABOT_APP = "dependabot"

_BUMP_PREFIX = "bump "
_FROM_MARKER = " from "
_TO_MARKER = " to "
_VERSION_TERMINATORS = ("(", "[", " ", "\n")


class DependencyUpdate(NamedTuple):
    dependency: Optional[str] = None
    current_version: Optional[str] = None
    proposed_version: Optional[str] = None


def is_dependabot_login(login: Optional[str]) -> bool:
    if not login:
        return False
    lowered = login.lower()
    return lowered == DEPENDABOT_LOGIN or DEPENDABOT_APP in lowered


def _clean(text: str) -> Optional[str]:
    stripped = text.strip()
    return stripped or None


def parse_dependency_title(title: Optional[str]) -> DependencyUpdate:
    """Extract dependency name and versions from a Dependabot pull request title.

    Examples:
        >>> parse_dependency_title("Bump spring-boot from 3.1.0 to 3.2.1")
        DependencyUpdate(dependency='spring-boot', current_version='3.1.0', proposed_version='3.2.1')
        >>> parse_dependency_title("Bump lodash from 4.17.20 to 4.17.21 (#42)").proposed_version
        '4.17.21'
        >>> parse_dependency_title("Update docs to v2")
        DependencyUpdate(dependency=None, current_version=None, proposed_version='v2')

    Only titles starting with "bump " (case-insensitive) yield a dependency and a
    current version. A proposed version is read after the first " to " marker
    (searched after " from " when present) regardless of the prefix. Fields that
    cannot be located are None.
    """
    if not title:
        return DependencyUpdate()

    is_bump = title.lower().startswith(_BUMP_PREFIX)
    rest = title[len(_BUMP_PREFIX):] if is_bump else title
    lowered = rest.lower()

    from_idx = lowered.find(_FROM_MARKER)
    if from_idx >= 0:
        to_idx = lowered.find(_TO_MARKER, from_idx + len(_FROM_MARKER))
    else:
        to_idx = lowered.find(_TO_MARKER)

    dependency: Optional[str] = None
    current_version: Optional[str] = None
    if is_bump and from_idx >= 0:
        dependency = _clean(rest[:from_idx])
        if to_idx >= 0:
            current_version = _clean(rest[from_idx + len(_FROM_MARKER):to_idx])

    proposed_version: Optional[str] = None
    if to_idx >= 0:
        after = rest[to_idx + len(_TO_MARKER):].lstrip()
        # A terminator at position 0 ends the version there, leaving it None
        end = len(after)
        for terminator in _VERSION_TERMINATORS:
            idx = after.find(terminator)
            if 0 <= idx < end:
                end = idx
        proposed_version = _clean(after[:end])

    return DependencyUpdate(dependency, current_version, proposed_version)

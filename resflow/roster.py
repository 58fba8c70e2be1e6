"""Role roster lookups."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Protocol


class RoleRoster(Protocol):
    """Read-only mapping from role tags to staff identifiers."""

    def resolve_role(self, role: str) -> List[str]:
        """Return the staff currently holding ``role``."""


class StaticRoleRoster:
    """Roster backed by a fixed mapping, usually taken from configuration."""

    def __init__(self, members: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._members: Dict[str, List[str]] = {
            role: list(staff) for role, staff in (members or {}).items()
        }

    def resolve_role(self, role: str) -> List[str]:
        return list(self._members.get(role, []))

    @property
    def roles(self) -> List[str]:
        return sorted(self._members)

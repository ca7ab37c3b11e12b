"""
Permission inspection - effective permissions with source attribution.

Pure set-union and set-difference over role -> permission mappings. A
permission granted by several roles keeps every granting role as a source.
Roles are identified by key (the role id), not by display name: two roles
that happen to share a name are still two sources. Output is sorted so
repeated inspections of unchanged assignments are identical.
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class PermissionEntry:
    key: str
    granted: bool
    sources: Tuple[str, ...] = ()
    source_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InspectedRole:
    id: str
    name: str
    permissions: Tuple[str, ...]


@dataclass(frozen=True)
class PermissionInspection:
    roles: Tuple[InspectedRole, ...]
    permissions: Tuple[PermissionEntry, ...]
    missing_permissions: Tuple[str, ...]
    granted: FrozenSet[str] = field(default_factory=frozenset)

    def entry(self, key: str) -> Optional[PermissionEntry]:
        for entry in self.permissions:
            if entry.key == key:
                return entry
        return None

    def sources_of(self, key: str) -> Tuple[str, ...]:
        entry = self.entry(key)
        return entry.sources if entry else ()

    def as_dict(self) -> dict:
        return {
            "roles": [
                {"id": role.id, "name": role.name, "permissions": list(role.permissions)}
                for role in self.roles
            ],
            "permissions": [
                {
                    "key": entry.key,
                    "granted": entry.granted,
                    "sources": list(entry.sources),
                    "source_ids": list(entry.source_ids),
                }
                for entry in self.permissions
            ],
            "missing_permissions": list(self.missing_permissions),
        }


def inspect_permissions(
    role_grants: Mapping[str, Iterable[str]],
    required: Iterable[str] = (),
    universe: Optional[Iterable[str]] = None,
    role_names: Optional[Mapping[str, str]] = None
) -> PermissionInspection:
    """
    Compute effective permissions for a set of role grants.

    Args:
        role_grants: role key -> permission keys granted by that role
        required: Keys the caller needs; absent ones are reported as missing
        universe: Optional key filter (e.g. one catalog group). When given, only
            these keys are reported, granted or not.
        role_names: role key -> display name; a key without a name is shown as itself

    Returns:
        PermissionInspection
    """
    role_names = role_names or {}
    universe_set = None if universe is None else frozenset(universe)
    required_set = frozenset(required)
    if universe_set is not None:
        required_set = required_set & universe_set

    def _name(role_key) -> str:
        return role_names.get(role_key, str(role_key))

    sources: Dict[str, List[str]] = {}
    roles = []
    for role_key in sorted(role_grants, key=lambda k: (_name(k), str(k))):
        perms = sorted(set(role_grants[role_key]))
        roles.append(InspectedRole(id=str(role_key), name=_name(role_key), permissions=tuple(perms)))
        for key in perms:
            if universe_set is not None and key not in universe_set:
                continue
            sources.setdefault(key, []).append(role_key)

    granted = frozenset(sources)
    reported = set(granted) | set(required_set)
    if universe_set is not None:
        reported |= universe_set

    entries = tuple(
        PermissionEntry(
            key=key,
            granted=key in granted,
            sources=tuple(_name(role_key) for role_key in sources.get(key, ())),
            source_ids=tuple(str(role_key) for role_key in sources.get(key, ())),
        )
        for key in sorted(reported)
    )

    return PermissionInspection(
        roles=tuple(roles),
        permissions=entries,
        missing_permissions=tuple(sorted(required_set - granted)),
        granted=granted,
    )

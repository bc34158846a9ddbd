from __future__ import annotations

from typing import FrozenSet, Iterable, Iterator, Mapping

from tenant_access.core.errors import PermissionLockedError
from tenant_access.core.roles import Permission, Role, normalize_permission, normalize_role

# Catalog order is the order permissions are presented and persisted in.
PERMISSION_CATALOG: tuple[Permission, ...] = tuple(Permission)

ALL_PERMISSIONS: FrozenSet[Permission] = frozenset(PERMISSION_CATALOG)

# Roles that can administer membership; a tenant must always keep one.
ADMIN_ROLES: FrozenSet[Role] = frozenset({Role.OWNER, Role.ADMIN, Role.SUPER_ADMIN})

ROLE_DEFAULT_PERMISSIONS: Mapping[Role, FrozenSet[Permission]] = {
    Role.OWNER: ALL_PERMISSIONS,
    Role.ADMIN: ALL_PERMISSIONS,
    Role.SUPER_ADMIN: ALL_PERMISSIONS,
    Role.MANAGER: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_TRANSACTIONS,
            Permission.EDIT_TRANSACTIONS,
            Permission.VIEW_REPORTS,
            Permission.USE_AI,
            Permission.VIEW_GOALS,
            Permission.VIEW_ASSETS,
            Permission.VIEW_COST_CENTERS,
        }
    ),
    Role.BPO: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_CRM,
            Permission.VIEW_TASKS,
            Permission.VIEW_LEADS,
            Permission.MANAGE_COMPANIES,
            Permission.MANAGE_USERS,
            Permission.VIEW_SETTINGS,
        }
    ),
    Role.CONSULTANT: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_CRM,
            Permission.VIEW_TASKS,
            Permission.VIEW_LEADS,
            Permission.MANAGE_COMPANIES,
            Permission.VIEW_SETTINGS,
        }
    ),
    Role.EMPLOYEE: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_TRANSACTIONS,
            Permission.EDIT_TRANSACTIONS,
        }
    ),
    Role.VIEWER: frozenset(
        {
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_TRANSACTIONS,
        }
    ),
}

# Grants a role keeps no matter how the membership is customized.
ROLE_LOCKED_PERMISSIONS: Mapping[Role, FrozenSet[Permission]] = {
    Role.ADMIN: frozenset({Permission.MANAGE_USERS}),
    Role.SUPER_ADMIN: frozenset({Permission.MANAGE_USERS}),
}


def default_permissions(role: Role | str) -> "PermissionSet":
    """
    Canonical permission set for a freshly assigned role.
    Always a new object; callers may customize it freely.
    """
    r = normalize_role(role)
    return PermissionSet(ROLE_DEFAULT_PERMISSIONS[r], role=r)


def locked_permissions(role: Role | str) -> FrozenSet[Permission]:
    return ROLE_LOCKED_PERMISSIONS.get(normalize_role(role), frozenset())


def is_permission_locked(role: Role | str, permission: Permission | str) -> bool:
    return normalize_permission(permission) in locked_permissions(role)


def is_admin_role(role: Role | str) -> bool:
    return normalize_role(role) in ADMIN_ROLES


def can_manage_users(*, role: Role | str, permissions: Iterable[Permission | str] | None) -> bool:
    """
    OWNER always allowed; everyone else needs MANAGE_USERS on the membership.
    """
    if normalize_role(role) == Role.OWNER:
        return True
    return Permission.MANAGE_USERS in PermissionSet(permissions or ())


def can_grant_role(*, actor_role: Role | str, target_role: Role | str) -> bool:
    actor = normalize_role(actor_role)
    target = normalize_role(target_role)
    if target == Role.SUPER_ADMIN:
        return actor == Role.SUPER_ADMIN
    if target == Role.OWNER:
        return actor in {Role.OWNER, Role.SUPER_ADMIN}
    return True


class PermissionSet:
    """
    A set of permissions attached to a membership.

    With a role context, `remove` refuses to drop a permission the role
    locks (PermissionLockedError). Without one it behaves as a plain set.
    Equality compares the granted permissions only.
    """

    __slots__ = ("_items", "role")

    def __init__(
        self,
        permissions: Iterable[Permission | str] = (),
        *,
        role: Role | str | None = None,
    ) -> None:
        self._items: set[Permission] = {normalize_permission(p) for p in permissions}
        self.role: Role | None = normalize_role(role) if role is not None else None

    @classmethod
    def for_role(cls, role: Role | str, permissions: Iterable[Permission | str]) -> "PermissionSet":
        """
        Customized set for `role`; locked grants are always included.
        """
        pset = cls(permissions, role=role)
        for perm in locked_permissions(role):
            pset.add(perm)
        return pset

    def add(self, permission: Permission | str) -> None:
        self._items.add(normalize_permission(permission))

    def remove(self, permission: Permission | str) -> None:
        perm = normalize_permission(permission)
        if self.role is not None and is_permission_locked(self.role, perm):
            raise PermissionLockedError(self.role, perm)
        self._items.discard(perm)

    def contains(self, permission: Permission | str) -> bool:
        return normalize_permission(permission) in self._items

    def __contains__(self, permission: object) -> bool:
        if not isinstance(permission, (Permission, str)):
            return False
        try:
            return self.contains(permission)
        except ValueError:
            return False

    def __iter__(self) -> Iterator[Permission]:
        return (p for p in PERMISSION_CATALOG if p in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PermissionSet):
            return self._items == other._items
        if isinstance(other, (set, frozenset)):
            try:
                return self._items == {normalize_permission(p) for p in other}
            except ValueError:
                return False
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def to_list(self) -> list[str]:
        return [p.value for p in self]

    def __repr__(self) -> str:
        role = self.role.value if self.role is not None else None
        return f"PermissionSet({self.to_list()!r}, role={role!r})"

"""
Role gate: which mutating actions an account may see and use.

lecteur < secretaire < admin. Anything unknown, missing or not yet looked up
gets the lecteur capabilities.
"""

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from core.models.user import AppRole


@dataclass(frozen=True)
class Capabilities:
    can_edit: bool = False
    can_delete: bool = False
    is_admin: bool = False


READER_CAPABILITIES = Capabilities()

_CAPABILITIES = {
    AppRole.LECTEUR: READER_CAPABILITIES,
    AppRole.SECRETAIRE: Capabilities(can_edit=True),
    AppRole.ADMIN: Capabilities(can_edit=True, can_delete=True, is_admin=True),
}


def capabilities_for(role: AppRole | str | None) -> Capabilities:
    if role is None:
        return READER_CAPABILITIES
    try:
        return _CAPABILITIES[AppRole(role)]
    except ValueError:
        return READER_CAPABILITIES


class RoleGate:
    """
    Role of the signed-in account, resolved lazily from a role lookup.

    Until resolve() has succeeded every capability is False.
    """

    def __init__(self, role_lookup: Callable[[UUID], AppRole]):
        self._role_lookup = role_lookup
        self.role: AppRole | None = None
        self.is_loading = False
        self.is_resolved = False

    def resolve(self, user_id: UUID | None) -> AppRole | None:
        """
        Look the role up. Unauthenticated stays unresolved; a pending or
        failed lookup leaves reader capabilities, never the previous role.
        """
        self.role = None
        self.is_resolved = False
        if user_id is None:
            return None
        self.is_loading = True
        try:
            self.role = self._role_lookup(user_id)
            self.is_resolved = True
        finally:
            self.is_loading = False
        return self.role

    @property
    def capabilities(self) -> Capabilities:
        if not self.is_resolved:
            return READER_CAPABILITIES
        return capabilities_for(self.role)

    @property
    def can_edit(self) -> bool:
        return self.capabilities.can_edit

    @property
    def can_delete(self) -> bool:
        return self.capabilities.can_delete

    @property
    def is_admin(self) -> bool:
        return self.capabilities.is_admin

"""Explicit authorization predicates.

Identity comes from the upstream auth layer and is trusted as-is. Services
call these checks themselves before doing any work, so nothing depends on
route decorators being present.
"""
from dataclasses import dataclass

from shop.domain.enums import Role
from shop.domain.errors import ForbiddenError


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role = Role.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise ForbiddenError("Admin role required")


def require_owner_or_admin(principal: Principal, owner_id: int) -> None:
    if principal.is_admin:
        return
    if principal.user_id != owner_id:
        raise ForbiddenError("Access to this order is forbidden")

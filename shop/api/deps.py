# shop/api/deps.py
from functools import lru_cache

from fastapi import Header

from shop.domain.auth import Principal
from shop.domain.enums import Role
from shop.services.lock_service import LockService


def get_principal(
    x_user_id: int = Header(..., gt=0, description="Authenticated user id from the auth gateway"),
    x_user_role: Role = Header(Role.CUSTOMER, description="Role of the authenticated user"),
) -> Principal:
    # identity is resolved upstream, trusted as-is
    return Principal(user_id=x_user_id, role=x_user_role)


@lru_cache
def get_lock_service() -> LockService:
    return LockService()

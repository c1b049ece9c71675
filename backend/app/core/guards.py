"""
Security guards for role-based and ownership-based access control.

Provides dependencies for protecting endpoints.
"""

from typing import List, Optional
from fastapi import Depends, HTTPException, status
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/ledger")
        async def create_entry(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates user role

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


require_admin = require_role([UserRole.ADMIN])
require_staff = require_role([UserRole.ADMIN, UserRole.SALESMAN])


def is_customer(current_user: dict) -> bool:
    return current_user.get("role") == UserRole.CUSTOMER.value


class CustomerAccessGuard:
    """
    Restricts CUSTOMER users to their own account.

    Admins and salesmen can read every customer.

    Usage:
        customer_guard.enforce(customer_id, current_user)
    """

    def enforce(self, customer_id: int, current_user: dict, resource_name: str = "customer account"):
        """
        Raise 403 if a CUSTOMER user asks for someone else's account.
        """
        if is_customer(current_user) and current_user.get("customer_id") != customer_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. You do not have permission to access this {resource_name}."
            )

    def scope_for(self, current_user: dict) -> Optional[int]:
        """
        Customer id a CUSTOMER user's queries are pinned to.

        Returns None for staff, meaning "no pinning".
        """
        if is_customer(current_user):
            return current_user.get("customer_id")
        return None


customer_guard = CustomerAccessGuard()

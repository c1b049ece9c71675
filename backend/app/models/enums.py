"""
User roles enumeration.

Defines the role types for the distribution management system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Business owner with full access
        SALESMAN: Field staff who take orders and collect payments
        CUSTOMER: Retailer/wholesaler who reads their own account
    """
    ADMIN = "ADMIN"
    SALESMAN = "SALESMAN"
    CUSTOMER = "CUSTOMER"

"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, customers, ledger

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Customer accounts
router.include_router(customers.router)

# Ledger and account statements
router.include_router(ledger.router)

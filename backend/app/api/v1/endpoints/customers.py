"""
Customer API Endpoints.

Admins create customers; staff list them; customers read their own record.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from typing import Optional

from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.dependencies import get_current_user
from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.core.guards import require_admin, require_staff, customer_guard
from backend.app.core.security import get_password_hash
from backend.app.models.customer import Customer
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.schemas.customer import CustomerCreate, CustomerResponse, CustomerListResponse
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    request: Request,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a customer, optionally with a CUSTOMER login account.
    """
    user = None
    if customer_data.login:
        login = customer_data.login
        result = await db.execute(
            select(User).where(or_(User.username == login.username, User.email == login.email))
        )
        if result.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username or email already registered"
            )
        user = User(
            email=login.email,
            username=login.username,
            hashed_password=get_password_hash(login.password),
            role=UserRole.CUSTOMER,
            is_active=True
        )
        db.add(user)
        await db.flush()

    customer = Customer(
        user_id=user.id if user else None,
        **customer_data.model_dump(exclude={"login"})
    )
    db.add(customer)
    await db.flush()

    await log_event(
        db=db,
        action=AuditAction.CUSTOMER_CREATED,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        target_type="customer",
        target_id=customer.id,
        metadata={"name": customer.name, "with_login": user is not None},
        ip_address=request.client.host if request.client else None,
        commit=False
    )
    await db.commit()
    await db.refresh(customer)

    return customer


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    search: Optional[str] = Query(None, description="Name, mobile or territory contains"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: dict = Depends(require_staff),
    db: AsyncSession = Depends(get_db)
):
    """List customers (admin, salesman)."""
    query = select(Customer)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Customer.name.ilike(pattern),
            Customer.mobile.ilike(pattern),
            Customer.territory.ilike(pattern),
        ))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    query = query.order_by(Customer.name, Customer.id).offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)

    return CustomerListResponse(
        customers=[CustomerResponse.model_validate(c) for c in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get one customer. CUSTOMER users may only read their own record."""
    customer_guard.enforce(customer_id, current_user)

    customer = await db.get(Customer, customer_id)
    if not customer:
        raise ResourceNotFoundError("Customer", customer_id)
    return customer

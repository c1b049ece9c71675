"""
Database seeding script for initial users and a sample customer ledger.

Creates ADMIN and SALESMAN users plus one CUSTOMER account with two
ledger entries, for testing and development.
Run this script after database is set up but before first use.
"""

import asyncio
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.models.user import User
from backend.app.models.audit_log import AuditLog  # registers the audit table
from backend.app.models.customer import Customer
from backend.app.models.ledger_entry import LedgerEntry
from backend.app.models.enums import UserRole
from backend.app.models.ledger_enums import LedgerEntryType
from backend.app.core.security import get_password_hash
from backend.app.domain.ledger.reconciliation import final_balance
from backend.app.domain.ledger.ledger_service import LedgerService
from sqlalchemy import select


async def seed_users():
    """
    Seed initial users with different roles.

    Creates:
    - 1 ADMIN user
    - 1 SALESMAN user
    - 1 CUSTOMER user linked to "Sharma Traders", with an order and a payment
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")

        result = await db.execute(
            select(User).where(User.username == "admin")
        )
        if result.scalar_one_or_none():
            print("ℹ️  ADMIN user already exists, skipping seeding")
            return

        admin_user = User(
            email="admin@distribution.in",
            username="admin",
            hashed_password=get_password_hash("admin123"),
            role=UserRole.ADMIN,
            is_active=True
        )
        salesman = User(
            email="salesman@distribution.in",
            username="salesman",
            hashed_password=get_password_hash("sales123"),
            role=UserRole.SALESMAN,
            is_active=True
        )
        customer_user = User(
            email="sharma@distribution.in",
            username="sharma",
            hashed_password=get_password_hash("sharma123"),
            role=UserRole.CUSTOMER,
            is_active=True
        )
        db.add_all([admin_user, salesman, customer_user])
        await db.flush()
        print("✅ Created ADMIN, SALESMAN and CUSTOMER users")

        customer = Customer(
            user_id=customer_user.id,
            name="Sharma Traders",
            mobile="9876543210",
            address="12 Market Road, Pune",
            credit_limit=Decimal("50000.00"),
            territory="Pune West",
        )
        db.add(customer)
        await db.flush()

        db.add_all([
            LedgerEntry(
                customer_id=customer.id,
                entry_date=date(2024, 1, 15),
                description="Order INV-2024-001",
                entry_type=LedgerEntryType.DEBIT,
                amount=Decimal("1108.80"),
                reference="INV-2024-001",
                created_by=admin_user.id,
            ),
            LedgerEntry(
                customer_id=customer.id,
                entry_date=date(2024, 1, 16),
                description="Cash Payment",
                entry_type=LedgerEntryType.CREDIT,
                amount=Decimal("5000.00"),
                reference="COL-0001",
                created_by=salesman.id,
            ),
        ])
        await db.flush()

        balance = final_balance(await LedgerService.fetch_entries(db, customer.id))
        customer.outstanding_amount = max(Decimal("0"), balance)
        await db.commit()
        print(f"✅ Created customer 'Sharma Traders' (balance: {balance})")

        print("\n🎉 Seeding completed successfully!")
        print("\nSeeded users:")
        print("  - ADMIN:    admin / admin123")
        print("  - SALESMAN: salesman / sales123")
        print("  - CUSTOMER: sharma / sharma123")


if __name__ == "__main__":
    asyncio.run(seed_users())

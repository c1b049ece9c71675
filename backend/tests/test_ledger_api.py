"""
Integration tests for the ledger endpoints.

Covers manual entries, statements, balances, filtering, access rules
and statement cache invalidation.
"""

from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from backend.app.domain.ledger.ledger_service import LedgerService, lock_customer_stmt
from backend.app.models.customer import Customer
from backend.app.services.audit import AuditAction, get_audit_trail


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


async def create_customer(client, token, name, **extra):
    response = await client.post(
        "/v1/customers",
        json={"name": name, "address": f"{name} address", **extra},
        headers=bearer(token)
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def post_entry(client, token, customer_id, entry_date, entry_type, amount, **extra):
    response = await client.post(
        "/v1/ledger",
        json={
            "customer_id": customer_id,
            "entry_date": entry_date,
            "description": extra.pop("description", f"{entry_type} on {entry_date}"),
            "entry_type": entry_type,
            "amount": amount,
            **extra
        },
        headers=bearer(token)
    )
    return response


@pytest.mark.asyncio
async def test_statement_for_sample_account(client, admin_token):
    customer_id = await create_customer(client, admin_token, "Sharma Traders")

    # posted out of date order
    r = await post_entry(client, admin_token, customer_id, "2024-01-16", "payment", "5000", reference="COL-1")
    assert r.status_code == 201, r.text
    r = await post_entry(client, admin_token, customer_id, "2024-01-01", "debit", "1108.80")
    assert r.status_code == 201, r.text

    response = await client.get(f"/v1/ledger/customer/{customer_id}", headers=bearer(admin_token))
    assert response.status_code == 200
    data = response.json()

    assert [Decimal(row["running_balance"]) for row in data["rows"]] == [Decimal("1108.80"), Decimal("-3891.20")]
    assert data["rows"][0]["debit"] is not None and data["rows"][0]["credit"] is None
    assert data["rows"][1]["credit"] is not None and data["rows"][1]["debit"] is None
    assert Decimal(data["totals"]["balance"]) == Decimal("-3891.20")
    assert Decimal(data["totals"]["debits"]) == Decimal("1108.80")
    assert Decimal(data["totals"]["credits"]) == Decimal("5000")
    assert data["totals"]["is_debtor"] is False
    assert data["customer"]["name"] == "Sharma Traders"

    latest = await client.get(
        f"/v1/ledger/customer/{customer_id}", params={"latest_first": True}, headers=bearer(admin_token)
    )
    assert [row["entry"]["entry_date"] for row in latest.json()["rows"]] == ["2024-01-16", "2024-01-01"]


@pytest.mark.asyncio
async def test_empty_statement(client, admin_token):
    customer_id = await create_customer(client, admin_token, "New Shop")

    response = await client.get(f"/v1/ledger/customer/{customer_id}", headers=bearer(admin_token))
    assert response.status_code == 200
    assert response.json()["rows"] == []
    assert Decimal(response.json()["totals"]["balance"]) == 0

    balance = await client.get(f"/v1/ledger/customer/{customer_id}/balance", headers=bearer(admin_token))
    assert Decimal(balance.json()["balance"]) == 0
    assert balance.json()["entry_count"] == 0


@pytest.mark.asyncio
async def test_new_entry_invalidates_cached_statement(client, admin_token, cache):
    customer_id = await create_customer(client, admin_token, "Cached Shop")
    await post_entry(client, admin_token, customer_id, "2024-02-01", "order", "300")

    first = await client.get(f"/v1/ledger/customer/{customer_id}/balance", headers=bearer(admin_token))
    assert Decimal(first.json()["balance"]) == Decimal("300")
    assert first.json()["is_debtor"] is True

    await post_entry(client, admin_token, customer_id, "2024-02-03", "opening_balance", "1000")
    await post_entry(client, admin_token, customer_id, "2024-02-04", "adjustment", "100", direction="decrease")

    second = await client.get(f"/v1/ledger/customer/{customer_id}/balance", headers=bearer(admin_token))
    assert Decimal(second.json()["balance"]) == Decimal("900")
    assert await cache.get(f"ledger:generation:{customer_id}") == "3"


@pytest.mark.asyncio
async def test_entry_updates_outstanding_and_is_audited(client, admin_token, db_session):
    customer_id = await create_customer(client, admin_token, "Audit Shop", credit_limit="5000")

    await post_entry(client, admin_token, customer_id, "2024-03-01", "debit", "1200")
    await post_entry(client, admin_token, customer_id, "2024-03-02", "payment", "2000")

    customer = await client.get(f"/v1/customers/{customer_id}", headers=bearer(admin_token))
    # the customer is in credit; outstanding never goes below zero
    assert Decimal(customer.json()["outstanding_amount"]) == 0
    assert Decimal(customer.json()["available_credit"]) == Decimal("5000")

    trail = await get_audit_trail(db_session, action=AuditAction.LEDGER_ENTRY_CREATED)
    assert len(trail) == 2
    assert {log.target_type for log in trail} == {"ledger_entry"}

    row = await db_session.get(Customer, customer_id)
    assert row.outstanding_amount == 0


@pytest.mark.asyncio
async def test_list_filters_and_scope(client, admin_token):
    sharma = await create_customer(client, admin_token, "Sharma Traders")
    gupta = await create_customer(client, admin_token, "Gupta Stores")

    await post_entry(client, admin_token, sharma, "2024-01-01", "opening_balance", "1000", description="Opening balance")
    await post_entry(client, admin_token, sharma, "2024-01-05", "order", "500", reference="ORD-1001")
    await post_entry(client, admin_token, gupta, "2024-01-05", "payment", "200", reference="COL-17")

    everything = await client.get("/v1/ledger", params={"customer_id": "all"}, headers=bearer(admin_token))
    assert everything.status_code == 200
    assert everything.json()["total"] == 3

    only_sharma = await client.get("/v1/ledger", params={"customer_id": sharma}, headers=bearer(admin_token))
    assert [Decimal(r["running_balance"]) for r in only_sharma.json()["rows"]] == [Decimal("1000"), Decimal("1500")]

    by_text = await client.get("/v1/ledger", params={"text": "gupta"}, headers=bearer(admin_token))
    assert [r["entry"]["reference"] for r in by_text.json()["rows"]] == ["COL-17"]

    by_date_and_type = await client.get(
        "/v1/ledger", params={"on_date": "2024-01-05", "type": "order"}, headers=bearer(admin_token)
    )
    assert [r["entry"]["reference"] for r in by_date_and_type.json()["rows"]] == ["ORD-1001"]

    nothing = await client.get("/v1/ledger", params={"text": "no such thing"}, headers=bearer(admin_token))
    assert nothing.status_code == 200
    assert nothing.json()["rows"] == []
    assert nothing.json()["pages"] == 0

    bad_type = await client.get("/v1/ledger", params={"type": "refund"}, headers=bearer(admin_token))
    assert bad_type.status_code == 422
    assert bad_type.json()["error_code"] == "ERR_LEDGER_VALIDATION"


@pytest.mark.asyncio
async def test_pagination_keeps_running_balance(client, admin_token):
    customer_id = await create_customer(client, admin_token, "Paged Shop")
    for day in range(1, 6):
        await post_entry(client, admin_token, customer_id, f"2024-04-0{day}", "debit", "10")

    page_two = await client.get(
        "/v1/ledger", params={"customer_id": customer_id, "page": 2, "page_size": 2}, headers=bearer(admin_token)
    )
    data = page_two.json()
    assert data["total"] == 5
    assert data["pages"] == 3
    assert [Decimal(r["running_balance"]) for r in data["rows"]] == [Decimal("30"), Decimal("40")]
    assert Decimal(data["totals"]["balance"]) == Decimal("50")


@pytest.mark.asyncio
async def test_salesman_can_post_entries_customer_cannot(client, admin_token, salesman_token, customer_account):
    customer_id, customer_token = customer_account

    r = await post_entry(client, salesman_token, customer_id, "2024-05-01", "payment", "150")
    assert r.status_code == 201
    assert r.json()["customer_name"] == "Sharma Traders"

    r = await post_entry(client, customer_token, customer_id, "2024-05-02", "credit", "999")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_customer_sees_only_own_ledger(client, admin_token, customer_account):
    customer_id, customer_token = customer_account
    other_id = await create_customer(client, admin_token, "Other Shop")

    await post_entry(client, admin_token, customer_id, "2024-06-01", "order", "700")
    await post_entry(client, admin_token, other_id, "2024-06-01", "order", "900")

    own = await client.get(f"/v1/ledger/customer/{customer_id}", headers=bearer(customer_token))
    assert own.status_code == 200

    other = await client.get(f"/v1/ledger/customer/{other_id}", headers=bearer(customer_token))
    assert other.status_code == 403

    # scope parameter is ignored for customers
    listed = await client.get("/v1/ledger", params={"customer_id": "all"}, headers=bearer(customer_token))
    assert listed.json()["total"] == 1
    assert listed.json()["rows"][0]["entry"]["customer_id"] == customer_id


@pytest.mark.asyncio
async def test_customer_without_profile_gets_empty_list(client, make_user, login_as):
    from backend.app.models.enums import UserRole

    await make_user("walkin", "walkin123", UserRole.CUSTOMER)
    token = await login_as("walkin", "walkin123")

    response = await client.get("/v1/ledger", headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_malformed_entries_are_rejected(client, admin_token):
    customer_id = await create_customer(client, admin_token, "Strict Shop")

    negative = await post_entry(client, admin_token, customer_id, "2024-01-01", "debit", "-5")
    assert negative.status_code == 422
    assert negative.json()["error_code"] == "ERR_VALIDATION"

    unknown = await post_entry(client, admin_token, customer_id, "2024-01-01", "refund", "5")
    assert unknown.status_code == 422

    direction_on_debit = await post_entry(
        client, admin_token, customer_id, "2024-01-01", "debit", "5", direction="decrease"
    )
    assert direction_on_debit.status_code == 422
    assert direction_on_debit.json()["error_code"] == "ERR_LEDGER_VALIDATION"
    assert direction_on_debit.json()["details"]["field"] == "direction"


@pytest.mark.asyncio
async def test_unknown_customer(client, admin_token):
    r = await post_entry(client, admin_token, 999, "2024-01-01", "debit", "5")
    assert r.status_code == 404
    assert r.json()["error_code"] == "ERR_NOT_FOUND_001"

    statement = await client.get("/v1/ledger/customer/999", headers=bearer(admin_token))
    assert statement.status_code == 404


def test_customer_lock_renders_for_update():
    sql = str(lock_customer_stmt(42).compile(dialect=postgresql.dialect()))
    assert sql.rstrip().endswith("FOR UPDATE")


@pytest.mark.asyncio
async def test_entry_creation_locks_customer_row(client, admin_token, monkeypatch):
    customer_id = await create_customer(client, admin_token, "Locked Shop")
    locked = []
    original = LedgerService.lock_customer

    async def recording_lock(db, cid):
        locked.append(cid)
        return await original(db, cid)

    monkeypatch.setattr(LedgerService, "lock_customer", staticmethod(recording_lock))

    r = await post_entry(client, admin_token, customer_id, "2024-07-01", "order", "250")
    assert r.status_code == 201
    assert locked == [customer_id]

    customer = await client.get(f"/v1/customers/{customer_id}", headers=bearer(admin_token))
    assert Decimal(customer.json()["outstanding_amount"]) == Decimal("250")


@pytest.mark.asyncio
async def test_list_latest_first(client, admin_token):
    customer_id = await create_customer(client, admin_token, "Recent Shop")
    for day in range(1, 4):
        await post_entry(client, admin_token, customer_id, f"2024-08-0{day}", "debit", "10")

    response = await client.get(
        "/v1/ledger",
        params={"customer_id": customer_id, "latest_first": True, "page_size": 2},
        headers=bearer(admin_token)
    )
    data = response.json()
    assert [r["entry"]["entry_date"] for r in data["rows"]] == ["2024-08-03", "2024-08-02"]
    # running balances are still the oldest-first prefix sums
    assert [Decimal(r["running_balance"]) for r in data["rows"]] == [Decimal("30"), Decimal("20")]
    assert data["total"] == 3

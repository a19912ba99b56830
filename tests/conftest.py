"""Pytest fixtures for payroll remittance tests."""

from __future__ import annotations

import dataclasses
from collections.abc import AsyncGenerator, Callable
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from payroll_remittance.config import Settings
from payroll_remittance.database import create_engine, create_schema, create_session_factory
from payroll_remittance.models import Company, CostCenter, Employee, PayrollEntry
from payroll_remittance.money import Money
from payroll_remittance.remittance.types import (
    AccountType,
    BankAccount,
    CompanyProfile,
    PaymentRecord,
)
from payroll_remittance.services.state_machine import Actor, PayrollStateMachine

TEST_SETTINGS = Settings(
    database_url="sqlite+aiosqlite://",
    host="127.0.0.1",
    port=8000,
    debug=False,
    log_level="INFO",
    min_year=2020,
    max_year=2099,
    finalize_roles=frozenset({"PAYROLL", "HR", "ADMIN"}),
    reopen_roles=frozenset({"FINANCE", "ADMIN"}),
    bank_code="341",
    bank_name="BANCO ITAU SA",
    company_code="4521",
    company_name="Acme Industria Ltda",
    company_document="12345678000199",
    sequence_start=1,
)

TEST_PROFILE = CompanyProfile(
    bank_code="341",
    bank_name="BANCO ITAU SA",
    company_code="4521",
    company_name="Acme Industria Ltda",
    company_document="12345678000199",
)

APPROVED_AT = datetime(2025, 11, 28, 18, 0, tzinfo=timezone.utc)

PAYROLL_ACTOR = Actor(actor_id="ana.dp", role="PAYROLL")
FINANCE_ACTOR = Actor(actor_id="bruno.fin", role="FINANCE")
GUEST_ACTOR = Actor(actor_id="carlos", role="EMPLOYEE")

# The November 2025 scenario: three employees, all with bank data
NOVEMBER = (11, 2025)
ANDRE_ID = UUID("0b7c1a52-3f0e-4a8e-9a51-1d2f3e4a5b61")
BEATRIZ_ID = UUID("1c8d2b63-4a1f-4b9f-8b62-2e3f4a5b6c72")
CARLA_ID = UUID("2d9e3c74-5b2a-4cab-9c73-3f4a5b6c7d83")

NOVEMBER_EMPLOYEES: list[dict[str, Any]] = [
    {
        "employee_id": CARLA_ID,
        "name": "Carla Souza",
        "document": "123.456.789-09",
        "company_code": "ACME",
        "cost_center_code": "ADM",
        "bank_code": "341",
        "bank_name": "Itaú",
        "account_type": "checking",
        "agency": "0123",
        "agency_digit": "4",
        "account": "45678",
        "account_digit": "9",
        "amounts": [150000],
    },
    {
        "employee_id": ANDRE_ID,
        "name": "André Lima",
        "document": "987.654.321-00",
        "company_code": "ACME",
        "cost_center_code": "OPS",
        "bank_code": "237",
        "bank_name": "Bradesco",
        "account_type": "savings",
        "agency": "3344",
        "agency_digit": "0",
        "account": "11223",
        "account_digit": "X",
        # Salary plus a bonus line, summed into one payment
        "amounts": [250000, 25050],
    },
    {
        "employee_id": BEATRIZ_ID,
        "name": "Beatriz Nunes",
        "document": "111.222.333-96",
        "company_code": "ACME",
        "cost_center_code": "OPS",
        "bank_code": "001",
        "bank_name": "Banco do Brasil",
        "account_type": "checking",
        "agency": "1020",
        "agency_digit": "5",
        "account": "998877",
        "account_digit": "1",
        "amounts": [99999],
    },
]


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a fresh SQLite file per test."""
    return dataclasses.replace(
        TEST_SETTINGS,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'remittance.db'}",
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the schema applied."""
    engine = create_engine(settings.database_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def seed_payroll(
    session_factory: async_sessionmaker[AsyncSession],
    employees: list[dict[str, Any]],
    month: int,
    year: int,
) -> None:
    """Insert companies, cost centers, employees and their entries, committed.

    ``amounts`` are approved entries; ``pending_amounts`` are entries not yet
    approved.
    """
    async with session_factory() as session:
        companies = {e["company_code"] for e in employees if e.get("company_code")}
        cost_centers = {e["cost_center_code"] for e in employees if e.get("cost_center_code")}
        for code in sorted(companies):
            await session.merge(Company(code=code, name=f"Company {code}"))
        for code in sorted(cost_centers):
            await session.merge(CostCenter(code=code, name=f"Cost center {code}"))
        await session.flush()

        for data in employees:
            data = dict(data)
            amounts = data.pop("amounts")
            pending = data.pop("pending_amounts", [])
            employee = Employee(**data)
            session.add(employee)
            await session.flush()
            session.add_all(
                PayrollEntry(
                    employee_id=employee.employee_id,
                    month=month,
                    year=year,
                    net_amount_cents=cents,
                    approved_at=approved_at,
                )
                for cents, approved_at in [
                    *((c, APPROVED_AT) for c in amounts),
                    *((c, None) for c in pending),
                ]
            )
        await session.commit()


@pytest_asyncio.fixture
async def november_payroll(session_factory: async_sessionmaker[AsyncSession]) -> list[dict[str, Any]]:
    """The three-employee November 2025 payroll, not yet finalized."""
    await seed_payroll(session_factory, NOVEMBER_EMPLOYEES, *NOVEMBER)
    return NOVEMBER_EMPLOYEES


@pytest_asyncio.fixture
async def finalized_november(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    november_payroll: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """The November 2025 payroll, finalized and committed."""
    async with session_factory() as session:
        await PayrollStateMachine(session, settings).finalize(*NOVEMBER, PAYROLL_ACTOR)
        await session.commit()
    return november_payroll


@pytest.fixture
def make_record() -> Callable[..., PaymentRecord]:
    """Build a PaymentRecord with complete bank data unless overridden."""

    def factory(
        name: str = "Maria Silva",
        cents: int = 100000,
        reference_date: date = date(2025, 11, 1),
        employee_id: UUID | None = None,
        document: str = "52998224725",
        **bank: Any,
    ) -> PaymentRecord:
        account = {
            "code": "341",
            "agency": "0123",
            "agency_check_digit": "4",
            "account": "45678",
            "account_check_digit": "9",
            "account_type": AccountType.CHECKING,
            "bank_name": "Itaú",
        }
        account.update(bank)
        return PaymentRecord(
            employee_id=employee_id or uuid4(),
            name=name,
            document=document,
            amount=Money(cents),
            bank=BankAccount(**account),
            reference_date=reference_date,
        )

    return factory

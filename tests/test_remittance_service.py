"""Tests for the remittance service: CNAB400 generation and payment manifests."""

import asyncio
from datetime import date
from uuid import UUID

import pytest
import pytest_asyncio

from payroll_remittance.errors import (
    EmptyRemittanceError,
    MissingBankDataError,
    PeriodNotFinalizedError,
    ValidationError,
)
from payroll_remittance.money import Money
from payroll_remittance.remittance.cnab400 import Cnab400ItauEncoder
from payroll_remittance.remittance.types import PaymentFilter
from payroll_remittance.services.remittance_service import RemittanceService, company_profile
from payroll_remittance.services.sequence_allocator import RemittanceSequenceAllocator
from payroll_remittance.services.state_machine import PayrollStateMachine

from .conftest import (
    FINANCE_ACTOR,
    NOVEMBER,
    PAYROLL_ACTOR,
    TEST_PROFILE,
    TEST_SETTINGS,
    seed_payroll,
)

NOVEMBER_FILTER = PaymentFilter(*NOVEMBER)
GENERATED_ON = date(2025, 12, 2)
EVA_ID = UUID("3eaf4d85-6c3b-4dbc-8d84-4a5b6c7d8e94")


def extra_employee(**overrides):
    employee = {
        "employee_id": EVA_ID,
        "name": "Eva Rocha",
        "document": "222.333.444-05",
        "company_code": "ACME",
        "cost_center_code": "FIN",
        "bank_code": "341",
        "bank_name": "Itaú",
        "account_type": "checking",
        "agency": "0123",
        "agency_digit": "4",
        "account": None,
        "account_digit": None,
        "amounts": [50000],
    }
    employee.update(overrides)
    return employee


@pytest.fixture
def service(session, settings) -> RemittanceService:
    return RemittanceService(session, settings)


class TestCompanyProfile:
    def test_from_settings(self):
        assert company_profile(TEST_SETTINGS) == TEST_PROFILE


class TestGenerateCnab400:
    """End-to-end file generation for the November payroll."""

    async def test_scenario_file(self, service, finalized_november):
        generated = await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, GENERATED_ON)

        assert generated.filename == "CNAB400-11-2025.REM"
        assert generated.media_type == "text/plain; charset=iso-8859-1"
        assert generated.sequence == 1
        assert generated.record_count == 5
        assert generated.total == Money(525049)
        assert generated.allocation.allocated_by == "bruno.fin"

        lines = generated.content.decode("latin-1").split("\r\n")
        assert len(lines) == 5
        assert lines[-1][1:7] == "000005"
        assert lines[-1][7:24] == "00000000000525049"
        assert [line[24:64].rstrip() for line in lines[1:-1]] == [
            "ANDRE LIMA",
            "BEATRIZ NUNES",
            "CARLA SOUZA",
        ]

    async def test_file_decodes(self, service, finalized_november):
        generated = await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, GENERATED_ON)
        remittance = Cnab400ItauEncoder(TEST_PROFILE).decode(generated.content)

        assert remittance.header.remittance_sequence == 1
        assert remittance.header.generated_on == GENERATED_ON
        assert remittance.trailer.total_amount_cents == 525049

    async def test_redownload_is_identical(self, service, finalized_november):
        first = await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, GENERATED_ON)
        second = await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, date(2025, 12, 9))

        assert second.content == first.content
        assert second.sequence == first.sequence

    async def test_reopen_and_finalize_allocates_new_sequence(
        self, session, settings, service, finalized_november
    ):
        first = await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, GENERATED_ON)

        machine = PayrollStateMachine(session, settings)
        await machine.reopen(*NOVEMBER, FINANCE_ACTOR, "late bonus")
        await machine.finalize(*NOVEMBER, PAYROLL_ACTOR)

        second = await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, date(2025, 12, 9))
        assert second.sequence == first.sequence + 1
        assert second.content != first.content

        remittance = service.encoder.decode(second.content)
        assert remittance.header.generated_on == date(2025, 12, 9)

    async def test_filter_by_cost_center(self, service, finalized_november):
        generated = await service.generate_cnab400(
            PaymentFilter(*NOVEMBER, cost_center="OPS"),
            FINANCE_ACTOR,
            GENERATED_ON,
        )
        assert generated.record_count == 4
        assert generated.total == Money(375049)

    async def test_open_period_rejected(self, service, november_payroll):
        with pytest.raises(PeriodNotFinalizedError):
            await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, GENERATED_ON)

    async def test_empty_filter_rejected(self, service, session_factory, finalized_november):
        await seed_payroll(
            session_factory,
            [extra_employee(account="99887", account_digit="1", amounts=[0])],
            *NOVEMBER,
        )

        with pytest.raises(EmptyRemittanceError) as exc_info:
            await service.generate_cnab400(
                PaymentFilter(*NOVEMBER, cost_center="FIN"),
                FINANCE_ACTOR,
                GENERATED_ON,
            )
        assert exc_info.value.status_code == 422
        assert exc_info.value.context["cost_center"] == "FIN"


class TestSequencePerFile:
    """Files with different contents never share a remittance sequence."""

    async def test_cost_centers_get_distinct_sequences(self, service, finalized_november):
        adm = await service.generate_cnab400(
            PaymentFilter(*NOVEMBER, cost_center="ADM"), FINANCE_ACTOR, GENERATED_ON
        )
        ops = await service.generate_cnab400(
            PaymentFilter(*NOVEMBER, cost_center="OPS"), FINANCE_ACTOR, GENERATED_ON
        )

        assert (adm.record_count, ops.record_count) == (3, 4)
        assert adm.sequence != ops.sequence

        adm_header = service.encoder.decode(adm.content).header
        ops_header = service.encoder.decode(ops.content).header
        assert adm_header.remittance_sequence != ops_header.remittance_sequence

        again = await service.generate_cnab400(
            PaymentFilter(*NOVEMBER, cost_center="ADM"), FINANCE_ACTOR, date(2025, 12, 9)
        )
        assert again.content == adm.content

    async def test_company_filter_and_unfiltered_distinct(self, service, finalized_november):
        unfiltered = await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, GENERATED_ON)
        acme = await service.generate_cnab400(
            PaymentFilter(*NOVEMBER, company="ACME"), FINANCE_ACTOR, GENERATED_ON
        )

        assert (unfiltered.sequence, acme.sequence) == (1, 2)
        assert unfiltered.allocation.originator == acme.allocation.originator == TEST_PROFILE.company_code

    async def test_concurrent_generation_single_file(
        self, session_factory, settings, finalized_november
    ):
        async def generate():
            async with session_factory() as session:
                generated = await RemittanceService(session, settings).generate_cnab400(
                    NOVEMBER_FILTER, FINANCE_ACTOR, GENERATED_ON
                )
                await session.commit()
                return generated

        results = await asyncio.gather(*(generate() for _ in range(3)))

        assert {r.sequence for r in results} == {1}
        assert len({r.content for r in results}) == 1

        async with session_factory() as session:
            history = await RemittanceSequenceAllocator(session, settings).history(
                TEST_PROFILE.company_code
            )
        sequences = [a.sequence for a in history]
        assert len(sequences) == len(set(sequences))


class TestMissingBankData:
    """An employee without an account blocks the file but not the manifest."""

    @pytest_asyncio.fixture
    async def with_eva(self, session_factory, finalized_november):
        await seed_payroll(session_factory, [extra_employee()], *NOVEMBER)

    async def test_generation_names_employee(self, service, session, settings, with_eva):
        with pytest.raises(MissingBankDataError) as exc_info:
            await service.generate_cnab400(NOVEMBER_FILTER, FINANCE_ACTOR, GENERATED_ON)

        assert isinstance(exc_info.value, ValidationError)
        (missing,) = exc_info.value.context["employees"]
        assert missing == {
            "employee_id": str(EVA_ID),
            "name": "Eva Rocha",
            "missing": ["account"],
        }
        assert await RemittanceSequenceAllocator(session, settings).history(TEST_PROFILE.company_code) == []

    async def test_other_filters_still_generate(self, service, with_eva):
        generated = await service.generate_cnab400(
            PaymentFilter(*NOVEMBER, cost_center="OPS"),
            FINANCE_ACTOR,
            GENERATED_ON,
        )
        assert generated.sequence == 1

    async def test_bank_readiness(self, service, with_eva):
        readiness = await service.bank_readiness(NOVEMBER_FILTER)

        assert readiness.record_count == 4
        assert readiness.total == Money(575049)
        assert not readiness.ready
        assert [m["name"] for m in readiness.missing] == ["Eva Rocha"]

    async def test_manifest_still_builds(self, service, with_eva):
        manifest = await service.build_manifest(NOVEMBER_FILTER)

        assert manifest.record_count == 4
        assert manifest.total == Money(575049)
        assert manifest.missing_bank_data_count == 1
        assert manifest.issued_at is not None

    async def test_pdf_still_renders(self, service, with_eva):
        rendered = await service.render_manifest_pdf(NOVEMBER_FILTER)

        assert rendered.filename == "bordero-pagamento-11-2025.pdf"
        assert rendered.media_type == "application/pdf"
        assert rendered.content.startswith(b"%PDF")
        assert rendered.manifest.record_count == 4


class TestPaymentData:
    """Aggregated records and readiness of a complete payroll."""

    async def test_payment_data(self, service, finalized_november):
        records = await service.payment_data(NOVEMBER_FILTER)
        assert [r.amount.cents for r in records] == [275050, 99999, 150000]

    async def test_ready(self, service, finalized_november):
        readiness = await service.bank_readiness(NOVEMBER_FILTER)
        assert readiness.ready
        assert readiness.missing == []

    async def test_payment_data_requires_finalized(self, service, november_payroll):
        with pytest.raises(PeriodNotFinalizedError):
            await service.payment_data(NOVEMBER_FILTER)

    async def test_pending_entries_left_out(self, service, session_factory, finalized_november):
        await seed_payroll(
            session_factory,
            [extra_employee(account="99887", account_digit="1", amounts=[10000], pending_amounts=[5000])],
            *NOVEMBER,
        )

        records = await service.payment_data(NOVEMBER_FILTER)
        (eva,) = [r for r in records if r.employee_id == EVA_ID]
        assert eva.amount == Money(10000)

    async def test_inactive_employees_left_out(self, service, session_factory, finalized_november):
        await seed_payroll(
            session_factory,
            [extra_employee(account="99887", account_digit="1", is_active=False)],
            *NOVEMBER,
        )

        records = await service.payment_data(NOVEMBER_FILTER)
        assert EVA_ID not in {r.employee_id for r in records}
        assert len(records) == 3

"""API endpoint integration tests.

Tests the FastAPI endpoints for period transitions, payment manifests and
remittance files.
"""

from httpx import AsyncClient

from ..conftest import NOVEMBER_EMPLOYEES
from .conftest import FINANCE_HEADERS, PAYROLL_HEADERS

NOVEMBER_PARAMS = {"month": 11, "year": 2025}
NOVEMBER_BODY = {"month": 11, "year": 2025}


async def finalize_november(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/payroll/finalize",
        headers=PAYROLL_HEADERS,
        json=NOVEMBER_BODY,
    )
    assert response.status_code == 200, response.text


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["originator"] == "4521"
        assert data["last_sequence"] is None
        assert "timestamp" in data

    async def test_health_reports_last_sequence(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        await client.get("/api/v1/border/cnab400", headers=FINANCE_HEADERS, params=NOVEMBER_PARAMS)
        await client.get(
            "/api/v1/border/cnab400",
            headers=FINANCE_HEADERS,
            params={**NOVEMBER_PARAMS, "costCenter": "ADM"},
        )

        response = await client.get("/health")
        assert response.json()["last_sequence"] == 2

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestPayrollPeriodEndpoints:
    """Status, finalize and reopen."""

    async def test_untouched_period_is_open(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll/status", params=NOVEMBER_PARAMS)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OPEN"
        assert data["reopened"] is False
        assert data["reopen_history"] == []

    async def test_finalize(self, client: AsyncClient, november_payroll):
        response = await client.post(
            "/api/v1/payroll/finalize",
            headers=PAYROLL_HEADERS,
            json=NOVEMBER_BODY,
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "FINALIZED"
        assert data["finalized_by"] == "ana.dp"

        status = await client.get("/api/v1/payroll/status", params=NOVEMBER_PARAMS)
        assert status.json()["status"] == "FINALIZED"

    async def test_finalize_twice_conflicts(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.post(
            "/api/v1/payroll/finalize",
            headers=PAYROLL_HEADERS,
            json=NOVEMBER_BODY,
        )

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_FINALIZED"

    async def test_finalize_without_payroll(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/payroll/finalize",
            headers=PAYROLL_HEADERS,
            json=NOVEMBER_BODY,
        )
        assert response.status_code == 409
        assert response.json()["code"] == "NO_PAYROLL_DATA"

    async def test_finalize_requires_actor(self, client: AsyncClient, november_payroll):
        response = await client.post("/api/v1/payroll/finalize", json=NOVEMBER_BODY)
        assert response.status_code == 400

    async def test_finalize_forbidden_role(self, client: AsyncClient, november_payroll):
        response = await client.post(
            "/api/v1/payroll/finalize",
            headers=FINANCE_HEADERS,
            json=NOVEMBER_BODY,
        )

        assert response.status_code == 403
        data = response.json()
        assert data["code"] == "UNAUTHORIZED"
        assert data["context"]["action"] == "finalize"

    async def test_finalize_month_out_of_range(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/payroll/finalize",
            headers=PAYROLL_HEADERS,
            json={"month": 13, "year": 2025},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["context"]["field"] == "month"

    async def test_reopen(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.post(
            "/api/v1/payroll/reopen",
            headers=FINANCE_HEADERS,
            json={**NOVEMBER_BODY, "reason": "late bonus"},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "OPEN"
        assert data["reopened_by"] == "bruno.fin"

        status = (await client.get("/api/v1/payroll/status", params=NOVEMBER_PARAMS)).json()
        assert status["reopened"] is True
        assert status["finalized_at"] is None
        assert status["reopen_history"][0]["reason"] == "late bonus"
        assert status["reopen_history"][0]["finalize_session"] == 1

    async def test_reopen_open_period(self, client: AsyncClient, november_payroll):
        response = await client.post(
            "/api/v1/payroll/reopen",
            headers=FINANCE_HEADERS,
            json=NOVEMBER_BODY,
        )
        assert response.status_code == 409
        assert response.json()["code"] == "NOT_FINALIZED"


class TestBorderEndpoints:
    """Payment data, manifest PDF and CNAB400 file."""

    async def test_data_requires_finalized(self, client: AsyncClient, november_payroll):
        response = await client.get("/api/v1/border/data", params=NOVEMBER_PARAMS)

        assert response.status_code == 409
        assert response.json()["code"] == "PERIOD_NOT_FINALIZED"

    async def test_data(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.get("/api/v1/border/data", params=NOVEMBER_PARAMS)

        assert response.status_code == 200, response.text
        data = response.json()
        assert [r["name"] for r in data] == ["André Lima", "Beatriz Nunes", "Carla Souza"]
        assert data[0]["amount_cents"] == 275050
        assert data[0]["amount"] == "2750.50"
        assert data[0]["amount_display"] == "R$ 2.750,50"
        assert data[0]["bank"]["account_type"] == "savings"
        assert data[0]["bank"]["complete"] is True

    async def test_data_cost_center_filter(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.get(
            "/api/v1/border/data",
            params={**NOVEMBER_PARAMS, "costCenter": "ADM"},
        )
        assert [r["name"] for r in response.json()] == ["Carla Souza"]

    async def test_data_blank_filter_ignored(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.get(
            "/api/v1/border/data",
            params={**NOVEMBER_PARAMS, "company": "", "costCenter": " "},
        )
        assert len(response.json()) == len(NOVEMBER_EMPLOYEES)

    async def test_data_unknown_company(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.get(
            "/api/v1/border/data",
            params={**NOVEMBER_PARAMS, "company": "NOPE"},
        )

        assert response.status_code == 400
        assert response.json()["context"]["field"] == "company"

    async def test_pdf(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.get("/api/v1/border/pdf", params=NOVEMBER_PARAMS)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="bordero-pagamento-11-2025.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    async def test_cnab400(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.get(
            "/api/v1/border/cnab400",
            headers=FINANCE_HEADERS,
            params=NOVEMBER_PARAMS,
        )

        assert response.status_code == 200, response.text
        assert response.headers["x-remittance-sequence"] == "1"
        assert 'filename="CNAB400-11-2025.REM"' in response.headers["content-disposition"]

        lines = response.content.split(b"\r\n")
        assert len(lines) == 5
        assert all(len(line) == 400 for line in lines)
        assert lines[-1][7:24] == b"00000000000525049"

    async def test_cnab400_redownload(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        first = await client.get(
            "/api/v1/border/cnab400", headers=FINANCE_HEADERS, params=NOVEMBER_PARAMS
        )
        second = await client.get(
            "/api/v1/border/cnab400", headers=FINANCE_HEADERS, params=NOVEMBER_PARAMS
        )

        assert second.headers["x-remittance-sequence"] == first.headers["x-remittance-sequence"]
        assert second.content == first.content

    async def test_cnab400_other_filter_new_sequence(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        full = await client.get(
            "/api/v1/border/cnab400", headers=FINANCE_HEADERS, params=NOVEMBER_PARAMS
        )
        ops = await client.get(
            "/api/v1/border/cnab400",
            headers=FINANCE_HEADERS,
            params={**NOVEMBER_PARAMS, "costCenter": "OPS"},
        )

        assert full.headers["x-remittance-sequence"] == "1"
        assert ops.headers["x-remittance-sequence"] == "2"

    async def test_cnab400_requires_actor(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.get("/api/v1/border/cnab400", params=NOVEMBER_PARAMS)
        assert response.status_code == 400

    async def test_cnab400_preview(self, client: AsyncClient, november_payroll):
        await finalize_november(client)
        response = await client.get("/api/v1/border/cnab400/data", params=NOVEMBER_PARAMS)

        assert response.status_code == 200
        data = response.json()
        assert data["record_count"] == 3
        assert data["total_cents"] == 525049
        assert data["total_display"] == "R$ 5.250,49"
        assert data["ready"] is True
        assert data["missing_bank_data"] == []

    async def test_missing_query_parameters(self, client: AsyncClient):
        response = await client.get("/api/v1/border/data", params={"month": 11})
        assert response.status_code == 422

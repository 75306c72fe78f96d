"""
API tests for the KPI dashboard and report exports.
"""

import io
from datetime import date

import pandas as pd
import pytest
from httpx import AsyncClient

from qms.db.models import NCRRecord, NearMiss, SafetyIncident, TrainingRecord


@pytest.fixture
async def kpi_data(test_db, users):
    test_db.add_all(
        [
            SafetyIncident(id="inc-1", report_number="INC-2024-001", injured_user_id="400", reported_by_user_id="300",
                           location_id="1", incident_date=date(2024, 3, 1), severity=4, treatment_type="FIRST_AID"),
            SafetyIncident(id="inc-2", report_number="INC-2024-002", injured_user_id="200", reported_by_user_id="200",
                           location_id="2", incident_date=date(2024, 4, 9), severity=2,
                           treatment_type="MEDICAL_TREATMENT"),
            NearMiss(id="nm-1", report_number="IFE-2024-001", type="IFE", reported_by_user_id="400",
                     location_id="1", details="Forklift near pedestrian lane"),
            TrainingRecord(id="tr-1", user_id="400", type="DOCUMENT", reference_id="doc-1", version=1.0,
                           status="COMPLETED"),
            TrainingRecord(id="tr-2", user_id="400", type="DOCUMENT", reference_id="doc-2", version=1.0,
                           status="OVERDUE"),
            NCRRecord(id="ncr-1", ticket_id="t-1", inspection_type="Flexo Print Check", inspector_id="400",
                      status="PENDING_RCA", defective_quantity=2000, price_per_thousand=45.0, category="Ink Issue"),
            NCRRecord(id="ncr-2", ticket_id="t-2", inspection_type="Carton Glue Line Inspection",
                      inspector_id="400", status="CLOSED", defective_quantity=100, price_per_thousand=2.5),
        ]
    )
    await test_db.commit()
    return users


class TestKpis:
    async def test_summary(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get("/api/v1/reports/kpis", headers=auth(kpi_data["operator"]))
        assert resp.status_code == 200
        body = resp.json()
        assert body["incidentsTotal"] == 2
        assert body["incidentsBySeverity"] == {"Sev 1": 0, "Sev 2": 1, "Sev 3": 0, "Sev 4": 1, "Sev 5": 0}
        assert body["incidentsByMonth"] == {"2024-03": 1, "2024-04": 1}
        assert body["nearMissesTotal"] == 1
        assert body["trainingCompleted"] == 1
        assert body["trainingOverdue"] == 1
        assert body["ncrsByStatus"] == {"PENDING_RCA": 1, "CLOSED": 1}
        assert body["ncrTotalCost"] == pytest.approx(90250.0)

    async def test_location_filter(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get(
            "/api/v1/reports/kpis", params={"locationId": "2"}, headers=auth(kpi_data["operator"])
        )
        body = resp.json()
        assert body["filters"]["locationId"] == "2"
        assert body["incidentsTotal"] == 1
        assert body["nearMissesTotal"] == 0
        # Records without a location follow the user's own site
        assert body["trainingCompleted"] == 0

    async def test_user_filter(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get("/api/v1/reports/kpis", params={"userId": "200"}, headers=auth(kpi_data["admin"]))
        body = resp.json()
        assert body["incidentsTotal"] == 1
        assert body["ncrsByStatus"] == {}


class TestExports:
    async def test_kpi_csv(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get("/api/v1/reports/kpis/export", headers=auth(kpi_data["admin"]))
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        df = pd.read_csv(io.StringIO(resp.text))
        assert list(df.columns) == ["Area", "Metric", "Value"]
        incidents = df[(df["Area"] == "Safety") & (df["Metric"] == "Incidents")]
        assert incidents["Value"].iloc[0] == 2

    async def test_kpi_xlsx(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get(
            "/api/v1/reports/kpis/export", params={"format": "xlsx"}, headers=auth(kpi_data["admin"])
        )
        assert resp.status_code == 200
        df = pd.read_excel(io.BytesIO(resp.content), engine="openpyxl")
        assert "Near misses" in df["Metric"].tolist()

    async def test_kpi_pdf(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get(
            "/api/v1/reports/kpis/export", params={"format": "pdf"}, headers=auth(kpi_data["admin"])
        )
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")

    async def test_kpi_export_is_admin_only(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get("/api/v1/reports/kpis/export", headers=auth(kpi_data["operator"]))
        assert resp.status_code == 403

    async def test_unknown_format(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get(
            "/api/v1/reports/kpis/export", params={"format": "docx"}, headers=auth(kpi_data["admin"])
        )
        assert resp.status_code == 422

    async def test_ncr_register(self, client: AsyncClient, kpi_data, auth):
        resp = await client.get(
            "/api/v1/reports/ncr-register", params={"openOnly": "true"}, headers=auth(kpi_data["manager"])
        )
        assert resp.status_code == 200
        assert 'filename="ncr_register.csv"' in resp.headers["content-disposition"]
        df = pd.read_csv(io.StringIO(resp.text))
        assert df["NCR ID"].tolist() == ["ncr-1"]
        assert df["Total Cost"].iloc[0] == pytest.approx(90000.0)
        assert df["Category"].iloc[0] == "Ink Issue"

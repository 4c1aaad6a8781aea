"""Tests for dashboard aggregates."""
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from freezegun import freeze_time

from kg_amor import reports
from kg_amor.donations import record_delivery
from kg_amor.models import Cell
from kg_amor.stock import post_receipt, post_withdrawal


@pytest.fixture
def delivered_cells(test_db, sample_cells):
    """Esperança 10kg, Vitória 4kg, Graça 7kg."""
    for cell, kg in zip(sample_cells, ("10", "4", "7")):
        record_delivery(test_db, cell.id, Decimal(kg), f"delivery:{cell.id}:1",
                        delivered_at=datetime(2026, 3, 10, 12, 0))
    return sample_cells


class TestSummary:
    """Tests for the summary block."""

    def test_empty_database(self, test_db):
        data = reports.summary(test_db)

        assert data["active_cells"] == 0
        assert data["total_kg"] == 0.0
        assert data["average_kg"] == 0.0
        assert data["recent_receipts"] == []

    def test_totals(self, test_db, delivered_cells, stocked_catalog):
        data = reports.summary(test_db)

        assert data["active_cells"] == 3
        assert data["total_kg"] == 21.0
        assert data["average_kg"] == 7.0
        assert data["active_products"] == 3

    def test_inactive_cells_excluded(self, test_db, delivered_cells):
        cell = test_db.get(Cell, delivered_cells[0].id)
        cell.is_active = False
        test_db.commit()

        data = reports.summary(test_db)

        assert data["active_cells"] == 2
        assert data["total_kg"] == 11.0


class TestRankings:
    """Tests for cell, supervisor and network rankings."""

    def test_rankings(self, test_db, delivered_cells):
        data = reports.rankings(test_db, top_n=15)

        assert [c["name"] for c in data["cells"]] == ["Célula Esperança", "Célula Graça", "Célula Vitória"]
        assert data["cells"][0] == {"name": "Célula Esperança", "kg": 10.0, "network": "Amarela", "leader": "Ana"}
        assert data["supervisors"] == [
            {"name": "Paulo e Marta", "kg": 14.0},
            {"name": "N/D", "kg": 7.0},
        ]
        assert data["networks"] == [
            {"name": "Amarela", "kg": 14.0},
            {"name": "Azul", "kg": 7.0},
        ]

    def test_top_n(self, test_db, delivered_cells):
        data = reports.rankings(test_db, top_n=1)

        assert len(data["cells"]) == 1
        assert len(data["supervisors"]) == 1
        assert len(data["networks"]) == 2

    def test_network_filter_is_case_insensitive(self, test_db, delivered_cells):
        data = reports.rankings(test_db, network="azul")

        assert [c["name"] for c in data["cells"]] == ["Célula Graça"]

    def test_supervisor_filter(self, test_db, delivered_cells):
        data = reports.rankings(test_db, supervisor="paulo")

        assert {c["name"] for c in data["cells"]} == {"Célula Esperança", "Célula Vitória"}

    def test_no_cells(self, test_db):
        assert reports.rankings(test_db) == {"cells": [], "supervisors": [], "networks": []}


class TestActivity:
    """Tests for the activity window report."""

    def test_active_cells_per_network(self, test_db, sample_cells):
        """Test that only deliveries inside the window make a cell active."""
        record_delivery(test_db, sample_cells[0].id, Decimal("5"), "d1", delivered_at=datetime(2026, 3, 5, 8, 0))
        record_delivery(test_db, sample_cells[2].id, Decimal("5"), "d2", delivered_at=datetime(2026, 1, 5, 8, 0))

        data = reports.activity(test_db, date(2026, 3, 1), date(2026, 3, 31))

        assert data["networks"] == [
            {"network": "Amarela", "active": 1, "inactive": 1, "total": 2},
            {"network": "Azul", "active": 0, "inactive": 1, "total": 1},
        ]

    def test_end_day_is_inclusive(self, test_db, sample_cells):
        record_delivery(test_db, sample_cells[2].id, Decimal("1"), "d1", delivered_at=datetime(2026, 3, 31, 23, 59))

        data = reports.activity(test_db, date(2026, 3, 1), date(2026, 3, 31))

        azul = next(n for n in data["networks"] if n["network"] == "Azul")
        assert azul["active"] == 1

    @freeze_time("2026-03-15 12:00:00")
    def test_product_flows(self, test_db, sample_catalog):
        """Test product in/out rankings keyed by name and unit."""
        rice, beans, oil = (p.id for p in sample_catalog)
        post_receipt(test_db, "receipt:1", [(rice, 10), (beans, 3), (oil, 2)])
        post_receipt(test_db, "receipt:2", [(beans, 9)])
        post_withdrawal(test_db, "withdrawal:1", [(rice, 4)])

        data = reports.activity(test_db, date(2026, 3, 1), date(2026, 3, 31))

        assert data["product_in"] == [
            {"product": "Feijão (kg)", "quantity": 12.0},
            {"product": "Arroz (kg)", "quantity": 10.0},
            {"product": "Óleo (litros)", "quantity": 2.0},
        ]
        assert data["product_out"] == [{"product": "Arroz (kg)", "quantity": 4.0}]

    def test_movements_outside_window_ignored(self, test_db, sample_catalog):
        with freeze_time("2026-02-10"):
            post_receipt(test_db, "receipt:old", [(sample_catalog[0].id, 10)])

        data = reports.activity(test_db, date(2026, 3, 1), date(2026, 3, 31))

        assert data["product_in"] == []


class TestDashboardAPI:
    """Tests for the dashboard endpoints."""

    def test_summary_endpoint(self, client, auth, delivered_cells):
        response = client.get("/api/dashboard/summary", auth=auth)

        assert response.status_code == 200
        assert response.json()["total_kg"] == 21.0

    def test_rankings_endpoint(self, client, auth, delivered_cells):
        response = client.get("/api/dashboard/rankings", params={"top": 2}, auth=auth)

        assert response.status_code == 200
        assert len(response.json()["cells"]) == 2

    def test_activity_defaults_to_last_30_days(self, client, auth, test_db, sample_cells):
        """Test the default window ends today and counts a delivery made now."""
        record_delivery(test_db, sample_cells[0].id, Decimal("2"), "d1")
        today = datetime.utcnow().date()

        response = client.get("/api/dashboard/activity", auth=auth)

        assert response.status_code == 200
        data = response.json()
        assert data["end"] == today.isoformat()
        assert data["start"] == (today - timedelta(days=30)).isoformat()
        assert sum(n["active"] for n in data["networks"]) == 1

    def test_activity_rejects_reversed_window(self, client, auth):
        response = client.get(
            "/api/dashboard/activity", params={"start": "2026-03-10", "end": "2026-03-01"}, auth=auth
        )

        assert response.status_code == 422

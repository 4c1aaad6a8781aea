"""Tests for cell and network API endpoints."""
from kg_amor.models import HistoricoEntry


def _cell_payload(network_id, **extra):
    payload = {
        "name": "Célula Shalom",
        "leader": "Joana",
        "supervisors": "Pedro",
        "phone": "(11) 99999-0000",
        "network_id": network_id,
    }
    payload.update(extra)
    return payload


class TestCellCrud:
    """Tests for cell create/read/update/soft-delete."""

    def test_create_cell_with_opening_kg(self, client, auth, test_db, sample_networks):
        """Test that initial kg is recorded as the first delivery."""
        response = client.post(
            "/api/cells", json=_cell_payload(sample_networks[0].id, initial_kg=12.5), auth=auth
        )

        assert response.status_code == 201
        data = response.json()
        assert data["quantity_kg"] == 12.5
        assert data["network"] == "Amarela"
        entries = test_db.query(HistoricoEntry).filter_by(cell_id=data["id"]).all()
        assert len(entries) == 1
        assert entries[0].source_transaction_id == f"cell:{data['id']}:opening"

    def test_create_cell_without_kg(self, client, auth, sample_networks):
        response = client.post("/api/cells", json=_cell_payload(sample_networks[0].id), auth=auth)

        assert response.status_code == 201
        assert response.json()["quantity_kg"] == 0.0

    def test_create_cell_unknown_network(self, client, auth, sample_networks):
        response = client.post("/api/cells", json=_cell_payload(999), auth=auth)

        assert response.status_code == 404

    def test_create_cell_requires_leader(self, client, auth, sample_networks):
        payload = _cell_payload(sample_networks[0].id)
        payload["leader"] = " "

        response = client.post("/api/cells", json=payload, auth=auth)

        assert response.status_code == 422

    def test_negative_opening_kg(self, client, auth, sample_networks):
        response = client.post(
            "/api/cells", json=_cell_payload(sample_networks[0].id, initial_kg=-3), auth=auth
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_quantity"

    def test_update_does_not_change_kg(self, client, auth, sample_cells):
        """Test that an edit cannot overwrite the delivered total."""
        cell_id = sample_cells[0].id
        client.post(f"/api/cells/{cell_id}/deliveries", json={"quantity": 5}, auth=auth)

        response = client.put(
            f"/api/cells/{cell_id}",
            json={"leader": "Nova Líder", "quantity_kg": 999},
            auth=auth
        )

        assert response.status_code == 200
        assert response.json()["leader"] == "Nova Líder"
        assert response.json()["quantity_kg"] == 5.0

    def test_update_rejects_blank_name_and_leader(self, client, auth, sample_cells):
        """Test that an edit cannot blank out or null a required field."""
        cell_id = sample_cells[0].id

        for payload in ({"name": "   "}, {"leader": ""}, {"leader": None}):
            response = client.put(f"/api/cells/{cell_id}", json=payload, auth=auth)
            assert response.status_code == 422, payload

        cell = client.get(f"/api/cells/{cell_id}", auth=auth).json()
        assert cell["name"] == "Célula Esperança"
        assert cell["leader"] == "Ana"

    def test_update_strips_name(self, client, auth, sample_cells):
        response = client.put(f"/api/cells/{sample_cells[0].id}", json={"name": "  Célula Nova  "}, auth=auth)

        assert response.status_code == 200
        assert response.json()["name"] == "Célula Nova"

    def test_soft_delete(self, client, auth, sample_cells):
        cell_id = sample_cells[0].id

        response = client.delete(f"/api/cells/{cell_id}", auth=auth)
        active = client.get("/api/cells", auth=auth).json()
        everything = client.get("/api/cells", params={"include_inactive": True}, auth=auth).json()

        assert response.status_code == 200
        assert cell_id not in [c["id"] for c in active]
        assert cell_id in [c["id"] for c in everything]

    def test_list_by_network(self, client, auth, sample_cells, sample_networks):
        response = client.get("/api/cells", params={"network_id": sample_networks[1].id}, auth=auth)

        assert [c["name"] for c in response.json()] == ["Célula Graça"]


class TestDeliveries:
    """Tests for kg deliveries and corrections."""

    def test_delivery(self, client, auth, sample_cells):
        cell_id = sample_cells[0].id

        response = client.post(
            f"/api/cells/{cell_id}/deliveries",
            json={"quantity": "7.5", "delivered_at": "2026-03-01T09:30:00"},
            auth=auth
        )

        assert response.status_code == 201
        assert response.json()["outcome"] == "committed"
        assert response.json()["balances"] == {str(cell_id): 7.5}
        history = client.get(f"/api/cells/{cell_id}/deliveries", auth=auth).json()
        assert history[0]["quantity"] == 7.5
        assert history[0]["movement_type"] == "IN"
        assert history[0]["delivered_at"].startswith("2026-03-01T09:30")

    def test_same_reference_twice(self, client, auth, sample_cells):
        """Test that a resubmitted delivery form is not counted twice."""
        cell_id = sample_cells[0].id
        payload = {"quantity": 3, "reference": "form-42"}

        first = client.post(f"/api/cells/{cell_id}/deliveries", json=payload, auth=auth)
        second = client.post(f"/api/cells/{cell_id}/deliveries", json=payload, auth=auth)

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["code"] == "duplicate_transaction"
        assert client.get(f"/api/cells/{cell_id}", auth=auth).json()["quantity_kg"] == 3.0

    def test_invalid_delivery_quantity(self, client, auth, sample_cells):
        response = client.post(
            f"/api/cells/{sample_cells[0].id}/deliveries", json={"quantity": 0}, auth=auth
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_quantity"

    def test_delivery_to_inactive_cell(self, client, auth, sample_cells):
        cell_id = sample_cells[0].id
        client.delete(f"/api/cells/{cell_id}", auth=auth)

        response = client.post(f"/api/cells/{cell_id}/deliveries", json={"quantity": 1}, auth=auth)

        assert response.status_code == 422
        assert response.json()["code"] == "unknown_cell"

    def test_delivery_to_missing_cell(self, client, auth):
        response = client.post("/api/cells/999/deliveries", json={"quantity": 1}, auth=auth)

        assert response.status_code == 404

    def test_correction(self, client, auth, sample_cells):
        cell_id = sample_cells[0].id
        client.post(f"/api/cells/{cell_id}/deliveries", json={"quantity": 4}, auth=auth)

        too_much = client.post(f"/api/cells/{cell_id}/corrections", json={"quantity": 5}, auth=auth)
        ok = client.post(f"/api/cells/{cell_id}/corrections", json={"quantity": 1.5}, auth=auth)

        assert too_much.status_code == 409
        assert ok.status_code == 201
        assert client.get(f"/api/cells/{cell_id}", auth=auth).json()["quantity_kg"] == 2.5

    def test_reconcile_cell(self, client, auth, sample_cells):
        cell_id = sample_cells[0].id
        client.post(f"/api/cells/{cell_id}/deliveries", json={"quantity": 4}, auth=auth)

        report = client.get(f"/api/cells/{cell_id}/reconcile", auth=auth).json()
        sweep = client.post("/api/cells/reconcile", auth=auth).json()

        assert report["drift"] == 0.0
        assert report["ledger_sum"] == 4.0
        assert sweep["checked"] == 3
        assert sweep["drifted"] == 0


class TestNetworks:
    """Tests for network endpoints and reference data."""

    def test_create_and_list(self, client, auth):
        response = client.post("/api/networks", json={"color": "Laranja", "hex": "#FFA500"}, auth=auth)

        assert response.status_code == 201
        assert [n["color"] for n in client.get("/api/networks", auth=auth).json()] == ["Laranja"]

    def test_duplicate_color(self, client, auth, sample_networks):
        response = client.post("/api/networks", json={"color": "Amarela"}, auth=auth)

        assert response.status_code == 409

    def test_invalid_hex(self, client, auth):
        response = client.post("/api/networks", json={"color": "Roxa", "hex": "purple"}, auth=auth)

        assert response.status_code == 422

    def test_deactivate(self, client, auth, sample_networks):
        network_id = sample_networks[1].id

        client.delete(f"/api/networks/{network_id}", auth=auth)

        assert [n["color"] for n in client.get("/api/networks", auth=auth).json()] == ["Amarela"]

    def test_seed_is_idempotent(self, client, auth, sample_networks):
        """Test that seeding only adds what is missing."""
        first = client.post("/api/seed", auth=auth).json()
        second = client.post("/api/seed", auth=auth).json()

        assert first == {"networks_created": 3, "categories_created": 1}
        assert second == {"networks_created": 0, "categories_created": 0}
        colors = [n["color"] for n in client.get("/api/networks", auth=auth).json()]
        assert colors == ["Amarela", "Azul", "Branca", "Verde", "Vermelha"]

"""Tests for category and product API endpoints."""


class TestCategoryAPI:
    """Tests for category endpoints."""

    def test_create_category(self, client, auth):
        response = client.post(
            "/api/categories", json={"name": "HIGIENE", "color": "#00AAFF"}, auth=auth
        )

        assert response.status_code == 201
        assert response.json()["name"] == "HIGIENE"

    def test_duplicate_name_rejected(self, client, auth, sample_catalog):
        response = client.post("/api/categories", json={"name": "GRÃOS E CEREAIS"}, auth=auth)

        assert response.status_code == 409

    def test_update_category(self, client, auth, sample_catalog):
        category_id = sample_catalog[0].category_id

        response = client.put(
            f"/api/categories/{category_id}", json={"color": "#123456"}, auth=auth
        )

        assert response.status_code == 200
        assert response.json()["color"] == "#123456"

    def test_delete_category_in_use(self, client, auth, sample_catalog):
        """Test that a category with products cannot be deleted."""
        category_id = sample_catalog[0].category_id

        response = client.delete(f"/api/categories/{category_id}", auth=auth)

        assert response.status_code == 409
        assert response.json()["details"]["products"] == 3

    def test_delete_unused_category(self, client, auth):
        created = client.post("/api/categories", json={"name": "LIMPEZA"}, auth=auth).json()

        response = client.delete(f"/api/categories/{created['id']}", auth=auth)

        assert response.status_code == 200
        assert client.get("/api/categories", auth=auth).json() == []


class TestProductAPI:
    """Tests for product endpoints."""

    def test_create_product(self, client, auth, sample_catalog):
        response = client.post(
            "/api/products",
            json={"name": "Macarrão", "unit": "un", "category_id": sample_catalog[0].category_id},
            auth=auth
        )

        assert response.status_code == 201
        data = response.json()
        assert data["unit"] == "un"
        assert data["is_active"] is True

    def test_create_product_unknown_category(self, client, auth):
        response = client.post(
            "/api/products", json={"name": "Sal", "category_id": 999}, auth=auth
        )

        assert response.status_code == 404

    def test_unit_defaults_to_kg(self, client, auth, sample_catalog):
        response = client.post(
            "/api/products",
            json={"name": "Açúcar", "category_id": sample_catalog[0].category_id},
            auth=auth
        )

        assert response.json()["unit"] == "kg"

    def test_deactivate_product(self, client, auth, sample_catalog):
        """Test that products are hidden, not deleted."""
        product_id = sample_catalog[2].id

        response = client.put(f"/api/products/{product_id}", json={"is_active": False}, auth=auth)
        listed = client.get("/api/products", auth=auth).json()
        detail = client.get(f"/api/products/{product_id}", auth=auth)

        assert response.status_code == 200
        assert product_id not in [p["id"] for p in listed]
        assert detail.status_code == 200

    def test_product_delete_not_allowed(self, client, auth, sample_catalog):
        response = client.delete(f"/api/products/{sample_catalog[0].id}", auth=auth)

        assert response.status_code == 405

    def test_list_by_category(self, client, auth, sample_catalog):
        response = client.get(
            "/api/products", params={"category_id": sample_catalog[0].category_id}, auth=auth
        )

        assert [p["name"] for p in response.json()] == ["Arroz", "Feijão", "Óleo"]

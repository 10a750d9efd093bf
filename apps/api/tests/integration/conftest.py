import pytest


@pytest.fixture
def seeded_products(client, auth_headers):
    created = {}
    for key, name, price, stock in (("x", "Widget X", "100.00", 5), ("y", "Widget Y", "50.00", 1)):
        response = client.post(
            "/api/v1/products",
            json={"name": name, "price": price, "stock_quantity": stock, "sku": f"SKU-{key}"},
            headers=auth_headers["admin"],
        )
        assert response.status_code == 201
        created[key] = response.json()
    return created


@pytest.fixture
def place_order(client, auth_headers, seeded_products):
    def _place(lines=None, headers=None, **overrides):
        if lines is None:
            lines = [{"product_id": seeded_products["x"]["id"], "quantity": 1}]
        payload = {
            "items": lines,
            "delivery_address": "12 MG Road, Bengaluru",
            "delivery_pincode": "560001",
            "delivery_mobile": "9876543210",
        }
        payload.update(overrides)
        return client.post(
            "/api/v1/orders", json=payload, headers=headers or auth_headers["customer"]
        )

    return _place

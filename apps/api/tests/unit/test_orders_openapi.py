def _response_ref(operation: dict, code: str = "200") -> str:
    return operation["responses"][code]["content"]["application/json"]["schema"]["$ref"]


def test_order_routes_expose_response_schemas(client):
    openapi = client.get("/openapi.json")
    assert openapi.status_code == 200

    paths = openapi.json()["paths"]

    assert _response_ref(paths["/api/v1/orders"]["post"], "201") == (
        "#/components/schemas/OrderResponse"
    )
    assert _response_ref(paths["/api/v1/tracking/{tracking_id}"]["get"]) == (
        "#/components/schemas/PublicTrackingResponse"
    )
    assert _response_ref(paths["/api/v1/delivery/orders/{order_id}/location"]["put"]) == (
        "#/components/schemas/OrderDetailsResponse"
    )
    assert _response_ref(paths["/api/v1/products/{product_id}/stock-history"]["get"]) == (
        "#/components/schemas/StockMovementListResponse"
    )


def test_order_create_request_schema_in_openapi(client):
    payload = client.get("/openapi.json").json()

    create = payload["paths"]["/api/v1/orders"]["post"]
    assert create["requestBody"]["content"]["application/json"]["schema"]["$ref"] == (
        "#/components/schemas/OrderCreate"
    )
    assert payload["components"]["securitySchemes"]["BearerAuth"]["scheme"] == "bearer"

import json
import uuid

import pytest

from teestudio.canvas import DesignState


def _composition(product_id, **overrides) -> dict:
    body = {
        "product_id": product_id,
        "color": "black",
        "size": "M",
        "quantity": 3,
        "elements": [{"type": "text", "content": "Hi", "color": "#ffffff"}],
    }
    body.update(overrides)
    return body


# --- Health & catalog ---

async def test_health(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "version" in response.json()


async def test_default_catalog_is_seeded(client):
    response = await client.get("/api/products/")
    assert response.status_code == 200
    products = response.json()
    assert [p["name"] for p in products] == ["Classic T-Shirt", "Premium V-Neck", "Pullover Hoodie", "Canvas Tote"]
    assert products[0]["base_price"] == "19.99"
    assert products[0]["colors"][0] == "white"


async def test_get_product(client, scenario_product_id):
    response = await client.get(f"/api/products/{scenario_product_id}")
    assert response.status_code == 200
    assert response.json()["name"] == "Scenario Tee"


async def test_unknown_product_is_404(client):
    response = await client.get("/api/products/9999")
    assert response.status_code == 404


# --- Auth ---

async def test_register_login_and_me(client, auth_headers):
    response = await client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "ada@example.com"
    assert body["username"] == "ada"


async def test_duplicate_registration_is_rejected(client, auth_headers):
    response = await client.post(
        "/api/auth/register", json={"email": "ada@example.com", "password": "another-password"}
    )
    assert response.status_code == 400


async def test_short_password_is_rejected(client):
    response = await client.post("/api/auth/register", json={"email": "bob@example.com", "password": "short"})
    assert response.status_code == 422


async def test_wrong_password_is_rejected(client, auth_headers):
    response = await client.post("/api/auth/login", data={"username": "ada@example.com", "password": "nope-nope"})
    assert response.status_code == 401


async def test_me_requires_a_valid_token(client):
    assert (await client.get("/api/auth/me")).status_code == 401
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


async def test_profile_update_keeps_the_session_valid(client, auth_headers):
    response = await client.put(
        "/api/auth/profile",
        json={"first_name": "Ada", "last_name": "Lovelace", "email": "ada.l@example.com"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    me = (await client.get("/api/auth/me", headers=auth_headers)).json()
    assert (me["first_name"], me["email"]) == ("Ada", "ada.l@example.com")


async def test_profile_update_rejects_a_taken_email(client, auth_headers, login_as):
    await login_as("grace@example.com")
    response = await client.put(
        "/api/auth/profile",
        json={"first_name": "Ada", "last_name": "Lovelace", "email": "grace@example.com"},
        headers=auth_headers,
    )
    assert response.status_code == 400


# --- Studio ---

async def test_quote_prices_the_composition(client, scenario_product_id):
    response = await client.post("/api/studio/quote", json=_composition(scenario_product_id))
    assert response.status_code == 200
    assert response.json() == {
        "base_price": "20.00",
        "design_fee": "5.00",
        "unit_price": "25.00",
        "quantity": 3,
        "total_price": "75.00",
        "element_count": 1,
    }


@pytest.mark.parametrize("quantity, expected", [(0, 1), (-4, 1), ("abc", 1), ("2", 2)])
async def test_quote_clamps_quantity(client, scenario_product_id, quantity, expected):
    body = _composition(scenario_product_id, quantity=quantity, elements=[])
    response = await client.post("/api/studio/quote", json=body)
    assert response.status_code == 200
    assert response.json()["quantity"] == expected
    assert response.json()["unit_price"] == "20.00"


async def test_quote_ignores_blank_text(client, scenario_product_id):
    body = _composition(scenario_product_id, elements=[{"type": "text", "content": "   "}])
    response = await client.post("/api/studio/quote", json=body)
    assert response.json()["element_count"] == 0


@pytest.mark.parametrize("overrides", [
    {"color": "navy"},
    {"size": "XXL"},
    {"elements": [{"type": "shape", "content": "triangle"}]},
])
async def test_invalid_selection_is_400(client, scenario_product_id, overrides):
    response = await client.post("/api/studio/quote", json=_composition(scenario_product_id, **overrides))
    assert response.status_code == 400
    assert "detail" in response.json()


async def test_quote_for_unknown_product_is_404(client):
    response = await client.post("/api/studio/quote", json=_composition(9999))
    assert response.status_code == 404


async def test_preview_returns_png(client, scenario_product_id):
    response = await client.post("/api/studio/preview", json=_composition(scenario_product_id))
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


async def test_oversized_font_is_422(client, scenario_product_id):
    body = _composition(scenario_product_id, elements=[{"type": "text", "content": "Hi", "font_size": 200000}])
    response = await client.post("/api/studio/preview", json=body)
    assert response.status_code == 422


async def test_non_finite_restored_element_is_422(client, scenario_product_id):
    element = {
        "id": "abc123", "type": "shape", "content": "circle", "color": "#ff0000",
        "x": float("inf"), "y": 200.0, "width": 60.0, "height": 60.0,
    }
    # sent as raw text: the JSON literal `Infinity` is what a client would put on the wire
    body = json.dumps(_composition(scenario_product_id, elements=[element]))
    response = await client.post(
        "/api/studio/preview", content=body, headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 422


async def test_save_requires_login(client, scenario_product_id):
    response = await client.post("/api/studio/save", json=_composition(scenario_product_id))
    assert response.status_code == 401


async def test_save_requires_elements(client, scenario_product_id, auth_headers):
    response = await client.post(
        "/api/studio/save", json=_composition(scenario_product_id, elements=[]), headers=auth_headers
    )
    assert response.status_code == 422


async def test_saving_again_with_design_id_updates(client, scenario_product_id, auth_headers):
    first = await client.post("/api/studio/save", json=_composition(scenario_product_id), headers=auth_headers)
    assert first.status_code == 200
    assert first.json()["created"] is True
    design_id = first.json()["design_id"]

    body = _composition(scenario_product_id, design_id=design_id, name="Renamed")
    body["elements"].append({"type": "shape", "content": "circle", "color": "#ff0000"})
    second = await client.post("/api/studio/save", json=body, headers=auth_headers)
    assert second.json() == {"design_id": design_id, "created": False}

    designs = (await client.get("/api/designs/", headers=auth_headers)).json()
    assert len(designs) == 1
    assert designs[0]["name"] == "Renamed"
    assert len(designs[0]["design_data"]["elements"]) == 2


async def test_other_users_design_id_is_not_overwritten(client, scenario_product_id, auth_headers, login_as):
    saved = await client.post("/api/studio/save", json=_composition(scenario_product_id), headers=auth_headers)
    design_id = saved.json()["design_id"]

    grace = await login_as("grace@example.com")
    body = _composition(scenario_product_id, design_id=design_id)
    response = await client.post("/api/studio/save", json=body, headers=grace)
    assert response.json()["created"] is True
    assert response.json()["design_id"] != design_id


async def test_studio_cart_saves_and_prices_the_line(client, scenario_product_id, auth_headers):
    response = await client.post("/api/studio/cart", json=_composition(scenario_product_id), headers=auth_headers)
    assert response.status_code == 201
    line = response.json()
    assert line["custom_price"] == "25.00"
    assert line["quantity"] == 3
    assert line["design_id"] is not None

    cart = (await client.get("/api/cart/", headers=auth_headers)).json()
    assert cart["subtotal"] == "75.00"
    assert cart["items"][0]["product_name"] == "Scenario Tee"
    assert cart["items"][0]["line_total"] == "75.00"


async def test_studio_cart_for_stock_product(client, scenario_product_id, auth_headers):
    body = _composition(scenario_product_id, elements=[], quantity=1)
    line = (await client.post("/api/studio/cart", json=body, headers=auth_headers)).json()
    assert line["design_id"] is None
    assert line["custom_price"] == "20.00"


async def test_studio_cart_requires_login(client, scenario_product_id):
    response = await client.post("/api/studio/cart", json=_composition(scenario_product_id))
    assert response.status_code == 401


# --- Designs ---

async def _save(client, product_id, headers) -> str:
    response = await client.post("/api/studio/save", json=_composition(product_id), headers=headers)
    return response.json()["design_id"]


async def test_designs_require_login(client):
    assert (await client.get("/api/designs/")).status_code == 401


async def test_design_preview_matches_the_studio_render(client, scenario_product_id, auth_headers):
    design_id = await _save(client, scenario_product_id, auth_headers)
    design = (await client.get(f"/api/designs/{design_id}", headers=auth_headers)).json()
    assert design["thumbnail"].startswith("data:image/png;base64,")

    saved = await client.get(f"/api/designs/{design_id}/preview", headers=auth_headers)
    assert saved.status_code == 200

    # the stored elements carry ids, so the studio restores them verbatim
    body = _composition(scenario_product_id, elements=design["design_data"]["elements"])
    fresh = await client.post("/api/studio/preview", json=body)
    assert saved.content == fresh.content

    restored = DesignState.from_payload(design["design_data"])
    assert saved.content == restored.render_png()


async def test_unknown_design_is_404(client, auth_headers):
    response = await client.get(f"/api/designs/{uuid.uuid4()}", headers=auth_headers)
    assert response.status_code == 404


async def test_designs_are_private(client, scenario_product_id, auth_headers, login_as):
    design_id = await _save(client, scenario_product_id, auth_headers)
    grace = await login_as("grace@example.com")
    assert (await client.get(f"/api/designs/{design_id}", headers=grace)).status_code == 404
    assert (await client.get("/api/designs/", headers=grace)).json() == []


async def test_delete_design_is_idempotent(client, scenario_product_id, auth_headers):
    design_id = await _save(client, scenario_product_id, auth_headers)
    for _ in range(2):
        response = await client.delete(f"/api/designs/{design_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}
    assert (await client.get("/api/designs/", headers=auth_headers)).json() == []


async def test_add_saved_design_to_cart(client, scenario_product_id, auth_headers):
    design_id = await _save(client, scenario_product_id, auth_headers)
    response = await client.post(f"/api/designs/{design_id}/cart", headers=auth_headers)
    assert response.status_code == 201
    line = response.json()
    assert line["design_id"] == design_id
    assert (line["quantity"], line["color"], line["size"]) == (1, "black", "M")
    assert line["custom_price"] == "25.00"
    assert len((await client.get("/api/designs/", headers=auth_headers)).json()) == 1


# --- Cart ---

async def _stock_line(client, product_id, headers) -> dict:
    body = _composition(product_id, elements=[], quantity=2)
    return (await client.post("/api/studio/cart", json=body, headers=headers)).json()


async def test_cart_quantity_update_is_clamped(client, scenario_product_id, auth_headers):
    line = await _stock_line(client, scenario_product_id, auth_headers)
    response = await client.patch(f"/api/cart/{line['id']}", json={"quantity": 0}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["items"][0]["quantity"] == 1
    assert response.json()["subtotal"] == "20.00"


async def test_cart_update_of_unknown_line_is_404(client, auth_headers):
    response = await client.patch(f"/api/cart/{uuid.uuid4()}", json={"quantity": 2}, headers=auth_headers)
    assert response.status_code == 404


async def test_remove_and_clear_cart(client, scenario_product_id, auth_headers):
    first = await _stock_line(client, scenario_product_id, auth_headers)
    await _stock_line(client, scenario_product_id, auth_headers)

    response = await client.delete(f"/api/cart/{first['id']}", headers=auth_headers)
    assert len(response.json()["items"]) == 1

    response = await client.delete("/api/cart/", headers=auth_headers)
    assert response.json() == {"items": [], "subtotal": "0.00"}


# --- Orders ---

async def test_empty_cart_cannot_be_ordered(client, auth_headers):
    response = await client.post("/api/orders/", json={"shipping_address": "1 Main Street"}, headers=auth_headers)
    assert response.status_code == 400


async def test_place_order_from_cart(client, scenario_product_id, auth_headers):
    await client.post("/api/studio/cart", json=_composition(scenario_product_id), headers=auth_headers)
    await _stock_line(client, scenario_product_id, auth_headers)

    response = await client.post(
        "/api/orders/", json={"shipping_address": "1 Main Street, Springfield"}, headers=auth_headers
    )
    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["total_amount"] == "115.00"
    assert sorted(item["custom_price"] for item in order["items"]) == ["20.00", "25.00"]
    assert all(item["price"] == "20.00" for item in order["items"])

    cart = (await client.get("/api/cart/", headers=auth_headers)).json()
    assert cart["items"] == []

    orders = (await client.get("/api/orders/", headers=auth_headers)).json()
    assert [o["id"] for o in orders] == [order["id"]]


async def test_orders_require_login(client):
    assert (await client.get("/api/orders/")).status_code == 401

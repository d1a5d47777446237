"""
API tests for the configurator and cart routes.
"""

from fastapi import status


def open_burger(test_client, **extra):
    response = test_client.post(
        "/api/configurator/sessions",
        json={"item_id": "burger", "restaurant_id": "resto-1", **extra},
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


class TestSessionRoutes:
    """Tests for opening, reading and closing sessions."""

    def test_open_session(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)

        data = open_burger(test_client)

        assert data["status"] == "ready"
        assert data["item_kind"] == "regular"
        assert data["selection"]["selected_variants"] == ["classic"]
        assert data["selection"]["pricing_per_variant"] == {"classic": "classic-m"}

    def test_open_with_failed_catalog(self, test_client, fake_catalog):
        fake_catalog.fail_items = True

        data = open_burger(test_client)

        assert data["status"] == "load_failed"
        assert data["load_error"] == "Could not load menu item"

        response = test_client.post(
            f"/api/configurator/sessions/{data['session_id']}/actions",
            json={"action": {"type": "select_variant", "variant_id": "classic"}},
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"]["code"] == "CATALOG_NOT_LOADED"

    def test_retry(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.fail_items = True
        data = open_burger(test_client)
        fake_catalog.fail_items = False
        fake_catalog.add_item(regular_catalog)

        response = test_client.post(f"/api/configurator/sessions/{data['session_id']}/retry")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "ready"

    def test_unknown_session(self, test_client):
        response = test_client.get("/api/configurator/sessions/nope")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "SESSION_NOT_FOUND"

    def test_close(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)

        response = test_client.delete(f"/api/configurator/sessions/{data['session_id']}")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert test_client.get(f"/api/configurator/sessions/{data['session_id']}").json()["status"] == "closed"


class TestActionRoutes:
    """Tests for actions and validation."""

    def test_apply_action(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)

        response = test_client.post(
            f"/api/configurator/sessions/{data['session_id']}/actions",
            json={"action": {"type": "toggle_supplement", "supplement_key": "bacon"}},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["selection"]["supplements"] == ["bacon"]

    def test_action_outside_catalog(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)

        response = test_client.post(
            f"/api/configurator/sessions/{data['session_id']}/actions",
            json={"action": {"type": "select_variant", "variant_id": "ghost"}},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_SELECTION_ACTION"

    def test_unknown_action_type(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)

        response = test_client.post(
            f"/api/configurator/sessions/{data['session_id']}/actions",
            json={"action": {"type": "teleport"}},
        )

        assert response.status_code == 422

    def test_validation_endpoint(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)
        test_client.post(
            f"/api/configurator/sessions/{data['session_id']}/actions",
            json={"action": {"type": "select_variant", "variant_id": "classic"}},
        )

        response = test_client.get(f"/api/configurator/sessions/{data['session_id']}/validation")

        assert response.json()["ok"] is False
        assert response.json()["reason"] == "no_selection"


class TestCommitRoutes:
    """Tests for saved orders, confirm and the cart."""

    def test_confirm_adds_to_cart(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)

        response = test_client.post(f"/api/configurator/sessions/{data['session_id']}/confirm")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["ok"] is True
        cart = test_client.get("/api/cart").json()
        assert len(cart) == 1
        assert cart[0]["total_price"] == "500.00"

    def test_empty_confirm_is_rejected_in_body(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)
        test_client.post(
            f"/api/configurator/sessions/{data['session_id']}/actions",
            json={"action": {"type": "select_variant", "variant_id": "classic"}},
        )

        response = test_client.post(f"/api/configurator/sessions/{data['session_id']}/confirm")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["ok"] is False
        assert body["validation"]["reason"] == "no_selection"
        assert test_client.get("/api/cart").json() == []

    def test_saved_orders(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)
        session_url = f"/api/configurator/sessions/{data['session_id']}"

        assert test_client.post(f"{session_url}/saved-orders").json()["ok"] is True
        assert len(test_client.get(session_url).json()["saved_orders"]) == 1

        response = test_client.delete(f"{session_url}/saved-orders/3")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "SAVED_ORDER_NOT_FOUND"

        assert test_client.delete(f"{session_url}/saved-orders/0").json()["saved_orders"] == []

    def test_preview(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)

        response = test_client.post(f"/api/configurator/sessions/{data['session_id']}/preview")

        assert len(response.json()) == 1
        assert test_client.get("/api/cart").json() == []

    def test_edit_flow(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        first = open_burger(test_client)
        test_client.post(f"/api/configurator/sessions/{first['session_id']}/confirm")
        [line] = test_client.get("/api/cart").json()

        edit = open_burger(test_client, edit_line_id=line["line_id"])
        assert edit["is_edit"] is True
        test_client.post(
            f"/api/configurator/sessions/{edit['session_id']}/actions",
            json={"action": {"type": "select_pricing", "variant_id": "classic", "pricing_id": "classic-l"}},
        )
        test_client.post(f"/api/configurator/sessions/{edit['session_id']}/confirm")

        [edited] = test_client.get("/api/cart").json()
        assert edited["line_id"] != line["line_id"]
        assert edited["unit_price"] == "700.00"

    def test_edit_unknown_line(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)

        response = test_client.post(
            "/api/configurator/sessions",
            json={"item_id": "burger", "edit_line_id": "missing"},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["code"] == "CART_LINE_NOT_FOUND"

    def test_remove_cart_line(self, test_client, fake_catalog, regular_catalog):
        fake_catalog.add_item(regular_catalog)
        data = open_burger(test_client)
        test_client.post(f"/api/configurator/sessions/{data['session_id']}/confirm")
        [line] = test_client.get("/api/cart").json()

        assert test_client.delete(f"/api/cart/{line['line_id']}").status_code == status.HTTP_204_NO_CONTENT
        assert test_client.get(f"/api/cart/{line['line_id']}").status_code == status.HTTP_404_NOT_FOUND

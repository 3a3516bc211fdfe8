import pytest

from sweet_shop.inventory import crud
from sweet_shop.models import MAX_QUANTITY
from sweet_shop.util.time import utcnow_iso


CHOCOLATE_BAR = {
    "name": "Dark Chocolate Bar",
    "category": "chocolate",
    "price": 25.99,
    "quantity": 100,
    "description": "Premium dark chocolate",
    "imageUrl": "https://example.com/chocolate.jpg",
}


def _count(client, headers):
    return client.get("/api/sweets", headers=headers).json()["data"]["count"]


class TestCreate:
    def test_admin_creates_sweet(self, client, admin_headers):
        res = client.post("/api/sweets", json=CHOCOLATE_BAR, headers=admin_headers)
        assert res.status_code == 201
        body = res.json()
        assert body["status"] == "success"
        sweet = body["data"]["sweet"]
        assert sweet["name"] == "Dark Chocolate Bar"
        assert sweet["category"] == "chocolate"
        assert sweet["price"] == 25.99
        assert sweet["quantity"] == 100
        assert sweet["imageUrl"] == "https://example.com/chocolate.jpg"
        assert sweet["createdAt"] and sweet["updatedAt"]
        assert isinstance(sweet["id"], int)

    def test_defaults_image_and_normalizes_category(self, client, admin_headers, cfg):
        res = client.post(
            "/api/sweets",
            json={"name": "  Toffee Crunch ", "category": "TOFFEE", "price": 3, "quantity": 0},
            headers=admin_headers,
        )
        assert res.status_code == 201
        sweet = res.json()["data"]["sweet"]
        assert sweet["name"] == "Toffee Crunch"
        assert sweet["category"] == "toffee"
        assert sweet["imageUrl"] == cfg.DEFAULT_SWEET_IMAGE_URL
        assert sweet["description"] is None

    def test_regular_user_forbidden(self, client, user_headers, admin_headers):
        res = client.post("/api/sweets", json=CHOCOLATE_BAR, headers=user_headers)
        assert res.status_code == 403
        assert res.json()["status"] == "error"
        assert _count(client, admin_headers) == 0

    def test_requires_authentication(self, client):
        res = client.post("/api/sweets", json=CHOCOLATE_BAR)
        assert res.status_code == 401
        assert res.json()["status"] == "error"

    def test_missing_fields(self, client, admin_headers):
        res = client.post("/api/sweets", json={"name": "Incomplete Sweet"}, headers=admin_headers)
        assert res.status_code == 400
        fields = {e["field"] for e in res.json()["errors"]}
        assert {"category", "price", "quantity"} <= fields

    @pytest.mark.parametrize(
        "override, field",
        [
            ({"category": "vegetable"}, "category"),
            ({"price": -1}, "price"),
            ({"quantity": -5}, "quantity"),
            ({"quantity": 2.5}, "quantity"),
            ({"quantity": MAX_QUANTITY + 1}, "quantity"),
            ({"quantity": 10**30}, "quantity"),
            ({"name": "x" * 101}, "name"),
            ({"description": "d" * 501}, "description"),
        ],
    )
    def test_field_rules(self, client, admin_headers, override, field):
        res = client.post("/api/sweets", json={**CHOCOLATE_BAR, **override}, headers=admin_headers)
        assert res.status_code == 400
        assert [e["field"] for e in res.json()["errors"]] == [field]

    @pytest.mark.parametrize("token", ["Infinity", "-Infinity", "NaN"])
    def test_non_finite_price(self, client, admin_headers, token):
        raw = '{"name": "Z", "category": "candy", "price": ' + token + ', "quantity": 3}'
        res = client.post(
            "/api/sweets",
            content=raw,
            headers={**admin_headers, "Content-Type": "application/json"},
        )
        assert res.status_code == 400
        assert [e["field"] for e in res.json()["errors"]] == ["price"]
        assert _count(client, admin_headers) == 0

    def test_invalid_category_message(self, client, admin_headers):
        res = client.post("/api/sweets", json={**CHOCOLATE_BAR, "category": "vegetable"}, headers=admin_headers)
        assert res.json()["errors"][0]["message"] == "Invalid category"

    def test_duplicate_name(self, client, admin_headers):
        assert client.post("/api/sweets", json=CHOCOLATE_BAR, headers=admin_headers).status_code == 201
        res = client.post("/api/sweets", json=CHOCOLATE_BAR, headers=admin_headers)
        assert res.status_code == 400
        assert "already exists" in res.json()["message"]


class TestRead:
    def test_list_newest_first(self, client, user_headers, make_sweet):
        make_sweet(name="First")
        make_sweet(name="Second")
        res = client.get("/api/sweets", headers=user_headers)
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["count"] == 2
        assert [s["name"] for s in data["sweets"]] == ["Second", "First"]

    def test_list_requires_auth(self, client):
        assert client.get("/api/sweets").status_code == 401

    def test_get_one(self, client, user_headers, make_sweet):
        sweet = make_sweet()
        res = client.get(f"/api/sweets/{sweet['id']}", headers=user_headers)
        assert res.status_code == 200
        assert res.json()["data"]["sweet"] == sweet

    @pytest.mark.parametrize("bad_id", ["999999", "abc", "0", "-3"])
    def test_get_missing(self, client, user_headers, bad_id):
        res = client.get(f"/api/sweets/{bad_id}", headers=user_headers)
        assert res.status_code == 404
        assert res.json() == {"status": "error", "message": "Sweet not found"}


class TestSearch:
    @pytest.fixture(autouse=True)
    def _catalogue(self, make_sweet):
        make_sweet(name="Dark Chocolate Bar", category="chocolate", price=25.99)
        make_sweet(name="Milk Chocolate", category="chocolate", price=15.99)
        make_sweet(name="Gummy Bears", category="gummy", price=5.99)
        make_sweet(name="Chocolate Lollipop", category="lollipop", price=20.0)

    def _search(self, client, headers, **params):
        res = client.get("/api/sweets/search", params=params, headers=headers)
        assert res.status_code == 200, res.text
        data = res.json()["data"]
        assert data["count"] == len(data["sweets"])
        return sorted(s["name"] for s in data["sweets"])

    def test_by_name_case_insensitive(self, client, user_headers):
        assert self._search(client, user_headers, name="CHOCOLATE") == [
            "Chocolate Lollipop",
            "Dark Chocolate Bar",
            "Milk Chocolate",
        ]

    def test_by_category(self, client, user_headers):
        assert self._search(client, user_headers, category="Chocolate") == ["Dark Chocolate Bar", "Milk Chocolate"]

    def test_by_price_range_inclusive(self, client, user_headers):
        assert self._search(client, user_headers, minPrice="15.99", maxPrice="20") == [
            "Chocolate Lollipop",
            "Milk Chocolate",
        ]

    def test_filters_combine(self, client, user_headers):
        assert self._search(client, user_headers, category="chocolate", minPrice="20") == ["Dark Chocolate Bar"]

    def test_no_filters_is_list_all(self, client, user_headers):
        assert len(self._search(client, user_headers)) == 4

    def test_blank_filters_ignored(self, client, user_headers):
        assert len(self._search(client, user_headers, name="", category=" ", minPrice="")) == 4

    def test_non_numeric_price(self, client, user_headers):
        res = client.get("/api/sweets/search", params={"minPrice": "cheap"}, headers=user_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "minPrice"

    @pytest.mark.parametrize("bound", ["nan", "inf", "-Infinity"])
    def test_non_finite_price(self, client, user_headers, bound):
        res = client.get("/api/sweets/search", params={"maxPrice": bound}, headers=user_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "maxPrice"

    def test_requires_auth(self, client):
        assert client.get("/api/sweets/search", params={"name": "gummy"}).status_code == 401


class TestUpdate:
    def test_partial_update(self, client, admin_headers, make_sweet, monkeypatch):
        monkeypatch.setattr(crud, "utcnow_iso", lambda: "2020-01-01T00:00:00.000Z")
        sweet = make_sweet(description="old")
        monkeypatch.setattr(crud, "utcnow_iso", utcnow_iso)
        res = client.put(f"/api/sweets/{sweet['id']}", json={"price": 15.99}, headers=admin_headers)
        assert res.status_code == 200
        updated = res.json()["data"]["sweet"]
        assert updated["price"] == 15.99
        assert updated["name"] == sweet["name"]
        assert updated["quantity"] == sweet["quantity"]
        assert updated["description"] == "old"
        assert sweet["updatedAt"] == "2020-01-01T00:00:00.000Z"
        assert updated["updatedAt"] > sweet["updatedAt"]
        assert updated["createdAt"] == sweet["createdAt"]

    def test_blank_values_keep_current(self, client, admin_headers, make_sweet):
        sweet = make_sweet()
        res = client.put(
            f"/api/sweets/{sweet['id']}",
            json={"name": "", "category": "", "imageUrl": "", "price": None},
            headers=admin_headers,
        )
        assert res.status_code == 200
        updated = res.json()["data"]["sweet"]
        for key in ("name", "category", "imageUrl", "price"):
            assert updated[key] == sweet[key]

    def test_description_can_be_cleared(self, client, admin_headers, make_sweet):
        sweet = make_sweet(description="temporary")
        res = client.put(f"/api/sweets/{sweet['id']}", json={"description": ""}, headers=admin_headers)
        assert res.json()["data"]["sweet"]["description"] is None

    def test_rename_to_taken_name(self, client, admin_headers, make_sweet):
        make_sweet(name="Taken")
        sweet = make_sweet(name="Mine")
        res = client.put(f"/api/sweets/{sweet['id']}", json={"name": "Taken"}, headers=admin_headers)
        assert res.status_code == 400
        assert "already exists" in res.json()["message"]

    def test_keeping_own_name_is_fine(self, client, admin_headers, make_sweet):
        sweet = make_sweet(name="Mine")
        res = client.put(f"/api/sweets/{sweet['id']}", json={"name": "Mine", "quantity": 7}, headers=admin_headers)
        assert res.status_code == 200
        assert res.json()["data"]["sweet"]["quantity"] == 7

    def test_invalid_values(self, client, admin_headers, make_sweet):
        sweet = make_sweet()
        res = client.put(f"/api/sweets/{sweet['id']}", json={"quantity": -1}, headers=admin_headers)
        assert res.status_code == 400
        res = client.put(f"/api/sweets/{sweet['id']}", json={"category": "broccoli"}, headers=admin_headers)
        assert res.status_code == 400

    def test_regular_user_forbidden(self, client, user_headers, admin_headers, make_sweet):
        sweet = make_sweet()
        res = client.put(f"/api/sweets/{sweet['id']}", json={"price": 0.5}, headers=user_headers)
        assert res.status_code == 403
        unchanged = client.get(f"/api/sweets/{sweet['id']}", headers=admin_headers).json()["data"]["sweet"]
        assert unchanged["price"] == sweet["price"]

    def test_missing_sweet(self, client, admin_headers):
        res = client.put("/api/sweets/424242", json={"price": 15.99}, headers=admin_headers)
        assert res.status_code == 404
        assert res.json()["status"] == "error"


class TestDelete:
    def test_admin_deletes(self, client, admin_headers, make_sweet):
        sweet = make_sweet()
        res = client.delete(f"/api/sweets/{sweet['id']}", headers=admin_headers)
        assert res.status_code == 200
        assert res.json() == {"status": "success", "message": "Sweet deleted successfully"}
        assert client.get(f"/api/sweets/{sweet['id']}", headers=admin_headers).status_code == 404

    def test_regular_user_forbidden(self, client, user_headers, admin_headers, make_sweet):
        sweet = make_sweet()
        res = client.delete(f"/api/sweets/{sweet['id']}", headers=user_headers)
        assert res.status_code == 403
        assert client.get(f"/api/sweets/{sweet['id']}", headers=admin_headers).status_code == 200

    def test_missing_sweet(self, client, admin_headers):
        assert client.delete("/api/sweets/424242", headers=admin_headers).status_code == 404


class TestPurchase:
    def test_purchase_decrements_and_prices(self, client, user_headers, make_sweet):
        sweet = make_sweet(price=10.99, quantity=50)
        res = client.post(f"/api/sweets/{sweet['id']}/purchase", json={"quantity": 5}, headers=user_headers)
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "success"
        assert body["message"] == "Purchase successful"
        assert body["data"]["sweet"]["quantity"] == 45
        assert body["data"]["purchasedQuantity"] == 5
        assert body["data"]["totalPrice"] == 54.95

    def test_admin_can_purchase_too(self, client, admin_headers, make_sweet):
        sweet = make_sweet(quantity=3)
        res = client.post(f"/api/sweets/{sweet['id']}/purchase", json={"quantity": 3}, headers=admin_headers)
        assert res.status_code == 200
        assert res.json()["data"]["sweet"]["quantity"] == 0

    def test_more_than_in_stock(self, client, user_headers, make_sweet):
        sweet = make_sweet(quantity=50)
        res = client.post(f"/api/sweets/{sweet['id']}/purchase", json={"quantity": 100}, headers=user_headers)
        assert res.status_code == 400
        body = res.json()
        assert body["status"] == "error"
        assert "stock" in body["message"]
        assert "50" in body["message"]
        after = client.get(f"/api/sweets/{sweet['id']}", headers=user_headers).json()["data"]["sweet"]
        assert after["quantity"] == 50

    @pytest.mark.parametrize("qty", [0, -2, 1.5, "lots"])
    def test_bad_quantity(self, client, user_headers, make_sweet, qty):
        sweet = make_sweet()
        res = client.post(f"/api/sweets/{sweet['id']}/purchase", json={"quantity": qty}, headers=user_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "quantity"

    def test_missing_sweet(self, client, user_headers):
        res = client.post("/api/sweets/424242/purchase", json={"quantity": 1}, headers=user_headers)
        assert res.status_code == 404

    def test_requires_auth(self, client, make_sweet):
        sweet = make_sweet()
        res = client.post(f"/api/sweets/{sweet['id']}/purchase", json={"quantity": 5})
        assert res.status_code == 401
        assert res.json()["status"] == "error"


class TestRestock:
    def test_admin_restocks(self, client, admin_headers, make_sweet):
        sweet = make_sweet(quantity=50)
        res = client.post(f"/api/sweets/{sweet['id']}/restock", json={"quantity": 30}, headers=admin_headers)
        assert res.status_code == 200
        body = res.json()
        assert body["message"] == "Restock successful"
        assert body["data"]["sweet"]["quantity"] == 80
        assert body["data"]["restockedQuantity"] == 30

    def test_regular_user_forbidden(self, client, user_headers, admin_headers, make_sweet):
        sweet = make_sweet(quantity=50)
        res = client.post(f"/api/sweets/{sweet['id']}/restock", json={"quantity": 30}, headers=user_headers)
        assert res.status_code == 403
        after = client.get(f"/api/sweets/{sweet['id']}", headers=admin_headers).json()["data"]["sweet"]
        assert after["quantity"] == 50

    @pytest.mark.parametrize("qty", [-10, 0, MAX_QUANTITY + 1, 10**20])
    def test_non_positive_quantity(self, client, admin_headers, make_sweet, qty):
        sweet = make_sweet(quantity=50)
        res = client.post(f"/api/sweets/{sweet['id']}/restock", json={"quantity": qty}, headers=admin_headers)
        assert res.status_code == 400
        assert res.json()["status"] == "error"

    def test_cannot_push_stock_past_maximum(self, client, admin_headers, make_sweet):
        sweet = make_sweet(quantity=MAX_QUANTITY - 5)
        res = client.post(f"/api/sweets/{sweet['id']}/restock", json={"quantity": 10}, headers=admin_headers)
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "quantity"
        after = client.get(f"/api/sweets/{sweet['id']}", headers=admin_headers).json()["data"]["sweet"]
        assert after["quantity"] == MAX_QUANTITY - 5

        ok = client.post(f"/api/sweets/{sweet['id']}/restock", json={"quantity": 5}, headers=admin_headers)
        assert ok.json()["data"]["sweet"]["quantity"] == MAX_QUANTITY

    def test_missing_sweet(self, client, admin_headers):
        res = client.post("/api/sweets/424242/restock", json={"quantity": 1}, headers=admin_headers)
        assert res.status_code == 404

    def test_anonymous_gets_401_not_403(self, client, make_sweet):
        sweet = make_sweet()
        res = client.post(f"/api/sweets/{sweet['id']}/restock", json={"quantity": 1})
        assert res.status_code == 401

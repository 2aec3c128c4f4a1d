"""Tests for GET /products."""

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import AutoReconnect


class TestListingScenarios:
    def test_no_parameters(self, client: TestClient, add_product) -> None:
        ids = [add_product(age=a) for a in range(15)]
        response = client.get("/products")
        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Products fetched successfully"
        assert len(body["data"]) == 12
        assert body["data"][0]["id"] == str(ids[0])
        assert body["meta"] == {
            "page": 1,
            "limit": 12,
            "total": 15,
            "totalPages": 2,
            "sort": "-date",
            "filters": {"q": None, "categories": [], "minPrice": None, "maxPrice": None},
        }

    def test_keyword_with_price_sort(self, client: TestClient, add_product) -> None:
        add_product("Trail shoes", price=60)
        add_product("Road shoes", price=30)
        add_product("Wool socks", price=8)
        body = client.get("/products", params={"q": "shoes", "sort": "price"}).json()
        assert [p["title"] for p in body["data"]] == ["Road shoes", "Trail shoes"]
        assert body["meta"]["filters"]["q"] == "shoes"
        assert body["meta"]["sort"] == "price"

    def test_popularity_descending(self, client: TestClient, add_product) -> None:
        add_product("five", reviews=[5, 4, 4, 3, 5])
        add_product("zero")
        add_product("three", reviews=[2, 2, 5])
        body = client.get("/products", params={"sort": "-popularity"}).json()
        assert [p["title"] for p in body["data"]] == ["five", "three", "zero"]
        assert [p["reviewCount"] for p in body["data"]] == [5, 3, 0]
        assert body["data"][2]["avgRating"] is None
        assert body["data"][1]["avgRating"] == 3

    def test_inverted_price_range(self, client: TestClient, add_product) -> None:
        add_product(price=7)
        response = client.get("/products", params={"minPrice": "10", "maxPrice": "5"})
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["meta"]["total"] == 0
        assert body["meta"]["totalPages"] == 1
        assert body["meta"]["filters"]["minPrice"] == 10
        assert body["meta"]["filters"]["maxPrice"] == 5

    def test_page_zero_is_first_page(self, client: TestClient, add_product) -> None:
        add_product()
        body = client.get("/products", params={"page": "0"}).json()
        assert body["meta"]["page"] == 1
        assert len(body["data"]) == 1

    def test_empty_category_segment(self, client: TestClient, add_product) -> None:
        add_product("in a", categories=["a"])
        add_product("in b", categories=["b"])
        add_product("in c", categories=["c"])
        body = client.get("/products", params={"categories": "a,,b"}).json()
        assert sorted(p["title"] for p in body["data"]) == ["in a", "in b"]
        assert body["meta"]["filters"]["categories"] == ["a", "b"]

    def test_repeated_categories_match_comma_joined(self, client: TestClient, add_product) -> None:
        add_product(categories=["a"])
        add_product(categories=["b"])
        add_product(categories=["c"])
        joined = client.get("/products", params={"categories": "a,b,c"}).json()
        repeated = client.get("/products", params=[("categories", "a"), ("categories", "b"), ("categories", "c")]).json()
        assert joined == repeated

    def test_first_sort_wins(self, client: TestClient, add_product) -> None:
        add_product("cheap", price=1)
        add_product("pricey", price=99)
        body = client.get("/products", params=[("sort", "-price"), ("sort", "price")]).json()
        assert [p["title"] for p in body["data"]] == ["pricey", "cheap"]
        assert body["meta"]["sort"] == "-price"

    def test_wire_shape_is_the_same_on_both_paths(self, client: TestClient, add_product) -> None:
        add_product(reviews=[5])
        direct = client.get("/products", params={"sort": "-date"}).json()
        agg = client.get("/products", params={"sort": "-popularity"}).json()
        assert direct["data"][0].keys() == agg["data"][0].keys()
        assert direct["meta"].keys() == agg["meta"].keys()


class TestListingErrors:
    def test_invalid_date(self, client: TestClient) -> None:
        response = client.get("/products", params={"dateFrom": "yesterday-ish"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["data"] is None
        assert "dateFrom" in body["message"]

    def test_invalid_price(self, client: TestClient) -> None:
        response = client.get("/products", params={"minPrice": "cheap"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.parametrize("sort", ["-date", "-popularity"])
    def test_unreachable_page_is_rejected_before_the_store(self, client: TestClient, fake_db, sort: str) -> None:
        response = client.get("/products", params={"page": str(10**20), "sort": sort})
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert fake_db["products"].calls == []

    def test_store_unavailable_is_503(self, client: TestClient, fake_db, add_product) -> None:
        add_product()
        fake_db["products"].errors["find"] = AutoReconnect("connection reset")
        response = client.get("/products")
        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["data"] is None

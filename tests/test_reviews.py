import pytest

from storefront.services.reviews import average_rating


@pytest.mark.parametrize(
    "ratings, expected",
    [([], 0), ([5], 5.0), ([4, 5], 4.5), ([4, 4, 5], 4.3), ([1, 2, 2, 2], 1.8), ([2, 3, 3, 3], 2.8)],
)
def test_average_rating(ratings, expected):
    assert average_rating(ratings) == expected


def product_rating(client, product_id):
    data = client.get(f"/api/products/{product_id}").json()["data"]
    return data["rating"], data["review_count"]


def test_review_updates_product_rating(client, register, make_product):
    alice = register("alice@shop.com")
    bob = register("bob@shop.com", name="Bob")
    product = make_product()

    res = client.post("/api/reviews", json={"product_id": product["id"], "rating": 4, "comment": "Good"}, headers=alice["headers"])
    assert res.status_code == 201
    assert res.json()["data"]["user_name"] == "Alice"
    assert res.json()["data"]["verified_purchase"] is False
    client.post("/api/reviews", json={"product_id": product["id"], "rating": 5}, headers=bob["headers"])
    assert product_rating(client, product["id"]) == (4.5, 2)


def test_duplicate_review_leaves_rating_unchanged(client, customer, make_product):
    product = make_product()
    client.post("/api/reviews", json={"product_id": product["id"], "rating": 5}, headers=customer["headers"])

    res = client.post("/api/reviews", json={"product_id": product["id"], "rating": 1}, headers=customer["headers"])
    assert res.status_code == 400
    assert res.json()["code"] == "DUPLICATE_REVIEW"
    assert product_rating(client, product["id"]) == (5.0, 1)


@pytest.mark.parametrize("rating", [0, 6, 3.5, None])
def test_invalid_rating(client, customer, make_product, rating):
    product = make_product()
    res = client.post("/api/reviews", json={"product_id": product["id"], "rating": rating}, headers=customer["headers"])
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_RATING"


def test_review_validation(client, customer):
    res = client.post("/api/reviews", json={"rating": 5}, headers=customer["headers"])
    assert res.json()["code"] == "MISSING_PRODUCT_ID"
    res = client.post("/api/reviews", json={"product_id": 999, "rating": 5}, headers=customer["headers"])
    assert res.status_code == 404
    assert res.json()["code"] == "PRODUCT_NOT_FOUND"


def test_update_and_delete_recompute(client, register, make_product, admin_headers):
    alice = register("alice@shop.com")
    bob = register("bob@shop.com", name="Bob")
    product = make_product()
    review = client.post("/api/reviews", json={"product_id": product["id"], "rating": 2}, headers=alice["headers"]).json()["data"]

    res = client.put(f"/api/reviews/{review['id']}", json={"rating": 5}, headers=bob["headers"])
    assert res.status_code == 403
    res = client.put(f"/api/reviews/{review['id']}", json={"rating": 4}, headers=alice["headers"])
    assert res.json()["data"]["rating"] == 4
    assert product_rating(client, product["id"]) == (4.0, 1)

    assert client.delete(f"/api/reviews/{review['id']}", headers=bob["headers"]).status_code == 403
    assert client.delete(f"/api/reviews/{review['id']}", headers=admin_headers).status_code == 200
    assert product_rating(client, product["id"]) == (0, 0)

    res = client.delete(f"/api/reviews/{review['id']}", headers=alice["headers"])
    assert res.json()["code"] == "REVIEW_NOT_FOUND"


def test_verified_purchase_after_delivery(client, customer, make_product, place_order, admin_headers):
    product = make_product()
    order = place_order(customer["headers"], [{"product_id": product["id"], "quantity": 1}]).json()["data"]
    for status in ("confirmed", "shipping", "delivered"):
        client.put(f"/api/orders/{order['id']}/status", json={"status": status}, headers=admin_headers)

    res = client.post("/api/reviews", json={"product_id": product["id"], "rating": 5}, headers=customer["headers"])
    assert res.json()["data"]["verified_purchase"] is True


def test_list_reviews(client, register, make_product):
    alice = register("alice@shop.com")
    bob = register("bob@shop.com", name="Bob")
    product = make_product()
    client.post("/api/reviews", json={"product_id": product["id"], "rating": 2}, headers=alice["headers"])
    client.post("/api/reviews", json={"product_id": product["id"], "rating": 5}, headers=bob["headers"])

    data = client.get(f"/api/reviews/products/{product['id']}/reviews", params={"sort": "rating-high"}).json()["data"]
    assert [r["rating"] for r in data["reviews"]] == [5, 2]
    assert data["pagination"]["total"] == 2

    mine = client.get("/api/reviews/user", headers=alice["headers"]).json()["data"]
    assert [r["rating"] for r in mine["reviews"]] == [2]

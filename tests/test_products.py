from storefront import cache
from storefront.models import ProductImage


def test_create_product_defaults(client, make_product):
    product = make_product(name="Phone X", price=100000, stock=5, tags=["android", "5g"])
    assert product["original_price"] == 100000
    assert product["rating"] == 0
    assert product["review_count"] == 0
    assert product["is_new_arrival"] is True
    assert product["category"]["slug"] == "phones"


def test_create_product_requires_admin(client, customer, make_category):
    category = make_category()
    body = {"name": "P", "description": "d", "price": 1, "stock": 1, "category_id": category["id"]}
    res = client.post("/api/products", json=body, headers=customer["headers"])
    assert res.status_code == 403


def test_create_product_validation(client, admin_headers, make_category):
    res = client.post("/api/products", json={"name": "Only name"}, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "MISSING_FIELDS"

    body = {"name": "P", "description": "d", "price": 1, "stock": 1, "category_id": 999}
    res = client.post("/api/products", json=body, headers=admin_headers)
    assert res.status_code == 404
    assert res.json()["code"] == "CATEGORY_NOT_FOUND"

    category = make_category()
    body = {"name": "P", "description": "d", "price": -1, "stock": 1, "category_id": category["id"]}
    res = client.post("/api/products", json=body, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"


def test_list_filters_sort_and_pagination(client, make_product):
    make_product(name="Cheap", price=100)
    make_product(name="Middle", price=500)
    make_product(name="Pricey", price=900)

    res = client.get("/api/products", params={"sort": "price-asc"})
    names = [p["name"] for p in res.json()["data"]["products"]]
    assert names == ["Cheap", "Middle", "Pricey"]

    res = client.get("/api/products", params={"minPrice": 200, "maxPrice": 800})
    assert [p["name"] for p in res.json()["data"]["products"]] == ["Middle"]

    res = client.get("/api/products", params={"sort": "price-desc", "page": 2, "limit": 2})
    data = res.json()["data"]
    assert [p["name"] for p in data["products"]] == ["Cheap"]
    assert data["pagination"] == {"page": 2, "limit": 2, "total": 3, "total_pages": 2, "has_more": False}


def test_limit_is_clamped(client, make_product):
    make_product()
    res = client.get("/api/products", params={"limit": 1000})
    assert res.json()["data"]["pagination"]["limit"] == 100


def test_listing_is_cached_and_invalidated_on_write(client, make_product, admin_headers):
    product = make_product(name="Phone X", price=100)
    client.get("/api/products")
    assert list(cache.client.scan_iter(match="products:*"))

    res = client.put(f"/api/products/{product['id']}", json={"price": 150}, headers=admin_headers)
    assert res.status_code == 200
    assert not list(cache.client.scan_iter(match="products:*"))
    assert client.get("/api/products").json()["data"]["products"][0]["price"] == 150


def test_search(client, make_product):
    make_product(name="Galaxy Phone", tags=["samsung"])
    make_product(name="Laptop Pro", tags=["apple"])

    res = client.get("/api/products/search", params={"q": "galaxy"})
    assert [r["name"] for r in res.json()["data"]["results"]] == ["Galaxy Phone"]

    res = client.get("/api/products/search", params={"q": "apple"})
    assert [r["name"] for r in res.json()["data"]["results"]] == ["Laptop Pro"]

    res = client.get("/api/products/search", params={"q": "a"})
    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_SEARCH"


def test_get_missing_product(client):
    res = client.get("/api/products/999")
    assert res.status_code == 404
    assert res.json()["code"] == "PRODUCT_NOT_FOUND"


def test_update_and_delete_product(client, make_product, admin_headers):
    product = make_product(stock=3)
    res = client.put(f"/api/products/{product['id']}", json={"stock": 7, "name": "Renamed"}, headers=admin_headers)
    assert res.json()["data"]["stock"] == 7
    assert res.json()["data"]["name"] == "Renamed"

    res = client.delete(f"/api/products/{product['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_product_with_orders_cannot_be_deleted(client, make_product, admin_headers, customer, place_order):
    product = make_product()
    assert place_order(customer["headers"], [{"product_id": product["id"], "quantity": 1}]).status_code == 201

    res = client.delete(f"/api/products/{product['id']}", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "PRODUCT_HAS_ORDERS"


def test_listing_filters_by_category_subcategory_and_rating(client, admin_headers, make_category, make_product, register):
    phones = make_category("Phones", "phones")
    laptops = make_category("Laptops", "laptops")
    android = client.post(
        f"/api/categories/{phones['id']}/subcategories", json={"name": "Android", "slug": "android"}, headers=admin_headers
    ).json()["data"]
    galaxy = make_product(name="Galaxy", category_id=phones["id"], sub_category_id=android["id"])
    make_product(name="iPhone", category_id=phones["id"])
    make_product(name="Notebook", category_id=laptops["id"])

    def names(**params):
        return sorted(p["name"] for p in client.get("/api/products", params=params).json()["data"]["products"])

    assert names(category=phones["id"]) == ["Galaxy", "iPhone"]
    assert names(subCategory=android["id"]) == ["Galaxy"]

    alice = register("alice@shop.com")
    client.post("/api/reviews", json={"product_id": galaxy["id"], "rating": 5}, headers=alice["headers"])
    assert names(rating=4) == ["Galaxy"]


def test_rating_best_seller_and_newest_sorts(client, register, make_product):
    first = make_product(name="First")
    second = make_product(name="Second")
    make_product(name="Third")
    alice = register("alice@shop.com")
    bob = register("bob@shop.com", name="Bob")

    client.post("/api/reviews", json={"product_id": first["id"], "rating": 3}, headers=alice["headers"])
    client.post("/api/reviews", json={"product_id": first["id"], "rating": 3}, headers=bob["headers"])
    client.post("/api/reviews", json={"product_id": second["id"], "rating": 5}, headers=alice["headers"])

    def names(sort):
        return [p["name"] for p in client.get("/api/products", params={"sort": sort}).json()["data"]["products"]]

    assert names("rating") == ["Second", "First", "Third"]
    assert names("best-seller") == ["First", "Second", "Third"]
    assert names("newest") == ["Third", "Second", "First"]
    assert names("unknown") == names("newest")


def test_product_gallery(client, admin_headers, make_product, count_rows):
    product = make_product(images=[{"url": "front.png"}, {"url": "back.png"}])
    assert product["primary_image"] == "front.png"

    detail = client.get(f"/api/products/{product['id']}").json()["data"]
    assert [(i["url"], i["is_primary"]) for i in detail["images"]] == [("front.png", True), ("back.png", False)]

    listed = client.get("/api/products").json()["data"]["products"][0]
    assert listed["primary_image"] == "front.png"
    assert "images" not in listed

    res = client.put(
        f"/api/products/{product['id']}",
        json={"images": [{"url": "a.png"}, {"url": "b.png", "is_primary": True}]},
        headers=admin_headers,
    )
    assert res.json()["data"]["primary_image"] == "b.png"
    assert count_rows(ProductImage) == 2

    client.delete(f"/api/products/{product['id']}", headers=admin_headers)
    assert count_rows(ProductImage) == 0


def test_primary_image_falls_back_to_image_column(make_product):
    product = make_product(image="cover.png")
    assert product["primary_image"] == "cover.png"
    assert product["images"] == []


def test_search_wildcards_match_literally(client, make_product):
    make_product(name="Phone X")
    make_product(name="100% Cotton_Shirt")

    res = client.get("/api/products", params={"search": "%"})
    assert [p["name"] for p in res.json()["data"]["products"]] == ["100% Cotton_Shirt"]

    res = client.get("/api/products/search", params={"q": "n_S"})
    assert [r["name"] for r in res.json()["data"]["results"]] == ["100% Cotton_Shirt"]
    res = client.get("/api/products/search", params={"q": "__"})
    assert res.json()["data"]["results"] == []


def test_subcategory_must_belong_to_category(client, admin_headers, make_category, make_product):
    phones = make_category("Phones", "phones")
    laptops = make_category("Laptops", "laptops")
    gaming = client.post(
        f"/api/categories/{laptops['id']}/subcategories", json={"name": "Gaming", "slug": "gaming"}, headers=admin_headers
    ).json()["data"]

    body = {"name": "P", "description": "d", "price": 1, "stock": 1, "category_id": phones["id"], "sub_category_id": gaming["id"]}
    res = client.post("/api/products", json=body, headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["code"] == "SUBCATEGORY_MISMATCH"

    product = make_product(category_id=phones["id"])
    res = client.put(f"/api/products/{product['id']}", json={"sub_category_id": gaming["id"]}, headers=admin_headers)
    assert res.json()["code"] == "SUBCATEGORY_MISMATCH"
    res = client.put(
        f"/api/products/{product['id']}",
        json={"category_id": laptops["id"], "sub_category_id": gaming["id"]},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["data"]["sub_category"]["slug"] == "gaming"

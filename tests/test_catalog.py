"""Tests for product listing, filters and CRUD."""

from conftest import make_product

NEW_PRODUCT = {
    "name": "Trail Shoe",
    "description": "Grippy outsole",
    "price": 3499,
    "sizes": ["M", "L"],
    "category": "Men",
    "stock": 25,
    "images": ["https://img.test/shoe.jpg"],
    "brand": "Nike",
}


def test_create_and_get(client):
    response = client.post("/products", json=NEW_PRODUCT)
    assert response.status_code == 201
    product = response.json()["data"]
    assert product["formattedPrice"] == "₹3499.00"
    fetched = client.get(f"/products/{product['id']}").json()["data"]
    assert fetched["name"] == "Trail Shoe"


def test_create_rejects_bad_enumerations(client):
    assert client.post("/products", json=dict(NEW_PRODUCT, brand="Acme")).status_code == 400
    assert client.post("/products", json=dict(NEW_PRODUCT, sizes=["XXXL"])).status_code == 400
    assert client.post("/products", json=dict(NEW_PRODUCT, price=-1)).status_code == 400


def test_filters_and_pagination(client, db):
    make_product(db, name="A", price=100, category="Men", brand="Nike", sizes=["M"])
    make_product(db, name="B", price=2000, category="Women", brand="Yuma", sizes=["S"])
    make_product(db, name="C", price=4000, category="Women", brand="Neo", sizes=["L", "XL"])

    data = client.get("/products?category=Women").json()["data"]
    assert sorted(p["name"] for p in data["products"]) == ["B", "C"]

    data = client.get("/products?minPrice=1000&maxPrice=3000").json()["data"]
    assert [p["name"] for p in data["products"]] == ["B"]

    data = client.get("/products?sizes=M,XL").json()["data"]
    assert sorted(p["name"] for p in data["products"]) == ["A", "C"]

    data = client.get("/products?brands=Yuma,Neo&limit=1&page=2").json()["data"]
    assert len(data["products"]) == 1
    assert data["pagination"] == {"totalItems": 2, "totalPages": 2, "currentPage": 2, "pageSize": 1}


def test_update(client, product_id):
    response = client.put(f"/products/{product_id}", json={"price": 299, "stock": 3})
    assert response.status_code == 200
    assert response.json()["data"]["price"] == 299
    assert client.put(f"/products/{product_id}", json={"price": -5}).status_code == 400


def test_missing_product(client, missing_id):
    assert client.get(f"/products/{missing_id}").status_code == 404
    assert client.put(f"/products/{missing_id}", json={"stock": 1}).status_code == 404
    assert client.delete(f"/products/{missing_id}").status_code == 404


def test_delete(client, product_id):
    response = client.delete(f"/products/{product_id}")
    assert response.status_code == 200
    assert response.json()["data"]["id"] == product_id
    assert client.get(f"/products/{product_id}").status_code == 404

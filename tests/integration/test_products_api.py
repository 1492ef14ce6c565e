"""Product endpoints: catalog listing, ownership rules and name uniqueness."""

import pytest

WIDGET = {"name": "Widget", "description": "A very useful widget", "price": 19.99, "category": "tools"}


@pytest.fixture
def creator(make_user):
    return make_user(role="founder")


@pytest.fixture
def creator_headers(creator, headers_for):
    return headers_for(creator)


@pytest.fixture
def widget(client, creator_headers):
    response = client.post("/api/products", json=WIDGET, headers=creator_headers)
    assert response.status_code == 201
    return response.json()["data"]


def test_create_requires_login(client):
    assert client.post("/api/products", json=WIDGET).status_code == 401


def test_create_and_get(client, widget, creator):
    assert widget["creator_id"] == creator["id"]
    assert widget["is_active"] is True

    response = client.get(f"/api/products/{widget['id']}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["creator_email"] == creator["email"]
    assert data["price"] == pytest.approx(19.99)


def test_name_unique_per_creator(client, widget, creator_headers, customer_headers):
    response = client.post("/api/products", json=WIDGET, headers=creator_headers)
    assert response.status_code == 409

    # another creator may reuse the name
    assert client.post("/api/products", json=WIDGET, headers=customer_headers).status_code == 201


def test_listing_filters(client, creator_headers):
    for name, price, category in [("Hammer", 10, "tools"), ("Teapot", 25, "kitchen"), ("Wrench", 40, "tools")]:
        payload = {"name": name, "description": f"{name} for everyday use", "price": price, "category": category}
        assert client.post("/api/products", json=payload, headers=creator_headers).status_code == 201

    response = client.get("/api/products?category=tools&minPrice=20&sortBy=price&sortOrder=asc")
    products = response.json()["data"]["products"]
    assert [p["name"] for p in products] == ["Wrench"]

    response = client.get("/api/products?search=TEA")
    assert [p["name"] for p in response.json()["data"]["products"]] == ["Teapot"]

    response = client.get("/api/products?limit=2&sortBy=price&sortOrder=desc")
    data = response.json()["data"]
    assert [p["name"] for p in data["products"]] == ["Wrench", "Teapot"]
    assert data["pagination"]["totalPages"] == 2
    assert data["pagination"]["hasNext"] is True


def test_listing_rejects_unknown_sort(client):
    response = client.get("/api/products?sortBy=creator_id")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid sort column: creator_id"


def test_inactive_products_hidden_by_default(client, widget, creator_headers):
    response = client.patch(f"/api/products/{widget['id']}/toggle-status", headers=creator_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False

    assert client.get("/api/products").json()["data"]["products"] == []
    inactive = client.get("/api/products?isActive=false").json()["data"]["products"]
    assert [p["id"] for p in inactive] == [widget["id"]]


def test_list_by_creator(client, widget, creator):
    response = client.get(f"/api/products/creator/{creator['id']}")
    assert [p["id"] for p in response.json()["data"]["products"]] == [widget["id"]]


def test_update_rules(client, widget, creator_headers, customer_headers, admin_headers):
    url = f"/api/products/{widget['id']}"

    assert client.put(url, json={"price": 5}, headers=customer_headers).status_code == 403

    response = client.put(url, json={"price": 5}, headers=creator_headers)
    assert response.status_code == 200
    assert response.json()["data"]["price"] == 5
    assert response.json()["data"]["name"] == "Widget"

    response = client.put(url, json={"category": "gadgets"}, headers=admin_headers)
    assert response.status_code == 200

    assert client.put(url, json={}, headers=creator_headers).status_code == 400
    assert client.put(url, json={"price": -1}, headers=creator_headers).status_code == 400


def test_rename_conflict(client, widget, creator_headers):
    other = {**WIDGET, "name": "Gizmo"}
    gizmo = client.post("/api/products", json=other, headers=creator_headers).json()["data"]

    response = client.put(f"/api/products/{gizmo['id']}", json={"name": "Widget"}, headers=creator_headers)
    assert response.status_code == 409


def test_delete(client, widget, creator_headers, customer_headers):
    url = f"/api/products/{widget['id']}"
    assert client.delete(url, headers=customer_headers).status_code == 403
    assert client.delete(url, headers=creator_headers).status_code == 200
    assert client.get(url).status_code == 404


def test_missing_product(client, creator_headers):
    url = "/api/products/3f2b8c1e-5d4a-4b6c-9e7f-1a2b3c4d5e6f"
    assert client.get(url).status_code == 404
    assert client.put(url, json={"price": 1}, headers=creator_headers).status_code == 404


def test_listing_by_creator_query(client, widget, creator, admin_headers):
    client.post("/api/products", json={**WIDGET, "name": "Gadget"}, headers=admin_headers)

    response = client.get(f"/api/products?creatorId={creator['id']}")
    assert response.status_code == 200
    assert [p["name"] for p in response.json()["data"]["products"]] == ["Widget"]

    response = client.get("/api/products?creatorId=not-a-uuid")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid creator ID format"

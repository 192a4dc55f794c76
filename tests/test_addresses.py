"""Tests for the address book."""

from conftest import signup

ADDRESS = {
    "firstName": "Asha",
    "lastName": "Rao",
    "email": "asha@example.com",
    "phone": "+919800000000",
    "address": "44 Park Street",
    "city": "Kolkata",
    "state": "WB",
    "country": "India",
    "zipCode": "700016",
}


def test_many_addresses_per_user(client, auth_headers, address_id):
    client.post("/address", headers=auth_headers, json=ADDRESS)
    data = client.get("/address", headers=auth_headers).json()["data"]
    assert [a["city"] for a in data] == ["Bengaluru", "Kolkata"]
    assert data[0]["userAddressId"] == address_id


def test_required_fields(client, auth_headers):
    body = dict(ADDRESS)
    del body["zipCode"]
    response = client.post("/address", headers=auth_headers, json=body)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_update_is_partial(client, auth_headers, address_id):
    response = client.put(f"/address/{address_id}", headers=auth_headers, json={"city": "Mysuru"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["city"] == "Mysuru"
    assert data["zipCode"] == "560001"


def test_other_users_cannot_touch_address(client, auth_headers, address_id):
    other = signup(client, email="ravi@example.com", username="ravi")
    headers = {"Authorization": f"Bearer {other['accessToken']}"}
    assert client.get(f"/address/{address_id}", headers=headers).status_code == 404
    assert client.put(f"/address/{address_id}", headers=headers, json={"city": "X"}).status_code == 404
    assert client.delete(f"/address/{address_id}", headers=headers).status_code == 404
    assert client.get(f"/address/{address_id}", headers=auth_headers).status_code == 200


def test_delete(client, auth_headers, address_id):
    assert client.delete(f"/address/{address_id}", headers=auth_headers).status_code == 200
    assert client.get(f"/address/{address_id}", headers=auth_headers).status_code == 404

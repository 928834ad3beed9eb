from conftest import create_customer


def test_create_customer_normalizes_input(client, auth_headers):
    body = create_customer(
        client, auth_headers,
        full_name="  Maria Silva ",
        email="",
        notes="   ",
        birth_date="05/03/1990",
    )
    assert body["full_name"] == "Maria Silva"
    assert body["phone"] == "(11) 98765-4321"
    assert body["email"] is None
    assert body["notes"] is None
    assert body["birth_date"] == "1990-03-05"
    assert body["points"] == 0
    assert body["active"] is True


def test_create_customer_validation(client, auth_headers):
    bad = [
        {"full_name": "", "phone": "11987654321"},
        {"full_name": "Ana", "phone": "12345"},
        {"full_name": "Ana", "phone": "11987654321", "email": "not-an-email"},
        {"full_name": "Ana", "phone": "11987654321", "birth_date": "01/01/2999"},
    ]
    for payload in bad:
        assert client.post("/customers", json=payload, headers=auth_headers).status_code == 422


def test_duplicate_phone_is_rejected(client, auth_headers):
    create_customer(client, auth_headers)
    r = client.post("/customers", json={"full_name": "Other", "phone": "11987654321"}, headers=auth_headers)
    assert r.status_code == 409
    assert r.json()["detail"] == "A customer with this phone number already exists"


def test_same_phone_allowed_for_other_owner(client, auth_headers, other_headers):
    create_customer(client, auth_headers)
    create_customer(client, other_headers)


def test_list_search_sort_and_filters(client, auth_headers):
    create_customer(client, auth_headers, full_name="Bruna", phone="11911111111", email="bruna@salon.com")
    create_customer(client, auth_headers, full_name="Ana", phone="11922222222", notes="VIP", birth_date="10/05/1985")
    create_customer(client, auth_headers, full_name="Carla", phone="11933333333")

    names = [c["full_name"] for c in client.get("/customers", headers=auth_headers).json()]
    assert names == ["Ana", "Bruna", "Carla"]

    r = client.get("/customers", params={"sort_order": "desc"}, headers=auth_headers)
    assert [c["full_name"] for c in r.json()] == ["Carla", "Bruna", "Ana"]

    r = client.get("/customers", params={"search": "brun"}, headers=auth_headers)
    assert [c["full_name"] for c in r.json()] == ["Bruna"]

    r = client.get("/customers", params={"search": "3333"}, headers=auth_headers)
    assert [c["full_name"] for c in r.json()] == ["Carla"]

    r = client.get("/customers", params={"has_email": True}, headers=auth_headers)
    assert [c["full_name"] for c in r.json()] == ["Bruna"]

    r = client.get("/customers", params={"has_notes": True}, headers=auth_headers)
    assert [c["full_name"] for c in r.json()] == ["Ana"]

    r = client.get("/customers", params={"birth_month": 5}, headers=auth_headers)
    assert [c["full_name"] for c in r.json()] == ["Ana"]

    r = client.get("/customers", params={"limit": 1, "offset": 1}, headers=auth_headers)
    assert [c["full_name"] for c in r.json()] == ["Bruna"]


def test_customers_are_private_to_their_owner(client, auth_headers, other_headers):
    customer = create_customer(client, auth_headers)
    assert client.get("/customers", headers=other_headers).json() == []
    assert client.get(f"/customers/{customer['id']}", headers=other_headers).status_code == 404


def test_update_customer(client, auth_headers):
    customer = create_customer(client, auth_headers)
    create_customer(client, auth_headers, full_name="Other", phone="11911111111")

    r = client.put(
        f"/customers/{customer['id']}",
        json={"full_name": "Maria S.", "phone": "11987654321", "email": "maria@salon.com"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["email"] == "maria@salon.com"

    r = client.put(
        f"/customers/{customer['id']}",
        json={"full_name": "Maria S.", "phone": "11911111111"},
        headers=auth_headers,
    )
    assert r.status_code == 409


def test_soft_delete_and_restore(client, auth_headers):
    customer = create_customer(client, auth_headers)

    r = client.delete(f"/customers/{customer['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Customer deleted"
    assert "undo_until" in r.json()

    assert client.get("/customers", headers=auth_headers).json() == []
    assert client.delete(f"/customers/{customer['id']}", headers=auth_headers).status_code == 409

    # the phone stays taken while the customer is deleted
    r = client.post("/customers", json={"full_name": "X", "phone": "11987654321"}, headers=auth_headers)
    assert r.status_code == 409

    r = client.post(f"/customers/{customer['id']}/restore", headers=auth_headers)
    assert r.status_code == 200
    assert [c["id"] for c in client.get("/customers", headers=auth_headers).json()] == [customer["id"]]
    assert client.post(f"/customers/{customer['id']}/restore", headers=auth_headers).status_code == 409


def test_customer_detail_without_history(client, auth_headers):
    customer = create_customer(client, auth_headers)
    r = client.get(f"/customers/{customer['id']}", headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["appointments"] == []
    assert body["metrics"] == {"visits": 0, "total_spent": 0.0, "average_ticket": 0.0, "last_visit": None}
    assert body["level"] is None


def test_redeem_more_than_balance(client, auth_headers):
    customer = create_customer(client, auth_headers)
    r = client.post(f"/customers/{customer['id']}/points/redeem", json={"points": 10}, headers=auth_headers)
    assert r.status_code == 422
    assert r.json()["detail"] == "Insufficient points"

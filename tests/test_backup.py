from datetime import date

from conftest import at, create_appointment, create_customer, create_service, next_monday


def test_backup_exports_owner_data(client, auth_headers, other_headers):
    customer = create_customer(client, auth_headers)
    service = create_service(client, auth_headers)
    create_appointment(client, auth_headers, customer, service, at(next_monday(), "10:00"))
    create_customer(client, other_headers, full_name="Not Mine")

    r = client.get("/backup", headers=auth_headers)
    assert r.status_code == 200
    assert r.headers["content-disposition"] == f'attachment; filename="backup_{date.today().isoformat()}.json"'

    data = r.json()
    assert [c["full_name"] for c in data["customers"]] == ["Maria Silva"]
    assert [s["name"] for s in data["services"]] == ["Corte"]
    assert len(data["appointments"]) == 1
    assert data["transactions"] == []


def test_backup_requires_auth(client):
    assert client.get("/backup").status_code == 401

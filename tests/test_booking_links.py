from datetime import date, timedelta

import pytest

from conftest import create_customer, create_service, next_monday


@pytest.fixture
def service(client, auth_headers):
    return create_service(client, auth_headers, name="Corte", base_price=60.0, duration="01:00")


@pytest.fixture
def link(client, auth_headers, service):
    r = client.post("/booking-links", json={
        "name": "Agenda Promoção",
        "services": [service["id"]],
        "redirect_url": "https://salon.com/obrigado",
    }, headers=auth_headers)
    assert r.status_code == 201, r.text
    return r.json()


def booking(service, day, hhmm="10:00", **overrides):
    payload = {
        "full_name": "Paula Reis",
        "phone": "(11) 97777-6666",
        "service_id": service["id"],
        "date": day.isoformat(),
        "time": hhmm,
    }
    payload.update(overrides)
    return payload


def test_create_link(link, service):
    assert link["slug"].startswith("agenda-promocao-")
    assert link["description"] == "Agenda Promoção"
    assert link["services"] == [service["id"]]
    assert link["days_in_advance"] == 30
    assert link["views"] == 0
    assert link["appointments"] == 0


def test_link_needs_owned_services(client, auth_headers, other_headers, service):
    r = client.post("/booking-links", json={"name": "Vazio", "services": []}, headers=auth_headers)
    assert r.status_code == 422

    r = client.post("/booking-links", json={"name": "Alheio", "services": [service["id"]]}, headers=other_headers)
    assert r.status_code == 422


def test_list_update_and_delete(client, auth_headers, link):
    r = client.put(f"/booking-links/{link['id']}", json={"active": False, "name": "Natal"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Natal"
    assert r.json()["slug"] == link["slug"]

    assert client.get("/booking-links", params={"only_active": True}, headers=auth_headers).json() == []
    assert len(client.get("/booking-links", params={"search": "nat"}, headers=auth_headers).json()) == 1

    assert client.delete(f"/booking-links/{link['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/booking-links/{link['id']}", headers=auth_headers).status_code == 404


def test_public_page_counts_views(client, auth_headers, link, service):
    r = client.get(f"/public/booking/{link['slug']}")
    assert r.status_code == 200
    page = r.json()
    assert [s["id"] for s in page["services"]] == [service["id"]]
    assert page["business_hours"]["days_off"] == [0]

    client.get(f"/public/booking/{link['slug']}")
    assert client.get(f"/booking-links/{link['id']}", headers=auth_headers).json()["views"] == 2


def test_inactive_or_unknown_link_is_hidden(client, auth_headers, link):
    assert client.get("/public/booking/nope").status_code == 404
    client.put(f"/booking-links/{link['id']}", json={"active": False}, headers=auth_headers)
    assert client.get(f"/public/booking/{link['slug']}").status_code == 404


def test_public_slots(client, link, service):
    monday = next_monday()
    r = client.get(
        f"/public/booking/{link['slug']}/slots",
        params={"service_id": service["id"], "date": monday.isoformat()},
    )
    assert r.status_code == 200
    assert r.json()["slots"][0] == {"time": "09:00", "available": True}

    too_far = date.today() + timedelta(days=31)
    r = client.get(
        f"/public/booking/{link['slug']}/slots",
        params={"service_id": service["id"], "date": too_far.isoformat()},
    )
    assert r.status_code == 422

    yesterday = date.today() - timedelta(days=1)
    r = client.get(
        f"/public/booking/{link['slug']}/slots",
        params={"service_id": service["id"], "date": yesterday.isoformat()},
    )
    assert r.status_code == 422


def test_public_booking_creates_customer(client, auth_headers, link, service):
    monday = next_monday()
    r = client.post(f"/public/booking/{link['slug']}", json=booking(service, monday))
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["service_name"] == "Corte"
    assert body["customer_name"] == "Paula Reis"
    assert body["redirect_url"] == "https://salon.com/obrigado"

    customers = client.get("/customers", headers=auth_headers).json()
    assert [(c["full_name"], c["phone"]) for c in customers] == [("Paula Reis", "(11) 97777-6666")]

    appts = client.get("/appointments", headers=auth_headers).json()
    assert len(appts) == 1
    assert appts[0]["booking_link_id"] == link["id"]
    assert appts[0]["final_price"] == 60.0

    assert client.get(f"/booking-links/{link['id']}", headers=auth_headers).json()["appointments"] == 1

    # the slot is now taken
    r = client.post(f"/public/booking/{link['slug']}", json=booking(service, monday, full_name="Other"))
    assert r.status_code == 409


def test_public_booking_reuses_and_restores_customer(client, auth_headers, link, service):
    existing = create_customer(client, auth_headers, full_name="Paula R.", phone="11977776666")
    client.delete(f"/customers/{existing['id']}", headers=auth_headers)

    r = client.post(f"/public/booking/{link['slug']}", json=booking(service, next_monday()))
    assert r.status_code == 201
    assert r.json()["customer_name"] == "Paula R."

    customers = client.get("/customers", headers=auth_headers).json()
    assert [c["id"] for c in customers] == [existing["id"]]


def test_public_booking_rejects_service_outside_link(client, auth_headers, link):
    other = create_service(client, auth_headers, name="Barba")
    r = client.post(f"/public/booking/{link['slug']}", json=booking(other, next_monday()))
    assert r.status_code == 404


def test_public_booking_only_takes_offered_times(client, link, service):
    r = client.post(f"/public/booking/{link['slug']}", json=booking(service, next_monday(), hhmm="10:07"))
    assert r.status_code == 422
    assert r.json()["detail"] == "Time is not one of the offered slots"


def test_public_booking_needs_a_name(client, link, service):
    r = client.post(f"/public/booking/{link['slug']}", json=booking(service, next_monday(), full_name="   "))
    assert r.status_code == 422

def add(client, headers, **overrides):
    payload = {
        "description": "Corte",
        "amount": 100.0,
        "type": "income",
        "category": "Serviços",
        "transaction_date": "2026-03-10",
    }
    payload.update(overrides)
    r = client.post("/finance/transactions", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_create_and_list_transactions(client, auth_headers):
    add(client, auth_headers, transaction_date="2026-03-01")
    add(client, auth_headers, description="Aluguel", amount=50, type="expense", category="Aluguel",
        transaction_date="2026-03-05")
    add(client, auth_headers, transaction_date="2026-04-02")

    r = client.get("/finance/transactions", headers=auth_headers)
    assert [t["transaction_date"] for t in r.json()] == ["2026-04-02", "2026-03-05", "2026-03-01"]

    r = client.get("/finance/transactions", params={"type": "expense"}, headers=auth_headers)
    assert [t["description"] for t in r.json()] == ["Aluguel"]

    r = client.get(
        "/finance/transactions",
        params={"start_date": "2026-03-02", "end_date": "2026-03-31"},
        headers=auth_headers,
    )
    assert [t["transaction_date"] for t in r.json()] == ["2026-03-05"]

    r = client.get("/finance/transactions", params={"category": "Serviços"}, headers=auth_headers)
    assert len(r.json()) == 2


def test_transaction_validation(client, auth_headers):
    bad = [
        {"description": "x", "amount": 0, "type": "income", "category": "a", "transaction_date": "2026-01-01"},
        {"description": "x", "amount": 10, "type": "gift", "category": "a", "transaction_date": "2026-01-01"},
        {"description": "", "amount": 10, "type": "income", "category": "a", "transaction_date": "2026-01-01"},
    ]
    for payload in bad:
        assert client.post("/finance/transactions", json=payload, headers=auth_headers).status_code == 422


def test_delete_transaction(client, auth_headers, other_headers):
    tx = add(client, auth_headers)
    assert client.delete(f"/finance/transactions/{tx['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/finance/transactions/{tx['id']}", headers=auth_headers).status_code == 200
    assert client.get("/finance/transactions", headers=auth_headers).json() == []


def test_month_stats(client, auth_headers):
    add(client, auth_headers, amount=300, category="Serviços", transaction_date="2026-03-02")
    add(client, auth_headers, amount=100, category="Produtos", transaction_date="2026-03-20")
    add(client, auth_headers, amount=150, type="expense", category="Aluguel", transaction_date="2026-03-05")
    add(client, auth_headers, amount=50, type="expense", category="Material", transaction_date="2026-03-06")
    add(client, auth_headers, amount=999, transaction_date="2026-04-01")

    r = client.get("/finance/stats", params={"month": "2026-03"}, headers=auth_headers)
    assert r.status_code == 200
    stats = r.json()
    assert stats["total_income"] == 400
    assert stats["total_expenses"] == 200
    assert stats["net_profit"] == 200
    assert stats["income_by_category"] == [
        {"category": "Serviços", "total": 300, "percentage": 75.0},
        {"category": "Produtos", "total": 100, "percentage": 25.0},
    ]
    assert [c["category"] for c in stats["expenses_by_category"]] == ["Aluguel", "Material"]
    # two months of history: March nets 200, April 999
    assert stats["monthly_projection"] == 599.5


def test_stats_month_format(client, auth_headers):
    assert client.get("/finance/stats", params={"month": "2026-13"}, headers=auth_headers).status_code == 422
    r = client.get("/finance/stats", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["monthly_projection"] == 0

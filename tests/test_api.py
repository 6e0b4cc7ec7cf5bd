import pytest

from conftest import BUYER

INVOICE_JSON = {
    "items": [
        {"description": "Design work", "qty": 10, "unit": 50.0, "tax": 0.0},
        {"description": "Consulting", "qty": 2, "unit": 200.0, "tax": 10.0},
    ],
    "issueDate": "2025-01-01",
    "dueDate": "2025-01-15",
    "taxRate": 20,
    "discountRate": 15,
    "notes": "Thanks for your business",
}


def create_invoice(client, folder, headers, **overrides):
    res = client.post(f"/invoices/folders/{folder['id']}", json={**INVOICE_JSON, **overrides}, headers=headers)
    assert res.status_code == 200, res.text
    return res.headers["X-Invoice-Id"]


def test_health(client):
    """Health check answers 200."""
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_unknown_route_returns_json_404(client):
    res = client.get("/nope")
    assert res.status_code == 404
    assert res.json() == {"error": "Not found"}


def test_create_user_returns_api_key(client, account):
    user, headers = account
    assert user["email"] == "john@example.com"
    assert headers["Authorization"].startswith(f"Bearer ak_{user['id']}_")

    res = client.get("/users/me", headers=headers)
    assert res.status_code == 200
    assert res.json()["id"] == user["id"]


def test_duplicate_email_conflicts(client, account):
    user, _ = account
    res = client.post("/users", json={"name": "Again", "email": user["email"], "defaults": user["defaults"]})
    assert res.status_code == 409


def test_create_user_validation_error(client):
    res = client.post("/users", json={"name": "", "email": "bad"})
    assert res.status_code == 400
    body = res.json()
    assert body["error"] == "Validation failed"
    assert {d["field"] for d in body["details"]} >= {"name", "email", "defaults"}


def test_update_me(client, account):
    _, headers = account
    res = client.put("/users/me", json={"name": "Johnny"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["name"] == "Johnny"
    assert res.json()["email"] == "john@example.com"


def test_requires_bearer_token(client, account):
    """Missing or unknown API keys answer 401."""
    assert client.get("/invoices").status_code == 401
    res = client.get("/invoices", headers={"Authorization": "Bearer wrong-key"})
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_api_key_rotation(client, account):
    _, headers = account
    res = client.post("/users/api-keys", headers=headers)
    assert res.status_code == 201
    new_key = res.json()["apiKey"]
    new_headers = {"Authorization": f"Bearer {new_key}"}

    old_key = headers["Authorization"].split(" ", 1)[1]
    assert client.delete(f"/users/api-keys/{old_key}", headers=new_headers).status_code == 200
    assert client.get("/users/me", headers=headers).status_code == 401
    assert client.get("/users/me", headers=new_headers).status_code == 200


def test_folders_are_private(client, account, folder):
    _, headers = account
    res = client.get("/folders", headers=headers)
    assert [f["id"] for f in res.json()["folders"]] == [folder["id"]]
    assert folder["invoiceCounter"] == 0

    other = client.post("/users", json={
        "name": "Eve", "email": "eve@example.com",
        "defaults": {"seller": BUYER, "currency": "USD"},
    }).json()
    other_headers = {"Authorization": f"Bearer {other['apiKey']}"}
    assert client.get(f"/folders/{folder['id']}", headers=other_headers).status_code == 403
    assert client.get("/folders/missing", headers=headers).status_code == 404


def test_update_folder(client, account, folder):
    _, headers = account
    res = client.put(f"/folders/{folder['id']}", json={"name": "Renamed"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["name"] == "Renamed"
    assert res.json()["company"] == "ACME Corporation"


def test_create_invoice_returns_pdf(client, account, folder):
    user, headers = account
    res = client.post(f"/invoices/folders/{folder['id']}", json=INVOICE_JSON, headers=headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert res.content.startswith(b"%PDF")

    invoice_id = res.headers["X-Invoice-Id"]
    assert invoice_id == f"INV-{user['id'][:3].upper()}-ACME-0001"
    assert f'filename="{invoice_id}.pdf"' in res.headers["content-disposition"]


def test_invoice_metadata_uses_line_item_total(client, account, folder):
    _, headers = account
    invoice_id = create_invoice(client, folder, headers)

    res = client.get(f"/invoices/{invoice_id}", headers=headers)
    assert res.status_code == 200
    data = res.json()
    # 500 + 400 + 40, invoice-level tax and discount excluded
    assert data["total"] == 940.0
    assert data["currency"] == "EUR"
    assert data["buyer"] == BUYER["name"]
    assert data["seller"] == "Acme Inc"
    assert data["status"] == "due"
    assert data["number"] == 1


def test_sequence_increments_per_folder(client, account, folder):
    _, headers = account
    first = create_invoice(client, folder, headers)
    second = create_invoice(client, folder, headers)
    assert first.endswith("-0001")
    assert second.endswith("-0002")

    res = client.get(f"/folders/{folder['id']}", headers=headers)
    assert res.json()["invoiceCounter"] == 2


def test_folders_sharing_company_prefix_get_distinct_ids(client, account, folder):
    _, headers = account
    other_buyer = {"name": "Other Buyer", "address": "1 Road", "email": "ap@other.com"}
    res = client.post("/folders", json={
        "name": "Project Beta", "company": "Acme Ltd", "defaults": {"buyer": other_buyer},
    }, headers=headers)
    other_folder = res.json()

    first = create_invoice(client, folder, headers)
    second = create_invoice(client, other_folder, headers)
    assert first.endswith("-ACME-0001")
    assert second.endswith("-ACME-0002")

    data = client.get(f"/invoices/{first}", headers=headers).json()
    assert data["folderId"] == folder["id"]
    assert data["buyer"] == BUYER["name"]
    assert client.get(f"/invoices/{second}", headers=headers).json()["folderId"] == other_folder["id"]
    assert client.get(f"/folders/{other_folder['id']}", headers=headers).json()["invoiceCounter"] == 2

    listed = client.get(f"/folders/{folder['id']}/invoices", headers=headers).json()["invoices"]
    assert [i["id"] for i in listed] == [first]


def test_create_invoice_validation(client, account, folder):
    """Invalid JSON bodies answer 400."""
    _, headers = account
    url = f"/invoices/folders/{folder['id']}"
    assert client.post(url, json={}, headers=headers).status_code == 400
    assert client.post(url, json={**INVOICE_JSON, "items": []}, headers=headers).status_code == 400
    assert client.post(url, json={**INVOICE_JSON, "taxRate": 101}, headers=headers).status_code == 400
    assert client.post(url, json={**INVOICE_JSON, "currency": "US"}, headers=headers).status_code == 400

    res = client.post(url, json={**INVOICE_JSON, "dueDate": "2024-12-01"}, headers=headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Validation failed"


def test_create_invoice_unknown_folder(client, account):
    _, headers = account
    res = client.post("/invoices/folders/missing", json=INVOICE_JSON, headers=headers)
    assert res.status_code == 404
    assert res.json() == {"error": "Folder not found"}


def test_list_invoices(client, account, folder):
    _, headers = account
    create_invoice(client, folder, headers)
    create_invoice(client, folder, headers)

    res = client.get("/invoices", params={"limit": 1}, headers=headers)
    assert res.status_code == 200
    page = res.json()
    assert len(page["invoices"]) == 1
    assert "nextCursor" in page

    rest = client.get("/invoices", params={"limit": 1, "cursor": page["nextCursor"]}, headers=headers).json()
    assert len(rest["invoices"]) == 1
    assert "nextCursor" not in rest

    res = client.get(f"/folders/{folder['id']}/invoices", headers=headers)
    assert len(res.json()["invoices"]) == 2
    assert client.get("/invoices", params={"limit": 0}, headers=headers).status_code == 400


def test_status_update_keeps_other_fields(client, account, folder):
    _, headers = account
    invoice_id = create_invoice(client, folder, headers)
    before = client.get(f"/invoices/{invoice_id}", headers=headers).json()

    res = client.patch(f"/invoices/{invoice_id}/status", json={"status": "paid"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["status"] == "paid"

    res = client.patch(f"/invoices/{invoice_id}/status", json={"status": "due"}, headers=headers)
    assert res.json() == before

    res = client.patch(f"/invoices/{invoice_id}/status", json={"status": "void"}, headers=headers)
    assert res.status_code == 400


def test_download_pdf(client, account, folder):
    _, headers = account
    invoice_id = create_invoice(client, folder, headers)

    res = client.get(f"/invoices/{invoice_id}/pdf", headers=headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert client.get("/invoices/INV-X-Y-0001/pdf", headers=headers).status_code == 404


def test_stats_count_paid_revenue_only(client, account, folder):
    _, headers = account
    paid_id = create_invoice(client, folder, headers)
    create_invoice(client, folder, headers)
    create_invoice(client, folder, headers, currency="USD", status="paid")
    client.patch(f"/invoices/{paid_id}/status", json={"status": "paid"}, headers=headers)

    res = client.get("/metadata/stats", headers=headers)
    assert res.status_code == 200
    stats = res.json()
    assert stats["totalInvoices"] == 3
    assert stats["totalPaidInvoices"] == 2
    assert stats["currencyBreakdown"] == {"EUR": 940.0, "USD": 940.0}
    assert stats["totalRevenue"] == 1880.0


def test_search(client, account, folder):
    _, headers = account
    invoice_id = create_invoice(client, folder, headers)

    res = client.get("/metadata/search", params={"q": "jane"}, headers=headers)
    assert res.status_code == 200
    assert res.json()["count"] == 1
    assert res.json()["invoices"][0]["id"] == invoice_id

    assert client.get("/metadata/search", params={"q": "zz-none"}, headers=headers).json()["count"] == 0
    res = client.get("/metadata/search", params={"q": "j"}, headers=headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Search query must be at least 2 characters"


@pytest.mark.parametrize("email", ["y@b..c", "jane doe@exa mple..com", "bad", "@example.com"])
def test_malformed_emails_are_rejected(client, account, email):
    _, headers = account
    res = client.post("/users", json={
        "name": "Someone", "email": email,
        "defaults": {"seller": BUYER, "currency": "USD"},
    })
    assert res.status_code == 400
    assert res.json()["details"][0]["field"] == "email"

    res = client.post("/folders", json={
        "name": "Client", "company": "CLIENT",
        "defaults": {"buyer": {**BUYER, "email": email}},
    }, headers=headers)
    assert res.status_code == 400
    assert res.json()["details"][0]["field"] == "defaults.buyer.email"


@pytest.mark.parametrize("issue_date", [1735689600, "2025-01-01T10:00:00", "01/01/2025", "2025-1-1"])
def test_dates_must_be_iso_calendar_dates(client, account, folder, issue_date):
    _, headers = account
    res = client.post(f"/invoices/folders/{folder['id']}", json={**INVOICE_JSON, "issueDate": issue_date}, headers=headers)
    assert res.status_code == 400
    assert res.json()["details"][0]["field"] == "issueDate"

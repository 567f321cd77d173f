"""HTTP API tests using FastAPI's TestClient against in-memory storage."""

import pytest
from fastapi.testclient import TestClient

import server
from invoicey.errors import StorageError
from invoicey.storage import InMemoryStorage

HEADERS = {"X-Tenant-ID": "tenant_api"}

INVOICE_BODY = {
    "issue_date": "2026-03-15",
    "due_date": "2026-04-14",
    "line_items": [
        {"description": "Design", "quantity": 2, "rate": 100},
        {"description": "Hosting", "quantity": 1, "rate": 50},
    ],
    "notes": "Thanks!",
}


@pytest.fixture
def api():
    storage = InMemoryStorage()
    server.app.dependency_overrides[server.get_storage] = lambda: storage
    # raise_server_exceptions=False so the catch-all handler is exercised
    with TestClient(server.app, raise_server_exceptions=False) as client:
        yield client
    server.app.dependency_overrides.clear()


@pytest.fixture
def client_id(api):
    response = api.post(
        "/clients",
        json={"name": "Jane Cooper", "email": "jane@acme.test", "company": "Acme Corp"},
        headers=HEADERS,
    )
    assert response.status_code == 201
    return response.json()["id"]


def create_invoice(api, client_id, **overrides):
    body = {**INVOICE_BODY, "client_id": client_id, **overrides}
    response = api.post("/invoices", json=body, headers=HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.api
class TestHealth:
    def test_health(self, api):
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


@pytest.mark.api
class TestClientsApi:
    def test_create_and_list(self, api, client_id):
        response = api.get("/clients", headers=HEADERS)
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == [client_id]

    def test_search(self, api, client_id):
        assert len(api.get("/clients", params={"q": "acme"}, headers=HEADERS).json()) == 1
        assert api.get("/clients", params={"q": "nobody"}, headers=HEADERS).json() == []

    def test_tenants_do_not_share_data(self, api, client_id):
        other = api.get("/clients", headers={"X-Tenant-ID": "someone_else"})
        assert other.json() == []

    def test_invalid_tenant_header(self, api):
        response = api.get("/clients", headers={"X-Tenant-ID": "bad tenant!"})
        assert response.status_code == 422
        assert "tenant" in response.json()["error"]["details"]["fields"]

    def test_create_rejects_bad_email(self, api):
        response = api.post("/clients", json={"name": "Jane", "email": "nope"}, headers=HEADERS)
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "email" in error["details"]["fields"]

    def test_validate_endpoint(self, api):
        response = api.post("/clients/validate", json={"name": "", "email": ""})
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is False
        assert set(body["errors"]) == {"name", "email"}

    def test_get_missing(self, api):
        response = api.get("/clients/client_missing", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    def test_update(self, api, client_id):
        response = api.put(
            f"/clients/{client_id}",
            json={"name": "Jane Doe", "email": "doe@acme.test"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Jane Doe"
        assert response.json()["id"] == client_id

    def test_has_invoices_and_delete(self, api, client_id):
        url = f"/clients/{client_id}/has-invoices"
        assert api.get(url, headers=HEADERS).json() == {"has_invoices": False}

        create_invoice(api, client_id)
        assert api.get(url, headers=HEADERS).json() == {"has_invoices": True}

        assert api.delete(f"/clients/{client_id}", headers=HEADERS).status_code == 204
        assert api.get(f"/clients/{client_id}", headers=HEADERS).status_code == 404
        assert len(api.get("/invoices", headers=HEADERS).json()) == 1


@pytest.mark.api
class TestInvoicesApi:
    def test_create(self, api, client_id):
        invoice = create_invoice(api, client_id)
        assert invoice["invoice_number"].startswith("INV-")
        assert invoice["status"] == "draft"
        assert (invoice["subtotal"], invoice["tax"], invoice["total"]) == (250.0, 25.0, 275.0)
        assert invoice["client"]["name"] == "Jane Cooper"

    def test_create_validation_error(self, api, client_id):
        body = {**INVOICE_BODY, "client_id": client_id, "line_items": []}
        response = api.post("/invoices", json=body, headers=HEADERS)
        assert response.status_code == 422
        assert response.json()["error"]["details"]["fields"] == {
            "line_items": "At least one line item is required"
        }

    def test_create_unknown_client(self, api):
        body = {**INVOICE_BODY, "client_id": "client_ghost"}
        response = api.post("/invoices", json=body, headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Client not found"

    def test_malformed_body(self, api):
        response = api.post("/invoices", json={"client_id": "x"}, headers=HEADERS)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_validate_endpoint(self, api):
        body = {**INVOICE_BODY, "client_id": ""}
        response = api.post("/invoices/validate", json=body, headers=HEADERS)
        assert response.json() == {
            "valid": False,
            "errors": {"client_id": "Please select a client"},
        }

    def test_lifecycle(self, api, client_id):
        invoice = create_invoice(api, client_id)
        url = f"/invoices/{invoice['id']}"

        assert api.post(f"{url}/send", headers=HEADERS).json()["status"] == "sent"
        assert api.post(f"{url}/pay", headers=HEADERS).json()["status"] == "paid"
        assert api.get(url, headers=HEADERS).json()["status"] == "paid"

    def test_update_keeps_number(self, api, client_id):
        invoice = create_invoice(api, client_id)
        body = {
            **INVOICE_BODY,
            "client_id": client_id,
            "line_items": [{"description": "Retainer", "quantity": 1, "rate": 1000}],
        }
        response = api.put(f"/invoices/{invoice['id']}", json=body, headers=HEADERS)
        assert response.status_code == 200
        updated = response.json()
        assert updated["invoice_number"] == invoice["invoice_number"]
        assert updated["total"] == 1100.0

    def test_duplicate(self, api, client_id):
        invoice = create_invoice(api, client_id)
        response = api.post(f"/invoices/{invoice['id']}/duplicate", headers=HEADERS)
        assert response.status_code == 201
        copy = response.json()
        assert copy["id"] != invoice["id"]
        assert copy["invoice_number"] != invoice["invoice_number"]
        assert copy["status"] == "draft"
        assert copy["total"] == invoice["total"]

    def test_list_filters(self, api, client_id):
        first = create_invoice(api, client_id)
        create_invoice(api, client_id)
        api.post(f"/invoices/{first['id']}/pay", headers=HEADERS)

        paid = api.get("/invoices", params={"status": "paid"}, headers=HEADERS).json()
        assert [inv["id"] for inv in paid] == [first["id"]]
        assert len(api.get("/invoices", params={"status": "all"}, headers=HEADERS).json()) == 2
        assert len(api.get("/invoices", params={"q": "jane"}, headers=HEADERS).json()) == 2

    def test_check_overdue(self, api, client_id):
        invoice = create_invoice(api, client_id, due_date="2000-01-01", status="sent")
        result = api.post("/invoices/check-overdue", headers=HEADERS).json()
        assert [inv["status"] for inv in result] == ["overdue"]
        assert api.get(f"/invoices/{invoice['id']}", headers=HEADERS).json()["status"] == "overdue"

    def test_delete(self, api, client_id):
        invoice = create_invoice(api, client_id)
        assert api.delete(f"/invoices/{invoice['id']}", headers=HEADERS).status_code == 204
        assert api.delete(f"/invoices/{invoice['id']}", headers=HEADERS).status_code == 404

    def test_pdf(self, api, client_id):
        invoice = create_invoice(api, client_id)
        response = api.get(f"/invoices/{invoice['id']}/pdf", headers=HEADERS)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert invoice["invoice_number"] in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    def test_pdf_missing(self, api):
        assert api.get("/invoices/invoice_missing/pdf", headers=HEADERS).status_code == 404


@pytest.mark.api
class TestDashboardApi:
    def test_dashboard(self, api, client_id):
        create_invoice(api, client_id, due_date="2000-01-01", status="sent")
        paid = create_invoice(api, client_id)
        api.post(f"/invoices/{paid['id']}/pay", headers=HEADERS)

        body = api.get("/dashboard", headers=HEADERS).json()
        assert body["metrics"]["overdue_invoices"] == 1
        assert body["metrics"]["paid_invoices"] == 1
        assert body["metrics"]["total_revenue"] == 275.0
        assert body["metrics"]["total_clients"] == 1
        assert len(body["recent_invoices"]) == 2
        assert len(body["recent_clients"]) == 1


@pytest.mark.api
class TestStorageFailures:
    def test_storage_error_maps_to_503(self, api):
        class BrokenStorage(InMemoryStorage):
            def get_clients(self, tenant):
                raise StorageError("disk gone")

        server.app.dependency_overrides[server.get_storage] = lambda: BrokenStorage()
        response = api.get("/clients", headers=HEADERS)
        assert response.status_code == 503
        assert response.json()["error"]["code"] == "STORAGE_ERROR"

"""Client service tests."""

from datetime import date

import pytest

from invoicey.clients import search_clients
from invoicey.errors import NotFoundError, ValidationError
from invoicey.models import ClientInput, InvoiceInput
from invoicey.validator import ClientValidator, is_valid_email

from conftest import make_invoice_input


@pytest.mark.unit
class TestClientValidation:
    def test_valid_input(self, client_service):
        result = client_service.validate(ClientInput(name="Jane", email="jane@x.test"))
        assert result.valid
        assert result.errors == {}

    def test_blank_name_and_email(self, client_service):
        result = client_service.validate(ClientInput(name="   ", email=""))
        assert not result.valid
        assert result.errors == {"name": "Name is required", "email": "Email is required"}

    def test_presence_check_does_not_check_format(self, client_service):
        assert client_service.validate(ClientInput(name="Jane", email="nope")).valid

    def test_strict_check_rejects_bad_email(self):
        result = ClientValidator().validate_strict(ClientInput(name="Jane", email="nope"))
        assert not result.valid
        assert "email" in result.errors

    @pytest.mark.parametrize(
        "email,expected",
        [("a@b.co", True), (" a@b.co ", True), ("a@b", False), ("a b@c.d", False), ("", False)],
    )
    def test_email_format(self, email, expected):
        assert is_valid_email(email) is expected


@pytest.mark.unit
class TestClientCrud:
    def test_create_trims_and_stamps(self, client_service, clock):
        client = client_service.create(
            ClientInput(name="  Jane  ", email=" jane@x.test ", company="  ", phone=" 555 ")
        )
        assert client.id.startswith("client_")
        assert client.name == "Jane"
        assert client.email == "jane@x.test"
        assert client.company is None
        assert client.phone == "555"
        assert client.created_at == clock.current
        assert client_service.get(client.id) == client

    def test_create_rejects_invalid_input(self, client_service):
        with pytest.raises(ValidationError) as exc_info:
            client_service.create(ClientInput(name="", email="jane@x.test"))
        assert exc_info.value.fields == {"name": "Name is required"}
        assert client_service.list() == []

    def test_update_preserves_identity(self, client_service, acme, clock):
        clock.current = date(2026, 6, 1)
        updated = client_service.update(
            acme.id, ClientInput(name="Jane Doe", email="doe@acme.test")
        )

        assert updated.id == acme.id
        assert updated.created_at == acme.created_at
        assert updated.name == "Jane Doe"
        assert updated.company is None
        assert updated.updated_at is not None

    def test_update_unknown_client(self, client_service):
        with pytest.raises(NotFoundError):
            client_service.update("client_missing", ClientInput(name="A", email="a@b.co"))

    def test_update_refreshes_invoice_snapshots(
        self, client_service, invoice_service, acme, globex, clients
    ):
        mine = invoice_service.create(make_invoice_input(acme.id), clients)
        other = invoice_service.create(make_invoice_input(globex.id), clients)

        client_service.update(
            acme.id, ClientInput(name="Jane Cooper", email="jane@acme.test", company="Acme Intl")
        )

        assert invoice_service.get(mine.id).client.company == "Acme Intl"
        assert invoice_service.get(other.id).client.name == "Hank Scorpio"

    def test_delete(self, client_service, acme, globex):
        client_service.delete(acme.id)
        assert [c.id for c in client_service.list()] == [globex.id]

    def test_delete_unknown_client(self, client_service):
        with pytest.raises(NotFoundError):
            client_service.delete("client_missing")

    def test_delete_does_not_touch_invoices(
        self, client_service, invoice_service, acme, clients
    ):
        invoice = invoice_service.create(make_invoice_input(acme.id), clients)
        assert client_service.has_dependent_invoices(acme.id)

        client_service.delete(acme.id)
        assert invoice_service.get(invoice.id) is not None

    def test_has_dependent_invoices_false(self, client_service, globex):
        assert not client_service.has_dependent_invoices(globex.id)


@pytest.mark.unit
class TestClientSearch:
    def test_empty_query_returns_input(self, clients):
        assert search_clients("", clients) is clients
        assert search_clients("   ", clients) is clients

    def test_matches_name_email_company(self, clients):
        assert [c.name for c in search_clients("JANE", clients)] == ["Jane Cooper"]
        assert [c.name for c in search_clients("globex.test", clients)] == ["Hank Scorpio"]
        assert [c.name for c in search_clients("acme corp", clients)] == ["Jane Cooper"]

    def test_missing_company_is_not_a_match(self, clients):
        assert search_clients("corp", clients)[0].name == "Jane Cooper"
        assert len(search_clients("corp", clients)) == 1

    def test_no_match(self, clients):
        assert search_clients("zzz", clients) == []


@pytest.mark.unit
class TestSchemaExamples:
    def test_input_models_publish_examples(self):
        assert ClientInput.model_json_schema()["example"]["name"] == "Jane Cooper"
        assert InvoiceInput.model_json_schema()["example"]["client_id"] == "client_3f2a9c"

"""
Tests for ledger and transaction API endpoints.

These test the HTTP layer: status codes, response format and
error mapping. Business rules are tested against the services.
"""

from decimal import Decimal

from check_ledger.config import get_settings


def create_ledger(client, name="Operating", starting_balance="1000.00"):
    response = client.post("/ledgers", json={
        "name": name,
        "starting_balance": starting_balance,
    })
    assert response.status_code == 201
    return response.json()["id"]


def balance(client, ledger_id):
    return Decimal(client.get(f"/ledgers/{ledger_id}/balance").json()["balance"])


class TestLedgers:

    def test_create_and_get(self, client):
        ledger_id = create_ledger(client)

        data = client.get(f"/ledgers/{ledger_id}").json()
        assert data["name"] == "Operating"
        assert Decimal(data["starting_balance"]) == Decimal("1000.00")

    def test_unknown_ledger_returns_404(self, client):
        assert client.get("/ledgers/missing").status_code == 404
        assert client.get("/ledgers/missing/balance").status_code == 404

    def test_update_name_and_starting_balance(self, client):
        ledger_id = create_ledger(client)

        response = client.patch(f"/ledgers/{ledger_id}", json={
            "name": "Checking",
            "starting_balance": "200.00",
        })

        assert response.status_code == 200
        assert response.json()["name"] == "Checking"
        assert balance(client, ledger_id) == Decimal("200.00")

    def test_last_ledger_delete_returns_400(self, client):
        ledger_id = create_ledger(client)

        response = client.delete(f"/ledgers/{ledger_id}")

        assert response.status_code == 400

    def test_delete_reports_cascaded_transactions(self, client):
        ledger_id = create_ledger(client)
        create_ledger(client, "Payroll")
        client.post("/checks/record", json={
            "item": {"payee": "Acme Co", "amount": "10"},
            "ledger_id": ledger_id,
        })

        response = client.delete(f"/ledgers/{ledger_id}")

        assert response.status_code == 200
        assert response.json()["transactions_deleted"] == 1
        assert client.get(f"/ledgers/{ledger_id}").status_code == 404


class TestChecks:

    def test_print_check_records_it(self, client, print_adapter):
        ledger_id = create_ledger(client)

        response = client.post("/checks/print", json={
            "item": {"payee": "Acme Co", "amount": "$100.00"},
            "ledger_id": ledger_id,
        })

        assert response.status_code == 201
        assert response.json()["form_cleared"] is True
        assert balance(client, ledger_id) == Decimal("900.00")
        assert len(print_adapter.jobs) == 1

    def test_invalid_check_returns_400(self, client):
        ledger_id = create_ledger(client)

        response = client.post("/checks/print", json={
            "item": {"payee": "Acme Co", "amount": "0"},
            "ledger_id": ledger_id,
        })

        assert response.status_code == 400
        assert balance(client, ledger_id) == Decimal("1000.00")

    def test_sheet_records_each_slot(self, client):
        ledger_id = create_ledger(client)

        response = client.post("/checks/sheet", json={
            "items": [
                {"payee": "A", "amount": "1"},
                {"payee": "B", "amount": "2"},
                {"payee": "C", "amount": "3"},
            ],
            "ledger_id": ledger_id,
        })

        assert response.status_code == 201
        assert len(response.json()["transaction_ids"]) == 3
        assert balance(client, ledger_id) == Decimal("994.00")

    def test_configured_print_target_is_used(
        self, client, print_adapter, monkeypatch
    ):
        settings = get_settings()
        monkeypatch.setattr(settings, "BATCH_PRINT_MODE", "silent")
        monkeypatch.setattr(settings, "BATCH_PRINTER_DEVICE", "Front Desk")
        ledger_id = create_ledger(client)

        response = client.post("/checks/print", json={
            "item": {"payee": "Acme Co", "amount": "10"},
            "ledger_id": ledger_id,
        })

        assert response.status_code == 201
        [(job, mode)] = print_adapter.jobs
        assert mode.value == "silent"
        assert job.printer_device == "Front Desk"

    def test_silent_mode_without_printer_returns_400(
        self, client, print_adapter, monkeypatch
    ):
        settings = get_settings()
        monkeypatch.setattr(settings, "BATCH_PRINT_MODE", "silent")
        monkeypatch.setattr(settings, "BATCH_PRINTER_DEVICE", "")
        ledger_id = create_ledger(client)

        response = client.post("/checks/print", json={
            "item": {"payee": "Acme Co", "amount": "10"},
            "ledger_id": ledger_id,
        })

        assert response.status_code == 400
        assert "Select a printer" in response.json()["detail"]
        assert print_adapter.jobs == []
        assert balance(client, ledger_id) == Decimal("1000.00")

    def test_deposit_and_delete(self, client):
        ledger_id = create_ledger(client)

        response = client.post("/deposits", json={
            "description": "Client payment",
            "amount": "250",
            "ledger_id": ledger_id,
        })
        assert response.status_code == 201
        assert balance(client, ledger_id) == Decimal("1250.00")

        [transaction_id] = response.json()["transaction_ids"]
        assert client.delete(f"/transactions/{transaction_id}").status_code == 204
        assert balance(client, ledger_id) == Decimal("1000.00")

    def test_delete_unknown_transaction_returns_404(self, client):
        assert client.delete("/transactions/missing").status_code == 404

    def test_transactions_listing_and_integrity(self, client):
        ledger_id = create_ledger(client)
        for payee, amount in (("Acme Co", "10"), ("Beta LLC", "20")):
            client.post("/checks/record", json={
                "item": {"payee": payee, "amount": amount},
                "ledger_id": ledger_id,
            })

        listed = client.get(
            f"/ledgers/{ledger_id}/transactions",
            params={"search": "beta"},
        ).json()
        assert [t["payee"] for t in listed] == ["Beta LLC"]
        assert Decimal(listed[0]["ledger_snapshot"]["new_balance"]) == Decimal("970.00")

        report = client.get(f"/ledgers/{ledger_id}/integrity").json()
        assert report["is_consistent"] is True
        assert report["transaction_count"] == 2

    def test_bad_sort_returns_400(self, client):
        ledger_id = create_ledger(client)

        response = client.get(
            f"/ledgers/{ledger_id}/transactions", params={"sort": "sideways"}
        )

        assert response.status_code == 400


class TestProfiles:

    def test_profile_numbers_printed_checks(self, client):
        ledger_id = create_ledger(client)
        profile = client.post("/profiles", json={
            "name": "Main",
            "next_check_number": 7001,
        }).json()

        client.post("/checks/print", json={
            "item": {"payee": "Acme Co", "amount": "1", "gl_code": "6100"},
            "ledger_id": ledger_id,
            "profile_id": profile["id"],
        })

        updated = client.get(f"/profiles/{profile['id']}").json()
        assert updated["next_check_number"] == 7002
        assert [g["code"] for g in client.get("/gl-codes").json()] == ["6100"]

    def test_unknown_profile_returns_404(self, client):
        create_ledger(client)
        response = client.post("/checks/print", json={
            "item": {"payee": "Acme Co", "amount": "1"},
            "profile_id": "missing",
        })
        assert response.status_code == 404

"""HTTP tests for the journal entry and ledger endpoints."""

from decimal import Decimal

from tests.conftest import ACTING_USER_ID

HEADERS = {"X-User-Id": str(ACTING_USER_ID)}


def _base(books):
    return f"/api/v1/organizations/{books['org'].id}"


def _entry_payload(books, debit="100.00", credit="100.00", **overrides):
    payload = {
        "entry_date": "2025-01-15",
        "fiscal_period_id": books["january"].id,
        "description": "Consulting invoice",
        "reference": "INV-1001",
        "items": [
            {"account_id": books["accounts"]["cash"].id, "debit_amount": debit},
            {"account_id": books["accounts"]["revenue"].id, "credit_amount": credit},
        ],
    }
    payload.update(overrides)
    return payload


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["components"]["database"] == "healthy"


def test_config_exposes_posting_settings(client):
    body = client.get("/config").json()

    assert body["posting"]["balance_tolerance_mode"] == "absolute"
    assert body["entry_number_prefix"] == "JE"


def test_create_get_and_post_entry(client, books):
    created = client.post(f"{_base(books)}/journal-entries", json=_entry_payload(books), headers=HEADERS)
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["entry_no"] == "JE-2025-0001"
    assert body["status"] == "draft"
    assert body["items"][0]["account_code"] == "1000"
    entry_id = body["id"]

    fetched = client.get(f"{_base(books)}/journal-entries/{entry_id}")
    assert fetched.status_code == 200
    assert fetched.json()["reference"] == "INV-1001"

    posted = client.post(f"{_base(books)}/journal-entries/{entry_id}/post", headers=HEADERS)
    assert posted.status_code == 200, posted.text
    result = posted.json()
    assert result["status"] == "posted"
    assert result["entry_no"] == "JE-2025-0001"
    assert result["ledger_rows"] == 2
    assert result["posted_at"]

    again = client.post(f"{_base(books)}/journal-entries/{entry_id}/post", headers=HEADERS)
    assert again.status_code == 400
    assert again.json()["detail"]["code"] == "ALREADY_POSTED"

    detail = client.get(f"{_base(books)}/journal-entries/{entry_id}").json()
    assert detail["approved_by"] == ACTING_USER_ID


def test_create_unbalanced_entry_reports_difference(client, books):
    response = client.post(
        f"{_base(books)}/journal-entries",
        json=_entry_payload(books, debit="100.00", credit="99.98"),
        headers=HEADERS,
    )

    assert response.status_code == 400
    error = response.json()["detail"]
    assert error["code"] == "UNBALANCED_ENTRY"
    assert Decimal(error["details"]["difference"]) == Decimal("0.02")
    assert Decimal(error["details"]["total_debit"]) == Decimal("100")


def test_post_unbalanced_draft(client, books, make_entry):
    entry = make_entry([("cash", "100.00", 0), ("revenue", 0, "99.98")])

    response = client.post(f"{_base(books)}/journal-entries/{entry.id}/post", headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "UNBALANCED_ENTRY"
    listing = client.get(f"{_base(books)}/journal-entries", params={"status": "draft"}).json()
    assert listing["pagination"]["total"] == 1


def test_post_into_closed_period(client, books, make_entry):
    entry = make_entry([("cash", 10, 0), ("revenue", 0, 10)], period=books["february"])

    response = client.post(f"{_base(books)}/journal-entries/{entry.id}/post", headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "FISCAL_PERIOD_CLOSED"


def test_post_unknown_entry(client, books):
    response = client.post(f"{_base(books)}/journal-entries/12345/post", headers=HEADERS)

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "NOT_FOUND"


def test_post_requires_acting_user(client, books, make_entry):
    entry = make_entry([("cash", 10, 0), ("revenue", 0, 10)])

    response = client.post(f"{_base(books)}/journal-entries/{entry.id}/post")

    assert response.status_code == 401


def test_void_then_post(client, books, make_entry):
    entry = make_entry([("cash", 10, 0), ("revenue", 0, 10)])

    voided = client.post(f"{_base(books)}/journal-entries/{entry.id}/void", headers=HEADERS)
    assert voided.status_code == 200
    assert voided.json()["status"] == "voided"

    response = client.post(f"{_base(books)}/journal-entries/{entry.id}/post", headers=HEADERS)
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "ENTRY_VOIDED"


def test_list_rejects_unknown_status(client, books):
    response = client.get(f"{_base(books)}/journal-entries", params={"status": "archived"})

    assert response.status_code == 400


def test_ledger_and_trial_balance(client, books, make_entry):
    for lines in ([("cash", 300, 0), ("revenue", 0, 300)], [("rent", 120, 0), ("cash", 0, 120)]):
        entry = make_entry(lines)
        assert client.post(f"{_base(books)}/journal-entries/{entry.id}/post", headers=HEADERS).status_code == 200

    cash_id = books["accounts"]["cash"].id
    ledger = client.get(f"{_base(books)}/general-ledger/accounts/{cash_id}").json()
    assert ledger["account"]["normal_balance"] == "debit"
    assert [Decimal(r["balance"]) for r in ledger["entries"]] == [Decimal("300"), Decimal("180")]

    everything = client.get(f"{_base(books)}/general-ledger").json()
    assert everything["pagination"]["total"] == 4

    reconcile = client.get(f"{_base(books)}/general-ledger/accounts/{cash_id}/reconcile").json()
    assert reconcile["is_consistent"] is True
    assert Decimal(reconcile["expected_balance"]) == Decimal("180")

    balances = client.get(
        f"{_base(books)}/account-balances", params={"fiscal_period_id": books["january"].id}
    ).json()
    assert {b["account_code"]: Decimal(b["closing_balance"]) for b in balances} == {
        "1000": Decimal("180"),
        "4000": Decimal("300"),
        "5000": Decimal("120"),
    }

    trial = client.get(
        f"{_base(books)}/trial-balance", params={"fiscal_period_id": books["january"].id}
    ).json()
    assert trial["is_balanced"] is True
    assert Decimal(trial["total_debit"]) == Decimal("420")
    assert trial["fiscal_period"]["name"] == "2025-01"

    export = client.get(
        f"{_base(books)}/trial-balance/export", params={"fiscal_period_id": books["january"].id}
    )
    assert export.status_code == 200
    assert export.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert export.content[:2] == b"PK"


def test_trial_balance_requires_known_period(client, books):
    response = client.get(f"{_base(books)}/trial-balance", params={"fiscal_period_id": 999})

    assert response.status_code == 404


def test_unknown_account_ledger(client, books):
    response = client.get(f"{_base(books)}/general-ledger/accounts/999")

    assert response.status_code == 404

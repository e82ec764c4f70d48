"""
Tests for the vesting API blueprint using Flask's test client.
"""

import pytest

from rowa.core.api_blueprints import create_app
from rowa.core.constants import SECONDS_PER_WEEK
from rowa.core.vesting_exceptions import StorageError
from rowa.vesting.schedule import compute_schedule_id


@pytest.fixture
def commits():
    return []


@pytest.fixture
def client(started_manager, commits):
    app = create_app(started_manager, on_commit=lambda: commits.append(True))
    app.config["TESTING"] = True
    return app.test_client()


def post(client, path, caller, payload=None):
    return client.post(path, json=payload or {}, headers={"X-Caller": caller})


def create_seed(client, owner, alice, amount=10_000):
    response = post(
        client,
        "/vesting/schedules",
        owner,
        {"category": "seed_sale", "beneficiary": alice, "amount": amount},
    )
    assert response.status_code == 201, response.get_json()
    return response.get_json()["schedule_id"]


class TestCreate:
    def test_create_schedule(self, client, owner, alice, commits):
        schedule_id = create_seed(client, owner, alice)
        assert schedule_id == compute_schedule_id(alice, 0)
        assert commits == [True]

        body = client.get(f"/vesting/schedules/{schedule_id}").get_json()
        assert body["success"] is True
        assert body["schedule"]["total_amount"] == 10_000
        assert body["schedule"]["releasable_amount"] == 500
        assert body["schedule"]["category"] == "seed_sale"

    def test_non_owner_forbidden(self, client, mallory, alice, commits):
        response = post(
            client,
            "/vesting/schedules",
            mallory,
            {"category": "public_sale", "beneficiary": alice, "amount": 100},
        )
        assert response.status_code == 403
        assert response.get_json()["code"] == "UnauthorizedError"
        assert commits == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"category": "seed_sale", "beneficiary": "0xa", "amount": 0},
            {"category": "seed_sale", "beneficiary": "0xa", "amount": 1.5},
            {"category": "seed_sale", "beneficiary": "0xa", "amount": "100"},
            {"category": "seed_sale", "amount": 100},
        ],
    )
    def test_invalid_payload(self, client, owner, payload):
        response = post(client, "/vesting/schedules", owner, payload)
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_payload"

    def test_unknown_category(self, client, owner, alice):
        response = post(
            client,
            "/vesting/schedules",
            owner,
            {"category": "angel", "beneficiary": alice, "amount": 100},
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_category"

    def test_cap_exceeded(self, client, owner, alice):
        response = post(
            client,
            "/vesting/schedules",
            owner,
            {"category": "public_sale", "beneficiary": alice, "amount": 10**15},
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "Public sale vesting amount exceeds total amount"


class TestReleaseAndRevoke:
    def test_release_explicit_amount(self, client, owner, alice, clock):
        schedule_id = create_seed(client, owner, alice)
        clock.advance(16 * SECONDS_PER_WEEK)
        response = post(
            client, f"/vesting/schedules/{schedule_id}/release", alice, {"amount": 5_000}
        )
        assert response.status_code == 200
        assert response.get_json()["released_amount"] == 5_000

    def test_release_all(self, client, owner, alice, token):
        schedule_id = create_seed(client, owner, alice)
        response = post(client, f"/vesting/schedules/{schedule_id}/release", alice)
        assert response.get_json()["released"] == 500
        assert token.balance_of(alice) == 500

    def test_release_too_much(self, client, owner, alice):
        schedule_id = create_seed(client, owner, alice)
        response = post(client, f"/vesting/schedules/{schedule_id}/release", alice, {"amount": 501})
        assert response.status_code == 400
        assert response.get_json()["code"] == "InsufficientVestedError"

    def test_release_while_paused(self, client, owner, alice, token):
        schedule_id = create_seed(client, owner, alice)
        token.pause(owner)
        response = post(client, f"/vesting/schedules/{schedule_id}/release", alice, {"amount": 1})
        assert response.status_code == 503

    def test_revoke(self, client, owner, alice):
        response = post(
            client,
            "/vesting/schedules",
            owner,
            {"category": "team", "beneficiary": alice, "amount": 1_000, "revocable": True},
        )
        schedule_id = response.get_json()["schedule_id"]

        response = post(client, f"/vesting/schedules/{schedule_id}/revoke", owner)
        assert response.get_json()["returned_to_allocation"] == 1_000

        body = client.get(f"/vesting/schedules/{schedule_id}").get_json()
        assert body["schedule"]["revoked"] is True
        assert body["schedule"]["releasable_amount"] is None

        again = post(client, f"/vesting/schedules/{schedule_id}/revoke", owner)
        assert again.status_code == 400
        assert again.get_json()["code"] == "AlreadyRevokedError"


    def test_body_timestamp_is_ignored(self, client, owner, alice, token, start_time):
        response = post(
            client,
            "/vesting/schedules",
            owner,
            {"category": "team", "beneficiary": alice, "amount": 10_000, "revocable": True},
        )
        schedule_id = response.get_json()["schedule_id"]
        far_future = start_time + 1000 * SECONDS_PER_WEEK

        response = post(
            client, f"/vesting/schedules/{schedule_id}/release", alice, {"now": far_future}
        )
        assert response.status_code == 200
        assert response.get_json()["released"] == 0
        assert token.balance_of(alice) == 0

        response = post(
            client,
            f"/vesting/schedules/{schedule_id}/release",
            alice,
            {"amount": 10_000, "now": far_future},
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "InsufficientVestedError"

        response = post(
            client, f"/vesting/schedules/{schedule_id}/revoke", owner, {"now": far_future}
        )
        assert response.get_json()["returned_to_allocation"] == 10_000


class TestQueries:
    def test_unknown_schedule(self, client):
        response = client.get("/vesting/schedules/0xmissing")
        assert response.status_code == 404
        assert response.get_json()["code"] == "ScheduleNotFoundError"

    def test_beneficiary_lookups(self, client, owner, alice):
        schedule_id = create_seed(client, owner, alice)

        count = client.get(f"/vesting/beneficiaries/{alice}/count").get_json()
        assert count["count"] == 1
        assert count["next_schedule_id"] == compute_schedule_id(alice, 1)

        by_index = client.get(f"/vesting/beneficiaries/{alice}/schedules/0").get_json()
        assert by_index["schedule"]["schedule_id"] == schedule_id

        missing = client.get(f"/vesting/beneficiaries/{alice}/schedules/5")
        assert missing.status_code == 404

    def test_releasable(self, client, owner, alice):
        schedule_id = create_seed(client, owner, alice)
        body = client.get(f"/vesting/schedules/{schedule_id}/releasable").get_json()
        assert body["releasable_amount"] == 500

    def test_totals_and_categories(self, client, owner, alice):
        create_seed(client, owner, alice)
        totals = client.get("/vesting/totals").get_json()
        assert totals["schedules_count"] == 1
        assert totals["total_committed"] == 10_000

        categories = client.get("/vesting/categories").get_json()["categories"]
        assert len(categories) == 10

    def test_token(self, client, token, pool):
        body = client.get("/vesting/token").get_json()
        assert body["token_address"] == token.address
        assert body["vesting_pool"] == pool
        assert body["paused"] is False


class TestFunds:
    def test_start_fund(self, client, owner, fund_recipients):
        response = post(client, "/vesting/funds/reserve/start", owner)
        assert response.status_code == 201
        assert response.get_json()["category"] == "reserve"

        again = post(client, "/vesting/funds/reserve/start", owner)
        assert again.status_code == 400
        assert again.get_json()["code"] == "AlreadyStartedError"

    def test_unknown_fund(self, client, owner):
        response = post(client, "/vesting/funds/moon/start", owner)
        assert response.status_code == 400

    def test_non_treasury_fund(self, client, owner):
        response = post(client, "/vesting/funds/team/start", owner)
        assert response.status_code == 400
        assert response.get_json()["code"] == "ValidationError"


class TestCommitFailures:
    @pytest.fixture
    def failing_client(self, started_manager):
        def fail():
            raise StorageError("disk full")

        app = create_app(started_manager, on_commit=fail)
        app.config["TESTING"] = True
        return app.test_client()

    def test_release_reports_applied_not_persisted(
        self, failing_client, started_manager, token, owner, alice
    ):
        schedule_id = started_manager.create_seed_sale_vesting(owner, alice, 10_000)

        response = post(failing_client, f"/vesting/schedules/{schedule_id}/release", alice)

        assert response.status_code == 500
        body = response.get_json()
        assert body["code"] == "applied_not_persisted"
        assert "disk full" in body["error"]
        assert started_manager.get_schedule(schedule_id).released_amount == 500
        assert token.balance_of(alice) == 500

    def test_failed_create_is_still_applied(self, failing_client, started_manager, owner, alice):
        response = post(
            failing_client,
            "/vesting/schedules",
            owner,
            {"category": "seed_sale", "beneficiary": alice, "amount": 10_000},
        )
        assert response.status_code == 500
        assert response.get_json()["code"] == "applied_not_persisted"
        assert started_manager.get_schedules_count_by_beneficiary(alice) == 1

"""
HTTP surface tests: request validation, error shapes and a full auction over the API.
"""

import pytest

from conftest import POOL

BASE = "/api/auction"


def pool_payload():
    return {"players": [{**row, "base_price": float(row["base_price"])} for row in POOL]}


@pytest.fixture
def seeded(client):
    response = client.post(f"{BASE}/player-pool/import", json=pool_payload())
    assert response.status_code == 200
    return client


def create_auction(client, **settings):
    body = {"name": "Friday Night Auction", **settings}
    response = client.post(f"{BASE}/sessions", json=body)
    assert response.status_code == 200, response.text
    auction_id = response.json()["auction_id"]
    for user_id in ("alice", "bob"):
        client.post(f"{BASE}/sessions/{auction_id}/participants", json={"user_id": user_id})
    return auction_id


class TestHealthAndPool:
    def test_healthz(self, client):
        assert client.get("/healthz").json() == {"status": "ok"}

    def test_import_and_filter(self, seeded):
        response = seeded.get(f"{BASE}/player-pool", params={"skill_type": "Bowler"})

        data = response.json()
        assert data["count"] == 2
        assert {p["player_name"] for p in data["players"]} == {"Jasprit Bumrah", "Rashid Khan"}

    def test_empty_import_is_400(self, client):
        response = client.post(f"{BASE}/player-pool/import", json={"players": []})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_unknown_skill_is_400(self, client):
        bad = {**pool_payload()["players"][0], "skill_type": "Spinner"}
        response = client.post(f"{BASE}/player-pool/import", json={"players": [bad]})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestSessionsApi:
    def test_create_and_list(self, seeded):
        auction_id = create_auction(seeded)

        sessions = seeded.get(f"{BASE}/sessions").json()["sessions"]

        assert [s["auction_id"] for s in sessions] == [auction_id]
        assert sessions[0]["total_players"] == 6
        assert sessions[0]["player_counts"]["PENDING"] == 6
        assert sessions[0]["status"] == "NOT_STARTED"

    def test_missing_name_is_400(self, client):
        response = client.post(f"{BASE}/sessions", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_unknown_session_is_404(self, client):
        response = client.get(f"{BASE}/sessions/999/live")
        assert response.status_code == 404
        assert response.json()["error"] == "AUCTION_NOT_FOUND"

    def test_register_returns_wallet(self, seeded):
        auction_id = create_auction(seeded, initial_wallet_amount=50)

        response = seeded.post(f"{BASE}/sessions/{auction_id}/participants", json={"user_id": "carol"})

        data = response.json()
        assert data["status"] == "ACTIVE"
        assert data["wallet"]["current_balance"] == 50

    def test_lifecycle_controls(self, seeded):
        auction_id = create_auction(seeded)

        assert seeded.post(f"{BASE}/sessions/{auction_id}/start").json()["status"] == "RUNNING"
        assert seeded.post(f"{BASE}/sessions/{auction_id}/pause").json()["status"] == "PAUSED"
        assert seeded.post(f"{BASE}/sessions/{auction_id}/resume").json()["status"] == "RUNNING"
        assert seeded.post(f"{BASE}/sessions/{auction_id}/end").json()["status"] == "ENDED"

        again = seeded.post(f"{BASE}/sessions/{auction_id}/start")
        assert again.status_code == 400
        assert again.json()["error"] == "AUCTION_ALREADY_STARTED"

    def test_exit_needs_minimum_squad(self, seeded):
        auction_id = create_auction(seeded)

        response = seeded.post(f"{BASE}/sessions/{auction_id}/participants/alice/exit")

        assert response.status_code == 400
        assert response.json()["error"] == "SQUAD_TOO_SMALL_TO_EXIT"


class TestBiddingApi:
    def test_full_round_over_http(self, seeded, clock):
        auction_id = create_auction(seeded, min_player_price=0)
        start = seeded.post(f"{BASE}/sessions/{auction_id}/start").json()
        live_id = start["live_player"]["session_player_id"]
        assert start["live_player"]["player_name"] == "Virat Kohli"

        clock.advance(10)
        live = seeded.get(f"{BASE}/sessions/{auction_id}/live", params={"user_id": "alice"}).json()
        assert live["time_remaining_seconds"] == 20
        assert live["min_next_bid_amount"] == 5.5
        assert live["user_context"]["can_bid"] is True

        bid = seeded.post(
            f"{BASE}/sessions/{auction_id}/bids",
            json={"session_player_id": live_id, "user_id": "alice", "amount": 6},
        )
        assert bid.status_code == 200
        assert bid.json()["min_next_bid_amount"] == 6.5

        closed = seeded.post(f"{BASE}/sessions/{auction_id}/live/close").json()
        assert closed["result"] == "SOLD"
        assert closed["winner_user_id"] == "alice"
        assert closed["new_wallet_balance"] == 114
        assert closed["next_session_player_id"] is not None

        squad = seeded.get(f"{BASE}/sessions/{auction_id}/participants/alice/squad").json()
        assert squad["squad_size"] == 1
        assert squad["wallet"]["spent"] == 6
        assert squad["players"][0]["player_name"] == "Virat Kohli"

        history = seeded.get(f"{BASE}/sessions/{auction_id}/bids").json()
        assert [(b["user_id"], b["is_winning"]) for b in history["bids"]] == [("alice", True)]

        summary = seeded.get(f"{BASE}/sessions/{auction_id}/summary").json()
        assert summary["players"]["sold"] == 1
        assert summary["players"]["live"] == 1
        assert summary["top_spenders"] == [{"user_id": "alice", "spent": 6, "players": 1}]

    def test_low_bid_error_shape(self, seeded):
        auction_id = create_auction(seeded)
        live_id = seeded.post(f"{BASE}/sessions/{auction_id}/start").json()["live_player"]["session_player_id"]

        response = seeded.post(
            f"{BASE}/sessions/{auction_id}/bids",
            json={"session_player_id": live_id, "user_id": "alice", "amount": 5.2},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "BID_TOO_LOW"
        assert body["min_required_bid"] == 5.5

    def test_unregistered_bidder_is_403(self, seeded):
        auction_id = create_auction(seeded)
        live_id = seeded.post(f"{BASE}/sessions/{auction_id}/start").json()["live_player"]["session_player_id"]

        response = seeded.post(
            f"{BASE}/sessions/{auction_id}/bids",
            json={"session_player_id": live_id, "user_id": "mallory", "amount": 6},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "PARTICIPANT_NOT_REGISTERED"

    def test_close_without_live_player(self, seeded):
        auction_id = create_auction(seeded)

        response = seeded.post(f"{BASE}/sessions/{auction_id}/live/close")

        assert response.status_code == 400
        assert response.json()["error"] == "NO_LIVE_PLAYER"

    def test_repeated_close_for_same_round_leaves_next_round_alone(self, seeded):
        auction_id = create_auction(seeded)
        first_id = seeded.post(f"{BASE}/sessions/{auction_id}/start").json()["live_player"]["session_player_id"]
        close_url = f"{BASE}/sessions/{auction_id}/live/close"

        first = seeded.post(close_url, json={"session_player_id": first_id})
        retry = seeded.post(close_url, json={"session_player_id": first_id})

        assert first.status_code == 200
        assert retry.status_code == 400
        assert retry.json()["error"] == "NO_LIVE_PLAYER"
        live = seeded.get(f"{BASE}/sessions/{auction_id}/live").json()
        assert live["live_player"]["session_player_id"] == first.json()["next_session_player_id"]

    def test_manual_next_player(self, seeded):
        auction_id = create_auction(seeded)
        seeded.post(f"{BASE}/sessions/{auction_id}/start")
        seeded.post(f"{BASE}/sessions/{auction_id}/live/close", params={"advance": False})

        response = seeded.post(f"{BASE}/sessions/{auction_id}/next-player")

        assert response.status_code == 200
        assert response.json()["live_player"]["player_name"] == "Jasprit Bumrah"

        busy = seeded.post(f"{BASE}/sessions/{auction_id}/next-player")
        assert busy.status_code == 400
        assert busy.json()["error"] == "ROUND_IN_PROGRESS"


class TestPushRulesApi:
    def test_rule_steers_next_player(self, seeded):
        auction_id = create_auction(seeded)
        rule = seeded.post(
            f"{BASE}/sessions/{auction_id}/push-rules",
            json={"skill_type": "Allrounder", "count": 1},
        ).json()
        assert rule["priority"] == 1
        assert rule["is_active"] is True

        start = seeded.post(f"{BASE}/sessions/{auction_id}/start").json()

        assert start["live_player"]["player_name"] == "Ben Stokes"
        rules = seeded.get(f"{BASE}/sessions/{auction_id}/push-rules").json()["rules"]
        assert rules[0]["remaining_count"] == 0
        assert rules[0]["is_active"] is False

    def test_patch_and_delete(self, seeded):
        auction_id = create_auction(seeded)
        rule_id = seeded.post(
            f"{BASE}/sessions/{auction_id}/push-rules", json={"category": "Gold", "count": 2}
        ).json()["rule_id"]

        patched = seeded.patch(f"{BASE}/push-rules/{rule_id}", json={"priority": 3, "is_active": False})
        assert patched.json()["priority"] == 3
        assert patched.json()["is_active"] is False

        assert seeded.patch(f"{BASE}/push-rules/{rule_id}", json={}).status_code == 400
        assert seeded.delete(f"{BASE}/push-rules/{rule_id}").json() == {"rule_id": rule_id, "deleted": True}
        assert seeded.delete(f"{BASE}/push-rules/{rule_id}").status_code == 404

    def test_count_must_be_positive(self, seeded):
        auction_id = create_auction(seeded)
        response = seeded.post(f"{BASE}/sessions/{auction_id}/push-rules", json={"count": 0})
        assert response.status_code == 400

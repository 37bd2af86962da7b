"""Tests for API endpoints."""

from dataclasses import replace
from unittest.mock import patch

import pytest

from api.routes import game


async def _state(client, headers):
    response = await client.get("/api/game/state", headers=headers)
    assert response.status_code == 200
    return response.json()


async def _hand(client, headers):
    return await client.get("/api/game/hand", headers=headers)


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health check endpoint."""
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestNewGame:
    """Tests for opening tables."""

    @pytest.mark.asyncio
    async def test_new_game(self, client, new_table):
        headers = await new_table()
        data = await _state(client, headers)

        assert data["state"] == "IDLE"
        assert [p["name"] for p in data["players"]] == ["Ana", "Ben", "Cleo"]
        assert data["remaining_count"] == 52
        assert data["current_player"]["name"] == "Ana"
        assert data["require_authentication"] is True
        assert data["freedom_mode"] is False

    @pytest.mark.asyncio
    async def test_new_game_with_preset(self, client, new_table):
        headers = await new_table(preset="double")
        assert (await _state(client, headers))["remaining_count"] == 108

    @pytest.mark.asyncio
    async def test_new_game_with_custom_deck(self, client, new_table):
        headers = await new_table(number_of_decks=3, include_jokers=True)
        assert (await _state(client, headers))["remaining_count"] == 162

    @pytest.mark.asyncio
    async def test_new_game_needs_players(self, client):
        response = await client.post("/api/game/new", json={"players": []})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_too_many_players(self, client):
        players = [{"name": f"P{i}"} for i in range(9)]
        response = await client.post("/api/game/new", json={"players": players})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_too_few_players(self, client):
        strict = replace(game.config, table=replace(game.config.table, min_players=3))
        with patch.object(game, "config", strict):
            response = await client.post(
                "/api/game/new", json={"players": [{"name": "Ana"}, {"name": "Ben"}]}
            )
        assert response.status_code == 400
        assert response.json()["detail"] == "At least 3 players per table"

    @pytest.mark.asyncio
    async def test_authentication_default_follows_preferences(self, client, new_table):
        await client.patch("/api/preferences", json={"require_authentication": False})
        headers = await new_table()
        assert (await _state(client, headers))["require_authentication"] is False

    @pytest.mark.asyncio
    async def test_passcode_is_never_returned(self, client, new_table):
        headers = await new_table(players=[{"name": "Ana", "passcode": "2468"}, {"name": "Ben"}])
        data = await _state(client, headers)

        assert [p["has_passcode"] for p in data["players"]] == [True, False]
        assert "2468" not in str(data)

    @pytest.mark.asyncio
    async def test_missing_session_header(self, client):
        response = await client.get("/api/game/state")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_forged_session_token(self, client):
        response = await client.get("/api/game/state", headers={"X-Session-ID": "forged"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_end_game(self, client, new_table):
        headers = await new_table()
        response = await client.delete("/api/game", headers=headers)
        assert response.status_code == 200

        response = await client.get("/api/game/state", headers=headers)
        assert response.status_code == 404


class TestTurnFlow:
    """Tests for dealing and passing the device."""

    @pytest.mark.asyncio
    async def test_deal(self, client, new_table):
        headers = await new_table()
        response = await client.post("/api/game/deal", json={"cards_per_player": 7}, headers=headers)
        assert response.status_code == 200
        data = response.json()

        assert data["state"] == "IN_PROGRESS"
        assert [p["hand_count"] for p in data["players"]] == [7, 7, 7]
        assert data["remaining_count"] == 31
        assert "hand" not in data["players"][0]

    @pytest.mark.asyncio
    async def test_negative_deal_rejected(self, client, new_table):
        headers = await new_table()
        response = await client.post("/api/game/deal", json={"cards_per_player": -1}, headers=headers)
        assert response.status_code == 422

        data = await _state(client, headers)
        assert data["state"] == "IDLE"
        assert data["remaining_count"] == 52

    @pytest.mark.asyncio
    async def test_deal_all(self, client, new_table):
        headers = await new_table(players=[{"name": "Ana"}, {"name": "Ben"}])
        response = await client.post("/api/game/deal", json={"cards_per_player": "all"}, headers=headers)
        assert [p["hand_count"] for p in response.json()["players"]] == [26, 26]

    @pytest.mark.asyncio
    async def test_turns_wrap_around(self, client, new_table):
        headers = await new_table()
        indexes = []
        for _ in range(3):
            response = await client.post("/api/game/turn/next", headers=headers)
            indexes.append(response.json()["current_player_index"])
        assert indexes == [1, 2, 0]

        response = await client.post("/api/game/turn/previous", headers=headers)
        assert response.json()["current_player_index"] == 2

    @pytest.mark.asyncio
    async def test_reset(self, client, new_table):
        headers = await new_table()
        await client.post("/api/game/deal", json={"cards_per_player": 5}, headers=headers)
        await client.post("/api/game/turn/next", headers=headers)

        response = await client.post("/api/game/reset", headers=headers)
        data = response.json()
        assert data["state"] == "IDLE"
        assert data["current_player_index"] == 0
        assert data["current_player"]["name"] == "Ana"
        assert data["remaining_count"] == 52
        assert all(p["hand_count"] == 0 for p in data["players"])


class TestPrivacyGate:
    """Tests for authentication and hand visibility over HTTP."""

    @pytest.mark.asyncio
    async def test_hand_hidden_until_authenticated(self, client, new_table):
        headers = await new_table(players=[{"name": "Ana", "passcode": "2468"}, {"name": "Ben"}])
        await client.post("/api/game/deal", json={"cards_per_player": 5}, headers=headers)

        assert (await _hand(client, headers)).status_code == 403

        response = await client.post(
            "/api/game/authenticate",
            headers={**headers, "X-Player-Passcode": "2468"},
        )
        assert response.json() == {"granted": True, "hand_revealed": True}

        hand = await _hand(client, headers)
        assert hand.status_code == 200
        assert len(hand.json()["cards"]) == 5

    @pytest.mark.asyncio
    async def test_wrong_passcode(self, client, new_table):
        headers = await new_table(players=[{"name": "Ana", "passcode": "2468"}])
        await client.post("/api/game/deal", json={"cards_per_player": 5}, headers=headers)

        response = await client.post(
            "/api/game/authenticate",
            headers={**headers, "X-Player-Passcode": "0000"},
        )
        assert response.json() == {"granted": False, "hand_revealed": False}
        assert (await _hand(client, headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_player_without_passcode_fails_open(self, client, new_table):
        headers = await new_table()
        await client.post("/api/game/deal", json={"cards_per_player": 5}, headers=headers)

        response = await client.post("/api/game/authenticate", headers=headers)
        assert response.json()["granted"] is True
        assert (await _hand(client, headers)).status_code == 200

    @pytest.mark.asyncio
    async def test_next_turn_hides_hand(self, client, new_table):
        headers = await new_table()
        await client.post("/api/game/deal", json={"cards_per_player": 5}, headers=headers)
        await client.post("/api/game/authenticate", headers=headers)

        response = await client.post("/api/game/turn/next", headers=headers)
        assert response.json()["hand_revealed"] is False
        assert (await _hand(client, headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_hide_and_visibility(self, client, new_table):
        headers = await new_table(require_authentication=False)
        await client.post("/api/game/deal", json={"cards_per_player": 5}, headers=headers)
        await client.post("/api/game/authenticate", headers=headers)

        response = await client.post("/api/game/visibility", json={"still_visible": True}, headers=headers)
        assert response.json()["hand_revealed"] is True

        response = await client.post("/api/game/visibility", json={"still_visible": False}, headers=headers)
        assert response.json()["hand_revealed"] is False

        await client.post("/api/game/authenticate", headers=headers)
        response = await client.post("/api/game/hide", headers=headers)
        assert response.json()["hand_revealed"] is False


class TestTablePlay:
    """Tests for per-player card moves."""

    async def _dealt_table(self, client, new_table, **body):
        headers = await new_table(require_authentication=False, **body)
        response = await client.post("/api/game/deal", json={"cards_per_player": 5}, headers=headers)
        players = [p["id"] for p in response.json()["players"]]
        await client.post("/api/game/authenticate", headers=headers)
        cards = (await _hand(client, headers)).json()["cards"]
        return headers, players, cards

    @pytest.mark.asyncio
    async def test_draw(self, client, new_table):
        headers, players, _ = await self._dealt_table(client, new_table)
        response = await client.post(
            f"/api/game/players/{players[0]}/draw", json={"count": 2}, headers=headers
        )
        assert response.json() == {"drawn": 2, "remaining_count": 52 - 15 - 2}

    @pytest.mark.asyncio
    async def test_draw_out_of_turn(self, client, new_table):
        headers, players, _ = await self._dealt_table(client, new_table)
        response = await client.post(f"/api/game/players/{players[1]}/draw", json={}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Not this player's turn"

    @pytest.mark.asyncio
    async def test_freedom_mode_draw_out_of_turn(self, client, new_table):
        headers, players, _ = await self._dealt_table(client, new_table, freedom_mode=True)
        response = await client.post(f"/api/game/players/{players[1]}/draw", json={}, headers=headers)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_draw_before_deal(self, client, new_table):
        headers = await new_table()
        players = (await _state(client, headers))["players"]
        response = await client.post(f"/api/game/players/{players[0]['id']}/draw", json={}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "No game in progress"

    @pytest.mark.asyncio
    async def test_discard_and_take_back(self, client, new_table):
        headers, players, cards = await self._dealt_table(client, new_table)
        card = cards[0]

        response = await client.post(
            f"/api/game/players/{players[0]}/discard", json={"card_id": card["id"]}, headers=headers
        )
        data = response.json()
        assert data["discard_count"] == 1
        assert data["top_discard_card"]["id"] == card["id"]
        assert data["players"][0]["hand_count"] == 4

        response = await client.post(f"/api/game/players/{players[0]}/take-discard", headers=headers)
        assert response.json()["discard_count"] == 0
        assert response.json()["players"][0]["hand_count"] == 5

    @pytest.mark.asyncio
    async def test_take_from_empty_discard(self, client, new_table):
        headers, players, _ = await self._dealt_table(client, new_table)
        response = await client.post(f"/api/game/players/{players[0]}/take-discard", headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Discard pile is empty"

    @pytest.mark.asyncio
    async def test_pass_card(self, client, new_table):
        headers, players, cards = await self._dealt_table(client, new_table)
        response = await client.post(
            f"/api/game/players/{players[0]}/pass",
            json={"to_player_id": players[2], "card_id": cards[-1]["id"]},
            headers=headers,
        )
        assert [p["hand_count"] for p in response.json()["players"]] == [4, 5, 6]

    @pytest.mark.asyncio
    async def test_reclaim(self, client, new_table):
        headers, players, cards = await self._dealt_table(client, new_table)
        for card in cards[:3]:
            await client.post(
                f"/api/game/players/{players[0]}/discard", json={"card_id": card["id"]}, headers=headers
            )

        response = await client.post("/api/game/reclaim", json={"shuffle": True}, headers=headers)
        data = response.json()
        assert data["discard_count"] == 0
        assert data["remaining_count"] == 52 - 15 + 3

    @pytest.mark.asyncio
    async def test_sort_hand(self, client, new_table):
        headers, players, _ = await self._dealt_table(client, new_table)
        await client.post(f"/api/game/players/{players[0]}/sort", json={"by": "value"}, headers=headers)
        await client.post("/api/game/authenticate", headers=headers)
        cards = (await _hand(client, headers)).json()["cards"]
        order = "2 3 4 5 6 7 8 9 10 J Q K A JOKER".split()
        ranks = [order.index(c["rank"]) for c in cards]
        assert ranks == sorted(ranks)

    @pytest.mark.asyncio
    async def test_unknown_player(self, client, new_table):
        headers, _, _ = await self._dealt_table(client, new_table)
        response = await client.post(
            "/api/game/players/00000000-0000-0000-0000-000000000000/draw", json={}, headers=headers
        )
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_deal_empty_table_conflicts(client, new_table):
    """Invalid state errors map to 409."""
    from core.game import PassAndPlayCoordinator

    headers = await new_table()
    session_id = next(iter(game._tables))
    game._tables[session_id] = PassAndPlayCoordinator()

    response = await client.post("/api/game/deal", json={"cards_per_player": 5}, headers=headers)
    assert response.status_code == 409

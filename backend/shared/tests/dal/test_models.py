"""Tests for DAL persistence models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from shared.dal.models import Card, Difficulty, Game, GamePhase, Player, TimelineEntry, TurnState

_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


class TestCard:
    def test_defaults(self):
        card = Card(id="c1", name="Sputnik", chronological_value=1957)
        assert card.difficulty == Difficulty.MEDIUM
        assert card.image_url is None

    def test_dumps_camel_case(self):
        card = Card(id="c1", name="Sputnik", chronological_value=1957)
        assert card.model_dump(by_alias=True)["chronologicalValue"] == 1957

    def test_accepts_both_key_styles(self):
        snake = Card.model_validate({"id": "c1", "name": "A", "chronological_value": 1})
        camel = Card.model_validate({"id": "c1", "name": "A", "chronologicalValue": 1})
        assert snake == camel

    def test_frozen(self):
        card = Card(id="c1", name="Sputnik", chronological_value=1957)
        with pytest.raises(ValidationError):
            card.name = "Vostok"


class TestGame:
    def test_new_game_state(self):
        game = Game(id="g1", room_code="ABC123", created_at=_NOW, updated_at=_NOW)
        assert game.phase == GamePhase.WAITING
        assert game.state == {"currentTurn": 0, "round": 1, "maxRounds": 5}

    def test_state_blob_not_shared(self):
        a = Game(id="g1", room_code="A", created_at=_NOW, updated_at=_NOW)
        b = Game(id="g2", room_code="B", created_at=_NOW, updated_at=_NOW)
        a.state["round"] = 2
        assert b.state["round"] == 1


class TestTimelineEntry:
    def test_chronological_value_comes_from_card(self):
        entry = TimelineEntry(
            id="t1",
            game_id="g1",
            card_id="c1",
            position=0,
            placed_at=_NOW,
            card=Card(id="c1", name="Pyramid", chronological_value=-2560),
        )
        assert entry.chronological_value == -2560


class TestTurnState:
    def test_advance_to(self):
        player = Player(id="p2", game_id="g1", name="Bob", created_at=_NOW)
        state = TurnState(current_player_id="p1", current_player_name="Ann", turn_order=("p1", "p2"), turn_number=5)

        advanced = state.advance_to(player)

        assert advanced.current_player_id == "p2"
        assert advanced.current_player_name == "Bob"
        assert advanced.turn_number == 6
        assert advanced.turn_order == state.turn_order
        assert state.turn_number == 5

    def test_camel_case_round_trip(self):
        state = TurnState(current_player_id="p1", turn_order=("p1",))
        dumped = state.model_dump(mode="json", by_alias=True)

        assert dumped == {
            "currentPlayerId": "p1",
            "currentPlayerName": None,
            "turnOrder": ["p1"],
            "turnNumber": 1,
        }
        assert TurnState.model_validate(dumped) == state

"""Card distribution: dealing hands, drawing replacements, tracking supply."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.logic.exceptions import DeckOperationError, InvalidActionError, PlayerNotFoundError
from shared.dal.errors import StorageError

if TYPE_CHECKING:
    from game.logic.rng import GameRng
    from shared.dal.models import Card, Player
    from shared.dal.store import DataStore

logger = structlog.get_logger()


class DeckManager:
    """Moves cards between the catalog and player hands.

    Mutations wrap storage failures in DeckOperationError. The status
    accessors (has_player_won, remaining_cards_count) fall back to False/0.
    """

    def __init__(self, store: DataStore, rng: GameRng) -> None:
        self._store = store
        self._rng = rng

    async def deal_initial_cards(self, game_id: str, cards_per_player: int) -> dict[str, list[str]]:
        """Shuffle the unplaced catalog and give each player the next cards_per_player cards.

        Chunks are handed out in join order. When the catalog runs short the
        later players get a shorter or empty hand. Returns player id -> hand.
        """
        if cards_per_player <= 0:
            raise InvalidActionError(f"cards_per_player must be positive, got {cards_per_player}")
        try:
            async with self._store.transaction():
                players = await self._store.players.get_by_game_id(game_id)
                catalog = await self._store.cards.get_all()
                placed = {entry.card_id for entry in await self._store.timeline.get_by_game_id(game_id)}
                deck = self._rng.shuffle([card.id for card in catalog if card.id not in placed])

                needed = len(players) * cards_per_player
                if len(deck) < needed:
                    logger.warning("catalog too small for a full deal", game_id=game_id, needed=needed, available=len(deck))

                hands: dict[str, list[str]] = {}
                for index, player in enumerate(players):
                    hand = deck[index * cards_per_player : (index + 1) * cards_per_player]
                    await self._store.players.update_hand(player.id, hand)
                    hands[player.id] = hand
        except StorageError as exc:
            raise DeckOperationError("Failed to deal initial cards") from exc
        logger.info("dealt initial cards", game_id=game_id, players=len(hands), cards_per_player=cards_per_player)
        return hands

    async def draw_card_for_player(self, player_id: str) -> Card | None:
        """Append a random card the player does not hold and the timeline does not show.

        Returns None when no such card is left.
        """
        try:
            async with self._store.transaction():
                player = await self._require_player(player_id)
                placed = await self._store.timeline.get_by_game_id(player.game_id)
                used = set(player.hand_cards) | {entry.card_id for entry in placed}
                available = [card for card in await self._store.cards.get_all() if card.id not in used]
                if not available:
                    logger.info("deck exhausted", game_id=player.game_id, player_id=player_id)
                    return None
                card = self._rng.choice(available)
                await self._store.players.update_hand(player_id, [*player.hand_cards, card.id])
        except StorageError as exc:
            raise DeckOperationError("Failed to draw card") from exc
        logger.debug("drew card", player_id=player_id, card_id=card.id)
        return card

    async def remove_card_from_hand(self, player_id: str, card_id: str) -> Player:
        """Drop card_id from the hand; a card that is not there is left alone."""
        try:
            player = await self._require_player(player_id)
            if card_id not in player.hand_cards:
                return player
            hand = [held for held in player.hand_cards if held != card_id]
            return await self._store.players.update_hand(player_id, hand)
        except StorageError as exc:
            raise DeckOperationError("Failed to remove card from hand") from exc

    async def get_player_hand(self, player_id: str) -> list[Card]:
        try:
            player = await self._require_player(player_id)
            return await self._store.cards.get_by_ids(player.hand_cards)
        except StorageError as exc:
            raise DeckOperationError("Failed to get player hand") from exc

    async def has_player_won(self, player_id: str) -> bool:
        try:
            player = await self._store.players.get_by_id(player_id)
        except Exception:
            logger.warning("could not check win condition", player_id=player_id, exc_info=True)
            return False
        return player is not None and not player.hand_cards

    async def remaining_cards_count(self, game_id: str) -> int:
        """Catalog cards neither held by any player of the game nor on its timeline."""
        try:
            total = await self._store.cards.count()
            players = await self._store.players.get_by_game_id(game_id)
            placed = await self._store.timeline.get_by_game_id(game_id)
        except Exception:
            logger.warning("could not count remaining cards", game_id=game_id, exc_info=True)
            return 0
        used = {card_id for player in players for card_id in player.hand_cards}
        used.update(entry.card_id for entry in placed)
        return max(0, total - len(used))

    async def _require_player(self, player_id: str) -> Player:
        player = await self._store.players.get_by_id(player_id)
        if player is None:
            raise PlayerNotFoundError(f"Player '{player_id}' not found")
        return player

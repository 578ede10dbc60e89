from __future__ import annotations

import contextlib
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from game.logic.exceptions import ConflictError, GameError, InvalidActionError, NotFoundError, WrongTurnError
from game.logic.rng import GameRng
from game.logic.service import TimelineGameService
from game.logic.settings import GameSettings
from game.logic.types import PlacementOutcome, RejectionReason
from game.server.settings import ServerSettings
from game.server.types import CreateGameRequest, JoinGameRequest, PlacementRequest
from game.session.locks import GameLockRegistry
from game.session.reaper import InactiveGameReaper
from shared.db.seed import seed_card_catalog
from shared.logging import setup_logging
from shared.storage import create_data_store

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request

    from shared.dal.models import Game, GameWithPlayers, Player
    from shared.dal.store import DataStore

_MAX_REQUEST_BODY_SIZE = 4096

_ERROR_STATUS: tuple[tuple[type[GameError], int], ...] = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidActionError, 400),
)


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _public_player(player: Player) -> dict[str, Any]:
    """Player as seen by everyone in the room: hand size only, never the cards."""
    payload = _dump(player)
    del payload["handCards"]
    payload["handSize"] = len(player.hand_cards)
    return payload


def _public_game(game: Game | GameWithPlayers) -> dict[str, Any]:
    payload = _dump(game)
    players = getattr(game, "players", None)
    if players is not None:
        payload["players"] = [_public_player(p) for p in players]
    return payload


async def _parse_body[T: BaseModel](request: Request, model: type[T]) -> T:
    raw_body = await request.body()
    if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
        raise InvalidActionError("Request body too large")
    try:
        return model.model_validate(json.loads(raw_body))
    except (ValueError, TypeError, json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:  # fmt: skip
        raise InvalidActionError("Invalid request body") from exc


def _service(request: Request) -> TimelineGameService:
    return request.app.state.service


async def game_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    for error_cls, status_code in _ERROR_STATUS:
        if isinstance(exc, error_cls):
            return JSONResponse({"error": str(exc)}, status_code=status_code)
    logger.error("game operation failed", error=str(exc), error_type=type(exc).__name__, exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


async def health(request: Request) -> JSONResponse:
    store: DataStore = request.app.state.store
    return JSONResponse(
        {
            "status": "ok",
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "store": type(store).__name__,
        },
    )


async def create_game(request: Request) -> JSONResponse:
    body = await _parse_body(request, CreateGameRequest)
    game, player = await _service(request).create_game(body.player_name, body.max_players)
    return JSONResponse({"game": _public_game(game), "player": _dump(player)}, status_code=201)


async def join_game(request: Request) -> JSONResponse:
    body = await _parse_body(request, JoinGameRequest)
    service = _service(request)
    game, player = await service.join_game(body.room_code, body.player_name)
    room = await service.get_game(game.room_code)
    return JSONResponse({"game": _public_game(room), "player": _dump(player)})


async def get_game(request: Request) -> JSONResponse:
    snapshot = await _service(request).get_snapshot(request.path_params["room_code"])
    return JSONResponse({"game": _public_game(snapshot)})


async def start_game(request: Request) -> JSONResponse:
    state = await _service(request).start_game(request.path_params["room_code"])
    return JSONResponse({"turnState": _dump(state)})


async def place_card(request: Request) -> JSONResponse:
    body = await _parse_body(request, PlacementRequest)
    service = _service(request)
    game = await service.resolve_game(request.path_params["room_code"])
    try:
        outcome = await service.attempt_placement(game.id, body.player_id, body.card_id, body.position)
    except WrongTurnError as exc:
        outcome = PlacementOutcome(success=False, reason=RejectionReason.WRONG_TURN, message=str(exc))
    return JSONResponse(_dump(outcome))


async def get_turn(request: Request) -> JSONResponse:
    service = _service(request)
    game = await service.resolve_game(request.path_params["room_code"])
    info = await service.turn_info(game.id)
    return JSONResponse(
        {
            "currentPlayer": _public_player(info.current_player) if info.current_player else None,
            "turnOrder": [_public_player(p) for p in info.turn_order],
            "turnNumber": info.turn_number,
            "isGameOver": info.is_game_over,
            "remainingCards": await service.remaining_cards(game.id),
        },
    )


async def get_timeline(request: Request) -> JSONResponse:
    timeline = await _service(request).get_timeline(request.path_params["room_code"])
    return JSONResponse({"timeline": [_dump(entry) for entry in timeline]})


async def get_stats(request: Request) -> JSONResponse:
    service = _service(request)
    game = await service.resolve_game(request.path_params["room_code"])
    return JSONResponse(_dump(await service.timeline_stats(game.id)))


async def get_hand(request: Request) -> JSONResponse:
    cards = await _service(request).get_player_hand(request.path_params["player_id"])
    return JSONResponse({"cards": [_dump(card) for card in cards]})


async def get_hint(request: Request) -> JSONResponse:
    return JSONResponse({"hint": await _service(request).hint(request.path_params["card_id"])})


def create_app(
    settings: ServerSettings | None = None,
    service: TimelineGameService | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ServerSettings()

    # When the app creates its own service, it owns the store lifecycle.
    owned_store = service is None
    if service is None:
        store = create_data_store(use_memory=settings.use_memory_store, database_path=settings.database_path)
        service = TimelineGameService(
            store,
            locks=GameLockRegistry(),
            settings=GameSettings(inactive_game_hours=settings.inactive_game_hours),
            rng=GameRng(settings.seed),
        )
    else:
        store = service.store

    reaper = InactiveGameReaper(service, interval_seconds=settings.cleanup_interval_seconds)
    catalog_path = Path(settings.card_catalog_path) if settings.card_catalog_path else None

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await seed_card_catalog(store, catalog_path)
        reaper.start()
        try:
            yield
        finally:
            await reaper.stop()
            if owned_store:
                await store.close()

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/api/games", create_game, methods=["POST"]),
        Route("/api/games/join", join_game, methods=["POST"]),
        Route("/api/games/{room_code}", get_game, methods=["GET"]),
        Route("/api/games/{room_code}/start", start_game, methods=["POST"]),
        Route("/api/games/{room_code}/placements", place_card, methods=["POST"]),
        Route("/api/games/{room_code}/turn", get_turn, methods=["GET"]),
        Route("/api/games/{room_code}/timeline", get_timeline, methods=["GET"]),
        Route("/api/games/{room_code}/stats", get_stats, methods=["GET"]),
        Route("/api/players/{player_id}/hand", get_hand, methods=["GET"]),
        Route("/api/cards/{card_id}/hint", get_hint, methods=["GET"]),
    ]

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={GameError: game_error_handler},
    )
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.store = store
    app.state.service = service
    app.state.reaper = reaper

    logger.info("game server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover  # deadcode: ignore
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = ServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)

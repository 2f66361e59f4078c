from __future__ import annotations

import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError as ModelValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from game.logic.content import load_content
from game.logic.enums import GameKind, is_known_bucket
from game.logic.state import SessionSummary
from game.server.settings import ArcadeServerSettings
from game.settlement.leaderboard import LeaderboardAggregator
from game.settlement.models import SubmissionErrorCode
from game.settlement.service import ScoreStore
from shared.dal.exceptions import NotFoundError
from shared.db import Database, SqliteProfileRepository, SqliteScoreRepository
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request

    from game.logic.content import GameContent


_MAX_REQUEST_BODY_SIZE = 4096
_GAME_SLUGS = frozenset(g.value for g in GameKind)

_ERROR_STATUS = {
    SubmissionErrorCode.NOT_FOUND: 404,
    SubmissionErrorCode.PERSISTENCE: 503,
    SubmissionErrorCode.REJECTED: 400,
}


async def health(request: Request) -> JSONResponse:
    content: GameContent = request.app.state.content
    return JSONResponse(
        {
            "status": "ok",
            "content": {
                "wordfall_words": len(content.wordfall.translations),
                "verbs": len(content.verbs),
                "enigma_targets": sum(len(w) for w in content.enigma.target_words.values()),
            },
        },
    )


async def submit_score(request: Request) -> JSONResponse:
    score_store: ScoreStore = request.app.state.score_store

    try:
        raw_body = await request.body()
        if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
            return JSONResponse({"success": False, "error": "Request body too large"}, status_code=413)
        summary = SessionSummary.model_validate(json.loads(raw_body))
    except (ValueError, TypeError, UnicodeDecodeError, ModelValidationError):  # fmt: skip
        return JSONResponse({"success": False, "error": "Invalid request body"}, status_code=422)

    response = await score_store.submit(summary)
    status_code = 200 if response.success else _ERROR_STATUS.get(response.error_code, 400)
    return JSONResponse(response.model_dump(mode="json", exclude_none=True), status_code=status_code)


def _parse_limit(request: Request) -> int | None:
    settings: ArcadeServerSettings = request.app.state.settings
    raw = request.query_params.get("limit")
    if raw is None:
        return settings.leaderboard_size
    try:
        limit = int(raw)
    except ValueError:
        return None
    if limit < 1:
        return None
    return min(limit, settings.leaderboard_max_size)


async def bucket_leaderboard(request: Request) -> JSONResponse:
    leaderboard: LeaderboardAggregator = request.app.state.leaderboard
    game = request.path_params["game"]
    bucket = request.path_params["bucket"]
    if not is_known_bucket(game, bucket):
        return JSONResponse({"error": f"Unknown game/bucket '{game}/{bucket}'"}, status_code=404)
    limit = _parse_limit(request)
    if limit is None:
        return JSONResponse({"error": "limit must be a positive integer"}, status_code=400)

    entries = await leaderboard.get_top_n(game, bucket, limit)
    return JSONResponse(
        {"game": game, "bucket": bucket, "entries": [e.model_dump(mode="json") for e in entries]},
    )


async def game_leaderboards(request: Request) -> JSONResponse:
    leaderboard: LeaderboardAggregator = request.app.state.leaderboard
    game = request.path_params["game"]
    limit = _parse_limit(request)
    if limit is None:
        return JSONResponse({"error": "limit must be a positive integer"}, status_code=400)
    try:
        boards = await leaderboard.get_all_buckets(game, limit)
    except NotFoundError as e:
        return JSONResponse({"error": str(e)}, status_code=404)
    return JSONResponse(
        {
            "game": game,
            "buckets": {bucket: [e.model_dump(mode="json") for e in entries] for bucket, entries in boards.items()},
        },
    )


async def personal_bests(request: Request) -> JSONResponse:
    leaderboard: LeaderboardAggregator = request.app.state.leaderboard
    game = request.path_params["game"]
    user_id = request.path_params["user_id"]
    if game not in _GAME_SLUGS:
        return JSONResponse({"error": f"Unknown game '{game}'"}, status_code=404)
    records = await leaderboard.get_personal_bests(user_id, game)
    return JSONResponse(
        {"game": game, "user_id": user_id, "records": [r.model_dump(mode="json") for r in records]},
    )


def create_app(
    settings: ArcadeServerSettings | None = None,
    score_store: ScoreStore | None = None,
    leaderboard: LeaderboardAggregator | None = None,
    content: GameContent | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ArcadeServerSettings()

    # When the app creates its own repositories, it owns the DB lifecycle.
    owned_db: Database | None = None

    if score_store is None or leaderboard is None:
        db = Database(settings.database_path)
        db.connect()
        owned_db = db
        score_repository = SqliteScoreRepository(db)
        if score_store is None:
            score_store = ScoreStore(score_repository)
        if leaderboard is None:
            leaderboard = LeaderboardAggregator(score_repository, SqliteProfileRepository(db))

    if content is None:
        content = load_content(Path(settings.content_dir) if settings.content_dir else None)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/api/scores", submit_score, methods=["POST"]),
        Route("/api/leaderboard/{game}", game_leaderboards, methods=["GET"]),
        Route("/api/leaderboard/{game}/{bucket}", bucket_leaderboard, methods=["GET"]),
        Route("/api/personal-bests/{game}/{user_id}", personal_bests, methods=["GET"]),
    ]

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        if owned_db is not None:
            owned_db.close()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.score_store = score_store
    app.state.leaderboard = leaderboard
    app.state.content = content

    logger.info("arcade server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover  # deadcode: ignore
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = ArcadeServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)

import random

import pytest

from game.logic.content import GameContent
from game.settlement.leaderboard import LeaderboardAggregator
from game.settlement.service import ScoreStore
from game.tests.helpers.content import game_content
from shared.db import Database, SqliteProfileRepository, SqliteScoreRepository


@pytest.fixture
def content() -> GameContent:
    return game_content()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "arcade.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def score_repository(db):
    return SqliteScoreRepository(db)


@pytest.fixture
def profile_repository(db):
    return SqliteProfileRepository(db)


@pytest.fixture
def score_store(score_repository):
    return ScoreStore(score_repository)


@pytest.fixture
def leaderboard(score_repository, profile_repository):
    return LeaderboardAggregator(score_repository, profile_repository)

"""End-to-end tests of the score submission and leaderboard HTTP API."""

import pytest
from starlette.testclient import TestClient

from game.server.app import create_app
from game.server.settings import ArcadeServerSettings
from shared.dal.models import PlayerProfile


def _summary(**overrides) -> dict:
    data = {
        "session_id": "s1",
        "user_id": "u1",
        "game": "wordfall",
        "bucket": "easy",
        "mode": "exact",
        "score": 120,
        "secondary_metric": 10,
        "duration_ms": 45_000,
    }
    data.update(overrides)
    return data


@pytest.fixture
def settings(tmp_path):
    return ArcadeServerSettings(database_path=str(tmp_path / "arcade.db"), leaderboard_size=3, leaderboard_max_size=5)


@pytest.fixture
def client(settings, score_store, leaderboard, db, content):
    for user_id in ("u1", "u2"):
        db.connection.execute("INSERT INTO wallets (user_id) VALUES (?)", (user_id,))
    profile = PlayerProfile(user_id="u1", display_name="Ada")
    db.connection.execute(
        "INSERT INTO profiles (id, display_name, data) VALUES (?, ?, ?)",
        (profile.user_id, profile.display_name, profile.model_dump_json()),
    )
    app = create_app(settings=settings, score_store=score_store, leaderboard=leaderboard, content=content)
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    def test_reports_content(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["content"]["verbs"] == 3


class TestSubmitScore:
    def test_success(self, client):
        response = client.post("/api/scores", json=_summary())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["is_new_personal_best"] is True
        assert body["personal_best"] == 120
        assert body["rewards"] == {"xp_earned": 82, "gold_earned": 16}
        assert "error" not in body

    def test_repeated_session_is_a_duplicate(self, client):
        client.post("/api/scores", json=_summary())

        response = client.post("/api/scores", json=_summary())

        assert response.status_code == 200
        assert response.json()["is_duplicate"] is True

    def test_session_of_another_user(self, client):
        client.post("/api/scores", json=_summary(user_id="u1"))

        response = client.post("/api/scores", json=_summary(user_id="u2", score=30))

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "rejected"
        assert "personal_best" not in body

    def test_not_a_personal_best(self, client):
        client.post("/api/scores", json=_summary(session_id="a", score=100))

        response = client.post("/api/scores", json=_summary(session_id="b", score=40))

        body = response.json()
        assert body["success"] is True
        assert body["is_new_personal_best"] is False
        assert body["personal_best"] == 100

    def test_unknown_user(self, client):
        response = client.post("/api/scores", json=_summary(user_id="ghost"))

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error_code"] == "not_found"

    def test_unknown_bucket(self, client):
        response = client.post("/api/scores", json=_summary(bucket="medium"))
        assert response.status_code == 404

    @pytest.mark.parametrize(
        "body",
        [
            b"not json",
            b"[1, 2]",
            b'{"user_id": "u1"}',
            b'{"user_id": "u1", "game": "wordfall", "bucket": "easy", "score": -5}',
        ],
    )
    def test_invalid_body(self, client, body):
        response = client.post("/api/scores", content=body, headers={"Content-Type": "application/json"})

        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_oversized_body(self, client):
        response = client.post("/api/scores", content=b"x" * 5000)
        assert response.status_code == 413


class TestLeaderboardRoutes:
    def _seed(self, client):
        client.post("/api/scores", json=_summary(session_id="a", user_id="u1", score=50))
        client.post("/api/scores", json=_summary(session_id="b", user_id="u2", score=80))
        client.post("/api/scores", json=_summary(session_id="c", user_id="u1", bucket="hard", score=30))

    def test_bucket_leaderboard(self, client):
        self._seed(client)

        response = client.get("/api/leaderboard/wordfall/easy")

        assert response.status_code == 200
        entries = response.json()["entries"]
        assert [(e["rank"], e["user_id"], e["score"]) for e in entries] == [(1, "u2", 80), (2, "u1", 50)]
        assert entries[0]["display_name"] == "Unknown"
        assert entries[1]["display_name"] == "Ada"

    def test_limit(self, client):
        self._seed(client)
        response = client.get("/api/leaderboard/wordfall/easy?limit=1")
        assert [e["user_id"] for e in response.json()["entries"]] == ["u2"]

    @pytest.mark.parametrize("limit", ["0", "-2", "abc"])
    def test_invalid_limit(self, client, limit):
        response = client.get(f"/api/leaderboard/wordfall/easy?limit={limit}")
        assert response.status_code == 400

    def test_unknown_bucket(self, client):
        assert client.get("/api/leaderboard/wordfall/medium").status_code == 404

    def test_all_buckets(self, client):
        self._seed(client)

        response = client.get("/api/leaderboard/wordfall")

        assert response.status_code == 200
        buckets = response.json()["buckets"]
        assert set(buckets) == {"easy", "hard"}
        assert [e["user_id"] for e in buckets["hard"]] == ["u1"]

    def test_all_buckets_unknown_game(self, client):
        assert client.get("/api/leaderboard/tetris").status_code == 404

    def test_personal_bests(self, client):
        self._seed(client)

        response = client.get("/api/personal-bests/wordfall/u1")

        assert response.status_code == 200
        records = response.json()["records"]
        assert [(r["bucket"], r["score"]) for r in records] == [("easy", 50), ("hard", 30)]

    def test_personal_bests_unknown_game(self, client):
        assert client.get("/api/personal-bests/tetris/u1").status_code == 404


class TestOwnedDatabase:
    def test_app_opens_and_closes_its_own_database(self, settings, content):
        app = create_app(settings=settings, content=content)

        with TestClient(app) as test_client:
            assert test_client.get("/api/leaderboard/wordfall/easy").json()["entries"] == []

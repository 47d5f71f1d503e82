"""Tests for the Fixture Mirror HTTP API."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from fixture_mirror.config import GithubConfig
from fixture_mirror.github import GithubError, MissingInputError, SuggestionsService
from fixture_mirror.mirror import (
    RefreshResult,
    RepositoryRegistry,
    SyncError,
    SyncOrchestrator,
)
from fixture_mirror.server.app import create_app


@pytest.fixture
def orchestrator(mirror_config):
    registry = RepositoryRegistry([{"id": "github/acme/widgets", "folder": "tests"}])
    return SyncOrchestrator.from_config(mirror_config, registry=registry)


@pytest.fixture
def suggestions():
    return SuggestionsService(GithubConfig(repo="acme/widgets", access_token="secret"))


@pytest.fixture
def client(mirror_config, orchestrator, suggestions):
    app = create_app(
        config=mirror_config, orchestrator=orchestrator, suggestions=suggestions
    )
    return TestClient(app)


class TestRepositoryEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_list_repositories(self, client):
        response = client.get("/api/repositories")

        assert response.status_code == 200
        assert response.json() == [
            {
                "provider": "github",
                "owner": "acme",
                "name": "widgets",
                "reference_override": None,
                "fixture_folder": "tests",
            }
        ]

    def test_repository_identity(self, client):
        response = client.get("/api/repository/github/acme/widgets")

        assert response.json() == {"owner": "acme", "repo": "widgets"}

    def test_tests_streams_snapshot(self, client, mirror_root):
        snapshot_dir = mirror_root / "github" / "acme" / "widgets"
        snapshot_dir.mkdir(parents=True)
        (snapshot_dir / "tests.json").write_text('[{"id":"a.txt","content":"hello"}]')

        response = client.get("/api/repository/github/acme/widgets/tests")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.json() == [{"id": "a.txt", "content": "hello"}]

    def test_tests_before_first_refresh_is_404(self, client):
        response = client.get("/api/repository/github/acme/widgets/tests")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "NotFoundError"

    def test_untracked_repository_is_404(self, client):
        response = client.get("/api/repository/github/acme/gadgets/tests")

        assert response.status_code == 404
        assert response.json()["detail"] == {
            "provider": "github",
            "owner": "acme",
            "name": "gadgets",
        }

    def test_refresh_returns_duration_and_repository(self, client, orchestrator):
        descriptor = orchestrator.lookup("github", "acme", "widgets")
        result = RefreshResult(duration_ms=42, descriptor=descriptor)

        with patch.object(
            orchestrator, "refresh", AsyncMock(return_value=result)
        ) as refresh:
            response = client.get("/api/repository/github/acme/widgets/refresh")

        assert response.status_code == 200
        body = response.json()
        assert body["refresh"] == 42
        assert body["repository"]["name"] == "widgets"
        refresh.assert_awaited_once_with(descriptor)

    def test_refresh_failure_is_500_with_error(self, client, orchestrator):
        error = SyncError("Failed to fetch origin", stage="fetch", details="timeout")

        with patch.object(orchestrator, "refresh", AsyncMock(side_effect=error)):
            response = client.get("/api/repository/github/acme/widgets/refresh")

        assert response.status_code == 500
        assert response.json()["detail"] == {
            "error": "SyncError",
            "message": "Failed to fetch origin",
            "stage": "fetch",
            "details": "timeout",
        }

    def test_untracked_refresh_never_syncs(self, client, orchestrator):
        with patch.object(orchestrator, "refresh", AsyncMock()) as refresh:
            response = client.get("/api/repository/github/acme/gadgets/refresh")

        assert response.status_code == 404
        refresh.assert_not_awaited()


class TestSuggestionEndpoint:
    def test_creates_pull_request(self, client, suggestions):
        with patch.object(
            suggestions,
            "create_pull_request",
            AsyncMock(return_value={"number": 7}),
        ) as create:
            response = client.post(
                "/api/suggestions",
                json={"title": "t", "description": "d", "state": "k: v"},
            )

        assert response.status_code == 200
        assert response.json() == {"number": 7}
        suggestion, committer = create.await_args.args
        assert suggestion.state == "k: v"
        assert committer is None

    def test_missing_input(self, client, suggestions):
        with patch.object(
            suggestions,
            "create_pull_request",
            AsyncMock(side_effect=MissingInputError("Missing input")),
        ):
            response = client.post("/api/suggestions", json={"title": "t"})

        assert response.status_code == 500
        assert response.json()["detail"] == {"error": "Missing input"}

    def test_github_failure(self, client, suggestions):
        error = GithubError('Not able to retrieve reference "master"', details="404")

        with patch.object(
            suggestions, "create_pull_request", AsyncMock(side_effect=error)
        ):
            response = client.post(
                "/api/suggestions",
                json={"title": "t", "description": "d", "state": "s"},
            )

        assert response.status_code == 500
        assert response.json()["detail"]["message"] == (
            'Not able to retrieve reference "master"'
        )


def test_create_app_loads_registry_from_config(mirror_config, mirror_root):
    mirror_root.mkdir(parents=True)
    (mirror_root / "repositories.yaml").write_text("- id: github/acme/widgets\n")

    client = TestClient(create_app(config=mirror_config))
    response = client.get("/api/repositories")

    assert [entry["name"] for entry in response.json()] == ["widgets"]


def test_cors_headers(client):
    response = client.get("/health", headers={"Origin": "http://localhost:3000"})

    assert response.headers["access-control-allow-origin"] == "*"
    assert json.loads(response.content) == {"status": "ok"}

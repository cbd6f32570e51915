"""Tests for /diffs/latest, /health and /repo."""

import pytest
from fastapi.testclient import TestClient

from diffgate.api.app import create_app
from diffgate.core.runtime import DiffGateRuntime
from diffgate.services.diff_hash import snapshot_hash


@pytest.fixture
def client(make_runtime):
    with TestClient(create_app(make_runtime())) as test_client:
        yield test_client


@pytest.fixture
def unconfigured_client():
    with TestClient(create_app(DiffGateRuntime())) as test_client:
        yield test_client


def test_latest_diff_shape(client, gateway):
    response = client.get("/diffs/latest")

    assert response.status_code == 200
    data = response.json()
    assert set(data) == {"unstagedPatch", "stagedPatch", "updatedAt", "diffHash"}
    assert data["unstagedPatch"] == gateway.unstaged
    assert data["stagedPatch"] == gateway.staged
    assert data["updatedAt"] == "2024-01-01T00:00:00.000Z"
    assert data["diffHash"] == snapshot_hash(gateway.unstaged, gateway.staged)


def test_latest_diff_is_stable_between_polls(client):
    first = client.get("/diffs/latest").json()
    second = client.get("/diffs/latest").json()
    assert first == second


def test_latest_diff_unconfigured(unconfigured_client):
    response = unconfigured_client.get("/diffs/latest")

    assert response.status_code == 503
    assert response.json() == {"error": "DIFF_REPO_PATH not configured"}


def test_health_reports_repo_state(client, unconfigured_client):
    assert client.get("/health").json() == {
        "status": "ok",
        "service": "diffgate",
        "repoConfigured": True,
    }
    assert unconfigured_client.get("/health").json()["repoConfigured"] is False


def test_repo_path(client, repo_dir):
    response = client.get("/repo")

    assert response.status_code == 200
    assert response.json() == {"path": str(repo_dir)}


def test_repo_path_unconfigured(unconfigured_client):
    response = unconfigured_client.get("/repo")

    assert response.status_code == 503
    assert response.json() == {"error": "DIFF_REPO_PATH not configured"}

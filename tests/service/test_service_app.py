"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest

try:
    from fastapi.testclient import TestClient
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    pytest.skip("fastapi not installed", allow_module_level=True)

from promptscan.aggregator import Aggregator
from promptscan.config import ScanConfig
from promptscan.models import ScanBudget
from promptscan.service import create_app
from tests._fixtures.repo_builder import StubExtractor


@pytest.fixture
def client() -> TestClient:
    app = create_app(lambda: Aggregator(structural_extractor=StubExtractor()))
    return TestClient(app)


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_scan_endpoint(client: TestClient, repo_builder) -> None:
    repo_builder.write(
        {
            "web/client.ts": 'const system_prompt = "Be brief.";\n',
            "deploy.sh": "curl -H 'Authorization: Bearer abc123' https://api.example.com\n",
        }
    )

    response = client.post("/scan", json={"path": str(repo_builder.path())})

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert [hit["matchLabel"] for hit in data["lexicalHits"]] == ["system_prompt_identifier"]
    assert [secret["rule"] for secret in data["secrets"]] == ["bearer_token"]
    assert data["narrative"] is None


def test_scan_endpoint_honours_max_files(client: TestClient, repo_builder) -> None:
    repo_builder.write({"a.txt": "one\n", "b.txt": "two\n"})

    response = client.post("/scan", json={"path": str(repo_builder.path()), "max_files": 1})

    assert response.status_code == 200
    assert response.json()["truncated"] is True


def test_scan_missing_path_returns_404(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/scan", json={"path": str(tmp_path / "missing")})

    assert response.status_code == 404
    assert response.json()["ok"] is False


def test_scan_file_path_returns_400(client: TestClient, tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("x", encoding="utf-8")

    response = client.post("/scan", json={"path": str(target)})

    assert response.status_code == 400
    assert response.json()["ok"] is False


def test_configured_budget_applies_to_every_scan(repo_builder) -> None:
    repo_builder.write({"a.txt": "one\n", "b.txt": "two\n"})
    app = create_app(config=ScanConfig(budget=ScanBudget(max_files=1)))

    response = TestClient(app).post("/scan", json={"path": str(repo_builder.path())})

    assert response.status_code == 200
    assert response.json()["truncated"] is True


def test_default_app_reads_config_from_working_directory(repo_builder, tmp_path: Path, monkeypatch) -> None:
    repo_builder.write({"keep/a.txt": "Bearer abc\n", "skipme/b.txt": "Bearer def\n"})
    operator_dir = tmp_path / "operator"
    operator_dir.mkdir()
    (operator_dir / ".promptscan.yml").write_text("ignore_dirs: [skipme]\n", encoding="utf-8")
    monkeypatch.chdir(operator_dir)

    response = TestClient(create_app()).post("/scan", json={"path": str(repo_builder.path())})

    assert response.status_code == 200
    assert [secret["filePath"] for secret in response.json()["secrets"]] == ["keep/a.txt"]

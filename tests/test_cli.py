"""CLI parser and scan command tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from promptscan.cli import _build_parser, main
from promptscan.config import ConfigError


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "scan"])
    assert args.verbose is True
    assert args.command == "scan"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["scan", "repo", "--verbose"])
    assert args.verbose is True
    assert args.path == "repo"


def test_cli_accepts_scan_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        ["scan", "repo", "--narrative", "--max-files", "10", "--output", "out.json", "--indent", "0"]
    )
    assert args.narrative is True
    assert args.max_files == 10
    assert args.output == Path("out.json")
    assert args.indent == 0


def test_cli_accepts_serve_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(["serve", "--host", "0.0.0.0", "--port", "9000"])
    assert args.command == "serve"
    assert args.host == "0.0.0.0"
    assert args.port == 9000


def test_scan_prints_json(repo_builder, tmp_path: Path, capsys) -> None:
    repo_builder.write({"web/client.ts": 'const system_prompt = "Be brief.";\n'})

    main(["scan", str(repo_builder.path()), "--config", str(tmp_path / "missing.yml")])

    payload = json.loads(capsys.readouterr().out)
    assert payload["ok"] is True
    assert payload["structuralArtifacts"] == []
    assert [(hit["filePath"], hit["matchLabel"]) for hit in payload["lexicalHits"]] == [
        ("web/client.ts", "system_prompt_identifier")
    ]
    assert payload["fileTree"]["path"] == "."
    assert payload["narrative"] is None


def test_scan_writes_output_file(repo_builder, tmp_path: Path, capsys) -> None:
    repo_builder.write({"notes.txt": "Bearer abc\n"})
    output = tmp_path / "result.json"

    main(["scan", str(repo_builder.path()), "--config", str(tmp_path / "missing.yml"), "--output", str(output)])

    assert "Results written to" in capsys.readouterr().out
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["secrets"][0]["rule"] == "bearer_token"


def test_scan_missing_path_exits_with_error(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["scan", str(tmp_path / "missing"), "--config", str(tmp_path / "missing.yml")])

    assert excinfo.value.code == 1
    assert "not found" in capsys.readouterr().err


def test_scan_invalid_config_exits_with_error(repo_builder, tmp_path: Path) -> None:
    config_file = tmp_path / "bad.yml"
    config_file.write_text("budget:\n  max_files: -5\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["scan", str(repo_builder.path()), "--config", str(config_file)])

    assert excinfo.value.code == 1


def test_cli_accepts_serve_config() -> None:
    parser = _build_parser()
    args = parser.parse_args(["serve", "--config", "ops/.promptscan.yml", "-v"])
    assert args.config == Path("ops/.promptscan.yml")
    assert args.verbose is True


def test_serve_passes_config_to_service(tmp_path: Path, monkeypatch) -> None:
    captured = {}

    def fake_run_service(**kwargs):
        captured.update(kwargs)

    monkeypatch.setattr("promptscan.service.run_service", fake_run_service)
    config_file = tmp_path / "ops.yml"

    main(["serve", "--port", "9001", "--config", str(config_file)])

    assert captured == {
        "host": "127.0.0.1",
        "port": 9001,
        "config_path": config_file,
        "verbose": False,
    }


def test_serve_invalid_config_exits_with_error(tmp_path: Path, monkeypatch) -> None:
    def fake_run_service(**kwargs):
        raise ConfigError("ops.yml must contain a mapping at the root")

    monkeypatch.setattr("promptscan.service.run_service", fake_run_service)

    with pytest.raises(SystemExit) as excinfo:
        main(["serve", "--config", str(tmp_path / "ops.yml")])

    assert excinfo.value.code == 1

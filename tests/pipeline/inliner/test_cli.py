"""CLI tests for the inliner entrypoint."""

import json
import logging
from pathlib import Path

import pytest

from api_inliner.pipeline.inliner import cli
from api_inliner.pipeline.inliner.models import (
    BuildState,
    EndpointConfig,
    FinalData,
    GlobalOptions,
    Provenance,
)
from api_inliner.pipeline.inliner.resolver import resolve_endpoints

PAGE = "<html><head></head><body></body></html>"
_configure_logging = cli.configure_logging


@pytest.fixture
def project(tmp_path: Path):
    pages = tmp_path / "pages"
    pages.mkdir()
    (pages / "index.html").write_text(PAGE, encoding="utf-8")
    config = tmp_path / "api-inliner.json"
    config.write_text(
        json.dumps(
            {
                "production": True,
                "emitDeclarationFile": True,
                "endpoints": [
                    {
                        "url": "https://x/a",
                        "fallbackData": {"v": 1},
                        "variableName": "A",
                        "outputFile": "a.json",
                    }
                ],
            }
        ),
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)


def test_parse_arguments_defaults_and_overrides():
    args = cli.parse_arguments([])
    assert args.config == Path("api-inliner.json")
    assert args.mode is None and args.log_level is None
    args = cli.parse_arguments(
        ["-c", "conf.json", "-p", "src", "-o", "out", "--mode", "development"]
    )
    assert args.config == Path("conf.json")
    assert args.pages == Path("src") and args.output == Path("out")
    assert args.mode == "development"


def test_main_development_build(project: Path):
    dist = project / "dist"
    code = cli.main(
        [
            "--config",
            str(project / "api-inliner.json"),
            "--pages",
            str(project / "pages"),
            "--output",
            str(dist),
            "--mode",
            "development",
        ]
    )
    assert code == 0
    html = (dist / "index.html").read_text(encoding="utf-8")
    assert 'window["A"] = {"v":1};' in html
    assert json.loads((dist / "a.json").read_text(encoding="utf-8")) == {"v": 1}
    assert "A: any;" in (dist / "api-inliner.d.ts").read_text(encoding="utf-8")


def test_main_missing_config_returns_2(tmp_path: Path):
    code = cli.main(["--config", str(tmp_path / "nope.json"), "--output", str(tmp_path)])
    assert code == 2


def test_main_invalid_mode_env_returns_2(monkeypatch, project: Path):
    monkeypatch.setenv("API_INLINER_MODE", "staging")
    assert cli.main(["--config", str(project / "api-inliner.json")]) == 2


def test_main_interrupted_returns_130(monkeypatch, project: Path):
    def interrupted(coro):
        coro.close()
        raise KeyboardInterrupt

    monkeypatch.setattr(cli.asyncio, "run", interrupted)
    code = cli.main(
        ["--config", str(project / "api-inliner.json"), "--output", str(project / "d")]
    )
    assert code == 130


def test_render_summary_has_one_row_per_endpoint():
    endpoints = resolve_endpoints(
        [
            EndpointConfig(url="https://x/a", fallback_data=1, variable_name="A"),
            EndpointConfig(
                url="https://x/b", fallback_data=2, inline_as_variable=False
            ),
        ],
        GlobalOptions(production=False),
    )
    state = BuildState()
    state.endpoints = tuple(endpoints)
    for endpoint in endpoints:
        state.record(endpoint, FinalData(endpoint.fallback_data, Provenance.FALLBACK))
    table = cli.render_summary(state)
    assert table.row_count == 2
    assert len(table.columns) == 5


def test_configure_logging_console_only():
    root_handlers = logging.root.handlers[:]
    root_level = logging.root.level
    try:
        _configure_logging("DEBUG", enable_file=False)
        assert logging.root.level == logging.DEBUG
        assert len(logging.root.handlers) == 1
        assert isinstance(logging.root.handlers[0], logging.StreamHandler)
    finally:
        for h in logging.root.handlers[:]:
            logging.root.removeHandler(h)
        for h in root_handlers:
            logging.root.addHandler(h)
        logging.root.setLevel(root_level)

"""End-to-end runs of the analyze and generate flows with scripted services."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from content_factory import runner
from content_factory.cli import app
from content_factory.config import AppConfig
from content_factory.core.errors import DraftFailure

from fakes import ScriptedCompletionProvider, ScriptedImageProvider

DRAFT = "# 职场妈妈的时间管理秘籍\n\n每天早上六点，她已经在厨房里忙碌。\n"
PROMPT = "清晨办公室窗边，年轻人低头思考的侧视特写，冷蓝色调"


@pytest.fixture(autouse=True)
def _restore_loggers():
    yield
    for name in ("content_factory", "content_factory.llm"):
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
        logger.propagate = True


def _cfg() -> AppConfig:
    cfg = AppConfig()
    cfg.logging.console = False
    cfg.logging.llm_log_enabled = False
    cfg.cache.backend = "memory"
    cfg.generation.retry_delay_seconds = 0
    cfg.generation.batch_delay_seconds = 0
    return cfg


def _use_providers(monkeypatch, completion, images=None):
    monkeypatch.setattr(runner, "create_completion_provider", lambda *args, **kwargs: completion)
    monkeypatch.setattr(
        runner, "create_image_provider", lambda *args, **kwargs: images or ScriptedImageProvider()
    )


def _write_json(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def test_run_analysis_writes_reports(tmp_path: Path, monkeypatch) -> None:
    export = _write_json(
        tmp_path / "export.json",
        {"articles": [{"title": "时间管理", "content": "正文", "reads": 1000, "likes": 20}]},
    )
    provider = ScriptedCompletionProvider(
        json.dumps(
            {
                "summaries": [
                    {
                        "index": 0,
                        "keyPoints": ["早起"],
                        "keywords": ["时间管理"],
                        "targetAudience": "职场妈妈",
                        "scenario": "通勤路上",
                        "painPoint": "时间不够用",
                    }
                ]
            },
            ensure_ascii=False,
        ),
        json.dumps({"insights": [{"title": "通勤学习", "confidence": 80}]}, ensure_ascii=False),
    )
    _use_providers(monkeypatch, provider)

    path = runner.run_analysis(
        export, tmp_path / "out", _cfg(), show_progress=False, console=Console(quiet=True)
    )

    assert path == tmp_path / "out" / "export" / "analysis.json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["insights"][0]["title"] == "通勤学习"
    assert payload["stats"]["totalArticles"] == 1
    assert (path.parent / "analysis.md").exists()
    assert (path.parent / "analysis.html").exists()
    assert (path.parent / "run.jsonl").exists()


def test_run_generation_batch_writes_each_article(tmp_path: Path, monkeypatch) -> None:
    params = runner.load_generation_parameters(
        _write_json(tmp_path / "topic.json", {"id": "t1", "title": "职场妈妈的时间管理"}),
        image_style=None,
        style="轻松",
    )
    provider = ScriptedCompletionProvider(DRAFT, PROMPT, DRAFT, PROMPT)
    _use_providers(monkeypatch, provider)

    paths = runner.run_generation(
        params, tmp_path / "out", _cfg(), count=2, show_progress=False, console=Console(quiet=True)
    )

    assert params.style == "轻松"
    assert params.image_style == "auto"
    assert len(paths) == 2
    assert all(path.suffix == ".md" and path.parent.name == "t1" for path in paths)
    angles = [
        json.loads(path.with_suffix(".json").read_text(encoding="utf-8"))["parameters"]["uniqueAngle"]
        for path in paths
    ]
    assert angles == ["从实际案例角度分析", "从理论框架角度阐述"]


def test_single_generation_failure_raises(tmp_path: Path, monkeypatch) -> None:
    params = runner.load_generation_parameters(
        _write_json(tmp_path / "topic.json", {"title": "职场妈妈的时间管理"})
    )
    _use_providers(monkeypatch, ScriptedCompletionProvider(""))

    with pytest.raises(DraftFailure):
        runner.run_generation(
            params, tmp_path / "out", _cfg(), show_progress=False, console=Console(quiet=True)
        )


def test_load_generation_parameters_reads_references(tmp_path: Path) -> None:
    params = runner.load_generation_parameters(
        _write_json(tmp_path / "topic.json", {"title": "副业起步"}),
        references_path=_write_json(tmp_path / "refs.json", [{"title": "爆文", "reads": 100000}]),
        creation_mode="reference",
    )

    assert params.creation_mode == "reference"
    assert params.reference_articles[0].title == "爆文"


def test_load_generation_parameters_strips_options_and_recommends_style(tmp_path: Path) -> None:
    topic_path = _write_json(
        tmp_path / "topic.json",
        {"title": "副业起步", "audienceScene": {"audience": "想创业的上班族"}},
    )

    params = runner.load_generation_parameters(topic_path, style="  温暖  ", length=" 800-1200 ")

    assert params.style == "温暖"
    assert params.length == "800-1200"
    assert params.image_style == "business"


def test_explicit_image_style_wins_over_recommendation(tmp_path: Path) -> None:
    topic_path = _write_json(
        tmp_path / "topic.json",
        {"title": "副业起步", "audienceScene": {"audience": "想创业的上班族"}},
    )

    params = runner.load_generation_parameters(topic_path, image_style="minimalist")

    assert params.image_style == "minimalist"


def test_unknown_run_folder_mode_is_rejected(tmp_path: Path) -> None:
    cfg = _cfg()
    cfg.output.run_folder_mode = "weekly"

    with pytest.raises(ValueError, match="Unsupported run_folder_mode"):
        runner._build_run_output_dir(tmp_path, Path("export.json"), cfg)


def test_cli_rejects_missing_insight(tmp_path: Path) -> None:
    analysis = _write_json(tmp_path / "analysis.json", {"insights": []})

    result = CliRunner().invoke(app, ["generate", "--topic", str(analysis)])

    assert result.exit_code == 2


def test_cli_purge_cache_with_memory_backend(tmp_path: Path) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("cache:\n  backend: memory\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["purge-cache", "--config", str(config)])

    assert result.exit_code == 0
    assert "Removed 0 expired cache entries" in result.output


def test_cli_rejects_unknown_structure(tmp_path: Path) -> None:
    topic = _write_json(tmp_path / "topic.json", {"title": "副业起步"})

    result = CliRunner().invoke(app, ["generate", "--topic", str(topic), "--structure", "nope"])

    assert result.exit_code == 2

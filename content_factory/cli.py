"""
Command-line interface for the Content Factory.

Uses Typer to provide three commands:
- analyze: article export -> summaries, ranked insights and reports
- generate: topic (or analysis.json insight) -> one or more finished articles
- purge-cache: drop expired generated-article cache entries

Supports loading .env files for API key configuration.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
import typer
from rich.console import Console

from .config import AppConfig, load_config
from .core.errors import ContentFactoryError
from .llm.prompts import available_structures
from .llm.tracing import flush
from .runner import load_generation_parameters, purge_cache, run_analysis, run_generation

app = typer.Typer(add_completion=False)
console = Console()


def _load(
    config: Path | None,
    log_level: str | None,
    log_file: bool | None,
    api_key: str | None,
) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if api_key:
        cfg.provider.api_key = api_key
    if log_level:
        cfg.logging.level = log_level
    if log_file is not None:
        cfg.logging.file = log_file
    return cfg


@app.command()
def analyze(
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True),
    output: Path = typer.Option(Path("out"), "--output", "-o"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    max_insights: int | None = typer.Option(
        None, "--max-insights", help="Maximum number of insights to keep."
    ),
    dedup: bool | None = typer.Option(
        None, "--dedup/--no-dedup", help="Enable or disable article deduplication."
    ),
    lenient_json: bool | None = typer.Option(
        None, "--lenient-json/--strict-json", help="Recover entries from broken JSON output."
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="OPENROUTER_API_KEY",
        help="Override completion provider API key (or set OPENROUTER_API_KEY / .env).",
    ),
):
    """Analyse an article export into summaries and ranked topic insights."""
    cfg = _load(config, log_level, log_file, api_key)
    if max_insights is not None:
        cfg.analysis.max_insights = max_insights
    if dedup is not None:
        cfg.analysis.dedup_enabled = dedup
    if lenient_json is not None:
        cfg.analysis.lenient_json = lenient_json

    try:
        output_path = run_analysis(input, output, cfg, show_progress=progress, console=console)
    except ContentFactoryError as exc:
        console.print(f"[red]Analysis failed[/red]: {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        flush()
    console.print(f"Analysis written: {output_path}")


@app.command()
def generate(
    topic: Path = typer.Option(
        ..., "--topic", "-t", exists=True, readable=True,
        help="Topic JSON, or an analysis.json produced by analyze.",
    ),
    insight: int = typer.Option(0, "--insight", help="Insight position when --topic is an analysis."),
    output: Path = typer.Option(Path("out"), "--output", "-o"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    progress: bool = typer.Option(True, "--progress/--no-progress"),
    count: int = typer.Option(1, "--count", "-n", min=1, help="Number of articles to generate."),
    length: str | None = typer.Option(None, "--length", help="Length bucket, e.g. 1000-1500."),
    style: str | None = typer.Option(None, "--style", help="Writing style label."),
    image_count: int | None = typer.Option(None, "--image-count", min=0),
    image_style: str | None = typer.Option(None, "--image-style", help="auto, business, creative, ... (default: from the topic audience)"),
    image_ratio: str | None = typer.Option(None, "--image-ratio", help="4:3, 16:9, 1:1, ..."),
    mode: str | None = typer.Option(None, "--mode", help="original or reference."),
    inspiration: str | None = typer.Option(None, "--inspiration", help="Inspiration text."),
    references: Path | None = typer.Option(
        None, "--references", exists=True, readable=True, help="Reference articles JSON."
    ),
    structure: str | None = typer.Option(None, "--structure", help="Structure template key."),
    cover: bool | None = typer.Option(None, "--cover/--no-cover", help="Generate a cover image."),
    cache: bool | None = typer.Option(None, "--cache/--no-cache", help="Use the article cache."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    log_file: bool | None = typer.Option(
        None, "--log-file/--no-log-file", help="Enable or disable file logging."
    ),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="OPENROUTER_API_KEY",
        help="Override completion provider API key (or set OPENROUTER_API_KEY / .env).",
    ),
):
    """Generate one article, or a batch with distinct angles, for a topic."""
    cfg = _load(config, log_level, log_file, api_key)
    if cover is not None:
        cfg.generation.generate_cover = cover
    if cache is not None:
        cfg.cache.enabled = cache
    if structure is not None and structure not in available_structures():
        raise typer.BadParameter(
            f"Unknown structure '{structure}'. Available: {', '.join(available_structures())}",
            param_hint="--structure",
        )

    try:
        params = load_generation_parameters(
            topic,
            insight_index=insight,
            references_path=references,
            length=length,
            style=style,
            image_count=image_count,
            image_style=image_style,
            image_ratio=image_ratio,
            creation_mode=mode,
            original_inspiration=inspiration,
            article_structure=structure,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--topic") from exc

    try:
        paths = run_generation(
            params, output, cfg, count=count, show_progress=progress, console=console
        )
    except ContentFactoryError as exc:
        console.print(f"[red]Generation failed[/red]: {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        flush()

    for path in paths:
        console.print(f"Article written: {path}")
    if len(paths) < count:
        console.print(f"[yellow]{count - len(paths)} of {count} articles failed[/yellow]")


@app.command("purge-cache")
def purge_cache_command(
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
):
    """Remove expired entries from the generated-article cache."""
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    removed = purge_cache(cfg)
    console.print(f"Removed {removed} expired cache entries")


if __name__ == "__main__":
    app()

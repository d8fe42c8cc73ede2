"""
Pipeline orchestration for the Content Factory.

Two flows share the same setup (run folder, logging, Langfuse, providers):

Analysis:
1. Parse the article export
2. Deduplicate articles
3. Deep analysis into per-article summaries
4. Insight synthesis and word cloud
5. Write analysis.json and the reports

Generation:
1. Resolve the topic and creation parameters
2. Run the single-article pipeline, or the batch orchestrator for count > 1
3. Write every generated article

Both support progress bar and quiet modes.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
import json
import logging
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)

from .analyzers import DeepAnalysisStage, InsightSynthesisStage, build_word_cloud, compute_stats
from .cache import build_cache
from .config import AppConfig
from .core.catalog import recommended_image_style
from .core.dedup import dedup_articles
from .core.types import AnalysisResult, GeneratedArticle, GenerationParameters
from .generation import (
    ArticlePipeline,
    AssetGenerationStage,
    BatchOrchestrator,
    DraftGenerationStage,
    ImagePromptPlanner,
)
from .generation.batch import BatchResult
from .input.json_parser import parse_article_export, parse_reference_articles, parse_topic
from .llm.providers.factory import create_completion_provider, create_image_provider
from .llm.tracing import set_span_output, setup_langfuse, start_span
from .output.renderer import write_analysis, write_article
from .utils.logging import log_event, setup_llm_logger, setup_logging


def _progress(console: Console, enabled: bool) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=console,
        disable=not enabled,
    )


def run_analysis(
    input_path: Path,
    output_dir: Path,
    cfg: AppConfig,
    show_progress: bool = True,
    console: Console | None = None,
) -> Path:
    """Analyse an article export and write the analysis reports.

    Args:
        input_path: Path to the article export JSON
        output_dir: Directory for output files
        cfg: Application configuration
        show_progress: Whether to display progress bars
        console: Rich console for output (creates default if None)

    Returns:
        Path to the written analysis.json
    """
    run_output_dir = _build_run_output_dir(output_dir, input_path, cfg)
    run_output_dir.mkdir(parents=True, exist_ok=True)
    logger = setup_logging(cfg.logging, run_output_dir)
    llm_logger = setup_llm_logger(cfg.logging, run_output_dir)
    setup_langfuse(cfg.langfuse)

    with open(input_path, encoding="utf-8") as f:
        data = json.load(f)

    provider = create_completion_provider(cfg.provider, cfg.logging, llm_logger)
    deep_analysis = DeepAnalysisStage(cfg.analysis, provider)
    insight_synthesis = InsightSynthesisStage(cfg.analysis, provider)

    with start_span(
        "content_factory.analysis_run",
        kind="chain",
        input_value={"input_path": str(input_path), "output_dir": str(run_output_dir)},
    ) as run_span:
        log_event(
            logger,
            "Analysis start",
            event="analysis_start",
            input=str(input_path),
            output=str(run_output_dir),
        )

        console = console or Console()
        progress = _progress(console, show_progress)
        with progress:
            stage_task = progress.add_task("Stages", total=5)

            articles = parse_article_export(data)
            progress.advance(stage_task, 1)

            if cfg.analysis.dedup_enabled:
                articles = dedup_articles(articles, cfg.analysis.title_similarity_threshold)
            progress.advance(stage_task, 1)

            summaries = asyncio.run(deep_analysis.analyze(articles))
            progress.advance(stage_task, 1)

            stats = compute_stats(articles)
            insights = asyncio.run(insight_synthesis.synthesize(summaries, stats))
            progress.advance(stage_task, 1)

            result = AnalysisResult(
                summaries=summaries,
                insights=insights,
                word_cloud=build_word_cloud(summaries),
                stats=stats,
                meta={
                    "input": str(input_path),
                    "analyzedAt": datetime.now().isoformat(),
                    "model": cfg.provider.model,
                },
            )
            analysis_path = write_analysis(
                result,
                articles,
                run_output_dir,
                cfg.output,
                title=f"Content Analysis - {input_path.stem}",
            )
            progress.advance(stage_task, 1)

        log_event(
            logger,
            "Analysis complete",
            event="analysis_complete",
            output=str(analysis_path),
            summaries=len(summaries),
            insights=len(insights),
        )
        set_span_output(run_span, {"analysis": str(analysis_path), "insights": len(insights)})
    return analysis_path


def load_generation_parameters(
    topic_path: Path,
    insight_index: int = 0,
    references_path: Path | None = None,
    **options: Any,
) -> GenerationParameters:
    """Build GenerationParameters from a topic file and CLI options.

    ``options`` holds GenerationParameters fields; ``None`` values keep the
    defaults. String options are stripped here so cached copies compare
    equal to the request. Without an explicit image style one is recommended
    from the topic audience.
    """
    with open(topic_path, encoding="utf-8") as f:
        topic = parse_topic(json.load(f), insight_index)

    values = {
        key: value.strip() if isinstance(value, str) else value
        for key, value in options.items()
        if value is not None
    }
    values.setdefault("image_style", recommended_image_style(topic))
    if references_path is not None:
        with open(references_path, encoding="utf-8") as f:
            values["reference_articles"] = parse_reference_articles(json.load(f))
    return GenerationParameters(topic=topic, **values)


def run_generation(
    params: GenerationParameters,
    output_dir: Path,
    cfg: AppConfig,
    count: int = 1,
    show_progress: bool = True,
    console: Console | None = None,
) -> list[Path]:
    """Generate ``count`` articles for ``params`` and write them.

    A single article failure raises; in a batch, failed items are logged
    and skipped.

    Returns:
        Paths of the written article files
    """
    run_output_dir = _build_run_output_dir(output_dir, Path(params.topic.id or "topic"), cfg)
    run_output_dir.mkdir(parents=True, exist_ok=True)
    logger = setup_logging(cfg.logging, run_output_dir)
    llm_logger = setup_llm_logger(cfg.logging, run_output_dir)
    setup_langfuse(cfg.langfuse)

    pipeline = _build_pipeline(cfg, llm_logger)

    with start_span(
        "content_factory.generation_run",
        kind="chain",
        input_value={"topic": params.topic.title, "count": count},
        attributes={"creation_mode": params.creation_mode},
    ) as run_span:
        log_event(
            logger,
            "Generation start",
            event="generation_start",
            topic=params.topic.title,
            count=count,
            output=str(run_output_dir),
        )

        console = console or Console()
        progress = _progress(console, show_progress)
        with progress:
            task = progress.add_task("Generate", total=100)

            def _on_progress(percent: float) -> None:
                progress.update(task, completed=percent)

            if count > 1:
                batch = asyncio.run(BatchOrchestrator(pipeline).run(params, count, _on_progress))
            else:
                article = asyncio.run(pipeline.run(params))
                batch = BatchResult(articles=[article])
                _on_progress(100)

        paths = [_write(article, run_output_dir, cfg, logger) for article in batch.articles]
        for failure in batch.failures:
            console.print(f"[yellow]Skipped item {failure.index + 1}[/yellow]: {failure.cause}")

        log_event(
            logger,
            "Generation complete",
            event="generation_complete",
            generated=len(batch.articles),
            failed=len(batch.failures),
        )
        set_span_output(
            run_span, {"generated": len(batch.articles), "failed": len(batch.failures)}
        )
    return paths


def purge_cache(cfg: AppConfig) -> int:
    """Remove expired generated-article cache entries."""
    cache = build_cache(cfg.cache)
    if cache is None:
        return 0
    return cache.purge_expired()


def _write(
    article: GeneratedArticle,
    run_output_dir: Path,
    cfg: AppConfig,
    logger: logging.Logger,
) -> Path:
    path = write_article(article, run_output_dir, cfg.output)
    log_event(logger, "Article written", event="article_written", path=str(path))
    return path


def _build_pipeline(cfg: AppConfig, llm_logger: logging.Logger | None) -> ArticlePipeline:
    """Wire providers, stages and the cache into an ArticlePipeline."""
    provider = create_completion_provider(cfg.provider, cfg.logging, llm_logger)
    image_provider = create_image_provider(cfg.image, cfg.logging, llm_logger)
    cover_provider = (
        create_image_provider(cfg.cover, cfg.logging, llm_logger)
        if cfg.generation.generate_cover
        else None
    )
    return ArticlePipeline(
        cfg.generation,
        drafts=DraftGenerationStage(cfg.generation, provider),
        planner=ImagePromptPlanner(cfg.generation, provider),
        assets=AssetGenerationStage(
            cfg.generation,
            image_provider,
            cover_provider,
            placeholder_base_url=cfg.image.placeholder_base_url,
        ),
        cache=build_cache(cfg.cache),
    )



def _build_run_output_dir(output_dir: Path, input_path: Path, cfg: AppConfig) -> Path:
    """Build the output directory name based on configured mode.

    Raises:
        ValueError: If run_folder_mode is not supported
    """
    stem = input_path.stem or "run"
    mode = (cfg.output.run_folder_mode or "input").lower()
    if mode == "input":
        run_dir_name = stem
    elif mode == "timestamp":
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        run_dir_name = f"{timestamp}-{stem}"
    elif mode == "input_timestamp":
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        run_dir_name = f"{stem}-{timestamp}"
    else:
        raise ValueError(
            "Unsupported run_folder_mode. Use 'input', 'timestamp', or 'input_timestamp'."
        )
    return output_dir / run_dir_name

"""Command-line interface for ai-comments."""

import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from ai_comments.analyzer.change_analyzer import BatchOptions, ChangeAnalyzer
from ai_comments.analyzer.metrics import BatchMetrics
from ai_comments.cli.config_loader import load_runtime_config
from ai_comments.cli.llm_error_handler import handle_llm_errors
from ai_comments.config.exceptions import ConfigError
from ai_comments.config.runtime_config import RuntimeConfig
from ai_comments.core.events import (
    AnalysisStreamEvent,
    ErrorEvent,
    ProgressEvent,
    ResultEvent,
)
from ai_comments.core.models import AnalysisContext, AnalysisResult, ChangeInput
from ai_comments.llm.constants import DEFAULT_MODELS, VALID_LLM_PROVIDERS
from ai_comments.llm.factory import create_provider_from_config, validate_provider
from ai_comments.prompts.schema import SchemaValidationError, parse_breakdown, parse_flag
from ai_comments.scoring.engine import ScoringEngine
from ai_comments.scoring.weights import ScoringWeights
from ai_comments.utils.confidence import get_confidence_label, should_warn_low_confidence
from ai_comments.utils.streaming import create_jsonl_line, create_sse_message

console = Console()
logger = logging.getLogger(__name__)

LOG_LEVEL_CHOICES = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """Analyze DOM changes with an LLM and score them like a code review.

    Provides the `analyze`, `score` and `check` subcommands.
    """


def _configure_logging(runtime_config: RuntimeConfig) -> None:
    log_handler = (
        logging.FileHandler(runtime_config.log_file)
        if runtime_config.log_file
        else logging.StreamHandler()
    )
    logging.basicConfig(
        level=getattr(logging, runtime_config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[log_handler],
        force=True,
    )


def _load_data_file(path: Path) -> Any:  # noqa: ANN401
    """Load a JSON or YAML data file.

    Raises:
        click.BadParameter: If the file cannot be read or decoded.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise click.BadParameter(f"cannot read {path}: {e}") from e

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise click.BadParameter(f"invalid data in {path}: {e}") from e


def _load_batch(
    changes_file: Path, context_file: Path | None, page_url: str | None
) -> tuple[list[ChangeInput], AnalysisContext]:
    """Load changes and page context for the analyze command.

    The changes file holds either a list of changes or an object with
    ``changes`` and (optionally) ``context`` keys.

    Raises:
        click.BadParameter: If the data is malformed or no context is available.
    """
    data = _load_data_file(changes_file)

    context_data: Any = None
    if isinstance(data, dict):
        context_data = data.get("context")
        raw_changes = data.get("changes")
    else:
        raw_changes = data

    if not isinstance(raw_changes, list):
        raise click.BadParameter(
            "changes file must contain a list of changes or an object with a 'changes' list"
        )

    if context_file is not None:
        context_data = _load_data_file(context_file)
    if page_url:
        context_data = {**(context_data or {}), "pageUrl": page_url}
    if not isinstance(context_data, dict):
        raise click.BadParameter("no page context: pass --context or --page-url")

    try:
        changes = [ChangeInput.from_dict(item) for item in raw_changes]
        context = AnalysisContext.from_dict(context_data)
    except (AttributeError, TypeError, ValueError) as e:
        raise click.BadParameter(f"invalid change data: {e}") from e

    return changes, context


def _display_results(results: list[AnalysisResult], errors: list[ErrorEvent]) -> None:
    table = Table(title="Change Analysis")
    table.add_column("Change", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Approve", justify="center")
    table.add_column("Confidence", style="magenta")
    table.add_column("Risks", justify="right", style="red")
    table.add_column("Summary")

    for result in results:
        score = result.pr_score
        confidence = f"{result.confidence:.0%} ({get_confidence_label(result.confidence)})"
        if should_warn_low_confidence(result.confidence):
            confidence = f"[yellow]{confidence}[/yellow]"
        table.add_row(
            result.change_id,
            f"{score.overall:g}",
            "[green]yes[/green]" if score.would_approve else "[red]no[/red]",
            confidence,
            str(len(result.risks)),
            score.summary,
        )

    for error in errors:
        table.add_row(
            error.change_id or "-", "-", "-", "-", "-", f"[red]Error: {error.error}[/red]"
        )

    console.print(table)


def _display_batch_metrics(metrics: BatchMetrics, runtime_config: RuntimeConfig) -> None:
    """Display batch metrics in a formatted panel with table.

    Example output:
        ╭─ Batch Metrics (openai gpt-4o) ──────────────────────────╮
        │ Changes: 3 | Succeeded: 2 | Failed: 1                    │
        │ Success rate: 66.7% | Approval rate: 50.0%               │
        │ Avg score: 78.5 | Avg confidence: 81.0%                  │
        │ Total tokens: 3,120 | Avg tokens/result: 1,560          │
        ╰───────────────────────────────────────────────────────────╯
    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="left")
    table.add_column(style="white", justify="left")
    table.add_column(style="white", justify="left")

    table.add_row(
        f"Changes: {metrics.total_changes}",
        f"Succeeded: {metrics.completed_changes}",
        f"Failed: {metrics.failed_changes}",
    )
    table.add_row(
        f"Success rate: {metrics.success_rate * 100:.1f}%",
        f"Approval rate: {metrics.approval_rate * 100:.1f}%",
        "",
    )
    table.add_row(
        f"Avg score: {metrics.avg_overall_score:.1f}",
        f"Avg confidence: {metrics.avg_confidence * 100:.1f}%",
        "",
    )
    table.add_row(
        f"Total tokens: {metrics.total_tokens:,}",
        f"Avg tokens/result: {metrics.avg_tokens_per_result:,.0f}",
        "",
    )

    model = runtime_config.llm_model or DEFAULT_MODELS[runtime_config.llm_provider]
    panel = Panel(
        table,
        title=f"Batch Metrics ({runtime_config.llm_provider} {model})",
        border_style="green" if metrics.failed_changes == 0 else "yellow",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)


def _render_stream(
    stream: Iterator[AnalysisStreamEvent], total: int
) -> list[AnalysisStreamEvent]:
    """Consume the stream with a progress bar, returning every event."""
    events: list[AnalysisStreamEvent] = []
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )

    with progress:
        task_id = progress.add_task("Analyzing changes...", total=total)
        for event in stream:
            events.append(event)
            if isinstance(event, ProgressEvent):
                progress.update(task_id, description=f"Analyzing {event.change_id}...")
            elif isinstance(event, ResultEvent | ErrorEvent):
                progress.advance(task_id)

    return events


@cli.command()
@click.argument(
    "changes_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--context",
    "context_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON/YAML file with the page context (pageUrl, surroundingHTML, ...).",
)
@click.option("--page-url", help="Page URL (overrides the context's pageUrl).")
@click.option(
    "--parallel/--sequential",
    default=None,
    help="Analyze changes in parallel windows. Overrides config/env.",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    help="Parallel window size. Overrides config/env.",
)
@click.option("--jsonl", is_flag=True, help="Write one JSON event per line to stdout.")
@click.option("--sse", is_flag=True, help="Write Server-Sent Events frames to stdout.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a YAML or TOML configuration file.",
)
@click.option(
    "--provider",
    type=click.Choice(sorted(VALID_LLM_PROVIDERS)),
    help="LLM provider. Overrides config/env.",
)
@click.option("--model", help="LLM model identifier. Overrides config/env.")
@click.option("--api-key", help="API key for the provider. Overrides config/env.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVEL_CHOICES, case_sensitive=False),
    help="Logging level. Overrides config/env.",
)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Write logs to this file.")
def analyze(
    changes_file: Path,
    context_file: Path | None,
    page_url: str | None,
    parallel: bool | None,
    concurrency: int | None,
    jsonl: bool,
    sse: bool,
    config_path: Path | None,
    provider: str | None,
    model: str | None,
    api_key: str | None,
    log_level: str | None,
    log_file: str | None,
) -> None:
    """Analyze the changes in CHANGES_FILE and report scores, risks and suggestions.

    Configuration precedence: CLI flags > environment variables > config file > defaults

    Raises:
        click.Abort: If configuration is invalid or the provider fails.
    """
    if jsonl and sse:
        raise click.UsageError("--jsonl and --sse are mutually exclusive")

    try:
        runtime_config = load_runtime_config(
            config=config_path,
            cli_overrides={
                "parallel": parallel,
                "concurrency": concurrency,
                "llm_provider": provider,
                "llm_model": model,
                "llm_api_key": api_key,
                "log_level": log_level,
                "log_file": log_file,
            },
        )
        _configure_logging(runtime_config)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise click.Abort() from e

    changes, context = _load_batch(changes_file, context_file, page_url)
    options = BatchOptions(
        parallel=runtime_config.parallel, concurrency=runtime_config.concurrency
    )

    with handle_llm_errors(runtime_config):
        llm_provider = create_provider_from_config(runtime_config.to_llm_config())
        analyzer = ChangeAnalyzer(llm_provider, runtime_config.to_analyzer_config())
        stream = analyzer.analyze_stream(changes, context, options)

        if jsonl or sse:
            frame = create_jsonl_line if jsonl else create_sse_message
            for event in stream:
                sys.stdout.write(frame(event))
                sys.stdout.flush()
            return

        mode = f"parallel x{options.concurrency}" if options.parallel else "sequential"
        console.print(f"Analyzing {len(changes)} change(s) on {context.page_url} ({mode})")
        events = _render_stream(stream, len(changes))

    results = [e.result for e in events if isinstance(e, ResultEvent)]
    errors = [e for e in events if isinstance(e, ErrorEvent)]
    _display_results(results, errors)
    _display_batch_metrics(BatchMetrics.from_events(events), runtime_config)


@cli.command()
@click.argument(
    "breakdown_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "--weights",
    "weights_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON/YAML file with per-metric weight overrides.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the PR score as JSON.")
def score(breakdown_file: Path, weights_file: Path | None, as_json: bool) -> None:
    """Score the seven-metric breakdown in BREAKDOWN_FILE without calling an LLM.

    The file holds either the breakdown itself or an object with ``breakdown``
    and optional ``flags`` keys, using camelCase metric names.
    """
    data = _load_data_file(breakdown_file)
    raw_breakdown = data.get("breakdown", data) if isinstance(data, dict) else data
    raw_flags = data.get("flags", []) if isinstance(data, dict) else []
    if not isinstance(raw_flags, list):
        raise click.BadParameter("'flags' must be a list", param_hint="BREAKDOWN_FILE")

    try:
        breakdown = parse_breakdown(raw_breakdown)
        flags = [parse_flag(item, f"flags[{i}]") for i, item in enumerate(raw_flags)]
    except SchemaValidationError as e:
        raise click.BadParameter("; ".join(e.errors), param_hint="BREAKDOWN_FILE") from e

    weights = ScoringWeights()
    if weights_file is not None:
        weights_data = _load_data_file(weights_file)
        if not isinstance(weights_data, dict):
            raise click.BadParameter("weights file must contain a mapping", param_hint="--weights")
        try:
            weights = ScoringWeights.from_dict(weights_data)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--weights") from e

    pr_score = ScoringEngine(weights).score(breakdown, model_flags=flags)

    if as_json:
        click.echo(json.dumps(pr_score.to_dict(), indent=2))
        return

    table = Table(title=f"PR Score: {pr_score.overall:g}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Weight", justify="right", style="dim")
    for (name, value), (_, weight) in zip(breakdown.items(), weights.items(), strict=True):
        table.add_row(name, f"{value:g}", f"{weight:g}")
    console.print(table)

    for flag in pr_score.flags:
        color = {"warning": "yellow", "suggestion": "blue"}.get(flag.type.value, "green")
        console.print(f"[{color}]{flag.type.value}:[/{color}] {flag.message}")

    verdict = "[green]would approve[/green]" if pr_score.would_approve else "[red]needs work[/red]"
    console.print(f"\n{pr_score.summary} ({verdict})")


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a YAML or TOML configuration file.",
)
@click.option("--provider", type=click.Choice(sorted(VALID_LLM_PROVIDERS)))
@click.option("--model", help="LLM model identifier.")
@click.option("--api-key", help="API key for the provider.")
@click.option(
    "--validate", is_flag=True, help="Also run a provider health check (token count)."
)
def check(
    config_path: Path | None,
    provider: str | None,
    model: str | None,
    api_key: str | None,
    validate: bool,
) -> None:
    """Report the configured provider and whether an API key is available.

    Exits with status 1 when no API key is configured.
    """
    try:
        runtime_config = load_runtime_config(
            config=config_path,
            cli_overrides={"llm_provider": provider, "llm_model": model, "llm_api_key": api_key},
        )
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise click.Abort() from e

    llm_config = runtime_config.to_llm_config()
    console.print(f"Provider: [cyan]{llm_config.provider}[/cyan]")
    console.print(f"Model: [cyan]{llm_config.resolved_model}[/cyan]")

    if not llm_config.api_key:
        console.print(
            f"[red]API key: missing[/red] (set {llm_config.api_key_env_var} or pass --api-key)"
        )
        sys.exit(1)

    console.print("API key: [green]configured[/green]")

    if validate:
        with handle_llm_errors(runtime_config):
            validate_provider(create_provider_from_config(llm_config))
        console.print("Health check: [green]passed[/green]")


if __name__ == "__main__":
    cli()

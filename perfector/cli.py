"""CLI entry-point: score content, run an optimization job inline, serve the API."""

import json
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from perfector.config import get_settings
from perfector.errors import PerfectorError
from perfector.jobs.models import JobState
from perfector.jobs.store import JobStore
from perfector.llm.validation import validate_provider_key
from perfector.pipeline.executor import PipelineExecutor
from perfector.quality.readiness import ReadinessRecord, check_publish_readiness
from perfector.quality.scorer import load_scoring_config, score_content
from perfector.schemas import OptimizeRequest

app = typer.Typer(help="Page Perfector: content optimization pipeline")


def _score_table(report) -> Table:
    table = Table(title=f"Quality score: {report.overall}/100")
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    for name, value in (
        ("Readability", report.readability),
        ("Completeness", report.completeness),
        ("Entity Coverage", report.entity_coverage),
        ("Uniqueness", report.uniqueness),
        ("Engagement", report.engagement),
    ):
        style = "red" if name in report.failing_aspects else "green"
        table.add_row(name, f"[{style}]{value}[/{style}]")
    return table


@app.command()
def score(
    path: str = typer.Argument(..., help="HTML or text file to score"),
    question: list[str] = typer.Option(default=[], help="People Also Ask question (repeatable)"),
    entity: list[str] = typer.Option(default=[], help="Target entity (repeatable)"),
    rubric: str = typer.Option(None, help="Rubric YAML with weights and thresholds"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
):
    """Score a content file on the five quality dimensions."""
    console = Console()
    file_path = Path(path)
    if not file_path.is_file():
        console.print(f"[red]Error: file not found: {file_path}[/red]")
        raise typer.Exit(1)

    config = load_scoring_config(Path(rubric) if rubric else get_settings().rubric_path)
    report = score_content(file_path.read_text(encoding="utf-8"), question, entity, config=config)
    if as_json:
        console.print_json(report.model_dump_json())
        return
    console.print(_score_table(report))
    console.print(f"Words: {report.word_count}")
    for rec in report.recommendations:
        console.print(f"[yellow]- {rec}[/yellow]")


@app.command()
def optimize(
    url: str = typer.Argument(..., help="Page URL to optimize"),
    title: str = typer.Option(None, "--title", help="Post title (default: derived from the URL)"),
    provider: str = typer.Option(None, help="AI provider: gemini | openai | anthropic | groq | openrouter"),
    model: str = typer.Option(None, help="Model id (default from env)"),
    site: str = typer.Option("default", "--site", help="Site id"),
    out: str = typer.Option(None, "--out", help="Write the rendered article HTML here"),
    keyword: str = typer.Option(None, "--keyword", help="Target keyword for the readiness check"),
):
    """Run the full pipeline in-process and print the outcome."""
    console = Console()
    store = JobStore()
    executor = PipelineExecutor(store)
    request = OptimizeRequest(url=url, site_id=site, post_title=title, provider=provider, model=model)
    try:
        job = executor.start(request)
    except PerfectorError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"Job {job.job_id}")

    def _progress(snapshot):
        if not snapshot.is_terminal:
            console.print(f"  {snapshot.progress:>3}% {snapshot.current_step}")

    with store.subscribe(job.job_id, _progress):
        executor.run_safely(job.job_id, executor.provider_config_for(request))

    job = store.get(job.job_id)
    if job.state == JobState.FAILED:
        console.print(f"[red]Failed: {job.error}[/red]")
        raise typer.Exit(1)

    result = job.result
    if result.is_fallback:
        console.print("[yellow]Warning: no AI provider available, fallback content used[/yellow]")
    console.print(_score_table(job.score))

    readiness = check_publish_readiness(
        ReadinessRecord.from_content_result(result, keyword or title),
        target_keyword=keyword,
    )
    colour = "green" if readiness.can_publish else "red"
    console.print(f"[{colour}]Publish ready: {readiness.can_publish}[/{colour}] ({readiness.overall_score}/100)")

    if out:
        Path(out).write_text(result.rendered_html, encoding="utf-8")
        console.print(f"Wrote {out}")
    console.print("[green]Done.[/green]")


@app.command("check-key")
def check_key(
    provider: str = typer.Argument(..., help="AI provider id"),
    model: str = typer.Option(None, help="Model id (default from env)"),
):
    """Validate the configured API key for a provider with a one-token request."""
    console = Console()
    settings = get_settings()
    api_key = settings.api_key_for(provider) or ""
    result = validate_provider_key(
        provider,
        api_key,
        model or settings.model_for(provider) or "",
        timeout=settings.perfector_validation_timeout,
        use_cache=False,
    )
    console.print(json.dumps(result.model_dump(exclude_none=True), indent=2))
    if not result.success:
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(None, help="Port (default from PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
):
    """Run the FastAPI backend with uvicorn."""
    import uvicorn

    uvicorn.run(
        "backend.main:app",
        host=host,
        port=port or int(os.environ.get("PORT", get_settings().port)),
        reload=reload,
    )


if __name__ == "__main__":
    app()

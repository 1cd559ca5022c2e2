"""Operator CLI using typer + rich."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from career_ai.cache.result_cache import ResultCache
from career_ai.clients.llm_client import LLMClient
from career_ai.config import load_config
from career_ai.logging.usage_store import UsageStore
from career_ai.parsers.document_parser import DocumentError, extract_text
from career_ai.pipeline.resume_analyzer import ResumeAnalyzer
from career_ai.pipeline.resume_parser import ResumeParser

app = typer.Typer(
    name="career-ai",
    help="Resume parsing, tailoring and analysis tooling",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Path = typer.Option(None, "--config", help="config.yaml path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = load_config(config_path)


@app.command()
def parse(
    ctx: typer.Context,
    file: Path = typer.Argument(help="Resume file (PDF/DOCX/TXT)"),
    analyze: bool = typer.Option(False, "--analyze", "-a", help="Also run resume analysis"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the parsed record as JSON"),
) -> None:
    """Parse a local resume file and print the structured result."""
    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)

    config = ctx.obj
    try:
        document = extract_text(file.read_bytes(), file_name=file.name)
    except DocumentError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    for warning in document.warnings:
        console.print(f"[yellow]{warning}[/yellow]")

    llm = LLMClient(
        timeout=config.llm.timeout,
        usage_recorder=UsageStore(config.usage.resolved_db_path),
        default_model=config.llm.default_model,
    )
    parser = ResumeParser(llm, config.agents.parser)
    analyzer = ResumeAnalyzer(llm, config.agents.analyzer) if analyze else None

    async def _run_all():
        # Both calls share one event loop
        parsed = await parser.parse(document.text, file_name=file.name)
        if not parsed.ok or analyzer is None:
            return parsed, None
        return parsed, await analyzer.analyze(parsed.data)

    with console.status("Parsing and analyzing resume..." if analyze else "Parsing resume..."):
        outcome, result = asyncio.run(_run_all())

    if not outcome.ok:
        console.print(f"[red]Parsing failed ({outcome.category.value}): {outcome.message}[/red]")
        raise typer.Exit(1)

    record = outcome.data
    info = record.personal_info
    console.print(Panel(
        f"[bold]{info.name or '-'}[/bold]  {info.email or ''}  {info.phone or ''}\n"
        f"{record.summary or ''}\n\n"
        f"Experiences: {len(record.experiences)} | Educations: {len(record.educations)} | "
        f"Skills: {len(record.skills)} | Certifications: {len(record.certifications)}\n"
        f"Attempts: {outcome.attempts} | Tokens: {outcome.usage.total_tokens}",
        title="Parsed resume",
    ))
    if outcome.warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warning in outcome.warnings:
            console.print(f"  - {warning}")

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            json.dumps(record.model_dump(mode="json"), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        console.print(f"[green]Saved: {output}[/green]")

    if result is not None:
        if not result.ok:
            console.print(f"[red]Analysis failed: {result.user_message}[/red]")
            raise typer.Exit(1)
        analysis = result.data
        console.print(Panel(
            f"Overall: [bold]{analysis.overall_score}[/bold]\n"
            + "\n".join(f"  - {s}" for s in analysis.strengths[:5]),
            title="Analysis",
        ))


@app.command()
def usage(ctx: typer.Context) -> None:
    """Show completion usage and estimated cost per operation."""
    config = ctx.obj
    store = UsageStore(config.usage.resolved_db_path)
    stats = store.get_operation_stats()
    if not stats:
        console.print("[yellow]No usage recorded yet.[/yellow]")
        return

    table = Table(title="Usage by operation")
    for column in ("Operation", "Calls", "Failures", "Input", "Output", "Cost (USD)", "Avg s"):
        table.add_column(column)
    for operation, row in stats.items():
        table.add_row(
            operation,
            str(row["calls"]),
            str(row["failures"]),
            f"{row['input_tokens']:,}",
            f"{row['output_tokens']:,}",
            f"${row['cost_usd']:.4f}",
            f"{row['avg_seconds']:.2f}",
        )
    console.print(table)

    monthly = store.get_monthly_stats()
    console.print(
        f"\n{monthly['month']}: {monthly['total_calls']} calls, "
        f"${monthly['total_cost_usd']:.4f}, success {monthly['success_rate']:.1f}%"
    )


@app.command("cache-stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show cached analysis/tailoring records per namespace."""
    config = ctx.obj
    cache = ResultCache(config.cache.resolved_db_path, ttl_days=config.cache.ttl_days)
    stats = cache.stats()
    if not stats:
        console.print("[yellow]Cache is empty.[/yellow]")
        return
    for namespace, row in stats.items():
        console.print(
            f"  [bold]{namespace}[/bold]: {row['total']} total, "
            f"{row['active']} active, {row['expired']} expired"
        )


@app.command("cache-clear")
def cache_clear(
    ctx: typer.Context,
    namespace: str = typer.Option(None, "--namespace", "-n", help="Only clear this namespace"),
) -> None:
    """Delete cached records."""
    config = ctx.obj
    cache = ResultCache(config.cache.resolved_db_path, ttl_days=config.cache.ttl_days)
    removed = cache.clear(namespace)
    console.print(f"[green]Removed {removed} cached record(s).[/green]")


if __name__ == "__main__":
    app()

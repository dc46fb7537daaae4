"""
CLI interface for the AI Study Assistant.

Provides interactive learning sessions and access to session history.
"""

import logging
import sys
from datetime import datetime
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from ai_study_assistant.config.loader import AppConfig, load_app_config
from ai_study_assistant.core.budget import BudgetLevel, BudgetReport, BudgetTracker
from ai_study_assistant.core.errors import ChatClientError, StudyAssistantError
from ai_study_assistant.core.pricing import get_model_price
from ai_study_assistant.features.base import BUDGET_SIGNAL, EXIT_SIGNAL
from ai_study_assistant.features.requests import FeatureKind, FeatureRequest
from ai_study_assistant.features.router import FeatureRouter
from ai_study_assistant.logging_setup import configure_logging
from ai_study_assistant.sdk.chat_client import ChatClient
from ai_study_assistant.storage.models import SessionRecord
from ai_study_assistant.storage.repository import get_repository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

STATUS_STYLES = {
    BudgetLevel.NORMAL: "green",
    BudgetLevel.ATTENTION: "yellow",
    BudgetLevel.NEAR_LIMIT: "dark_orange",
    BudgetLevel.EXCEEDED: "red",
}


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML configuration file"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show informational log messages"
    ),
):
    """AI Study Assistant CLI."""
    configure_logging(logging.INFO if verbose else logging.WARNING)
    ctx.obj = {"config_path": config}
    if ctx.invoked_subcommand is None:
        console.print("AI Study Assistant - Use --help to see available commands")


@app.command()
def status(ctx: typer.Context):
    """Show the active model, budget and history settings."""
    config = _load_config(ctx)
    price = get_model_price(config.model.default, config.pricing)

    table = Table(title="AI Study Assistant")
    table.add_column("Setting")
    table.add_column("Value", justify="right")
    table.add_row("Model", config.model.default)
    table.add_row("Price (input / output per 1M)",
                  f"{_format_currency(price.input_price_per_million, 2)} / "
                  f"{_format_currency(price.output_price_per_million, 2)}")
    table.add_row("Max output tokens", str(config.model.max_tokens))
    table.add_row("Endpoint", config.model.base_url or "default")
    table.add_row("Daily budget", _format_currency(config.budget.daily, 2))
    table.add_row("History token limit", f"{config.history.max_tokens:,}")
    table.add_row("History file", config.history.file)
    console.print(table)


@app.command()
def init(ctx: typer.Context):
    """Create the session history file."""
    config = _load_config(ctx)
    try:
        get_repository(config.history.file).initialize()
        console.print("[green]✓[/] History file initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except OSError as e:
        console.print(f"[red]Error initializing history file:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def chat(
    ctx: typer.Context,
    mode: str = typer.Option(
        "tutor",
        "--mode",
        "-m",
        help="Learning mode: tutor, explainer, teacher or generator"
    ),
):
    """
    Start an interactive learning session.

    Type a question (or paste code) and press enter. Slash commands such as
    /help, /clear, /summary, /export, /budget and /exit are available.
    The session summary is saved to the history file on exit.
    """
    config = _load_config(ctx)
    kind = _parse_mode(mode)
    router = _build_router(config)
    feature = router.get_feature(kind)

    console.print(f"\n[bold]{feature.title}[/bold]")
    console.print("-" * 40)
    console.print(feature.get_help_message())

    start_time = datetime.now()
    while True:
        try:
            text = typer.prompt("\nYou", default="", show_default=False)
        except typer.Abort:
            break

        if not text.strip():
            continue

        if text.startswith("/"):
            try:
                result = feature.handle_command(text)
            except StudyAssistantError as e:
                console.print(f"[red]Error:[/] {str(e)}")
                continue
            if result == EXIT_SIGNAL:
                break
            if result == BUDGET_SIGNAL:
                _display_budget_report(router.tracker.get_report())
            elif result is None:
                console.print(f"[yellow]Unknown command:[/] {text.split()[0]}")
            else:
                console.print(result)
            continue

        try:
            outcome = router.handle(FeatureRequest.from_text(kind, text))
        except ChatClientError as e:
            console.print(f"[red]API error ({e.code}):[/] {str(e)}")
            continue
        except StudyAssistantError as e:
            console.print(f"[red]Error:[/] {str(e)}")
            continue

        console.print(Markdown(outcome.response))
        console.print(f"[dim]cost {_format_currency(outcome.cost.total_cost)}[/]")
        if outcome.budget.is_exceeded:
            console.print("[red]Daily budget exceeded[/]")
        elif outcome.budget.should_warn:
            console.print(
                f"[yellow]Budget {outcome.budget.usage_percentage:.1f}% used[/]"
            )

    _end_session(config, router, kind, start_time)
    console.print(f"\nThanks for using the {feature.title}. Goodbye!")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def ask(
    ctx: typer.Context,
    mode: str = typer.Argument(..., help="Learning mode: tutor, explainer, teacher or generator"),
    text: str = typer.Argument(..., help="Question, code, concept or requirement"),
):
    """Send a single request and print the answer."""
    config = _load_config(ctx)
    kind = _parse_mode(mode)
    router = _build_router(config)

    start_time = datetime.now()
    try:
        outcome = router.handle(FeatureRequest.from_text(kind, text))
    except ChatClientError as e:
        console.print(f"[red]API error ({e.code}):[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    except StudyAssistantError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(Markdown(outcome.response))
    _end_session(config, router, kind, start_time)
    _display_budget_report(router.tracker.get_report())
    sys.exit(EXIT_CODE_PASS)


@app.command()
def history(
    ctx: typer.Context,
    limit: int = typer.Option(
        5,
        "--limit",
        "-l",
        help="Number of recent sessions to show"
    ),
):
    """Show usage statistics and recent sessions."""
    config = _load_config(ctx)
    repository = get_repository(config.history.file)
    try:
        stats = repository.get_statistics()
        sessions = repository.get_sessions(limit)
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if stats.total_sessions == 0:
        console.print("\n[bold yellow]No session history found[/]")
        console.print("\nRun `ai-study-assistant chat` to start a learning session.\n")
        sys.exit(EXIT_CODE_PASS)

    console.print("\n[bold]Usage History[/bold]")
    console.print("-" * 40)
    console.print(f"Total sessions: {stats.total_sessions}")
    console.print(f"Total cost: {_format_currency(stats.total_cost)}")
    console.print(f"Total tokens: {stats.total_tokens:,}")
    console.print(f"Average cost/session: {_format_currency(stats.average_cost_per_session)}")

    modes = Table(title="By mode")
    modes.add_column("Mode")
    modes.add_column("Sessions", justify="right")
    modes.add_column("Cost", justify="right")
    modes.add_column("Tokens", justify="right")
    for mode, data in stats.mode_stats.items():
        modes.add_row(mode, str(data.count), _format_currency(data.total_cost),
                      f"{data.total_tokens:,}")
    console.print(modes)

    recent = Table(title="Recent sessions")
    recent.add_column("Mode")
    recent.add_column("Started")
    recent.add_column("Messages", justify="right")
    recent.add_column("Cost", justify="right")
    for record in sessions:
        recent.add_row(record.mode, f"{record.start_time:%Y-%m-%d %H:%M}",
                       str(record.message_count), _format_currency(record.usage.cost))
    console.print(recent)
    sys.exit(EXIT_CODE_PASS)


@app.command("export-history")
def export_history(
    ctx: typer.Context,
    output: str = typer.Argument(..., help="Text file to write"),
):
    """Export statistics and all sessions to a text file."""
    config = _load_config(ctx)
    try:
        get_repository(config.history.file).export_to_text(output)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error exporting history:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] History exported to {output}")
    sys.exit(EXIT_CODE_PASS)


@app.command("clear-history")
def clear_history(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete all stored session summaries."""
    config = _load_config(ctx)
    if not yes and not typer.confirm("Delete all session history?"):
        console.print("Aborted")
        sys.exit(EXIT_CODE_PASS)
    get_repository(config.history.file).clear_all()
    console.print("[green]✓[/] Session history cleared")
    sys.exit(EXIT_CODE_PASS)


def _load_config(ctx: typer.Context) -> AppConfig:
    config_path = (ctx.obj or {}).get("config_path")
    try:
        return load_app_config(config_path)
    except (FileNotFoundError, yaml.YAMLError, StudyAssistantError) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _parse_mode(mode: str) -> FeatureKind:
    try:
        return FeatureKind.parse(mode)
    except StudyAssistantError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _build_router(config: AppConfig) -> FeatureRouter:
    try:
        client = ChatClient(
            model=config.model.default,
            max_tokens=config.model.max_tokens,
            base_url=config.model.base_url,
        )
    except ChatClientError as e:
        console.print(f"[red]API error ({e.code}):[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    try:
        tracker = BudgetTracker(config.budget.daily, config.pricing, config.model.default)
    except StudyAssistantError as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    return FeatureRouter(client, tracker, max_history_tokens=config.history.max_tokens)


def _end_session(config: AppConfig, router: FeatureRouter, kind: FeatureKind,
                 start_time: datetime) -> None:
    """Save the session summary if anything was exchanged."""
    feature = router.get_feature(kind)
    usage = router.tracker.usage
    if usage.total_tokens == 0 and feature.history.message_count == 0:
        return

    record = SessionRecord(
        mode=kind.value,
        usage=usage,
        start_time=start_time,
        end_time=datetime.now(),
        message_count=feature.history.message_count,
    )
    repository = get_repository(config.history.file)
    try:
        repository.initialize()
        repository.save_session(record)
    except (OSError, ValueError) as e:
        console.print(f"[red]Could not save session:[/] {str(e)}")


def _format_currency(amount: float, digits: int = 6) -> str:
    """Format currency with sign and thousands separators."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.{digits}f}"


def _display_budget_report(report: BudgetReport):
    """Display budget usage as a table."""
    style = STATUS_STYLES[report.status]
    table = Table(title="Token Usage Report")
    table.add_column("Item")
    table.add_column("Value", justify="right")
    table.add_row("Status", f"[{style}]{report.status.value}[/]")
    table.add_row("Budget", _format_currency(report.budget))
    table.add_row("Spent", f"{_format_currency(report.current_cost)} ({report.percentage:.1f}%)")
    table.add_row("Remaining", _format_currency(report.remaining))
    table.add_row("Input tokens", f"{report.usage.input_tokens:,}")
    table.add_row("Output tokens", f"{report.usage.output_tokens:,}")
    table.add_row("Total tokens", f"{report.usage.total_tokens:,}")
    console.print(table)


if __name__ == "__main__":
    app()

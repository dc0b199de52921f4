"""CLI interface for the Interview Session Engine."""
import asyncio
import sys
from typing import Any, Awaitable, Callable, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .agents.orchestrator_agent import SessionOrchestrator
from .models.enums import DifficultyLevel, InterviewDuration, InterviewType
from .models.interview import Evaluation, FinalReport, InterviewSession, Question
from .services.ai_gateway import AIGateway, create_provider
from .services.configuration_manager import ConfigurationManager
from .services.directory_service import YamlDirectory
from .services.storage_manager import StorageManager
from .utils.exceptions import ConfigurationError, InterviewEngineError
from .utils.logging import get_logger, setup_logging


console = Console()
logger = get_logger("cli")


def _choices(enum_cls) -> click.Choice:
    return click.Choice([member.value for member in enum_cls], case_sensitive=False)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, file_okay=False), default=None, help="Configuration directory")
@click.option("--token", "-t", envvar="INTERVIEW_TOKEN", default=None, help="Caller credential")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], token: Optional[str], verbose: bool):
    """Interview Session Engine - AI-driven interview practice."""
    ctx.ensure_object(dict)

    config_manager = ConfigurationManager(config or "config")
    try:
        config_manager.initialize()
    except InterviewEngineError as e:
        console.print(f"[red]Failed to load configuration: {e.message}[/red]")
        sys.exit(1)

    app_config = config_manager.get_config()
    setup_logging(
        "DEBUG" if verbose else app_config.logging.level,
        log_file=app_config.logging.file_path,
        enable_console=verbose,
        enable_file=bool(app_config.logging.file_path),
        structured=app_config.logging.structured,
        max_file_size=app_config.logging.max_file_size,
        backup_count=app_config.logging.backup_count,
    )

    ctx.obj["config_manager"] = config_manager
    ctx.obj["token"] = token


def _build_orchestrator(config_manager: ConfigurationManager):
    config = config_manager.get_config()
    directory = YamlDirectory(config.directory_file).load()

    if config.storage.type == "file":
        storage_manager = StorageManager("file", base_path=config.storage.base_path)
    else:
        storage_manager = StorageManager(config.storage.type)

    gateway = AIGateway(create_provider(config_manager.get_provider_config()), config.gateway)
    orchestrator = SessionOrchestrator(gateway, storage_manager, directory, directory)
    return orchestrator, directory


def _execute(ctx: click.Context, action: Callable[[SessionOrchestrator, str], Awaitable[Any]]) -> Any:
    """Resolve the caller, run one orchestrator operation and release resources."""

    async def runner():
        orchestrator, directory = _build_orchestrator(ctx.obj["config_manager"])
        user_id = await directory.resolve_user(ctx.obj.get("token") or "")
        await orchestrator.initialize()
        try:
            return await action(orchestrator, user_id)
        finally:
            await orchestrator.cleanup()

    try:
        return asyncio.run(runner())
    except ConfigurationError as e:
        logger.error(f"Command failed: {e}")
        console.print(f"[red]Configuration error: {e.message}[/red]")
        sys.exit(1)
    except InterviewEngineError as e:
        logger.error(f"Command failed: {e}")
        console.print(f"[red]{e.user_message}[/red]")
        sys.exit(1)


def _render_question(question: Question, number: int, total: int) -> None:
    console.print(Panel(
        question.text,
        title=f"Question {number}/{total} | {question.category.value} | {question.difficulty.value}",
        subtitle=f"id: {question.id}",
        border_style="green",
    ))


def _render_evaluation(evaluation: Evaluation) -> None:
    lines = [f"[bold]{evaluation.feedback}[/bold]"]
    if evaluation.strengths:
        lines.append("\n[green]Strengths:[/green]\n- " + "\n- ".join(evaluation.strengths))
    if evaluation.improvements:
        lines.append("\n[yellow]Improvements:[/yellow]\n- " + "\n- ".join(evaluation.improvements))
    console.print(Panel("\n".join(lines), title=f"Score: {evaluation.score}/10", border_style="cyan"))


def _render_report(overall_score: int, report: FinalReport) -> None:
    table = Table(title="Category Scores")
    table.add_column("Category")
    table.add_column("Score", justify="right")
    for category, score in report.category_scores.items():
        table.add_row(category, f"{score}/100")

    sections = []
    for heading, items in (
        ("Strengths", report.strengths),
        ("Weaknesses", report.weaknesses),
        ("Recommendations", report.recommendations),
    ):
        if items:
            sections.append(f"[bold]{heading}:[/bold]\n- " + "\n- ".join(items))

    console.print(Panel("\n\n".join(sections) or "No report", title=f"Final Report | Overall: {overall_score}/100", border_style="blue"))
    if report.category_scores:
        console.print(table)


def _render_session(session: InterviewSession) -> None:
    table = Table(title=f"Session {session.session_id} ({session.status.value})")
    table.add_column("#", justify="right")
    table.add_column("Question")
    table.add_column("Category")
    table.add_column("Answer")
    table.add_column("Score", justify="right")
    for number, question in enumerate(session.questions, start=1):
        if question.is_skipped:
            answer = "[yellow]skipped[/yellow]"
        elif question.answer:
            answer = "answered"
        else:
            answer = "-"
        score = str(question.evaluation.score) if question.evaluation else "-"
        table.add_row(str(number), question.text, question.category.value, answer, score)
    console.print(table)
    console.print(
        f"Type: {session.type.value} | Difficulty: {session.difficulty.value} | "
        f"Answered: {session.answered_count}/{session.total_questions} | "
        f"Time spent: {session.total_time_spent}s"
    )


@cli.command()
@click.option("--type", "interview_type", type=_choices(InterviewType), required=True, help="Interview type")
@click.option("--difficulty", type=_choices(DifficultyLevel), default=DifficultyLevel.MEDIUM.value, help="Difficulty")
@click.option("--duration", type=_choices(InterviewDuration), default=InterviewDuration.STANDARD.value, help="Session length")
@click.pass_context
def start(ctx: click.Context, interview_type: str, difficulty: str, duration: str):
    """Start a new interview session."""
    result = _execute(ctx, lambda o, user_id: o.start(user_id, interview_type, difficulty, duration))
    console.print(f"[bold green]Session started:[/bold green] {result.session_id}")
    _render_question(result.question, result.question_number, result.total_questions)


@cli.command()
@click.argument("session_id")
@click.argument("question_id")
@click.argument("answer")
@click.option("--time-spent", type=click.FloatRange(min=0), default=0, help="Seconds spent answering")
@click.pass_context
def answer(ctx: click.Context, session_id: str, question_id: str, answer: str, time_spent: float):
    """Submit an answer; evaluation output streams as it arrives."""

    def on_chunk(chunk: str) -> None:
        console.print(chunk, end="", markup=False, highlight=False, style="dim")

    result = _execute(
        ctx, lambda o, user_id: o.submit_answer(user_id, session_id, question_id, answer, time_spent, on_chunk=on_chunk)
    )
    console.print()
    _render_evaluation(result.evaluation)
    if result.is_complete:
        console.print("[bold green]All questions answered. Run 'complete' for your report.[/bold green]")


@cli.command(name="next")
@click.argument("session_id")
@click.pass_context
def next_question(ctx: click.Context, session_id: str):
    """Generate the next question."""
    result = _execute(ctx, lambda o, user_id: o.next_question(user_id, session_id))
    _render_question(result.question, result.question_number, result.total_questions)


@cli.command()
@click.argument("session_id")
@click.pass_context
def skip(ctx: click.Context, session_id: str):
    """Skip the current question."""
    result = _execute(ctx, lambda o, user_id: o.skip(user_id, session_id))
    console.print("[yellow]Question skipped.[/yellow]")
    if result.is_complete:
        console.print("[bold green]No questions left. Run 'complete' for your report.[/bold green]")


@cli.command()
@click.argument("session_id")
@click.pass_context
def pause(ctx: click.Context, session_id: str):
    """Pause a session."""
    session = _execute(ctx, lambda o, user_id: o.pause(user_id, session_id))
    console.print(f"Session {session.session_id} is {session.status.value}.")


@cli.command()
@click.argument("session_id")
@click.pass_context
def resume(ctx: click.Context, session_id: str):
    """Resume a paused session."""
    session = _execute(ctx, lambda o, user_id: o.resume(user_id, session_id))
    console.print(f"Session {session.session_id} is {session.status.value}.")


@cli.command()
@click.argument("session_id")
@click.pass_context
def complete(ctx: click.Context, session_id: str):
    """Complete a session and print the final report."""
    result = _execute(ctx, lambda o, user_id: o.complete(user_id, session_id))
    _render_report(result.overall_score, result.report)


@cli.command()
@click.argument("session_id")
@click.pass_context
def show(ctx: click.Context, session_id: str):
    """Show a session's questions and progress."""
    session = _execute(ctx, lambda o, user_id: o.get_session(user_id, session_id))
    _render_session(session)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user.[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print("[red]Server error[/red]")
        logger.error(f"Unexpected CLI error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

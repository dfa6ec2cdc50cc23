"""CLI commands for the learning platform.

Commands:
- init-db: Create the SQLite database
- import-module: Import a Markdown/text document as a learning module
- modules: List imported modules
- add-learner / learners: Manage learner profiles
- ask: Ask the tutor a question about a module
- progress / complete-topic: Inspect and update topic progress
- feedback: Rate a tutor answer
- serve: Run the Web API
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from learning.config.app_config import load_app_config
from learning.core.content_importer import (
    ContentImportError,
    DuplicateModuleError,
    import_module as do_import_module,
)
from learning.core.feedback import (
    FeedbackValidationError,
    submit_feedback,
    summarize_feedback,
)
from learning.core.learners import LearnerError, create_learner, list_learners
from learning.core.pipeline import build_pipeline
from learning.core.progress import (
    ModuleProgress,
    ProgressError,
    complete_topic,
    get_learner_progress,
    get_module_progress,
)
from learning.core.retriever import ModuleStorageError, RetrievalError
from learning.db.database import init_db
from learning.db.modules_repository import get_all_modules
from learning.llm.client import LLMClient, LLMConfig, LLMError
from learning.utils.text_utils import truncate
from learning.utils.validators import (
    AmbiguousModuleIdError,
    ModuleIdNotFoundError,
    resolve_module_id,
)

app = typer.Typer(
    name="learn",
    help="Personalised learning platform with an agentic RAG tutor.",
    no_args_is_help=True,
)

console = Console()

STATUS_COLORS = {
    "not_started": "dim",
    "in_progress": "yellow",
    "completed": "green",
}


def _init_db() -> None:
    init_db(load_app_config().db_path)


def _resolve_module_id_or_exit(module_id_prefix: str) -> str:
    """Resolve module_id prefix to full ID, or exit with helpful error."""
    candidates = [m.module_id for m in get_all_modules()]
    try:
        return resolve_module_id(module_id_prefix, candidates)
    except ModuleIdNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        if candidates:
            console.print("\nAvailable modules:")
            for c in candidates:
                console.print(f"  - {c}")
        raise typer.Exit(code=1)
    except AmbiguousModuleIdError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)


def _print_module_progress(progress: ModuleProgress) -> None:
    summary = progress.summary
    console.print(
        f"\n[bold]{progress.module_title}[/bold] [dim]({progress.module_id})[/dim]  "
        f"{summary.completed}/{summary.total_topics} completed ({summary.percentage:.1f}%)"
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Topic", style="cyan")
    table.add_column("Title")
    table.add_column("Status", justify="center")
    table.add_column("Interactions", justify="right")

    for topic in progress.topics:
        color = STATUS_COLORS.get(topic.status, "white")
        table.add_row(
            topic.topic_id,
            topic.title,
            f"[{color}]{topic.status}[/{color}]",
            str(topic.interactions),
        )

    console.print(table)


@app.command(name="init-db")
def init_database() -> None:
    """Create the database and its tables."""
    config = load_app_config()
    init_db(config.db_path)
    console.print(f"[green]✓ Database ready:[/green] {config.db_path}")


@app.command(name="import-module")
def import_module(
    file: str = typer.Argument(..., help="Path to a .md, .markdown or .txt file"),
    title: str | None = typer.Option(None, "--title", "-t", help="Module title"),
    description: str = typer.Option("", "--description", "-d", help="Short description"),
    provider: str | None = typer.Option(None, "--provider", "-p", help="LLM provider for embeddings"),
    force: bool = typer.Option(False, "--force", "-f", help="Re-import if exists"),
) -> None:
    """Import a document as a learning module.

    Requires an embeddings endpoint (LM Studio by default) to be running.
    """
    _init_db()
    file_path = Path(file).expanduser().resolve()

    try:
        result = do_import_module(
            file_path=file_path,
            title=title,
            description=description,
            force=force,
            client=LLMClient(LLMConfig.from_app_config(provider)),
        )
    except DuplicateModuleError as e:
        console.print(f"[yellow]⚠ {e}[/yellow]")
        console.print(f"  [dim]existing module_id:[/dim] {e.existing_module_id}")
        console.print("  Use --force to re-import")
        raise typer.Exit(code=1)
    except ContentImportError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    except LLMError as e:
        console.print(f"[red]✗ Embedding failed: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ {result.message}[/green]")
    console.print(f"  [dim]module_id:[/dim] {result.module_id}")
    console.print(f"  [dim]title:[/dim]     {result.title}")
    console.print(f"  [dim]topics:[/dim]    {result.topic_count}")
    console.print(f"  [dim]chunks:[/dim]    {result.chunk_count}")
    console.print(f"  [dim]path:[/dim]      {result.module_path}")


@app.command(name="modules")
def list_modules() -> None:
    """List all imported modules."""
    _init_db()
    modules = get_all_modules()

    if not modules:
        console.print("[yellow]No modules imported[/yellow]")
        console.print("  Use: learn import-module <file.md>")
        return

    console.print(f"\n[bold]Imported modules ({len(modules)}):[/bold]\n")
    for module in modules:
        console.print(f"  [bold]{module.module_id}[/bold]")
        console.print(f"    [dim]title:[/dim]  {module.title}")
        console.print(f"    [dim]topics:[/dim] {module.topic_count}  [dim]chunks:[/dim] {module.chunk_count}")
        console.print()


@app.command(name="add-learner")
def add_learner(
    name: str = typer.Argument(..., help="Learner name"),
    email: str = typer.Option("", "--email", "-e", help="Email address"),
    level: str = typer.Option("beginner", "--level", "-l", help="beginner, intermediate or advanced"),
    persona: str | None = typer.Option(None, "--persona", help="Tutor persona ID"),
    goals: str = typer.Option("", "--goals", "-g", help="Learning goals"),
) -> None:
    """Create a learner profile."""
    _init_db()
    try:
        learner = create_learner(name=name, email=email, level=level, persona_id=persona, goals=goals)
    except LearnerError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Learner created:[/green] {learner.learner_id}")
    console.print(f"  [dim]name:[/dim]    {learner.name}")
    console.print(f"  [dim]level:[/dim]   {learner.level}")
    console.print(f"  [dim]persona:[/dim] {learner.persona_id}")


@app.command(name="learners")
def show_learners() -> None:
    """List learner profiles."""
    _init_db()
    learners = list_learners()

    if not learners:
        console.print("[yellow]No learners yet[/yellow]")
        console.print("  Use: learn add-learner <name>")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Level")
    table.add_column("Persona")

    for learner in learners:
        table.add_row(learner.learner_id, learner.name, learner.level, learner.persona_id)

    console.print(table)


@app.command()
def ask(
    learner_id: str = typer.Argument(..., help="Learner ID (e.g., lrn01)"),
    module_id: str = typer.Argument(..., help="Module ID or unique prefix"),
    question: str = typer.Argument(..., help="Question for the tutor"),
    provider: str | None = typer.Option(None, "--provider", "-p", help="LLM provider"),
    show_sources: bool = typer.Option(True, "--sources/--no-sources", help="Show retrieved chunks"),
) -> None:
    """Ask the tutor a question about a module.

    Requires LLM server (LM Studio by default) to be running.
    """
    _init_db()
    module_id = _resolve_module_id_or_exit(module_id)

    pipeline = build_pipeline(client=LLMClient(LLMConfig.from_app_config(provider)))
    try:
        with console.status("[bold]Thinking...[/bold]"):
            result = pipeline.ask(learner_id, module_id, question)
    except (LearnerError, RetrievalError, ModuleStorageError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)
    except LLMError as e:
        console.print(f"[red]✗ LLM error: {e}[/red]")
        raise typer.Exit(code=1)

    status = "[green]approved[/green]" if result.approved else "[yellow]not approved[/yellow]"
    console.print(Panel(result.answer, title=f"[bold]{module_id}[/bold]", expand=False))
    console.print(
        f"[dim]Review:[/dim] {status} | [dim]rounds:[/dim] {result.rounds} | "
        f"[dim]retrievals:[/dim] {result.retrievals} | [dim]latency:[/dim] {result.latency_ms} ms"
    )
    for issue in result.issues:
        console.print(f"  [yellow]•[/yellow] {truncate(issue, 120)}")

    if show_sources and result.sources:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Chunk", style="cyan")
        table.add_column("Topic")
        table.add_column("Score", justify="right")
        for source in result.sources:
            table.add_row(source["chunk_id"], source["topic_title"], f"{source['score']:.3f}")
        console.print(table)


@app.command()
def progress(
    learner_id: str = typer.Argument(..., help="Learner ID"),
    module_id: str | None = typer.Argument(None, help="Module ID or prefix (all touched modules if omitted)"),
) -> None:
    """Show a learner's progress."""
    _init_db()
    try:
        if module_id is not None:
            reports = [get_module_progress(learner_id, _resolve_module_id_or_exit(module_id))]
        else:
            reports = get_learner_progress(learner_id)
    except LearnerError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    if not reports:
        console.print(f"[yellow]{learner_id} has not started any module yet[/yellow]")
        return

    for report in reports:
        _print_module_progress(report)


@app.command(name="complete-topic")
def complete_topic_command(
    learner_id: str = typer.Argument(..., help="Learner ID"),
    module_id: str = typer.Argument(..., help="Module ID or prefix"),
    topic_id: str = typer.Argument(..., help="Topic ID (e.g., intro-to-python-t02)"),
) -> None:
    """Mark a topic as completed."""
    _init_db()
    module_id = _resolve_module_id_or_exit(module_id)
    try:
        report = complete_topic(learner_id, module_id, topic_id)
    except (LearnerError, ProgressError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Topic completed:[/green] {topic_id}")
    _print_module_progress(report)


@app.command()
def feedback(
    learner_id: str = typer.Argument(..., help="Learner ID"),
    module_id: str = typer.Argument(..., help="Module ID or prefix"),
    rating: int = typer.Argument(..., help="Rating from 1 to 5"),
    question: str = typer.Option("", "--question", "-q", help="Question that was asked"),
    comment: str = typer.Option("", "--comment", "-c", help="Free-text comment"),
) -> None:
    """Rate a tutor answer."""
    _init_db()
    module_id = _resolve_module_id_or_exit(module_id)
    try:
        feedback_id = submit_feedback(
            learner_id=learner_id,
            module_id=module_id,
            rating=rating,
            question=question,
            comment=comment,
        )
    except (FeedbackValidationError, LearnerError) as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    summary = summarize_feedback(module_id)
    console.print(f"[green]✓ Feedback saved[/green] [dim](#{feedback_id})[/dim]")
    console.print(f"  [dim]module average:[/dim] {summary.average_rating} over {summary.count} ratings")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Run the Web API with uvicorn."""
    import uvicorn

    console.print(f"[bold]Serving on[/bold] http://{host}:{port}  [dim](docs at /docs)[/dim]")
    uvicorn.run("learning.web.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()

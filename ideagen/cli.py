"""CLI entry-point: generate, resume and save startup-idea documents."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ideagen.billing import format_cost, get_usage_store
from ideagen.config import get_settings
from ideagen.errors import IdeaGenError
from ideagen.export import build_zip, zip_filename
from ideagen.generate import generator_from_settings
from ideagen.ideas import get_idea_store
from ideagen.pipeline import GenerationEngine, promote_session, regenerate_documents
from ideagen.scoring import match_ideas
from ideagen.scoring.match import BUDGET_LIMITS, TIME_OPTIONS
from ideagen.sessions import get_session_store

app = typer.Typer(help="Startup idea extraction and document generation")

OWNER_HELP = "Owner id the sessions belong to"


def _engine(provider: str | None) -> GenerationEngine:
    settings = get_settings()
    return GenerationEngine(
        get_session_store(),
        generator_from_settings(settings, provider),
        usage_store=get_usage_store(),
    )


def _print_session(console: Console, session) -> None:
    console.print(f"Session: [bold]{session.id}[/bold]")
    console.print(f"Status: {session.status.value} (step {session.current_step}/{session.total_steps})")
    if session.extracted_idea:
        console.print(f"Idea: {session.extracted_idea.title}")
    if session.quality_score is not None:
        console.print(f"Quality score: {session.quality_score}")
    if session.step_costs:
        console.print(f"Cost: {format_cost(sum(session.step_costs.values()))}")
    if session.error_message:
        console.print(f"[red]Error: {session.error_message}[/red]")


@app.command()
def generate(
    email_preview: str = typer.Option("", "--email", help="Email preview text"),
    email_file: str = typer.Option(None, "--email-file", help="Read the email preview from a file"),
    url: str = typer.Option("", "--url", help="Idea page URL to fetch"),
    provider: str = typer.Option(None, help="LLM provider: openai | anthropic (default from env)"),
    owner: str = typer.Option("admin", "--owner", help=OWNER_HELP),
    fresh: bool = typer.Option(False, "--fresh", help="Discard the current active session first"),
):
    """Fetch, extract and generate PRD, GTM and marketing documents."""
    console = Console()
    if email_file:
        try:
            email_preview = Path(email_file).read_text(encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    try:
        engine = _engine(provider)
        console.print("Starting generation...")
        session = engine.start(owner, email_preview, url, replace_active=fresh)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except IdeaGenError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    _print_session(console, session)
    console.print(f"[green]Done.[/green] Save it with: ideagen promote {session.id}")


@app.command()
def resume(
    session_id: str = typer.Argument(None, help="Session id (default: the active session)"),
    provider: str = typer.Option(None, help="LLM provider: openai | anthropic (default from env)"),
    owner: str = typer.Option("admin", "--owner", help=OWNER_HELP),
):
    """Continue a session from its last completed step."""
    console = Console()
    try:
        session = _engine(provider).resume(owner, session_id)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except IdeaGenError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    _print_session(console, session)


@app.command()
def sessions(owner: str = typer.Option("admin", "--owner", help=OWNER_HELP)):
    """List generation sessions, newest first."""
    console = Console()
    rows = get_session_store().list(owner)
    if not rows:
        console.print("No sessions.")
        return
    table = Table(title="Generation sessions")
    table.add_column("ID")
    table.add_column("Status")
    table.add_column("Step", justify="right")
    table.add_column("Idea")
    table.add_column("Cost", justify="right")
    table.add_column("Started")
    for s in rows:
        table.add_row(
            s.id,
            s.status.value,
            f"{s.current_step}/{s.total_steps}",
            s.extracted_idea.title if s.extracted_idea else "",
            format_cost(sum(s.step_costs.values())),
            s.started_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def promote(
    session_id: str = typer.Argument(..., help="Completed session id"),
    owner: str = typer.Option("admin", "--owner", help=OWNER_HELP),
    zip_out: str = typer.Option(None, "--zip", help="Also write the documents as a ZIP into this directory"),
):
    """Save a completed session as a permanent idea."""
    console = Console()
    session_store = get_session_store()
    session = session_store.get(session_id, owner)
    if session is None:
        console.print(f"[red]Error: session not found: {session_id}[/red]")
        raise typer.Exit(1)
    try:
        idea = promote_session(session, get_idea_store(), session_store, owner)
    except IdeaGenError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    console.print(f"Saved idea [bold]{idea.id}[/bold]: {idea.title}")

    if zip_out:
        out_dir = Path(zip_out)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / zip_filename(idea.title)
        path.write_bytes(build_zip(idea.title, idea.prd_content, idea.gtm_content, idea.marketing_content))
        console.print(f"Wrote {path}")


@app.command()
def regenerate(
    idea_id: str = typer.Argument(..., help="Saved idea id"),
    provider: str = typer.Option(None, help="LLM provider: openai | anthropic (default from env)"),
    owner: str = typer.Option("admin", "--owner", help=OWNER_HELP),
):
    """Regenerate the PRD, GTM and marketing documents of a saved idea."""
    console = Console()
    idea_store = get_idea_store()
    idea = idea_store.get(idea_id, owner)
    if idea is None:
        console.print(f"[red]Error: idea not found: {idea_id}[/red]")
        raise typer.Exit(1)
    try:
        generator = generator_from_settings(get_settings(), provider)
        idea = regenerate_documents(idea, generator, idea_store, get_usage_store())
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except IdeaGenError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    console.print(f"Regenerated documents for [bold]{idea.title}[/bold]")
    console.print(f"Total cost: {format_cost(idea.total_cost or 0.0)}")


@app.command()
def match(
    skill: list[str] = typer.Option(..., "--skill", help="Your skills: code, design, marketing, sales (repeatable)"),
    budget: str = typer.Option(..., help=f"Budget range: {' | '.join(BUDGET_LIMITS)}"),
    time: str = typer.Option(..., "--time", help=f"Availability: {' | '.join(TIME_OPTIONS)}"),
    owner: str = typer.Option("admin", "--owner", help=OWNER_HELP),
):
    """Show the saved ideas that best fit your skills, budget and time."""
    console = Console()
    try:
        matches = match_ideas(get_idea_store().list(owner), skill, budget, time)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except IdeaGenError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    if not matches:
        console.print("No matching ideas.")
        return
    for m in matches:
        console.print(f"[bold]{m.match_score}%[/bold] {m.idea.title} ({m.idea.id})")
        for reason in m.reasons:
            console.print(f"  - {reason}")


@app.command()
def sweep(
    days: int = typer.Option(None, "--days", help="Remove finished sessions older than this (default from env)"),
    owner: str = typer.Option("admin", "--owner", help=OWNER_HELP),
):
    """Delete the owner's completed and failed sessions past the retention window."""
    console = Console()
    settings = get_settings()
    removed = get_session_store().sweep(owner, days if days is not None else settings.session_retention_days)
    console.print(f"Removed {removed} session(s).")


if __name__ == "__main__":
    app()

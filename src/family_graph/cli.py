"""Command-line interface for family-graph."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Settings, load_settings
from .errors import FamilyGraphError
from .logging import bind_actor, configure_logging
from .models import Gender, Person, PersonChanges, PersonDraft, RelationshipType
from .service import FamilyTreeSession

app = typer.Typer(
    name="family-graph",
    help="Family tree graph maintenance",
    add_completion=False,
)
console = Console()

T = TypeVar("T")


def get_settings() -> Settings:
    """Load settings from the environment and configure logging."""
    try:
        settings = load_settings()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    configure_logging(settings.log_level)
    bind_actor(settings.actor_id)
    return settings


def _run(work: Callable[[FamilyTreeSession], Awaitable[T]]) -> T:
    """Open a synced session, run ``work`` and close the session."""
    settings = get_settings()

    async def main() -> T:
        async with FamilyTreeSession.from_settings(settings) as session:
            await session.sync()
            return await work(session)

    try:
        return asyncio.run(main())
    except FamilyGraphError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _find(session: FamilyTreeSession, ref: str) -> Person:
    """Look a person up by full id or unique id prefix."""
    if ref in session.people:
        return session.people[ref]
    matches = [p for pid, p in session.people.items() if pid.startswith(ref)]
    if len(matches) != 1:
        reason = "No person" if not matches else f"{len(matches)} people"
        console.print(f"[red]Error: {reason} matching '{ref}'[/red]")
        raise typer.Exit(1)
    return matches[0]


def _relationship(value: str) -> RelationshipType:
    try:
        return RelationshipType(value.lower())
    except ValueError:
        console.print(f"[red]Invalid relationship. Choose from: {[r.value for r in RelationshipType]}[/red]")
        raise typer.Exit(1)


def _gender(value: str | None) -> Gender | None:
    if value is None:
        return None
    try:
        return Gender(value.lower())
    except ValueError:
        console.print(f"[red]Invalid gender. Choose from: {[g.value for g in Gender]}[/red]")
        raise typer.Exit(1)


def _years(person: Person) -> str:
    if not person.birth_date and not person.death_date:
        return ""
    return f"{(person.birth_date or '?')[:4]}-{(person.death_date or '')[:4]}"


@app.command()
def init(
    name: str = typer.Argument(..., help="Your display name"),
    birth: str = typer.Option(None, "--birth", "-b", help="Birth date (YYYY-MM-DD)"),
    gender: str = typer.Option(None, "--gender", "-g", help="male, female or other"),
):
    """Create the profile for the configured account."""
    draft = PersonDraft(name=name, birth_date=birth, gender=_gender(gender))

    async def work(session: FamilyTreeSession) -> Person:
        if session.ego is not None:
            return session.ego
        return await session.create_profile(draft)

    person = _run(work)
    console.print(f"[green]Profile ready:[/green] {person.name} [dim]{person.id}[/dim]")


@app.command("add-person")
def add_person(
    name: str = typer.Argument(..., help="Name of the person to add"),
    relation: str = typer.Option(None, "--relation", "-r", help="parent, child, spouse or sibling"),
    of: str = typer.Option(None, "--of", help="Person the new relative is related to (defaults to you)"),
    birth: str = typer.Option(None, "--birth", "-b", help="Birth date (YYYY-MM-DD)"),
    death: str = typer.Option(None, "--death", "-d", help="Death date (YYYY-MM-DD)"),
    gender: str = typer.Option(None, "--gender", "-g", help="male, female or other"),
):
    """Add a person, optionally as a relative of someone already in the tree."""
    draft = PersonDraft(name=name, birth_date=birth, death_date=death, gender=_gender(gender))
    relationship = _relationship(relation) if relation else None

    async def work(session: FamilyTreeSession) -> Person:
        if relationship is None:
            return await session.add_person(draft)
        if of:
            anchor = _find(session, of)
        elif session.ego is not None:
            anchor = session.ego
        else:
            console.print("[red]Error: No profile yet. Run 'family-graph init' or pass --of.[/red]")
            raise typer.Exit(1)
        return await session.add_relative(anchor.id, relationship, draft)

    person = _run(work)
    suffix = f" as {relationship.value}" if relationship else ""
    console.print(f"[green]Added {person.name}{suffix}[/green] [dim]{person.id}[/dim]")


@app.command()
def relate(
    person_one: str = typer.Argument(..., help="First person (the parent for parent/child)"),
    relation: str = typer.Argument(..., help="parent, child, spouse or sibling"),
    person_two: str = typer.Argument(..., help="Second person"),
):
    """Link two people already in the tree."""
    relationship = _relationship(relation)

    async def work(session: FamilyTreeSession) -> tuple[Person, Person, str]:
        one, two = _find(session, person_one), _find(session, person_two)
        edge_id = await session.relate(one.id, two.id, relationship)
        return one, two, edge_id

    one, two, edge_id = _run(work)
    console.print(f"[green]Linked {one.name} and {two.name} as {relationship.value}[/green] [dim]{edge_id}[/dim]")


@app.command()
def unrelate(
    person_one: str = typer.Argument(..., help="First person"),
    relation: str = typer.Argument(..., help="parent, child, spouse or sibling"),
    person_two: str = typer.Argument(..., help="Second person"),
):
    """Remove a relationship you created."""
    relationship = _relationship(relation)

    async def work(session: FamilyTreeSession) -> tuple[Person, Person]:
        one, two = _find(session, person_one), _find(session, person_two)
        await session.unrelate(one.id, two.id, relationship)
        return one, two

    one, two = _run(work)
    console.print(f"[green]Removed {relationship.value} link between {one.name} and {two.name}[/green]")


@app.command()
def edit(
    person: str = typer.Argument(..., help="Person to edit"),
    name: str = typer.Option(None, "--name", "-n", help="New name"),
    birth: str = typer.Option(None, "--birth", "-b", help="Birth date (YYYY-MM-DD)"),
    death: str = typer.Option(None, "--death", "-d", help="Death date (YYYY-MM-DD)"),
    bio: str = typer.Option(None, "--bio", help="Short biography"),
):
    """Edit profile details."""
    fields = {k: v for k, v in {"name": name, "birth_date": birth, "death_date": death, "bio": bio}.items() if v}
    if not fields:
        console.print("[yellow]Nothing to change[/yellow]")
        return

    async def work(session: FamilyTreeSession) -> Person:
        return await session.edit_profile(_find(session, person).id, PersonChanges(**fields))

    updated = _run(work)
    console.print(f"[green]Updated {updated.name}[/green] [dim]version {updated.version}[/dim]")


@app.command()
def show(
    person: str = typer.Argument(None, help="Person to show (defaults to you)"),
    generations: int = typer.Option(3, "--generations", "-n", help="Lineage depth to list"),
):
    """Show a person's immediate family and lineage."""

    async def work(session: FamilyTreeSession):
        if person:
            focal = _find(session, person)
        elif session.ego is not None:
            focal = session.ego
        else:
            console.print("[red]Error: No profile yet. Run 'family-graph init' or pass a person.[/red]")
            raise typer.Exit(1)
        return (
            session.family_unit(focal.id),
            list(session.ancestors(focal.id, generations)),
            list(session.descendants(focal.id, generations)),
            session.count_ancestors(focal.id),
            session.count_descendants(focal.id),
        )

    unit, ancestors, descendants, n_ancestors, n_descendants = _run(work)
    focal = unit.focal_person

    header = f"[bold]{focal.name}[/bold] {_years(focal)}"
    if focal.is_placeholder:
        header += " [dim](placeholder)[/dim]"
    console.print(Panel(header, title=focal.id))

    table = Table(title="Immediate Family")
    table.add_column("Relation")
    table.add_column("Name")
    table.add_column("Years")
    for label, members in (
        ("Parent", unit.parents),
        ("Spouse", unit.spouses),
        ("Sibling", unit.siblings),
        ("Child", unit.children),
    ):
        for member in members:
            table.add_row(label, member.name, _years(member))
    console.print(table)

    if ancestors or descendants:
        lineage = Table(title="Lineage")
        lineage.add_column("Relation")
        lineage.add_column("Name")
        for entry in ancestors + descendants:
            lineage.add_row(entry.relationship_label, entry.person.name)
        console.print(lineage)

    console.print(f"[dim]{n_ancestors} ancestors, {n_descendants} descendants[/dim]")


@app.command()
def people(
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum results"),
):
    """List people in the tree."""

    async def work(session: FamilyTreeSession) -> list[Person]:
        return sorted(session.people.values(), key=lambda p: p.name.lower())

    everyone = _run(work)
    if not everyone:
        console.print("[yellow]No people yet[/yellow]")
        return

    table = Table(title="People")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Years")
    table.add_column("Parents")
    table.add_column("Children")
    table.add_column("Spouses")
    table.add_column("Siblings")
    for p in everyone[:limit]:
        table.add_row(
            p.id,
            p.name,
            _years(p),
            str(len(p.parent_ids)),
            str(len(p.child_ids)),
            str(len(p.spouse_ids)),
            str(len(p.sibling_ids)),
        )
    console.print(table)
    console.print(f"[dim]Showing {min(limit, len(everyone))} of {len(everyone)} people[/dim]")


@app.command()
def stats():
    """Show statistics about the tree."""

    async def work(session: FamilyTreeSession) -> dict[str, int]:
        everyone = session.people.values()
        ego = session.ego
        return {
            "people": len(session.people),
            "linked profiles": sum(1 for p in everyone if not p.is_ancestor_profile),
            "placeholders": sum(1 for p in everyone if p.is_placeholder),
            "parent links": sum(len(p.child_ids) for p in everyone),
            "spouse pairs": sum(len(p.spouse_ids) for p in everyone) // 2,
            "sibling pairs": sum(len(p.sibling_ids) for p in everyone) // 2,
            "your ancestors": session.count_ancestors(ego.id) if ego else 0,
            "your descendants": session.count_descendants(ego.id) if ego else 0,
        }

    statistics = _run(work)

    table = Table(title="Tree Statistics")
    table.add_column("Metric")
    table.add_column("Value")
    for metric, value in statistics.items():
        table.add_row(metric.capitalize(), str(value))
    console.print(table)


if __name__ == "__main__":
    app()

"""
Meal Board - CLI Entry Point.

Usage:
    mealboard show                          Show this week's board
    mealboard toggle Alice 2024-06-04 早    Reserve / release one meal
    mealboard add Bob -k 2024-06-04-早      Add someone with their first meal
    mealboard headcount Alice 3             Meals per checked slot
    mealboard rename Alice Alicia           Rename an entry
    mealboard edit Alice -c 2 -k 2024-06-04-早 -k 2024-06-05-晚
    mealboard delete Alice                  Remove Alice and all her rows
    mealboard health                        Check configuration
"""

import asyncio
from datetime import date, timedelta
from typing import Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from mealboard.controller import MutationController
from mealboard.errors import MealBoardError, PartialBatchFailure
from mealboard.schedule import Slot
from mealboard.view import BoardView

app = typer.Typer(
    name="mealboard",
    help="Meal Board - weekly canteen reservations.",
    add_completion=False,
)
console = Console()

WeekOption = typer.Option(None, "--week", "-w", help="Any date in the week (YYYY-MM-DD); default today")
AsOption = typer.Option(None, "--as", help="Act as this identity (default MEALBOARD_IDENTITY)")


def _parse_day(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value!r}")


def _build_controller() -> MutationController:
    from mealboard.config import get_settings
    from mealboard.engine import ReconciliationEngine
    from mealboard.observability import configure_logging
    from mealboard.schedule import ScheduleCalendar
    from mealboard.store import ReservationStore

    settings = get_settings()
    configure_logging(settings.log_level)
    engine = ReconciliationEngine(ReservationStore.from_settings(), ScheduleCalendar.from_settings(settings))
    return MutationController(engine)


def _run(
    week: str | None,
    identity: str | None,
    action: Callable[[MutationController], Awaitable[object]] | None = None,
    shift: int = 0,
) -> None:
    """Load the week, apply one action, print the resulting board."""
    from mealboard.db.request_context import clear_request_context, set_request_context

    async def _go() -> BoardView:
        controller = _build_controller()
        anchor = _parse_day(week) or controller.clock().date()
        # Loaded directly: shifting here must not flush anything
        await controller.load(anchor + timedelta(weeks=shift))
        if action is not None:
            await action(controller)
        return controller.view()

    set_request_context(identity)
    try:
        view = asyncio.run(_go())
    except PartialBatchFailure as e:
        console.print(f"[red]Partially saved: {e}[/red]")
        for row, error in e.failed:
            console.print(f"  [red]✗[/red] {row}: {error}")
        raise typer.Exit(1)
    except MealBoardError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        clear_request_context()

    render_board(view)


def render_board(view: BoardView) -> None:
    """Print a board view as a rich table."""
    title = f"Meal plan {view.start:%Y-%m-%d} – {view.end:%Y-%m-%d}"
    if view.carried_over:
        title += " [dim](roster carried over)[/dim]"
    table = Table(title=title, show_lines=False)
    table.add_column("Name", style="bold")
    table.add_column("#", justify="right")
    for day in view.days:
        for slot in view.slots:
            table.add_column(f"{day.label}\n{slot.value}", justify="center")

    for person in view.people:
        cells = []
        for cell in person.cells:
            mark = "✓" if cell.checked else "·"
            cells.append(mark if cell.editable else f"[dim]{mark}[/dim]")
        name = person.name or "[italic dim](unnamed)[/italic dim]"
        table.add_row(name, str(person.headcount), *cells)

    table.add_section()
    table.add_row("Total", "", *(str(cell.total) for cell in view.totals), style="green")
    console.print(table)


@app.command()
def show(
    week: Optional[str] = WeekOption,
    shift: int = typer.Option(0, "--shift", "-s", help="Move this many weeks from --week"),
    identity: Optional[str] = AsOption,
) -> None:
    """Show the board for a week. Read-only."""
    _run(week, identity, shift=shift)


@app.command()
def toggle(
    name: str = typer.Argument(..., help="Person on the board"),
    day: str = typer.Argument(..., help="Meal date (YYYY-MM-DD)"),
    slot: str = typer.Argument(..., help="早 / 中 / 晚, or morning / noon / evening"),
    identity: Optional[str] = AsOption,
) -> None:
    """Reserve or release one meal."""
    meal_day = _parse_day(day)
    try:
        meal_slot = Slot.parse(slot)
    except ValueError as e:
        raise typer.BadParameter(str(e))
    _run(day, identity, lambda c: c.toggle_slot(name, meal_day, meal_slot))


@app.command()
def add(
    name: str = typer.Argument(..., help="Name to add"),
    keys: list[str] = typer.Option([], "--key", "-k", help="Meal to reserve, e.g. 2024-06-04-早"),
    count: Optional[int] = typer.Option(None, "--count", "-c", help="Meals per checked slot"),
    week: Optional[str] = WeekOption,
    identity: Optional[str] = AsOption,
) -> None:
    """Add a person to the week together with their first meals."""
    # Only reservations are stored; a name with no meals would be lost on exit
    if not keys:
        raise typer.BadParameter("Reserve at least one meal with --key", param_hint="--key")

    async def _add(controller: MutationController) -> None:
        person = await controller.add_person(name)
        await controller.bulk_edit_week(person.name, count or person.headcount, keys)

    _run(week, identity, _add)


@app.command()
def headcount(
    name: str = typer.Argument(...),
    count: int = typer.Argument(..., help="Meals per checked slot"),
    week: Optional[str] = WeekOption,
    identity: Optional[str] = AsOption,
) -> None:
    """Change how many meals a person reserves per slot."""
    _run(week, identity, lambda c: c.set_headcount(name, count))


@app.command()
def rename(
    name: str = typer.Argument(...),
    new_name: str = typer.Argument(...),
    week: Optional[str] = WeekOption,
    identity: Optional[str] = AsOption,
) -> None:
    """Rename a person. Earlier weeks keep the old name."""
    _run(week, identity, lambda c: c.rename(name, new_name))


@app.command()
def edit(
    name: str = typer.Argument(...),
    count: int = typer.Option(..., "--count", "-c", help="Meals per checked slot"),
    keys: list[str] = typer.Option([], "--key", "-k", help="Reserved cell, e.g. 2024-06-04-早"),
    week: Optional[str] = WeekOption,
    identity: Optional[str] = AsOption,
) -> None:
    """Replace a person's whole week in one go."""
    _run(week, identity, lambda c: c.bulk_edit_week(name, count, keys))


@app.command()
def delete(
    name: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    week: Optional[str] = WeekOption,
    identity: Optional[str] = AsOption,
) -> None:
    """Remove a person and ALL their reservations, in every week."""
    if not yes:
        typer.confirm(
            f"Delete {name} and every reservation they ever made?",
            abort=True,
        )
    _run(week, identity, lambda c: c.delete_person(name, confirmed=True))


@app.command()
def health() -> None:
    """Check configuration and table access."""
    from mealboard.config import get_settings
    from mealboard.schedule import ScheduleCalendar

    console.print("\n[bold]Meal Board Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Environment: {settings.mealboard_env}")
        console.print(f"   Log level: {settings.log_level}")
        console.print(f"   Table: {settings.mealboard_table}")

        calendar = ScheduleCalendar.from_settings(settings)
        hours = ", ".join(f"{slot.value} {hour:02d}:00" for slot, hour in calendar.cutoff_hours.items())
        console.print(f"   Cut-offs ({settings.mealboard_timezone}): {hours}")

        if settings.supabase_url.startswith("https://"):
            console.print("✅ Supabase URL configured")
        else:
            console.print("❌ Supabase URL missing or invalid")

        if settings.mealboard_identity:
            console.print(f"✅ Acting as {settings.mealboard_identity}")
        else:
            console.print("ℹ️  No identity configured (open-edit mode)")

        from mealboard.db.client import get_client

        client = get_client()
        client.table(settings.mealboard_table).select("*", count="exact").limit(0).execute()
        console.print(f"✅ {settings.mealboard_table} reachable")

        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]❌ Health check failed: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with SUPABASE_URL and SUPABASE_ANON_KEY.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from mealboard import __version__

    console.print(f"Meal Board version {__version__}")


if __name__ == "__main__":
    app()

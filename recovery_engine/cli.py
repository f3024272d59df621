"""Command-line interface for the recovery engine."""

import logging

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape
from rich import box
from sqlalchemy.exc import SQLAlchemyError

from .config import config
from .db import get_db, close_db
from .exceptions import RecoveryEngineError
from .analysis.periodization import DeloadPhase
from .service import RecoveryService

console = Console()

RECOMMENDATION_STYLE = {
    "train": "green",
    "moderate": "yellow",
    "rest": "red",
}


def score_color(score: float) -> str:
    """Rich color for a 0-100 score."""
    if score >= 85:
        return "green"
    elif score >= 60:
        return "yellow"
    else:
        return "red"


def print_error(error: Exception):
    console.print(f"[red]❌ {escape(str(error))}[/red]")


def get_service(ctx) -> RecoveryService:
    return RecoveryService(user_id=ctx.obj["user_id"], db=get_db())


def render_recovery(output, title: str):
    """Print one engine output as a table plus a recommendation panel."""
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("System", style="cyan")
    table.add_column("Score", justify="right")

    for label, score in [
        ("Muscular", output.muscular_score),
        ("CNS", output.cns_score),
        ("Sleep", output.sleep_score),
        ("Stress", output.stress_score),
    ]:
        color = score_color(score)
        table.add_row(label, f"[{color}]{score}[/{color}]")
    color = score_color(output.overall_score)
    table.add_row("[bold]Overall[/bold]", f"[bold {color}]{output.overall_score}[/bold {color}]")
    console.print(table)

    if output.muscle_breakdown:
        muscles = Table(title="Muscle Groups", box=box.SIMPLE)
        muscles.add_column("Group", style="cyan")
        muscles.add_column("Recovery", justify="right")
        for group, score in sorted(output.muscle_breakdown.items(), key=lambda item: item[1]):
            color = score_color(score)
            muscles.add_row(group, f"[{color}]{score}[/{color}]")
        console.print(muscles)

    style = RECOMMENDATION_STYLE.get(output.recommendation, "white")
    lines = [
        f"Recommendation: [bold {style}]{output.recommendation.upper()}[/bold {style}]",
        f"Sleep debt: {output.sleep_debt / 60:.1f} h",
        f"Stress level: {output.stress_level}",
    ]
    if output.projected_full_recovery is not None:
        lines.append(f"CNS fully recovered: {output.projected_full_recovery:%Y-%m-%d %H:%M} UTC")
    if output.overtraining_flag:
        lines.append("[red]⚠️  Overtraining risk detected[/red]")
    if output.deload_flag:
        lines.append("[orange1]⚠️  Deload week suggested[/orange1]")
    console.print(Panel("\n".join(lines), title="Readiness", border_style=style))


def render_report(report):
    render_recovery(report.recovery, f"Recovery {report.as_of}")

    streaks = report.streaks
    console.print(
        f"Streaks: recovery [bold]{streaks.recovery_streak}[/bold]  "
        f"sleep [bold]{streaks.sleep_streak}[/bold]  "
        f"balance [bold]{streaks.balance_streak}[/bold]"
    )
    if report.deload_cycle_started:
        console.print(
            f"[orange1]🔻 Deload cycle started: {report.deload.reason} "
            f"(reduce volume {report.deload.volume_reduction_percent}%)[/orange1]"
        )
    elif report.deload.in_deload:
        console.print(f"[orange1]🔻 Deload active: reduce volume {report.deload.volume_reduction_percent}%[/orange1]")


@click.group()
@click.option("--user", "user_id", default=config.DEFAULT_USER_ID, help="User id to operate on")
@click.pass_context
def cli(ctx, user_id):
    """Biological recovery scoring engine."""
    ctx.ensure_object(dict)
    ctx.obj["user_id"] = user_id


@cli.command()
def init():
    """Create the database tables."""
    try:
        config.validate()
        get_db().create_tables()
        console.print(f"[green]✅ Database ready at {escape(str(config.DATABASE_URL))}[/green]")
    except (ValueError, SQLAlchemyError) as e:
        print_error(e)


@cli.command()
@click.option("--date", "as_of", default=None, help="As-of date (YYYY-MM-DD), defaults to today")
@click.pass_context
def status(ctx, as_of):
    """Show recovery for a date (stored snapshot if one exists)."""
    try:
        service = get_service(ctx)
        day = service.resolve_as_of(as_of)
        output = service.repository.get_snapshot(day)
        if output is None:
            console.print("[black]No snapshot stored for this date; calculating...[/black]")
            output = service.calculate(day, save=True)
        render_recovery(output, f"Recovery {day}")
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)


@cli.command()
@click.option("--date", "as_of", default=None, help="As-of date (YYYY-MM-DD)")
@click.option("--save/--no-save", default=True, help="Store the result if the day has no snapshot")
@click.pass_context
def calculate(ctx, as_of, save):
    """Calculate recovery; saves only when no snapshot exists yet."""
    try:
        service = get_service(ctx)
        output = service.calculate(as_of, save=save)
        render_recovery(output, "Recovery")
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)


@cli.command()
@click.option("--date", "as_of", default=None, help="As-of date (YYYY-MM-DD)")
@click.pass_context
def recalculate(ctx, as_of):
    """Recompute and overwrite the snapshot, behavior metrics and deload state."""
    try:
        with console.status("[black]Recalculating recovery...[/black]"):
            report = get_service(ctx).recalculate(as_of)
        render_report(report)
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)


@cli.command("log-workout")
@click.option("--date", "workout_date", default=None, help="Workout date (YYYY-MM-DD)")
@click.option("--rpe", type=float, default=None, help="Perceived exertion 1-10")
@click.option("--duration", type=float, default=None, help="Duration in minutes")
@click.option("--name", default=None, help="Workout name")
@click.option("--muscle", "muscles", multiple=True, help="Muscle group trained (repeatable)")
@click.option("--exercise", "exercise_names", multiple=True, help="Exercise name (repeatable)")
@click.pass_context
def log_workout(ctx, workout_date, rpe, duration, name, muscles, exercise_names):
    """Log a workout and update today's recovery."""
    try:
        workout_id, report = get_service(ctx).log_workout(
            workout_date,
            perceived_exertion=rpe,
            duration_minutes=duration,
            name=name,
            muscle_groups=list(muscles),
            exercises=[{"exercise_name": e} for e in exercise_names],
        )
        console.print(f"[green]✅ Workout #{workout_id} logged[/green]")
        if report is not None:
            render_report(report)
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)


@cli.command("log-sleep")
@click.option("--date", "sleep_date", default=None, help="Night of sleep (YYYY-MM-DD)")
@click.option("--minutes", type=float, default=None, help="Total sleep in minutes")
@click.option("--quality", type=float, default=None, help="Sleep quality 1-10")
@click.option("--deep", type=float, default=None, help="Deep sleep in minutes")
@click.option("--rem", type=float, default=None, help="REM sleep in minutes")
@click.option("--awakenings", type=int, default=None, help="Number of awakenings")
@click.pass_context
def log_sleep(ctx, sleep_date, minutes, quality, deep, rem, awakenings):
    """Log a night of sleep and update today's recovery."""
    try:
        log_id, report = get_service(ctx).log_sleep(
            sleep_date,
            total_minutes=minutes,
            quality=quality,
            deep_sleep_minutes=deep,
            rem_minutes=rem,
            awakenings=awakenings,
        )
        console.print(f"[green]✅ Sleep log #{log_id} saved[/green]")
        if report is not None:
            render_report(report)
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)


@cli.command("log-stress")
@click.option("--date", "log_date", default=None, help="Date (YYYY-MM-DD)")
@click.option("--level", type=float, default=None, help="Stress level 1-10")
@click.option("--hrv", type=float, default=None, help="HRV (RMSSD, ms)")
@click.pass_context
def log_stress(ctx, log_date, level, hrv):
    """Log a stress/HRV reading and update today's recovery."""
    try:
        log_id, report = get_service(ctx).log_stress(log_date, stress_level=level, hrv_ms=hrv)
        console.print(f"[green]✅ Stress log #{log_id} saved[/green]")
        if report is not None:
            render_report(report)
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)


@cli.command()
@click.option("--range", "range_key", type=click.Choice(list(config.HISTORY_RANGES)), default="7d")
@click.option("--date", "as_of", default=None, help="End date (YYYY-MM-DD)")
@click.pass_context
def history(ctx, range_key, as_of):
    """Show stored recovery history."""
    try:
        df = get_service(ctx).history_frame(range_key, as_of)
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)
        return

    if df.empty:
        console.print("[orange1]No recovery snapshots in this range.[/orange1]")
        return

    table = Table(title=f"Recovery History ({range_key})", box=box.ROUNDED)
    for column in ["Date", "Overall", "7d Avg", "Muscular", "CNS", "Sleep", "Stress", "Debt (h)"]:
        table.add_column(column, justify="right" if column != "Date" else "left", no_wrap=True)

    for day, row in df.iterrows():
        color = score_color(row["overall_score"])
        table.add_row(
            day.strftime("%Y-%m-%d"),
            f"[{color}]{int(row['overall_score'])}[/{color}]",
            f"{row['readiness_7d']:.1f}",
            str(int(row["muscular_score"])),
            str(int(row["cns_score"])),
            str(int(row["sleep_score"])),
            str(int(row["stress_score"])),
            f"{row['sleep_debt'] / 60:.1f}",
        )
    console.print(table)


@cli.command()
@click.option("--date", "as_of", default=None, help="As-of date (YYYY-MM-DD)")
@click.pass_context
def streaks(ctx, as_of):
    """Show behavioral compliance streaks."""
    try:
        result = get_service(ctx).streaks(as_of)
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)
        return

    table = Table(title="Streaks", box=box.ROUNDED)
    table.add_column("Habit", style="cyan")
    table.add_column("Days", justify="right")
    table.add_row("Followed recommendation", str(result.recovery_streak))
    table.add_row("Sleep target met", str(result.sleep_streak))
    table.add_row("Balanced training", str(result.balance_streak))
    console.print(table)


@cli.command()
@click.option("--date", "as_of", default=None, help="As-of date (YYYY-MM-DD)")
@click.pass_context
def deload(ctx, as_of):
    """Show the deload-cycle state."""
    try:
        result = get_service(ctx).deload_status(as_of)
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)
        return

    if result.phase == DeloadPhase.ACTIVE:
        body = f"Deload cycle active\nReduce volume by {result.volume_reduction_percent}%"
        if result.reason:
            body += f"\nReason: {result.reason}"
        console.print(Panel(body, title="🔻 Deload", border_style="orange1"))
    elif result.deload_recommended:
        console.print(Panel(
            f"{result.reason}\nSuggested volume reduction: {result.volume_reduction_percent}%",
            title="🔻 Deload recommended", border_style="orange1",
        ))
    else:
        console.print("[green]✅ No deload needed[/green]")


@cli.command("end-deload")
@click.option("--date", "end_date", default=None, help="End date (YYYY-MM-DD)")
@click.pass_context
def end_deload(ctx, end_date):
    """End the active deload cycle."""
    try:
        if get_service(ctx).end_deload(end_date):
            console.print("[green]✅ Deload cycle ended[/green]")
        else:
            console.print("[orange1]No active deload cycle.[/orange1]")
    except (RecoveryEngineError, SQLAlchemyError) as e:
        print_error(e)


def main():
    """Main entry point."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[orange1]Operation cancelled by user.[/orange1]")
    finally:
        close_db()


if __name__ == "__main__":
    main()

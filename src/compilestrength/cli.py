#!/usr/bin/env python3
"""
CompileStrength operator CLI.

Usage:
    compilestrength init-db                 # Create the database schema
    compilestrength serve --port 8000       # Run the API with uvicorn
    compilestrength grant USER_ID           # Give a user an active subscription
    compilestrength usage USER_ID           # Show the user's current usage period
    compilestrength programs USER_ID        # List the user's saved programs
    compilestrength token USER_ID --email me@example.com   # Issue a dev access token
    compilestrength stats                   # Row counts of the program tables
"""

import argparse
import os
import sys
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .db.database import SQLiteRepository
from .db.repositories.program_repository import ProgramRepository
from .db.repositories.subscription_repository import SubscriptionRepository
from .db.repositories.usage_repository import UsageRepository
from .exceptions import SubscriptionNotFoundError
from .models.usage import QuotaStatus
from .services.auth_service import AuthService
from .services.usage_service import UsageService

console = Console()


def _quota_style(status: QuotaStatus) -> str:
    if not status.allowed:
        return "red"
    if status.limit and status.used / status.limit >= 0.8:
        return "yellow"
    return "green"


def cmd_init_db(args, db_path: Optional[str]):
    """Create the schema (idempotent)."""
    repo = SQLiteRepository(db_path)
    console.print(f"[green]Database ready:[/green] {repo.db_path}")


def cmd_serve(args, db_path: Optional[str]):
    """Run the API server."""
    import uvicorn

    if db_path:
        # The app builds its repositories without a path; they read this
        os.environ["COMPILESTRENGTH_DB_PATH"] = db_path

    settings = get_settings()
    uvicorn.run(
        "compilestrength.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=args.reload,
    )


def cmd_grant(args, db_path: Optional[str]):
    """Create an active subscription for local development."""
    repo = SubscriptionRepository(db_path)
    existing = repo.get_active_subscription(args.user_id)
    if existing and not args.force:
        console.print(
            f"[yellow]User {args.user_id} already has an active subscription "
            f"({existing.id}). Use --force to add another.[/yellow]"
        )
        return

    subscription = repo.create_subscription(
        user_id=args.user_id,
        status=args.status,
        email=args.email,
    )
    console.print(
        f"[green]Created {subscription.status} subscription[/green] {subscription.id} "
        f"for {args.user_id}"
    )


def cmd_usage(args, db_path: Optional[str]):
    """Show the user's current usage period."""
    service = UsageService(
        subscription_repo=SubscriptionRepository(db_path),
        usage_repo=UsageRepository(db_path),
    )
    try:
        summary = service.get_current_usage(args.user_id)
    except SubscriptionNotFoundError:
        console.print(f"[red]No active subscription for {args.user_id}[/red]")
        sys.exit(1)

    table = Table(
        title=(
            f"Usage {summary.period_start:%Y-%m-%d %H:%M} to "
            f"{summary.period_end:%Y-%m-%d %H:%M} UTC"
        ),
        box=box.ROUNDED,
    )
    table.add_column("Kind", style="cyan")
    table.add_column("Used", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Allowed")

    for label, status in (
        ("Compiles", summary.compiles),
        ("Routine edits", summary.routine_edits),
        ("AI messages", summary.ai_messages),
    ):
        style = _quota_style(status)
        table.add_row(
            label,
            f"[{style}]{status.used}[/{style}]",
            str(status.limit),
            "yes" if status.allowed else "[red]no[/red]",
        )

    console.print(table)


def cmd_programs(args, db_path: Optional[str]):
    """List the user's saved programs."""
    programs = ProgramRepository(db_path).list_programs(args.user_id)
    if not programs:
        console.print(f"No programs saved for {args.user_id}")
        return

    for program in programs:
        table = Table(box=box.SIMPLE, show_header=True)
        table.add_column("Day", style="cyan")
        table.add_column("Type")
        table.add_column("Exercises")

        for day in program.days:
            table.add_row(
                day.name,
                day.type,
                ", ".join(
                    f"{pe.exercise.name} {pe.sets}x{pe.reps}" for pe in day.exercises
                ),
            )

        console.print(Panel(
            table,
            title=f"[bold]{program.name}[/bold]",
            subtitle=(
                f"{program.experience_level} · {program.frequency}x/week · "
                f"{program.duration_weeks} weeks"
            ),
        ))


def cmd_token(args, db_path: Optional[str]):
    """Issue an access token (development only)."""
    token = AuthService().create_access_token(args.user_id, args.email, name=args.name)
    print(token)


def cmd_stats(args, db_path: Optional[str]):
    """Show program table row counts."""
    repo = ProgramRepository(db_path)

    table = Table(title=f"Database: {repo.db_path}", box=box.ROUNDED)
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for name in ("workout_programs", "workout_days", "exercises", "program_exercises"):
        table.add_row(name, str(repo.count_rows(name)))

    console.print(table)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="CompileStrength - AI workout routine compiler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  compilestrength init-db
  compilestrength grant user-123 --email user@example.com
  compilestrength usage user-123
  compilestrength serve --reload
        """,
    )
    parser.add_argument("--db", help="Path to the SQLite database (default: settings)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create the database schema")

    serve_p = subparsers.add_parser("serve", help="Run the API server")
    serve_p.add_argument("--host", help="Bind address")
    serve_p.add_argument("--port", type=int, help="Port")
    serve_p.add_argument("--reload", action="store_true", help="Reload on code changes")

    grant_p = subparsers.add_parser("grant", help="Create a subscription for a user")
    grant_p.add_argument("user_id")
    grant_p.add_argument("--email", help="Customer email")
    grant_p.add_argument(
        "--status",
        choices=["active", "on_trial"],
        default="active",
        help="Subscription status",
    )
    grant_p.add_argument("--force", action="store_true", help="Create even if one is active")

    usage_p = subparsers.add_parser("usage", help="Show a user's current usage period")
    usage_p.add_argument("user_id")

    programs_p = subparsers.add_parser("programs", help="List a user's saved programs")
    programs_p.add_argument("user_id")

    token_p = subparsers.add_parser("token", help="Issue a development access token")
    token_p.add_argument("user_id")
    token_p.add_argument("--email", required=True, help="Email claim")
    token_p.add_argument("--name", help="Display name claim")

    subparsers.add_parser("stats", help="Show database statistics")

    args = parser.parse_args()

    commands = {
        "init-db": cmd_init_db,
        "serve": cmd_serve,
        "grant": cmd_grant,
        "usage": cmd_usage,
        "programs": cmd_programs,
        "token": cmd_token,
        "stats": cmd_stats,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return

    command(args, args.db)


if __name__ == "__main__":
    main()

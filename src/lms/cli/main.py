"""
Main CLI entry point for LMS administration.

Usage:
    lms db init
    lms session create --user-id 42
    lms submission create --assignment-id 7 --user-id 42
    lms keys jwks
"""

import asyncio
import json

import typer

# Main app
app = typer.Typer(name="lms", help="LMS LTI Admin CLI")


def run_async(coro):
    """Helper to run async functions from Typer commands."""
    return asyncio.run(coro)


# ============================================================================
# Database Commands
# ============================================================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create all tables in the configured database."""
    from api.database import close_database, init_database

    async def _init():
        await init_database(create_tables=True)
        await close_database()

    typer.echo("Creating database tables...")
    try:
        run_async(_init())
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo("Database initialized successfully")


# ============================================================================
# Session Commands
# ============================================================================

session_app = typer.Typer(help="Login sessions")
app.add_typer(session_app, name="session")


@session_app.command("create")
def session_create(
    user_id: int = typer.Option(..., "--user-id", "-u", help="User to log in as"),
    pseudonym_id: int = typer.Option(None, "--pseudonym-id", "-p", help="Login to use"),
    ttl: int = typer.Option(8 * 3600, "--ttl", help="Session lifetime in seconds"),
):
    """Create a login session and print its id (send as the lms_session cookie)."""
    from api.auth import session_key
    from api.lti.storage import RedisLaunchDataStorage
    from api.settings import get_settings
    from lms.utils.ids import generate_session_id

    storage = RedisLaunchDataStorage.from_url(get_settings().redis_url)
    session_id = generate_session_id()
    storage.set_value(
        session_key(session_id),
        {"user_id": user_id, "pseudonym_id": pseudonym_id},
        exp=ttl,
    )
    typer.echo(session_id)


# ============================================================================
# Submission Commands
# ============================================================================

submission_app = typer.Typer(help="Student submissions")
app.add_typer(submission_app, name="submission")


@submission_app.command("create")
def submission_create(
    assignment_id: int = typer.Option(..., "--assignment-id", "-a", help="Assignment to submit to"),
    user_id: int = typer.Option(..., "--user-id", "-u", help="Submitting student"),
    attachment_ids: list[int] = typer.Option([], "--attachment-id", help="Attached file id"),
):
    """Record a new attempt for a student (and their group)."""
    from api.database import close_database, get_session, init_database
    from lms.models import AssignmentModel, UserModel
    from lms.services.submissions import submit

    async def _create():
        await init_database()
        try:
            async with get_session() as session:
                assignment = await session.get(AssignmentModel, assignment_id)
                user = await session.get(UserModel, user_id)
                if assignment is None or user is None:
                    return None
                submission = await submit(session, assignment, user, attachment_ids=attachment_ids)
                return submission.id, submission.attempt, submission.anonymous_id
        finally:
            await close_database()

    created = run_async(_create())
    if created is None:
        typer.echo("Error: assignment or user not found", err=True)
        raise typer.Exit(1)
    submission_id, attempt, anonymous_id = created
    typer.echo(f"Submission {submission_id} attempt {attempt} (anonymous id {anonymous_id})")


# ============================================================================
# Key Commands
# ============================================================================

keys_app = typer.Typer(help="Platform signing keys")
app.add_typer(keys_app, name="keys")


@keys_app.command("jwks")
def keys_jwks():
    """Print the platform's public JWK set."""
    from api.lti.config import get_key_set

    typer.echo(json.dumps(get_key_set().jwks_document(), indent=2))


if __name__ == "__main__":
    app()

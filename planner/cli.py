"""Team planning CLI tool (planctl)."""

from typing import List, Optional

import typer

app = typer.Typer(name="planctl", help="Team planning CLI")
db_app = typer.Typer(help="Database management commands")
users_app = typer.Typer(help="User directory commands")
audit_app = typer.Typer(help="Audit trail commands")
app.add_typer(db_app, name="db")
app.add_typer(users_app, name="users")
app.add_typer(audit_app, name="audit")


@db_app.command("create")
def db_create():
    """Create all tables that do not exist yet."""
    from planner.db.base import Base
    from planner.db.session import engine
    import planner.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created (or already exist)")


@db_app.command("drop")
def db_drop():
    """Drop all tables (DANGER)."""
    confirm = typer.confirm("This will DROP every planning table. Continue?")
    if not confirm:
        raise typer.Abort()
    from planner.db.base import Base
    from planner.db.session import engine
    import planner.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    typer.echo("Tables dropped")


@db_app.command("seed")
def db_seed(
    admin_uid: str = typer.Option("admin", help="Identity-provider uid of the admin"),
    admin_email: str = typer.Option("admin@planning.local", help="Admin email"),
):
    """Seed an admin user and sample templates."""
    from planner.db.session import SessionLocal
    from planner.db.seeds.seed_sample_data import seed_sample_data

    db = SessionLocal()
    try:
        seed_sample_data(db, admin_uid, admin_email)
    finally:
        db.close()
    typer.echo("Seeds applied")


@users_app.command("add")
def users_add(
    uid: str = typer.Argument(..., help="Identity-provider uid"),
    email: str = typer.Argument(..., help="Email address"),
    display_name: Optional[str] = typer.Option(None, help="Display name"),
    role: str = typer.Option("staff", help="admin, manager or staff"),
    team: List[str] = typer.Option([], help="Team membership (repeatable)"),
):
    """Register a user so audit listings can show their name."""
    from planner.db.session import SessionLocal, atomic
    from planner.models.event import TeamEnum
    from planner.models.user import User, RoleEnum

    db = SessionLocal()
    try:
        with atomic(db):
            user = db.get(User, uid) or User(uid=uid)
            user.email = email
            user.display_name = display_name
            user.role = RoleEnum(role).value
            user.teams = [TeamEnum(t).value for t in team]
            db.add(user)
    finally:
        db.close()
    typer.echo(f"User {uid} saved")


@audit_app.command("cleanup")
def audit_cleanup(
    days: Optional[int] = typer.Option(None, help="Maximum age in days (defaults to AUDIT_RETENTION_DAYS)"),
):
    """Delete audit entries older than the retention period."""
    from planner.core.config import settings
    from planner.db.session import SessionLocal
    from planner.services.audit_service import audit_service

    max_age = days or settings.AUDIT_RETENTION_DAYS
    db = SessionLocal()
    try:
        deleted = audit_service.cleanup(db, max_age)
    finally:
        db.close()
    typer.echo(f"{deleted} audit entries removed (older than {max_age} days)")


@app.command("token")
def issue_token(
    uid: str = typer.Argument(..., help="Subject uid"),
    role: str = typer.Option("staff", help="admin, manager or staff"),
    team: List[str] = typer.Option([], help="Team membership (repeatable)"),
    email: Optional[str] = typer.Option(None, help="Email claim"),
):
    """Mint a development token signed with JWT_SECRET."""
    from planner.core.security import create_access_token

    typer.echo(create_access_token(uid, role, team, email=email))


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("planner.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()

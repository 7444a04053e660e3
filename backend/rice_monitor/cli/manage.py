"""Operator commands for running and maintaining the Rice Monitor API."""

# purpose: serve the API and bootstrap roles; every new account starts as an observer
# status: active
# depends_on: rice_monitor.config, rice_monitor.database, rice_monitor.models

from __future__ import annotations

import logging
from typing import Optional

import typer
import uvicorn

from .. import models
from ..config import Settings
from ..database import Base, build_engine, build_session_factory

app = typer.Typer(help="Rice Monitor API maintenance commands")


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Listen port, defaults to $PORT or 8080"),
    host: str = typer.Option("0.0.0.0", help="Interface to bind"),
) -> None:
    """Run the API under uvicorn."""
    settings = Settings.from_env()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    uvicorn.run("rice_monitor.main:create_app", factory=True, host=host, port=port or settings.port)


@app.command("init-db")
def init_db() -> None:
    """Create any missing tables in the configured database."""
    settings = Settings.from_env()
    engine = build_engine(settings.database_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    typer.echo(f"tables ready in {settings.database_url}")


@app.command("set-role")
def set_role(email: str, role: str) -> None:
    """Change the role of the user registered under EMAIL."""
    if role not in models.ROLES:
        raise typer.BadParameter(f"role must be one of {', '.join(models.ROLES)}")
    settings = Settings.from_env()
    engine = build_engine(settings.database_url)
    db = build_session_factory(engine)()
    try:
        user = db.query(models.User).filter(models.User.email == email).first()
        if user is None:
            typer.echo(f"no user with email {email}", err=True)
            raise typer.Exit(code=1)
        user.role = role
        user.updated_at = models.utcnow()
        db.commit()
        typer.echo(f"{email} is now {role}")
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    app()

"""CLI entry point for the registrar service."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click
from sqlalchemy.exc import SQLAlchemyError

from registrar import __version__
from registrar.config import ConfigError, Settings, load_settings
from registrar.logging import setup_logging

# Lets the reloading server rebuild the app in its worker process.
CONFIG_ENV = "REGISTRAR_CONFIG"

config_option = click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a YAML settings file (REGISTRAR_* environment variables override it)",
)


def _load(config_path: Path | None) -> Settings:
    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    setup_logging(settings.log_dir, level=settings.log_level)
    return settings


def app_factory():  # noqa: ANN201
    """Build the app from settings named by the environment (used with --reload)."""
    from registrar.api import create_app  # noqa: PLC0415

    settings = load_settings(os.environ.get(CONFIG_ENV))
    setup_logging(settings.log_dir, level=settings.log_level)
    return create_app(settings)


@click.group()
@click.version_option(__version__)
def main() -> None:
    """Registrar - student course registration service."""
    pass


@main.command("init-db")
@config_option
def init_db(config_path: Path | None) -> None:
    """Create the database schema and bootstrap the admin account."""
    from registrar.api.dependencies import bootstrap_admin, build_services  # noqa: PLC0415

    settings = _load(config_path)
    services = build_services(settings)
    try:
        services.database.connect(
            retries=settings.db_connect_retries, backoff=settings.db_connect_backoff
        )
        services.database.create_tables()
        click.echo(f"Database ready: {services.database.safe_url}")
        if bootstrap_admin(services) is None:
            click.echo("No admin password configured; admin account not created")
    except SQLAlchemyError as e:
        click.echo(f"Database error: {e}", err=True)
        sys.exit(1)
    finally:
        services.database.close()


@main.command("create-admin")
@config_option
@click.option("--email", required=True, help="Admin login email")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Admin password (prompted if omitted)",
)
@click.option("--first-name", default=None, help="First name on the admin's student profile")
@click.option("--last-name", default=None, help="Last name on the admin's student profile")
def create_admin(
    config_path: Path | None,
    email: str,
    password: str,
    first_name: str | None,
    last_name: str | None,
) -> None:
    """Create an admin account."""
    from registrar.auth import hash_password  # noqa: PLC0415
    from registrar.data import Database, RegistrarStore  # noqa: PLC0415

    if len(password) < 6:
        click.echo("Password must be at least 6 characters", err=True)
        sys.exit(1)

    settings = _load(config_path)
    database = Database(settings.database_url)
    try:
        database.connect(
            retries=settings.db_connect_retries, backoff=settings.db_connect_backoff
        )
        database.create_tables()
        account, created = RegistrarStore(database).ensure_admin(
            email=email.strip().lower(),
            password_hash=hash_password(password),
            first_name=first_name or settings.admin_first_name,
            last_name=last_name or settings.admin_last_name,
        )
    except SQLAlchemyError as e:
        click.echo(f"Database error: {e}", err=True)
        sys.exit(1)
    finally:
        database.close()

    if created:
        click.echo(f"Created admin account {account.email} (id {account.id})")
    else:
        click.echo(f"Account {account.email} already exists", err=True)
        sys.exit(1)


@main.command()
@config_option
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Restart on code changes (development)")
def serve(config_path: Path | None, host: str, port: int, reload: bool) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn  # noqa: PLC0415

    from registrar.api import create_app  # noqa: PLC0415

    settings = _load(config_path)
    click.echo(f"Starting registrar API on http://{host}:{port} ({settings.environment})")

    if reload:
        if config_path is not None:
            os.environ[CONFIG_ENV] = str(config_path)
        uvicorn.run(
            "registrar.cli:app_factory", factory=True, host=host, port=port, reload=True
        )
    else:
        uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()

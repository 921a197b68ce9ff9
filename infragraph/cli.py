import click


@click.group()
def main() -> None:
    """Infragraph - configuration management database for infrastructure diagrams."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from INFRAGRAPH_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from INFRAGRAPH_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the CMDB API server."""
    import uvicorn

    from infragraph.cmdb.settings import CMDBSettings

    settings = CMDBSettings()

    uvicorn.run(
        "infragraph.cmdb.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


# ---------------------------------------------------------------------------
# Database management
# ---------------------------------------------------------------------------


def _alembic_config():
    """Build an Alembic Config from the alembic.ini shipped inside the package."""
    from pathlib import Path

    from alembic.config import Config

    ini_path = Path(__file__).parent / "cmdb" / "alembic.ini"
    return Config(str(ini_path))


@main.group()
def db() -> None:
    """Database migration commands."""


@db.command()
@click.option("--revision", default="head", help="Target revision (default: head).")
def upgrade(revision: str) -> None:
    """Apply migrations up to REVISION."""
    from alembic import command

    command.upgrade(_alembic_config(), revision)
    click.echo(f"Database upgraded to {revision}.")


@db.command()
@click.option("--revision", default="-1", help="Target revision (default: -1, one step back).")
def downgrade(revision: str) -> None:
    from alembic import command

    command.downgrade(_alembic_config(), revision)
    click.echo(f"Database downgraded to {revision}.")


@db.command()
@click.argument("message")
def migrate(message: str) -> None:
    """Autogenerate a migration from table definition changes."""
    from alembic import command

    command.revision(_alembic_config(), message=message, autogenerate=True)
    click.echo(f"Migration generated: {message}")


@db.command()
def current() -> None:
    from alembic import command

    command.current(_alembic_config(), verbose=True)


@db.command()
def history() -> None:
    from alembic import command

    command.history(_alembic_config(), verbose=True)


if __name__ == "__main__":
    main()

"""Maintenance commands, run as `flask --app api <command>`."""
import click
from flask import Flask

from models import storage
from models.base_model import Base
from services.likes import reconcile_all


def register_commands(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        Base.metadata.create_all(storage.get_engine())
        click.echo("Database initialized.")

    @app.cli.command("reconcile-likes")
    def reconcile_likes():
        """Reset every drifted posts.like_count to its ledger count."""
        corrections = reconcile_all()
        for post_id, like_count, actual in corrections:
            click.echo(f"{post_id}: {like_count} -> {actual}")
        click.echo(f"{len(corrections)} post(s) corrected.")

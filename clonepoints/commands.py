# /clonepoints/commands.py
# Maintenance commands: flask seed-admins / flask create-admin USERNAME

import click
from flask import current_app

from . import parse_seed_admins


def register_commands(app):
    @app.cli.command("seed-admins")
    def seed_admins():
        """Creates the SEED_ADMINS accounts that are missing."""
        service = current_app.extensions["auth_service"]
        created = service.bootstrap_admins(parse_seed_admins(current_app.config["SEED_ADMINS"]))
        for username in created:
            click.echo(f"Created admin account: {username}")
        if not created:
            click.echo("Nothing to do.")

    @app.cli.command("create-admin")
    @click.argument("username")
    @click.password_option()
    def create_admin(username, password):
        """Creates one admin account; existing usernames are refused."""
        service = current_app.extensions["auth_service"]
        if len(password) < 8:
            raise click.ClickException("Password must have at least 8 characters")
        if not service.bootstrap_admins([(username, password)]):
            raise click.ClickException(f"Admin {username} already exists")
        click.echo(f"Created admin account: {username}")

"""
Flask CLI commands.

    flask --app api seed-db
"""
import os

import click
from flask import Flask, current_app

from models.user import Role, Status

DEFAULT_USERS = [
    # username, email, name, role, status, password env var, default password
    ("admin", "admin.user@example.com", "Admin User", Role.ADMIN, Status.ACTIVE, "ADMIN_PASSWORD", "admin123"),
    ("johndoe", "john.doe@example.com", "John Doe", Role.USER, Status.ACTIVE, None, "user123"),
    ("janesmith", "jane.smith@example.com", "Jane Smith", Role.USER, Status.ACTIVE, None, "user123"),
    ("inactive", "inactive.user@example.com", "Inactive User", Role.USER, Status.INACTIVE, None, "user123"),
]


def seed_users(ctx) -> list:
    """Insert the default accounts that are missing; returns the created usernames."""
    users = [
        (
            os.getenv("ADMIN_NAME", "superadmin"),
            os.getenv("ADMIN_EMAIL", "admin@example.com"),
            "Super Admin",
            Role.SUPER_ADMIN,
            Status.ACTIVE,
            "ADMIN_PASSWORD",
            "admin123",
        )
    ] + DEFAULT_USERS

    created = []
    for username, email, name, role, status, password_env, default_password in users:
        if ctx.accounts.exists(username=username, email=email):
            continue
        password = os.getenv(password_env, default_password) if password_env else default_password
        ctx.accounts.create(
            username=username,
            email=email,
            password_hash=ctx.hasher.hash(password),
            name=name,
            role=role,
            status=status,
        )
        created.append(username)
    return created


def register_commands(app: Flask) -> None:
    @app.cli.command("seed-db")
    def seed_db():
        """Create tables and insert the default accounts."""
        created = seed_users(current_app.extensions["user_auth"])
        if not created:
            click.echo("Nothing to seed, all default users exist.")
        for username in created:
            click.echo(f"Created user: {username}")

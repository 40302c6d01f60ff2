"""
Flask CLI commands for one-off administrative tasks.

Usage:
    flask generate-admin-hash                 # prompt for a password, print ADMIN_PASS_HASH
    flask ban spammer --reason spam --days 7  # temporary ban
    flask ban troll                           # permanent ban
    flask unban spammer
    flask issue-key alice --label "my bot"
"""

from __future__ import annotations

import click
from flask import Flask
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash

from postboard.extensions import get_guard


@click.command("generate-admin-hash")
@click.password_option("--password", prompt="Enter your admin password")
def generate_admin_hash_command(password: str) -> None:
    """Hash an admin password for the ADMIN_PASS_HASH setting."""
    pass_hash = generate_password_hash(password)
    click.echo("\nYour password hash:")
    click.echo(pass_hash)
    click.echo("\nAdd this to your .env file as:")
    click.echo(f"ADMIN_PASS_HASH={pass_hash}")


@click.command("ban")
@click.argument("nickname")
@click.option("--reason", default="unspecified", help="Reason shown to the banned user.")
@click.option("--days", type=float, default=None,
              help="Ban length in days. Without this flag the ban is permanent.")
@with_appcontext
def ban_command(nickname: str, reason: str, days: float | None) -> None:
    """Ban a nickname."""
    duration = days * 24 * 60 * 60 if days is not None else None
    ban = get_guard().bans.ban(nickname.strip().lower(), reason, duration)
    if ban.permanent:
        click.echo(f"Banned {ban.nickname} permanently.")
    else:
        click.echo(f"Banned {ban.nickname} for {days:g} day(s).")


@click.command("unban")
@click.argument("nickname")
@with_appcontext
def unban_command(nickname: str) -> None:
    """Lift a ban."""
    get_guard().bans.unban(nickname.strip().lower())
    click.echo(f"Unbanned {nickname}.")


@click.command("issue-key")
@click.argument("owner")
@click.option("--label", default="cli", help="Label stored with the key.")
@with_appcontext
def issue_key_command(owner: str, label: str) -> None:
    """Issue an API key for OWNER and print it."""
    key = get_guard().register_credential(owner.strip().lower(), label)
    click.echo(key)


def register_commands(app: Flask) -> None:
    for command in (generate_admin_hash_command, ban_command, unban_command, issue_key_command):
        app.cli.add_command(command)

import click
from flask import current_app
from flask.cli import with_appcontext

from Utils.identity import Role
from Utils.jwt_utils import create_access_token


def register_token_command(app):
    """Adds 'flask auth:token' to mint bearer tokens for local development."""

    @click.command("auth:token")
    @with_appcontext
    @click.option("--user-id", required=True, help="Subject id carried by the token")
    @click.option("--role", type=click.Choice([r.value for r in Role]), default=Role.CUSTOMER.value)
    @click.option("--minutes", type=int, default=None, help="Lifetime in minutes")
    def issue_token(user_id, role, minutes):
        token = create_access_token(
            user_id,
            role,
            current_app.config["JWT_SECRET"],
            expires_in_minutes=minutes or current_app.config["JWT_EXPIRES_IN_MINUTES"]
        )
        click.echo(token)

    app.cli.add_command(issue_token)

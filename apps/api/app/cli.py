"""CLI tools for rehab case API administration."""

import click

from app.core.security import validate_password_strength
from app.db.enums import Role
from app.db.session import SessionLocal
from app.services import user_service


@click.group()
def cli():
    """Rehab case API CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="Admin email address")
@click.option("--first-name", required=True, help="First name")
@click.option("--last-name", required=True, help="Last name")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Initial password")
def create_admin(email: str, first_name: str, last_name: str, password: str):
    """
    Bootstrap an admin account.

    Admins cannot self-register, so the first one is created here.

    Example:
        python -m app.cli create-admin --email "admin@example.com" --first-name Ada --last-name Admin
    """
    try:
        validate_password_strength(password)
    except ValueError as e:
        click.echo(f"❌ {e}")
        raise SystemExit(1)

    db = SessionLocal()
    try:
        user = user_service.create_user(
            db,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=Role.ADMIN,
        )
        db.commit()
        click.echo(f"✓ Created admin: {user.email}")
        click.echo(f"  ID: {user.id}")
    except ValueError as e:
        db.rollback()
        click.echo(f"❌ {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Email of the user to deactivate")
def deactivate_user(email: str):
    """
    Deactivate a user and revoke their sessions.

    Example:
        python -m app.cli deactivate-user --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            raise SystemExit(1)
        if not user.is_active:
            click.echo(f"User already inactive: {user.email}")
            return

        old_version = user.token_version
        user_service.disable_user(db, user)
        click.echo(f"✓ Deactivated {user.email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()

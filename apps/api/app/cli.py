"""CLI tools for dispatch administration."""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import click

from app.db.enums import Role, WebhookProvider
from app.db.models import Membership, Organization, User
from app.db.session import SessionLocal


@click.group()
def cli():
    """NEMT dispatch CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
@click.option("--timezone", "tz_name", default="America/New_York", help="IANA timezone for pickup times")
def create_org(name: str, slug: str, tz_name: str):
    """
    Create an organization (tenant).

    Example:
        python -m app.cli create-org --name "Acme Transit" --slug "acme" --timezone "America/Chicago"
    """
    db = SessionLocal()
    try:
        # Validate slug format
        slug = slug.lower().strip()
        if not slug.replace("-", "").replace("_", "").isalnum():
            click.echo("❌ Slug must be alphanumeric (with optional hyphens/underscores)")
            return

        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            click.echo(f"❌ Unknown timezone: {tz_name}")
            return

        existing = db.query(Organization).filter(Organization.slug == slug).first()
        if existing:
            click.echo(f"❌ Organization with slug '{slug}' already exists")
            return

        org = Organization(name=name, slug=slug, timezone=tz_name)
        db.add(org)
        db.commit()

        click.echo(f"✓ Created organization: {name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {slug}")
        click.echo(f"  Timezone: {tz_name}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email")
@click.option("--name", "display_name", required=True, help="Display name")
@click.option("--org-slug", required=True, help="Organization slug")
@click.option(
    "--role",
    default=Role.PROGRAM_USER.value,
    type=click.Choice([r.value for r in Role]),
    help="Role within the organization",
)
def create_user(email: str, display_name: str, org_slug: str, role: str):
    """
    Create a user with a membership in one organization.

    Example:
        python -m app.cli create-user --email "ops@acme.com" --name "Ops" --org-slug "acme" --role corporate_admin
    """
    db = SessionLocal()
    try:
        org = db.query(Organization).filter(Organization.slug == org_slug.lower()).first()
        if not org:
            click.echo(f"❌ Organization not found: {org_slug}")
            return

        email = email.lower().strip()
        if db.query(User).filter(User.email == email).first():
            click.echo(f"❌ User already exists: {email}")
            return

        user = User(email=email, display_name=display_name)
        db.add(user)
        db.flush()
        db.add(Membership(user_id=user.id, organization_id=org.id, role=role))
        db.commit()

        click.echo(f"✓ Created user {email} ({role}) in {org.slug}")
        click.echo(f"  ID: {user.id}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--org-slug", required=True, help="Organization slug")
@click.option("--name", required=True, help="Integration name")
@click.option(
    "--provider",
    default=WebhookProvider.RITTEN.value,
    type=click.Choice([p.value for p in WebhookProvider]),
)
@click.option("--generate-secret/--no-secret", default=True, help="Generate an HMAC secret")
@click.option("--keyword", "keywords", multiple=True, help="Title/description keyword (repeatable)")
@click.option("--attendee", "attendees", multiple=True, help="Attendee name filter (repeatable)")
@click.option("--pickup-offset", default=-60, help="Minutes added to appointment start for pickup")
@click.option("--default-pickup", default=None, help="Default pickup location")
@click.option("--auto-confirm", is_flag=True, help="Create trips as confirmed instead of scheduled")
def create_integration(
    org_slug: str,
    name: str,
    provider: str,
    generate_secret: bool,
    keywords: tuple[str, ...],
    attendees: tuple[str, ...],
    pickup_offset: int,
    default_pickup: str | None,
    auto_confirm: bool,
):
    """
    Create a calendar webhook integration with one trip creation rule.

    The secret is printed once and stored encrypted.

    Example:
        python -m app.cli create-integration --org-slug "acme" --name "Ritten clinic" \\
            --keyword dialysis --pickup-offset -45
    """
    from app.core.encryption import is_encryption_configured
    from app.schemas.webhook import TripCreationRuleCreate
    from app.services import webhook_integration_service

    if generate_secret and not is_encryption_configured():
        click.echo("❌ INTEGRATION_ENCRYPTION_KEY not configured in .env")
        click.echo("   Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\"")
        return

    db = SessionLocal()
    try:
        org = db.query(Organization).filter(Organization.slug == org_slug.lower()).first()
        if not org:
            click.echo(f"❌ Organization not found: {org_slug}")
            return

        integration, secret = webhook_integration_service.create_integration(
            db,
            org_id=org.id,
            name=name,
            provider=provider,
            generate_secret=generate_secret,
            filter_keywords=list(keywords),
            filter_attendees=list(attendees),
            rule=TripCreationRuleCreate(
                pickup_offset_minutes=pickup_offset,
                default_pickup_location=default_pickup,
                requires_approval=not auto_confirm,
            ),
        )

        click.echo(f"✓ Created {provider} integration: {name}")
        click.echo(f"  ID: {integration.id}")
        click.echo(f"  Webhook URL path: /webhook/{integration.id}")
        if secret:
            click.echo(f"  Secret (shown once): {secret}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        python -m app.cli revoke-sessions --email "user@example.com"
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User to issue a session token for")
def issue_token(email: str):
    """
    Print a session token for a user (service accounts and local testing).

    Example:
        python -m app.cli issue-token --email "ops@acme.com"
    """
    from app.core.deps import COOKIE_NAME
    from app.core.security import create_session_token

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user or not user.membership:
            click.echo(f"❌ User or membership not found: {email}")
            return

        token = create_session_token(
            user_id=user.id,
            org_id=user.membership.organization_id,
            role=user.membership.role,
            token_version=user.token_version,
        )
        click.echo(f"✓ Session token for {email} (cookie: {COOKIE_NAME})")
        click.echo(token)

    finally:
        db.close()


if __name__ == "__main__":
    cli()

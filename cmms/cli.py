"""CMMS Platform CLI tool (cmmsctl)."""

import asyncio
import logging

import typer

from cmms.core.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = typer.Typer(name="cmmsctl", help="CMMS Platform CLI")
db_app = typer.Typer(help="Database management commands")
rbac_app = typer.Typer(help="Roles and permissions")
app.add_typer(db_app, name="db")
app.add_typer(rbac_app, name="rbac")


async def _find_user(db, email: str):
    from sqlalchemy import select
    from cmms.models.user import User

    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if not user:
        typer.echo(f"❌ User not found: {email}", err=True)
        raise typer.Exit(code=1)
    return user


@db_app.command("create")
def db_create():
    """Create all tables that do not exist yet."""
    from cmms.db.base import Base
    from cmms.db.session import engine
    import cmms.models  # noqa: F401

    async def _run():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(_run())
    typer.echo("✅ Tables created (or already exist)")


@db_app.command("seed-admin")
def db_seed_admin(
    email: str = typer.Option(None, help="Admin email (defaults to ADMIN_EMAIL)"),
):
    """Create the admin user and grant it the ADMIN role."""
    from cmms.db.session import SessionLocal
    from cmms.db.seeds.seed_admin import seed_admin

    async def _run():
        async with SessionLocal() as db:
            return await seed_admin(db, email)

    user = asyncio.run(_run())
    if user is None:
        typer.echo("❌ ADMIN role missing. Run `cmmsctl rbac init` first.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ {user.email} is an administrator")


@rbac_app.command("init")
def rbac_init(
    backfill: bool = typer.Option(True, help="Grant the default role to users without roles"),
):
    """Seed permissions and roles, then backfill default role grants."""
    from cmms.db.session import SessionLocal
    from cmms.db.seeds.seed_rbac import backfill_default_roles, initialize_rbac, summarize_rbac

    async def _run():
        async with SessionLocal() as db:
            if not await initialize_rbac(db):
                return None, []
            summary = await summarize_rbac(db)
            users = []
            if backfill:
                users = await backfill_default_roles(db, settings.RBAC_SYSTEM_ACTOR_ID)
            return summary, users

    typer.echo("🔐 Initializing RBAC system...")
    try:
        summary, users = asyncio.run(_run())
    except Exception as e:
        typer.echo(f"❌ Error during RBAC initialization: {e}", err=True)
        raise typer.Exit(code=1)
    if summary is None:
        typer.echo("❌ Failed to initialize RBAC system", err=True)
        raise typer.Exit(code=1)

    typer.echo("📋 Roles:")
    for role in summary["roles"]:
        typer.echo(f"  - {role['name']}: {role['description']} ({role['permission_count']} permissions)")
    typer.echo(f"🔑 Total permissions: {summary['permission_count']}")
    if backfill:
        typer.echo(f"👥 Assigned the default role to {len(users)} users without roles")
        for user in users:
            typer.echo(f"  ✅ {user.email}")


@rbac_app.command("assign")
def rbac_assign(
    email: str = typer.Argument(..., help="User email"),
    role: str = typer.Argument(..., help="Role name, e.g. TECHNICIAN"),
):
    """Grant a role to a user."""
    from cmms.db.session import SessionLocal
    from cmms.core.exceptions import ResourceNotFoundError
    from cmms.services.rbac_service import rbac_service

    async def _run():
        async with SessionLocal() as db:
            user = await _find_user(db, email)
            await rbac_service.assign_role(db, user.id, role, assigned_by=settings.RBAC_SYSTEM_ACTOR_ID)

    try:
        asyncio.run(_run())
    except ResourceNotFoundError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Assigned {role} to {email}")


@rbac_app.command("revoke")
def rbac_revoke(
    email: str = typer.Argument(..., help="User email"),
    role: str = typer.Argument(..., help="Role name"),
):
    """Revoke a role from a user (the grant is deactivated)."""
    from cmms.db.session import SessionLocal
    from cmms.core.exceptions import ResourceNotFoundError
    from cmms.services.rbac_service import rbac_service

    async def _run():
        async with SessionLocal() as db:
            user = await _find_user(db, email)
            await rbac_service.revoke_role(db, user.id, role)

    try:
        asyncio.run(_run())
    except ResourceNotFoundError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Revoked {role} from {email}")


@rbac_app.command("check")
def rbac_check(
    email: str = typer.Argument(..., help="User email"),
    permission: list[str] = typer.Option(None, "--permission", "-p", help="Permission to test"),
):
    """Show a user's roles and permissions."""
    from cmms.db.session import SessionLocal
    from cmms.services.rbac_service import rbac_service

    async def _run():
        async with SessionLocal() as db:
            user = await _find_user(db, email)
            roles = await rbac_service.get_user_roles(db, user.id)
            permissions = await rbac_service.get_user_permissions(db, user.id)
            return roles, permissions

    roles, permissions = asyncio.run(_run())
    typer.echo(f"👤 {email}")
    typer.echo(f"   Roles: {', '.join(roles) or 'None'}")
    typer.echo(f"   Permissions: {len(permissions)} total")
    for name in permission or []:
        typer.echo(f"   {name}: {'✅' if name in permissions else '❌'}")


@app.command("token")
def dev_token(
    user_id: str = typer.Argument(..., help="User ID to embed as the token subject"),
):
    """Print a bearer token for local testing."""
    from cmms.core.security import create_access_token

    typer.echo(create_access_token({"sub": user_id}))


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("cmms.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()

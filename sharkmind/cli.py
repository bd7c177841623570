"""SharkMind CLI — ask the advisor, run the API server, manage the local store.

Usage:
    sharkmind ask "Qual a tendência do WINFUT hoje?" --mode daytrade
    sharkmind add-user ana@example.com --plan free --credits 5
    sharkmind serve --port 8080
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from sharkmind.models import Mode, Plan

app = typer.Typer(
    name="sharkmind",
    help="SharkMind — financial-advisory chat routed across multiple LLM providers.",
    no_args_is_help=True,
)


def _init_logging() -> None:
    """Initialize nfo logging from .env config (called once per CLI invocation)."""
    from sharkmind.logging_setup import setup_logging_from_env

    setup_logging_from_env()


@app.command()
def ask(
    message: str = typer.Argument(..., help="Question for the advisor"),
    mode: Mode = typer.Option(Mode.CONSULTA, "--mode", "-m", help="Advisory mode"),
    user: Optional[int] = typer.Option(None, "--user", "-u", help="User id to meter (default: anonymous)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Advisor YAML config"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path (default: from .env)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Send one message through the full orchestration pipeline."""
    from sharkmind.core import build_advisor

    _init_logging()
    core, store = build_advisor(config_path=config, db_path=db)
    try:
        result = asyncio.run(core.generate_response(message, mode, user_id=user))
    finally:
        store.close()

    if json_output:
        typer.echo(result.model_dump_json(indent=2))
        return

    typer.echo(f"\n{'='*60}")
    typer.echo(f"\U0001f988 SharkMind [{mode.value} → {result.provider_id}]")
    typer.echo(f"{'='*60}")
    typer.echo(f"\n{result.content}")
    typer.echo(f"\n{'='*60}")
    typer.echo(f"   Model: {result.model_name} | Tokens: {result.tokens_used}")
    if result.is_fallback:
        typer.echo("   ⚠️  Provider unavailable, canned answer returned")
    typer.echo(f"{'='*60}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-H", help="Bind host (default: from .env)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: from .env)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Advisor YAML config"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file (default: .env)"),
):
    """Start the chat API server."""
    import uvicorn
    from sharkmind.env_config import get_env_config
    from sharkmind.server import create_app

    env = get_env_config(str(env_file) if env_file else None)
    _init_logging()

    effective_host = host or env.host
    effective_port = port or env.port

    typer.echo(f"\U0001f988 SharkMind API on http://{effective_host}:{effective_port}")
    typer.echo(f"   Database: {db or env.db_path}")
    typer.echo(f"   Auth: {'enabled' if env.master_key else 'disabled (SHARKMIND_MASTER_KEY not set)'}")

    api = create_app(
        config_path=config,
        db_path=db,
        dotenv_path=str(env_file) if env_file else None,
    )
    uvicorn.run(api, host=effective_host, port=effective_port, log_level=env.log_level.lower())


@app.command("init-db")
def init_db(
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path (default: from .env)"),
):
    """Create the schema and seed the financial knowledge base."""
    from sharkmind.env_config import get_env_config
    from sharkmind.storage import SQLiteAdvisorStore

    path = db or Path(get_env_config().db_path)
    store = SQLiteAdvisorStore(path)
    inserted = store.seed_knowledge()
    store.close()
    typer.echo(f"✅ Database ready at {path} ({inserted} knowledge entries added)")


@app.command("add-user")
def add_user(
    email: str = typer.Argument(..., help="User e-mail"),
    name: str = typer.Option("", "--name", "-n", help="Display name"),
    plan: Plan = typer.Option(Plan.FREE, "--plan", help="Subscription plan"),
    credits: int = typer.Option(5, "--credits", help="Starting credit balance"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path (default: from .env)"),
):
    """Create a user account."""
    from sharkmind.env_config import get_env_config
    from sharkmind.storage import SQLiteAdvisorStore

    store = SQLiteAdvisorStore(db or get_env_config().db_path)
    try:
        user_id = store.create_user(email, name=name, plan=plan, credits=credits)
    finally:
        store.close()
    typer.echo(f"✅ User {user_id} created ({email}, plan={plan.value}, credits={credits})")


@app.command()
def providers(
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Path to .env file (default: .env)"),
):
    """Show which LLM providers have an API key configured."""
    from sharkmind.env_config import check_providers, get_env_config

    status = check_providers(get_env_config(str(env_file) if env_file else None))

    typer.echo(f"\n\U0001f50c SharkMind Providers")
    typer.echo(f"{'='*60}")
    for name, info in status.items():
        icon = "✅" if info["status"] == "configured" else "⚪"
        typer.echo(f"   {icon} {name:<10s} {info['detail']}")
    typer.echo(f"{'='*60}")


@app.command()
def usage(
    user_id: int = typer.Argument(..., help="User id"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of records"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path (default: from .env)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Show credits and recent usage records for a user."""
    from sharkmind.env_config import get_env_config
    from sharkmind.storage import SQLiteAdvisorStore

    store = SQLiteAdvisorStore(db or get_env_config().db_path)
    try:
        account = asyncio.run(store.get_account(user_id))
        records = store.list_usage(user_id, limit=limit)
    finally:
        store.close()

    if account is None:
        typer.echo(f"User {user_id} not found", err=True)
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(json.dumps({
            "account": account.model_dump(mode="json"),
            "usage": [r.model_dump(mode="json") for r in records],
        }, indent=2))
        return

    typer.echo(f"\n\U0001f4b3 SharkMind Usage — user {user_id}")
    typer.echo(f"{'='*60}")
    typer.echo(f"   Plan:     {account.plan.value}")
    typer.echo(f"   Credits:  {account.credits}{'' if account.is_metered else ' (not metered)'}")
    typer.echo(f"   Messages: {len(records)}")
    total_cost = sum(r.estimated_cost for r in records)
    typer.echo(f"   Est. cost: ${total_cost:.4f}")
    for r in records:
        typer.echo(f"     {r.timestamp:%Y-%m-%d %H:%M}  {r.provider_id:<9s} {r.model_name:<28s} {r.tokens_used:>6d} tok")
    typer.echo(f"{'='*60}")


if __name__ == "__main__":
    app()

"""Helpers shared by CLI commands."""

from __future__ import annotations

import dataclasses
import json
from contextlib import contextmanager
from typing import Any, Iterator

import click


@contextmanager
def open_db(ctx: click.Context) -> Iterator[tuple[Any, Any]]:
    """Load config and open the migrated database. Yields ``(config, db)``."""
    from stakehold.config.loader import load_config, resolve_path
    from stakehold.storage.database import Database
    from stakehold.storage.migrations import ensure_schema

    config = load_config(ctx.obj.get("config_path"))
    db_path = resolve_path(config.database.path)
    with Database(db_path, busy_timeout_ms=config.database.busy_timeout_ms) as db:
        ensure_schema(db)
        yield config, db


@contextmanager
def domain_errors() -> Iterator[None]:
    """Report domain errors on stderr and exit 1."""
    from stakehold.errors import StakeholdError, ValidationError

    try:
        yield
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        for err in e.errors:
            click.echo(f"  {err['field']}: {err['message']}", err=True)
        raise SystemExit(1) from None
    except StakeholdError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None


def echo_json(obj: Any) -> None:
    """Print a report dataclass (or list of them) as JSON."""
    if dataclasses.is_dataclass(obj):
        obj = dataclasses.asdict(obj)
    elif isinstance(obj, list):
        obj = [dataclasses.asdict(o) if dataclasses.is_dataclass(o) else o for o in obj]
    click.echo(json.dumps(obj, indent=2, default=str))


def money(value: Any) -> str:
    return f"{float(value or 0):,.2f}"


def percent(value: Any) -> str:
    return f"{float(value or 0):.2f}%"

"""``stakehold config``: inspect the resolved configuration."""

from __future__ import annotations

import click


@click.group("config")
def config_group() -> None:
    """Inspect configuration."""
    pass


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the effective configuration as YAML, defaults filled in."""
    import yaml

    from stakehold.config.loader import load_config, locate_config

    source = locate_config(ctx.obj.get("config_path"))
    config = load_config(ctx.obj.get("config_path"))
    click.echo(f"# source: {source or 'defaults'}")
    click.echo(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False).rstrip())


@config_group.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Check the config file parses and passes schema validation."""
    from pydantic import ValidationError as SchemaError
    from yaml import YAMLError

    from stakehold.config.loader import load_config

    try:
        config = load_config(ctx.obj.get("config_path"))
    except YAMLError as e:
        click.echo(f"Config is not valid YAML: {e}", err=True)
        ctx.exit(1)
    except SchemaError as e:
        click.echo(f"Config failed validation ({e.error_count()} error(s)):", err=True)
        for err in e.errors():
            where = ".".join(str(part) for part in err["loc"]) or "(root)"
            click.echo(f"  {where}: {err['msg']}", err=True)
        ctx.exit(1)

    rules = config.property_rules
    click.echo("Config OK")
    click.echo(f"  database:       {config.database.path} (busy timeout {config.database.busy_timeout_ms} ms)")
    click.echo(f"  oversell:       {config.ledger.oversell_policy}")
    click.echo(f"  periods:        {', '.join(config.reports.performance_periods)}")
    click.echo(f"  rules:          1%={rules.one_percent} 2%={rules.two_percent} x{rules.rule_135_multiplier}")
    click.echo(f"  seed accounts:  {len(config.accounts)}")

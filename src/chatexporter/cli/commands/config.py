"""Configuration management CLI commands.

- config list: Show current effective configuration
- config path: Show configuration file paths
- config get: Get a configuration value
- config set: Set a configuration value
- config init: Write a starter configuration file
"""

from __future__ import annotations

import json
from pathlib import Path

import click
import yaml
from pydantic import BaseModel, ValidationError
from rich.syntax import Syntax
from rich.table import Table

from chatexporter.cli import ui
from chatexporter.cli.console import get_console
from chatexporter.config import ConfigManager

console = get_console()


def _load_manager(ctx: click.Context) -> ConfigManager:
    obj = ctx.find_root().obj or {}
    manager = ConfigManager()
    manager.load(config_path=obj.get("config_path"))
    return manager


def _parse_value(value: str) -> bool | int | float | str:
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


@click.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("list")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "yaml", "table"], case_sensitive=False),
    default="json",
    help="Output format (json, yaml, or table).",
)
@click.pass_context
def config_list(ctx: click.Context, output_format: str) -> None:
    """Show current effective configuration."""
    cfg = _load_manager(ctx).config
    config_dict = cfg.model_dump(mode="json", exclude_none=True)

    if output_format == "json":
        config_json = json.dumps(config_dict, indent=2, ensure_ascii=False)
        console.print(Syntax(config_json, "json", theme="monokai", line_numbers=False))
    elif output_format == "yaml":
        config_yaml = yaml.dump(
            config_dict,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
        console.print(Syntax(config_yaml, "yaml", theme="monokai", line_numbers=False))
    else:
        table = Table(title="chatexporter Configuration", show_header=True)
        table.add_column("Section", style="cyan")
        table.add_column("Key", style="green")
        table.add_column("Value", style="white")

        for section, values in config_dict.items():
            if isinstance(values, dict):
                for key, value in values.items():
                    if isinstance(value, (dict, list)):
                        value = json.dumps(value, ensure_ascii=False)
                    table.add_row(section, key, str(value))
            else:
                table.add_row("", section, str(values))

        console.print(table)


@config.command("path")
@click.pass_context
def config_path_cmd(ctx: click.Context) -> None:
    """Show configuration file paths."""
    manager = _load_manager(ctx)

    ui.title("Configuration sources (highest priority first)")
    rows = [
        "--config / CHATEXPORTER_CONFIG",
        f"./{ConfigManager.CONFIG_FILENAME}",
        "~/.chatexporter/config.json",
        "defaults",
    ]
    for i, label in enumerate(rows, start=1):
        console.print(f"  {i}. {label}")
    console.print()

    if manager.config_path:
        ui.success(f"Currently using: {manager.config_path}")
    else:
        ui.warning("Using default configuration (no config file found)")


@config.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str) -> None:
    """Get a configuration value."""
    value = _load_manager(ctx).get(key)
    if value is None:
        console.print(f"[yellow]Key not found:[/yellow] {key}")
        raise SystemExit(1)

    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_none=True)
    elif isinstance(value, list) and value and isinstance(value[0], BaseModel):
        value = [v.model_dump(mode="json", exclude_none=True) for v in value]

    if isinstance(value, (dict, list)):
        output = json.dumps(value, indent=2, ensure_ascii=False)
        console.print(Syntax(output, "json", theme="monokai", line_numbers=False))
    else:
        console.print(str(value))


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a configuration value."""
    manager = _load_manager(ctx)
    parsed_value = _parse_value(value)

    try:
        manager.set(key, parsed_value)
    except ValidationError as ve:
        console.print(f"[red]Invalid value for '{key}':[/red]")
        for err in ve.errors():
            loc = ".".join(str(x) for x in err["loc"])
            console.print(f"[red]  {loc}: {err['msg']}[/red]")
        raise SystemExit(1)

    saved = manager.save()
    console.print(f"[green]Set {key} = {parsed_value}[/green] [dim]({saved})[/dim]")


@config.command("init")
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Where to write the file (default: ./chatexporter.json).",
)
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def config_init(output_path: Path | None, force: bool) -> None:
    """Write a starter configuration file."""
    target = output_path or Path.cwd() / ConfigManager.CONFIG_FILENAME
    if target.is_dir():
        target = target / ConfigManager.CONFIG_FILENAME
    if target.exists() and not force:
        ui.warning(f"{target} already exists", detail="Use --force to overwrite")
        raise SystemExit(1)

    saved = ConfigManager().save(target, minimal=True)
    ui.success(f"Saved: {saved}")


__all__ = ["config"]

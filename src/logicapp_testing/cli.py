"""
Command line interface to poke at logic apps while writing integration tests.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .client import LogicAppClient
from .config import DEFAULT_CONFIG_PATH, LogicAppTestConfig, load_config
from .exceptions import LogicAppError, ValidationError
from .models import LogicAppActionStatus, LogicAppRun
from .provider import LogicAppsProvider

console = Console()
app = typer.Typer(
    name="logicapp-testing",
    help="🧪 Poll, trigger and toggle Azure logic apps from integration tests",
    no_args_is_help=True,
)

_STATUS_STYLES = {
    LogicAppActionStatus.SUCCEEDED: "green",
    LogicAppActionStatus.FAILED: "red",
    LogicAppActionStatus.FAULTED: "red",
    LogicAppActionStatus.TIMED_OUT: "red",
    LogicAppActionStatus.CANCELLED: "yellow",
    LogicAppActionStatus.SKIPPED: "dim",
}

ConfigOption = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="YAML configuration file")
ResourceGroupOption = typer.Option(None, "--resource-group", "-g", help="Resource group of the logic app")
LogicAppOption = typer.Option(None, "--logic-app", "-n", help="Name of the logic app")


def handle_error(error: LogicAppError, action: str) -> None:
    """Print a logic app error with its suggested fixes and exit."""
    lines = [f"[red]{escape(error.get_summary())}[/red]"]
    fixes = error.context.suggested_fixes if error.context else []
    if fixes:
        lines.append("")
        lines.extend(f"💡 {escape(fix)}" for fix in fixes)

    console.print(Panel.fit("\n".join(lines), title=f"❌ Failed {action}", box=box.ROUNDED))
    raise typer.Exit(1)


def _parse_pairs(values: List[str], option: str) -> Dict[str, str]:
    pairs = {}
    for value in values:
        if "=" not in value:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{value}'", param_hint=option)
        key, _, item = value.partition("=")
        pairs[key.strip()] = item.strip()
    return pairs


def _locate(config: LogicAppTestConfig, resource_group: Optional[str], logic_app: Optional[str]) -> Tuple[str, str]:
    resource_group = resource_group or config.logic_apps.resource_group
    logic_app = logic_app or config.logic_apps.logic_app_name
    if not resource_group or not logic_app:
        raise ValidationError(
            "logic_app",
            "Requires a resource group and logic app name, via options or configuration"
        )
    return resource_group, logic_app


def _runs_table(runs: List[LogicAppRun]) -> Table:
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("Run", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Started")
    table.add_column("Correlation ID")
    table.add_column("Tracked properties")

    for run in runs:
        style = _STATUS_STYLES.get(run.status, "white")
        table.add_row(
            run.id,
            f"[{style}]{run.status.value}[/{style}]",
            run.start_time.isoformat() if run.start_time else "-",
            run.correlation_id or "-",
            ", ".join(f"{key}={value}" for key, value in run.tracked_properties.items()) or "-",
        )
    return table


@app.command()
def poll(
    resource_group: Optional[str] = ResourceGroupOption,
    logic_app: Optional[str] = LogicAppOption,
    correlation_id: Optional[str] = typer.Option(None, "--correlation-id", help="Client tracking ID to match"),
    tracked_property: Optional[str] = typer.Option(
        None, "--tracked-property", help="Tracked property to match, as NAME=VALUE"
    ),
    count: Optional[int] = typer.Option(None, "--count", min=1, help="Wait for at least this many runs"),
    wait_all: bool = typer.Option(False, "--all", help="Wait the full timeout, then list every matching run"),
    since_minutes: float = typer.Option(10.0, "--since-minutes", help="Only runs started this many minutes ago or later"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Timeout in seconds"),
    config_path: Path = ConfigOption,
):
    """
    🔍 Poll for completed logic app runs
    """
    try:
        if correlation_id and tracked_property:
            raise ValidationError(
                "correlation_id",
                "Cannot poll on a correlation ID and a tracked property at the same time",
                correlation_id
            )
        config = load_config(config_path)
        resource_group, logic_app = _locate(config, resource_group, logic_app)

        provider = (
            LogicAppsProvider.located_at(resource_group, logic_app, config.create_authentication())
            .with_start_time(datetime.now(timezone.utc) - timedelta(minutes=since_minutes))
            .with_timeout(timedelta(seconds=timeout) if timeout else config.polling.timeout)
            .with_poll_interval(config.polling.poll_interval)
        )
        if correlation_id:
            provider = provider.with_correlation_id(correlation_id)
        if tracked_property:
            (name, value), = _parse_pairs([tracked_property], "--tracked-property").items()
            provider = provider.with_tracked_property(name, value)

        with console.status(f"Polling logic app '{logic_app}'..."):
            if wait_all:
                runs = asyncio.run(provider.poll_for_all_logic_app_runs())
            elif count:
                runs = asyncio.run(provider.poll_for_logic_app_runs(count))
            else:
                runs = [asyncio.run(provider.poll_for_single_logic_app_run())]
    except LogicAppError as e:
        handle_error(e, "polling for runs")
        return

    console.print(f"\n✅ Found [bold]{len(runs)}[/bold] logic app run(s)\n")
    if runs:
        console.print(_runs_table(runs))


async def _with_client(config: LogicAppTestConfig, resource_group: str, logic_app: str, operation):
    client = await LogicAppClient.create(resource_group, logic_app, config.create_authentication())
    async with client:
        return await operation(client)


def _run_client_command(
    action: str,
    operation,
    resource_group: Optional[str],
    logic_app: Optional[str],
    config_path: Path,
):
    try:
        config = load_config(config_path)
        resource_group, logic_app = _locate(config, resource_group, logic_app)
        return logic_app, asyncio.run(_with_client(config, resource_group, logic_app, operation))
    except LogicAppError as e:
        handle_error(e, action)


@app.command()
def enable(
    resource_group: Optional[str] = ResourceGroupOption,
    logic_app: Optional[str] = LogicAppOption,
    config_path: Path = ConfigOption,
):
    """
    ▶️  Enable a logic app
    """
    logic_app, _ = _run_client_command("enabling logic app", lambda c: c.enable(), resource_group, logic_app, config_path)
    console.print(f"✅ Enabled logic app [bold]{logic_app}[/bold]")


@app.command()
def disable(
    resource_group: Optional[str] = ResourceGroupOption,
    logic_app: Optional[str] = LogicAppOption,
    config_path: Path = ConfigOption,
):
    """
    ⏹️  Disable a logic app
    """
    logic_app, _ = _run_client_command("disabling logic app", lambda c: c.disable(), resource_group, logic_app, config_path)
    console.print(f"✅ Disabled logic app [bold]{logic_app}[/bold]")


@app.command()
def trigger(
    resource_group: Optional[str] = ResourceGroupOption,
    logic_app: Optional[str] = LogicAppOption,
    header: List[str] = typer.Option([], "--header", "-H", help="Header to send, as KEY=VALUE"),
    config_path: Path = ConfigOption,
):
    """
    🚀 Call the trigger URL of a logic app
    """
    headers = _parse_pairs(header, "--header")
    logic_app, response = _run_client_command(
        "triggering logic app", lambda c: c.trigger(headers), resource_group, logic_app, config_path
    )
    console.print(f"✅ Triggered logic app [bold]{logic_app}[/bold] (HTTP {response.status_code})")


@app.command("config")
def show_config(
    config_path: Path = ConfigOption,
):
    """
    📋 Display the effective configuration
    """
    try:
        config = load_config(config_path)
    except LogicAppError as e:
        handle_error(e, "loading configuration")
        return

    def mask(value: Optional[str]) -> str:
        if not value:
            return "[dim]not set[/dim]"
        return value[:4] + "****" if len(value) > 8 else "****"

    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Setting", style="bold cyan")
    table.add_column("Value")

    table.add_row("Tenant ID", config.azure.tenant_id or "[dim]not set[/dim]")
    table.add_row("Subscription ID", config.azure.subscription_id or "[dim]not set[/dim]")
    table.add_row("Client ID", config.azure.client_id or "[dim]not set[/dim]")
    table.add_row("Client secret", mask(config.azure.client_secret))
    table.add_row("Access token", mask(config.azure.access_token))
    table.add_row("Cloud", config.azure.cloud.value)
    table.add_row("Resource group", config.logic_apps.resource_group or "[dim]not set[/dim]")
    table.add_row("Logic app", config.logic_apps.logic_app_name or "[dim]not set[/dim]")
    table.add_row("Timeout", f"{config.polling.timeout_seconds:g}s")
    table.add_row("Poll interval", f"{config.polling.poll_interval_seconds:g}s")

    console.print(Panel.fit(table, title=f"⚙️  Configuration ({config_path})", box=box.ROUNDED))


if __name__ == "__main__":
    app()

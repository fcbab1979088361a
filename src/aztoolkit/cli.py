"""aztk - command line interface for aztoolkit.

Commands:
    postgres    PostgreSQL flexible servers (list, show, delete, versions)
    servicebus  Service Bus namespaces (list, show, delete)
    webapp      Web apps (list, show, delete, slots, swap)
    kudu        Files and processes on a web app's SCM site
    config      Show and change ~/.aztoolkit/config.toml
"""

import functools
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from aztoolkit import __version__
from aztoolkit.config import ConfigManager, ToolkitConfig
from aztoolkit.credentials import CredentialFactory
from aztoolkit.exceptions import ConfigError, ToolkitError
from aztoolkit.kudu.client import KuduClient
from aztoolkit.module import ResourceModule
from aztoolkit.resource import Resource
from aztoolkit.services import AzureAppService, AzurePostgreSql, AzureServiceBus, kudu_client, swap_slot

logger = logging.getLogger(__name__)


class ToolkitGroup(click.Group):
    """Click group that shows the relevant help after a usage error."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except click.exceptions.UsageError as e:
            click.echo(f"Error: {e.format_message()}", err=True)
            error_ctx = e.ctx or ctx
            click.echo("")
            click.echo(error_ctx.get_help())
            error_ctx.exit(e.exit_code)


# subgroups created with @main.group() use ToolkitGroup too
ToolkitGroup.group_class = ToolkitGroup


@dataclass
class CliContext:
    """Options of the root command, shared with every subcommand."""

    config: ToolkitConfig
    config_path: str | None = None
    subscription: str | None = None
    resource_group: str | None = None
    _credential: Any = field(default=None, repr=False)

    def subscription_id(self) -> str:
        return self.subscription or ConfigManager.get_subscription(None, self.config_path)

    def group(self, cli_value: str | None) -> str | None:
        return cli_value or self.resource_group or self.config.default_resource_group

    def credential(self) -> Any:
        if self._credential is None:
            self._credential = CredentialFactory.create_credential(self.config)
        return self._credential

    def postgres(self) -> AzurePostgreSql:
        return AzurePostgreSql(self.credential(), self.config)

    def servicebus(self) -> AzureServiceBus:
        return AzureServiceBus(self.credential(), self.config)

    def appservice(self) -> AzureAppService:
        return AzureAppService(self.credential(), self.config)


pass_cli = click.make_pass_decorator(CliContext)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Print toolkit errors in red and exit 1 instead of showing a traceback."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ToolkitError as e:
            logger.debug("Command failed", exc_info=True)
            Console(stderr=True).print(f"[red]Error: {e}[/red]")
            sys.exit(1)

    return wrapper


def resource_group_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option("--resource-group", "--rg", "resource_group", help="Azure resource group")(func)


def _attr(obj: Any, *path: str) -> str:
    """Dotted attribute of an SDK model as text, "" when any step is missing."""
    for name in path:
        obj = getattr(obj, name, None)
        if obj is None:
            return ""
    return str(obj)


def _not_found(kind: str, name: str) -> None:
    Console(stderr=True).print(f"[red]{kind} '{name}' not found[/red]")
    sys.exit(1)


def _resource_table(title: str, resources: list[Resource], columns: dict[str, tuple[str, ...]]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Resource Group")
    for header in columns:
        table.add_column(header)
    table.add_column("Status")
    for resource in resources:
        remote = resource.remote
        table.add_row(
            resource.name,
            resource.resource_group or "",
            *(_attr(remote, *path) for path in columns.values()),
            resource.status.value,
        )
    return table


def _print_details(resource: Resource, fields: dict[str, tuple[str, ...]]) -> None:
    console = Console()
    console.print(f"[bold]{resource.name}[/bold]")
    console.print(f"  Id: {resource.id}")
    console.print(f"  Status: {resource.status.value}")
    for label, path in fields.items():
        console.print(f"  {label}: {_attr(resource.remote, *path) or '-'}")


def _get_or_exit(module: ResourceModule, name: str, resource_group: str | None) -> Resource:
    resource = module.get(name, resource_group)
    if resource is None:
        _not_found(module.resource_type_name, name)
    return resource


def _delete(module: ResourceModule, name: str, resource_group: str | None, yes: bool) -> None:
    resource = _get_or_exit(module, name, resource_group)
    if not yes and not click.confirm(f"Delete {module.resource_type_name} '{name}'?"):
        click.echo("Cancelled.")
        return
    resource.delete()
    Console().print(f"[green]Deleted {module.resource_type_name} '{name}'[/green]")


@click.group(cls=ToolkitGroup, context_settings={"help_option_names": ["--help", "-h"]})
@click.option("--subscription", "-s", help="Azure subscription id (default: config)")
@click.option("--resource-group", "--rg", "resource_group", help="Default resource group")
@click.option("--config", "config_path", help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    subscription: str | None,
    resource_group: str | None,
    config_path: str | None,
    verbose: bool,
) -> None:
    """aztk - manage Azure PostgreSQL, Service Bus and App Service resources.

    \b
    EXAMPLES:
        $ aztk postgres list --rg my-rg
        $ aztk webapp swap my-app staging --rg my-rg
        $ aztk kudu ls site/wwwroot --app my-app --rg my-rg
        $ aztk config set default_subscription <id>
    """
    try:
        config = ConfigManager.load_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level),
        format="%(message)s",
    )
    ctx.obj = CliContext(
        config=config,
        config_path=config_path,
        subscription=subscription,
        resource_group=resource_group,
    )


# PostgreSQL

_POSTGRES_COLUMNS = {
    "Location": ("location",),
    "Version": ("version",),
    "SKU": ("sku", "name"),
    "State": ("state",),
}


@main.group(name="postgres")
def postgres_group() -> None:
    """Azure Database for PostgreSQL flexible servers."""


@postgres_group.command(name="list")
@resource_group_option
@pass_cli
@handle_errors
def postgres_list(cli: CliContext, resource_group: str | None) -> None:
    """List flexible servers."""
    servers = cli.postgres().servers(cli.subscription_id()).list(cli.group(resource_group))
    if not servers:
        click.echo("No PostgreSQL servers found.")
        return
    Console().print(_resource_table("PostgreSQL flexible servers", servers, _POSTGRES_COLUMNS))


@postgres_group.command(name="show")
@click.argument("name")
@resource_group_option
@pass_cli
@handle_errors
def postgres_show(cli: CliContext, name: str, resource_group: str | None) -> None:
    """Show one flexible server."""
    module = cli.postgres().servers(cli.subscription_id())
    server = _get_or_exit(module, name, cli.group(resource_group))
    _print_details(
        server,
        {
            **_POSTGRES_COLUMNS,
            "FQDN": ("fully_qualified_domain_name",),
            "Admin": ("administrator_login",),
            "Storage (GB)": ("storage", "storage_size_gb"),
        },
    )


@postgres_group.command(name="delete")
@click.argument("name")
@resource_group_option
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@pass_cli
@handle_errors
def postgres_delete(cli: CliContext, name: str, resource_group: str | None, yes: bool) -> None:
    """Delete a flexible server."""
    _delete(cli.postgres().servers(cli.subscription_id()), name, cli.group(resource_group), yes)


@postgres_group.command(name="versions")
def postgres_versions() -> None:
    """List supported server versions, newest first."""
    for version in AzurePostgreSql.list_supported_versions():
        click.echo(version)


# Service Bus

_SERVICEBUS_COLUMNS = {
    "Location": ("location",),
    "SKU": ("sku", "name"),
    "State": ("status",),
}


@main.group(name="servicebus")
def servicebus_group() -> None:
    """Azure Service Bus namespaces."""


@servicebus_group.command(name="list")
@resource_group_option
@pass_cli
@handle_errors
def servicebus_list(cli: CliContext, resource_group: str | None) -> None:
    """List namespaces."""
    namespaces = cli.servicebus().namespaces(cli.subscription_id()).list(cli.group(resource_group))
    if not namespaces:
        click.echo("No Service Bus namespaces found.")
        return
    Console().print(_resource_table("Service Bus namespaces", namespaces, _SERVICEBUS_COLUMNS))


@servicebus_group.command(name="show")
@click.argument("name")
@resource_group_option
@pass_cli
@handle_errors
def servicebus_show(cli: CliContext, name: str, resource_group: str | None) -> None:
    """Show one namespace."""
    module = cli.servicebus().namespaces(cli.subscription_id())
    namespace = _get_or_exit(module, name, cli.group(resource_group))
    _print_details(namespace, {**_SERVICEBUS_COLUMNS, "Endpoint": ("service_bus_endpoint",)})


@servicebus_group.command(name="delete")
@click.argument("name")
@resource_group_option
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@pass_cli
@handle_errors
def servicebus_delete(cli: CliContext, name: str, resource_group: str | None, yes: bool) -> None:
    """Delete a namespace."""
    _delete(cli.servicebus().namespaces(cli.subscription_id()), name, cli.group(resource_group), yes)


# App Service

_WEBAPP_COLUMNS = {
    "Location": ("location",),
    "Host": ("default_host_name",),
    "State": ("state",),
}


@main.group(name="webapp")
def webapp_group() -> None:
    """Azure App Service web apps."""


@webapp_group.command(name="list")
@resource_group_option
@pass_cli
@handle_errors
def webapp_list(cli: CliContext, resource_group: str | None) -> None:
    """List web apps (function apps are not shown)."""
    apps = cli.appservice().webapps(cli.subscription_id()).list(cli.group(resource_group))
    if not apps:
        click.echo("No web apps found.")
        return
    Console().print(_resource_table("Web apps", apps, _WEBAPP_COLUMNS))


@webapp_group.command(name="show")
@click.argument("name")
@resource_group_option
@pass_cli
@handle_errors
def webapp_show(cli: CliContext, name: str, resource_group: str | None) -> None:
    """Show one web app."""
    module = cli.appservice().webapps(cli.subscription_id())
    app = _get_or_exit(module, name, cli.group(resource_group))
    _print_details(
        app,
        {
            **_WEBAPP_COLUMNS,
            "Plan": ("server_farm_id",),
            "Runtime": ("site_config", "linux_fx_version"),
            "HTTPS only": ("https_only",),
        },
    )


@webapp_group.command(name="delete")
@click.argument("name")
@resource_group_option
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@pass_cli
@handle_errors
def webapp_delete(cli: CliContext, name: str, resource_group: str | None, yes: bool) -> None:
    """Delete a web app."""
    _delete(cli.appservice().webapps(cli.subscription_id()), name, cli.group(resource_group), yes)


@webapp_group.command(name="slots")
@click.argument("app_name")
@resource_group_option
@pass_cli
@handle_errors
def webapp_slots(cli: CliContext, app_name: str, resource_group: str | None) -> None:
    """List deployment slots of a web app."""
    app_service = cli.appservice()
    app = _get_or_exit(app_service.webapps(cli.subscription_id()), app_name, cli.group(resource_group))
    slots = app_service.slots(app).list()
    if not slots:
        click.echo(f"Web app '{app_name}' has no deployment slots.")
        return
    Console().print(_resource_table(f"Deployment slots of {app_name}", slots, _WEBAPP_COLUMNS))


@webapp_group.command(name="swap")
@click.argument("app_name")
@click.argument("slot")
@resource_group_option
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@pass_cli
@handle_errors
def webapp_swap(cli: CliContext, app_name: str, slot: str, resource_group: str | None, yes: bool) -> None:
    """Swap a deployment slot into production."""
    app = _get_or_exit(cli.appservice().webapps(cli.subscription_id()), app_name, cli.group(resource_group))
    if not yes and not click.confirm(f"Swap slot '{slot}' into production of '{app_name}'?"):
        click.echo("Cancelled.")
        return
    swap_slot(app, slot)
    Console().print(f"[green]Swapped deployment slot '{slot}' into production of '{app_name}'[/green]")


# Kudu


def _kudu(cli: CliContext, app_name: str, slot: str | None, resource_group: str | None) -> KuduClient:
    app_service = cli.appservice()
    app = _get_or_exit(app_service.webapps(cli.subscription_id()), app_name, cli.group(resource_group))
    if slot:
        app = _get_or_exit(app_service.slots(app), slot, None)
    return kudu_client(app, cli.credential(), timeout=cli.config.request_timeout)


def kudu_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--slot", help="Deployment slot (default: production)")(func)
    func = resource_group_option(func)
    return click.option("--app", "app_name", required=True, help="Web app name")(func)


@main.group(name="kudu")
def kudu_group() -> None:
    """Files and processes on a web app's SCM (Kudu) site."""


@kudu_group.command(name="ls")
@click.argument("path", default="site/wwwroot")
@kudu_options
@pass_cli
@handle_errors
def kudu_ls(cli: CliContext, path: str, app_name: str, resource_group: str | None, slot: str | None) -> None:
    """List a directory."""
    files = _kudu(cli, app_name, slot, resource_group).list_files_in_directory(path)
    table = Table(title=path, show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for info in files:
        name = f"{info.name}/" if info.is_directory else info.name
        table.add_row(name, "" if info.is_directory else str(info.size), info.mtime or "")
    Console().print(table)


@kudu_group.command(name="cat")
@click.argument("path")
@kudu_options
@pass_cli
@handle_errors
def kudu_cat(cli: CliContext, path: str, app_name: str, resource_group: str | None, slot: str | None) -> None:
    """Print a file."""
    click.echo(_kudu(cli, app_name, slot, resource_group).get_file_content(path), nl=False)


@kudu_group.command(name="upload")
@click.argument("local_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("remote_path")
@kudu_options
@pass_cli
@handle_errors
def kudu_upload(
    cli: CliContext,
    local_path: Path,
    remote_path: str,
    app_name: str,
    resource_group: str | None,
    slot: str | None,
) -> None:
    """Upload a local file, overwriting the remote one."""
    _kudu(cli, app_name, slot, resource_group).upload_file(local_path.read_bytes(), remote_path)
    Console().print(f"[green]Uploaded {local_path} to {remote_path}[/green]")


@kudu_group.command(name="mkdir")
@click.argument("path")
@kudu_options
@pass_cli
@handle_errors
def kudu_mkdir(cli: CliContext, path: str, app_name: str, resource_group: str | None, slot: str | None) -> None:
    """Create a directory."""
    _kudu(cli, app_name, slot, resource_group).create_directory(path)
    Console().print(f"[green]Created {path}[/green]")


@kudu_group.command(name="rm")
@click.argument("path")
@kudu_options
@pass_cli
@handle_errors
def kudu_rm(cli: CliContext, path: str, app_name: str, resource_group: str | None, slot: str | None) -> None:
    """Delete a file."""
    _kudu(cli, app_name, slot, resource_group).delete_file(path)
    Console().print(f"[green]Deleted {path}[/green]")


@kudu_group.command(name="ps")
@kudu_options
@pass_cli
@handle_errors
def kudu_ps(cli: CliContext, app_name: str, resource_group: str | None, slot: str | None) -> None:
    """List processes."""
    processes = _kudu(cli, app_name, slot, resource_group).list_processes()
    table = Table(show_header=True, header_style="bold")
    table.add_column("PID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("User")
    for process in processes:
        table.add_row(str(process.id), process.name, process.user_name or "")
    Console().print(table)


@kudu_group.command(name="exec")
@click.argument("command")
@click.option("--dir", "directory", default="site/wwwroot", show_default=True, help="Working directory")
@kudu_options
@pass_cli
@handle_errors
def kudu_exec(
    cli: CliContext,
    command: str,
    directory: str,
    app_name: str,
    resource_group: str | None,
    slot: str | None,
) -> None:
    """Run a command on the app host; exits with its exit code."""
    result = _kudu(cli, app_name, slot, resource_group).execute_command(command, directory)
    if result.output:
        click.echo(result.output, nl=False)
    if result.error:
        click.echo(result.error, nl=False, err=True)
    if not result.succeeded:
        sys.exit(result.exit_code)


@kudu_group.command(name="tunnel-status")
@kudu_options
@pass_cli
@handle_errors
def kudu_tunnel_status(cli: CliContext, app_name: str, resource_group: str | None, slot: str | None) -> None:
    """Show the remote debugging tunnel status."""
    status = _kudu(cli, app_name, slot, resource_group).get_tunnel_status()
    console = Console()
    console.print(f"State: {status.state or '-'}")
    console.print(f"Port: {status.port if status.port is not None else '-'}")
    console.print(f"Port reachable: {'yes' if status.can_reach_port else 'no'}")
    if status.msg:
        console.print(f"Message: {status.msg}")


# Config


@main.group(name="config")
def config_group() -> None:
    """Show and change the aztoolkit configuration."""


@config_group.command(name="show")
@pass_cli
def config_show(cli: CliContext) -> None:
    """Show the effective configuration."""
    table = Table(title=str(ConfigManager.get_config_path(cli.config_path)), show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in cli.config.to_dict().items():
        table.add_row(key, str(value))
    Console().print(table)


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@pass_cli
@handle_errors
def config_set(cli: CliContext, key: str, value: str) -> None:
    """Set one configuration value."""
    data = cli.config.to_dict()
    if key not in ToolkitConfig.__dataclass_fields__:
        raise ConfigError(f"Unknown config key '{key}'")
    data[key] = value
    try:
        config = ToolkitConfig.from_dict(data)
    except ValueError as e:
        raise ConfigError(f"Invalid value for '{key}': {value}") from e
    path = ConfigManager.save_config(config, cli.config_path)
    Console().print(f"[green]Set {key} in {path}[/green]")


__all__ = ["main"]

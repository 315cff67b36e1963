from __future__ import annotations

import click
import yaml

from igmon.cli.context import CLIContext
from igmon.cli.output import OutputFormat, format_json

#: Settings never echoed back to the terminal
_SECRET_FIELDS = {"monitor": {"password"}}


@click.group()
def config() -> None:
    """Inspect igmon configuration."""
    pass


@config.command("show")
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice([f.value for f in OutputFormat]),
    default=OutputFormat.YAML.value,
    help="Output format (yaml or json).",
)
@click.pass_context
def config_show(ctx: click.Context, fmt: str) -> None:
    """Display current configuration.

    Shows the merged configuration from all sources (defaults, user config,
    project config, environment variables). The monitor password is omitted.

    Examples:
        igmon config show
        igmon config show --format json
    """
    cli_ctx: CLIContext = ctx.obj["cli_ctx"]
    # mode="json" keeps enums and paths plain for both formats
    config_dict = cli_ctx.config.model_dump(mode="json", exclude=_SECRET_FIELDS)

    output_format = OutputFormat(fmt)
    if output_format == OutputFormat.JSON:
        click.echo(format_json(config_dict))
    else:
        click.echo(yaml.dump(config_dict, default_flow_style=False, sort_keys=False))

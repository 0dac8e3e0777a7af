"""
Main CLI entry point for Reprise.

This module provides the Click-based command-line interface for Reprise.
"""

import logging
from pathlib import Path
from typing import Optional

import click

from reprise import __version__
from reprise.core.config import GlobalConfig, create_example_config, load_config
from reprise.core.output import OutputLevel

from .cache_commands import create_cache_group
from .context import CONTEXT_SETTINGS
from .descriptor_commands import create_descriptors_group
from .manifest_commands import create_manifest_group
from .metadata_commands import create_metadata_group


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: /etc/reprise/config.yaml, or $REPRISE_CONFIG)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Only print errors and the final summary")
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], verbose: bool, quiet: bool) -> None:
    """Reprise - Republish vendor release manifests as APT/RPM repositories.

    Package binaries stay on the vendor host; only metadata is rebuilt.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if verbose:
        ctx.obj["output_level"] = OutputLevel.VERBOSE
    elif quiet:
        ctx.obj["output_level"] = OutputLevel.QUIET
    else:
        ctx.obj["output_level"] = OutputLevel.NORMAL

    # Load configuration
    try:
        ctx.obj["config"] = load_config(config)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    except ValueError as e:
        # YAML syntax error or validation error
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    if verbose:
        loaded: GlobalConfig = ctx.obj["config"]
        click.echo(
            f"Loaded configuration: {len(loaded.vendor.products)} product(s) "
            f"from {loaded.vendor.origin}"
        )


@cli.command("init-config")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path), default="config.yaml")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init_config(output: Path, force: bool) -> None:
    """Write an example configuration file."""
    if output.exists() and not force:
        click.echo(f"Error: {output} already exists (use --force to overwrite)", err=True)
        raise SystemExit(1)

    create_example_config(output)
    click.echo(f"✓ Example configuration written to {output}")


create_descriptors_group(cli)
create_cache_group(cli)
create_manifest_group(cli)
create_metadata_group(cli)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()

from __future__ import annotations

"""Shared helpers for CLI commands."""

import click

from reprise.core.config import GlobalConfig
from reprise.core.errors import StoreError
from reprise.core.kvstore import KeyValueStore, create_store
from reprise.core.output import OutputLevel, RunOutputter

# Click context settings to enable -h as alias for --help
CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def get_config(ctx: click.Context) -> GlobalConfig:
    """Get the loaded configuration from the click context."""
    return ctx.obj["config"]


def get_outputter(ctx: click.Context) -> RunOutputter:
    """Create an outputter at the verbosity selected on the command line."""
    return RunOutputter(level=ctx.obj.get("output_level", OutputLevel.NORMAL))


def open_store(ctx: click.Context) -> KeyValueStore:
    """Open the configured key-value store, exiting on bad configuration."""
    config = get_config(ctx)
    try:
        return create_store(config.kvstore)
    except (ValueError, StoreError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

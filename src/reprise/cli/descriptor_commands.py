from __future__ import annotations

"""Descriptor pipeline commands."""

import json
from pathlib import Path

import click

from reprise.core.errors import CacheSaveError, ManifestError
from reprise.descriptors.cache import DescriptorCache
from reprise.descriptors.pipeline import DescriptorPipeline, RunResult, write_descriptors_file

from .context import CONTEXT_SETTINGS, get_config, get_outputter, open_store


def create_descriptors_group(cli: click.Group) -> click.Group:
    """Create and return the descriptors command group.

    Args:
        cli: Parent CLI group to attach to

    Returns:
        The descriptors command group
    """

    @cli.group(context_settings=CONTEXT_SETTINGS)
    def descriptors() -> None:
        """Package descriptor commands."""
        pass

    @descriptors.command("update")
    @click.argument("products", nargs=-1)
    @click.option(
        "--no-upload",
        is_flag=True,
        help="Compute descriptors only, do not write the cache back",
    )
    @click.option(
        "--use-cache/--no-cache",
        default=True,
        help="Reuse cached descriptors (--no-cache re-downloads everything)",
    )
    @click.option(
        "--output",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Also write this run's descriptors to a JSON file",
    )
    @click.pass_context
    def descriptors_update(
        ctx: click.Context,
        products: tuple[str, ...],
        no_upload: bool,
        use_cache: bool,
        output: Path | None,
    ) -> None:
        """Download, digest and validate release files, then update the cache.

        PRODUCTS restricts the run to the named products (default: all
        configured products). Individual file failures are reported but do
        not fail the command; manifest and cache-save failures do.
        """
        config = get_config(ctx)
        store = open_store(ctx)
        pipeline = DescriptorPipeline(config, store, outputter=get_outputter(ctx))

        try:
            result = pipeline.run(list(products) or None, use_cache=use_cache, upload=not no_upload)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        except ManifestError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        except CacheSaveError as e:
            if output and isinstance(e.result, RunResult):
                write_descriptors_file(e.result.descriptors, output)
                click.echo(f"Descriptors written to {output} (not persisted to cache)", err=True)
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

        if output:
            write_descriptors_file(result.descriptors, output)
            click.echo(f"✓ Wrote {len(result.descriptors)} descriptor(s) to {output}")

        if result.failed:
            click.echo(f"⚠ {result.failed} file(s) failed; see summary above", err=True)

    @descriptors.command("show")
    @click.option(
        "--format",
        "output_format",
        type=click.Choice(["table", "json"]),
        default="table",
        help="Output format",
    )
    @click.option("--package", "package_name", default=None, help="Filter by package name")
    @click.pass_context
    def descriptors_show(ctx: click.Context, output_format: str, package_name: str | None) -> None:
        """Show cached package descriptors."""
        config = get_config(ctx)
        cache = DescriptorCache(open_store(ctx), config.kvstore.descriptors_key)
        cached = cache.load()
        entries = sorted(
            (d for d in cached.values() if not package_name or d.package == package_name),
            key=lambda d: (d.package, d.architecture, d.version, d.url),
        )

        if output_format == "json":
            payload = {d.url: d.to_json_dict() for d in entries}
            click.echo(json.dumps(payload, indent=2))
            return

        if not entries:
            click.echo("No cached descriptors")
            return

        click.echo(f"{'Package':<24} {'Version':<14} {'Arch':<8} {'Size':>10} {'Verified':<20} Filename")
        click.echo("-" * 110)
        for d in entries:
            size_mb = d.size / (1024 * 1024)
            verified = d.last_verified.strftime("%Y-%m-%d %H:%M:%S")
            click.echo(
                f"{d.package:<24} {d.version:<14} {d.architecture:<8} "
                f"{size_mb:>7.1f} MB {verified:<20} {d.filename}"
            )
        click.echo()
        click.echo(f"Total: {len(entries)} of {len(cached)} cached descriptor(s)")

    return descriptors

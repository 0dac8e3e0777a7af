from __future__ import annotations

"""Descriptor cache management commands."""

import click

from reprise.core.errors import CacheLoadError, StoreError
from reprise.descriptors.cache import DescriptorCache

from .context import CONTEXT_SETTINGS, get_config, open_store


def create_cache_group(cli: click.Group) -> click.Group:
    """Create and return the cache command group.

    Args:
        cli: Parent CLI group to attach to

    Returns:
        The cache command group
    """

    @cli.group(context_settings=CONTEXT_SETTINGS)
    def cache() -> None:
        """Descriptor cache management commands."""
        pass

    @cache.command("stats")
    @click.pass_context
    def cache_stats(ctx: click.Context) -> None:
        """Show descriptor cache statistics."""
        config = get_config(ctx)
        descriptor_cache = DescriptorCache(open_store(ctx), config.kvstore.descriptors_key)

        try:
            stats = descriptor_cache.stats()
        except CacheLoadError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

        click.echo(f"Backend: {config.kvstore.backend}")
        click.echo(f"Key: {config.kvstore.descriptors_key}")
        click.echo()

        if stats.total_entries == 0:
            click.echo("Cache is empty")
            return

        size_mb = stats.total_size_bytes / (1024 * 1024)
        size_gb = stats.total_size_bytes / (1024 * 1024 * 1024)

        click.echo(f"Total descriptors: {stats.total_entries}")
        if size_gb >= 1.0:
            click.echo(f"Total size: {size_gb:.2f} GB")
        else:
            click.echo(f"Total size: {size_mb:.2f} MB")

        if stats.oldest_verified is not None:
            click.echo(f"Oldest verification: {stats.oldest_verified:%Y-%m-%d %H:%M:%S} UTC")
        if stats.newest_verified is not None:
            click.echo(f"Newest verification: {stats.newest_verified:%Y-%m-%d %H:%M:%S} UTC")

        click.echo()
        click.echo(f"{'Package':<30} {'Descriptors':>12}")
        click.echo("-" * 43)
        for package, count in sorted(stats.packages.items()):
            click.echo(f"{package or '(unknown)':<30} {count:>12}")

    @cache.command("clear")
    @click.option("--force", is_flag=True, help="Skip confirmation prompt")
    @click.pass_context
    def cache_clear(ctx: click.Context, force: bool) -> None:
        """Delete the descriptor cache.

        The next update run re-downloads and re-verifies every file.
        """
        config = get_config(ctx)
        descriptor_cache = DescriptorCache(open_store(ctx), config.kvstore.descriptors_key)

        # Confirm action
        if not force:
            click.echo(f"About to delete the descriptor cache ({config.kvstore.descriptors_key})")
            if not click.confirm("Continue?"):
                click.echo("Aborted")
                return

        try:
            count = descriptor_cache.clear()
        except StoreError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

        click.echo("✓ Cache cleared successfully!")
        click.echo(f"  Descriptors removed: {count}")

    return cache

from __future__ import annotations

"""Release manifest commands."""

import click

from reprise.core.downloader import create_session
from reprise.core.errors import ManifestError, StoreError
from reprise.descriptors.manifest import fetch_manifest, select_candidates
from reprise.descriptors.selection import latest_release_version
from reprise.publish.upload import MetadataPublisher

from .context import CONTEXT_SETTINGS, get_config, open_store


def create_manifest_group(cli: click.Group) -> click.Group:
    """Create and return the manifest command group.

    Args:
        cli: Parent CLI group to attach to

    Returns:
        The manifest command group
    """

    @cli.group(context_settings=CONTEXT_SETTINGS)
    def manifest() -> None:
        """Vendor release manifest commands."""
        pass

    @manifest.command("check")
    @click.argument("products", nargs=-1)
    @click.option(
        "--upload",
        is_flag=True,
        help="Store the latest version per product under 'latest-versions'",
    )
    @click.pass_context
    def manifest_check(ctx: click.Context, products: tuple[str, ...], upload: bool) -> None:
        """Fetch and validate release manifests.

        Prints the number of releases, the latest release version and the
        number of candidate files for every product.
        """
        config = get_config(ctx)
        try:
            names = config.get_products(list(products) or None)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)

        session = create_session(config.download, config.proxy, config.ssl)
        latest_versions: dict[str, str | None] = {}

        click.echo(f"{'Product':<16} {'Releases':>8} {'Latest':<16} {'Files':>6}")
        click.echo("-" * 50)
        for name in names:
            try:
                release_manifest = fetch_manifest(
                    name, config.vendor, session, timeout=config.download.timeout
                )
            except ManifestError as e:
                click.echo(f"Error: {e}", err=True)
                ctx.exit(1)

            latest = latest_release_version(r.version for r in release_manifest.releases)
            candidates = select_candidates(
                release_manifest, config.vendor.identifier_prefixes, config.vendor.ignored_urls
            )
            latest_versions[name] = latest
            click.echo(
                f"{name:<16} {len(release_manifest.releases):>8} {latest or '-':<16} "
                f"{len(candidates):>6}"
            )

        if upload:
            publisher = MetadataPublisher(open_store(ctx), config.repository)
            try:
                publisher.upload_latest_versions(latest_versions)
            except StoreError as e:
                click.echo(f"Error: {e}", err=True)
                ctx.exit(1)
            click.echo()
            click.echo(f"✓ Uploaded latest versions for {len(latest_versions)} product(s)")

    return manifest

from __future__ import annotations

"""Repository metadata commands."""

from pathlib import Path

import click

from reprise.core.errors import SigningError, StoreError
from reprise.descriptors.cache import DescriptorCache
from reprise.publish.apt import build_apt_repository
from reprise.publish.rpm import build_rpm_repository
from reprise.publish.signing import GpgSigner
from reprise.publish.upload import MetadataArtifacts, MetadataPublisher

from .context import CONTEXT_SETTINGS, get_config, open_store


def create_metadata_group(cli: click.Group) -> click.Group:
    """Create and return the metadata command group.

    Args:
        cli: Parent CLI group to attach to

    Returns:
        The metadata command group
    """

    @cli.group(context_settings=CONTEXT_SETTINGS)
    def metadata() -> None:
        """Repository metadata commands."""
        pass

    @metadata.command("generate")
    @click.option(
        "--output-dir",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Write the repository tree (dists/, repodata/) to this directory",
    )
    @click.option("--sign", is_flag=True, help="Sign the Release file with gpg")
    @click.option("--upload", is_flag=True, help="Store rendered metadata in the key-value store")
    @click.option(
        "--rpm/--no-rpm",
        "with_rpm",
        default=True,
        help="Also render RPM metadata (repodata/)",
    )
    @click.pass_context
    def metadata_generate(
        ctx: click.Context,
        output_dir: Path | None,
        sign: bool,
        upload: bool,
        with_rpm: bool,
    ) -> None:
        """Render APT (and RPM) metadata from the descriptor cache.

        Without --output-dir or --upload the top-level Release file is
        printed.
        """
        config = get_config(ctx)
        store = open_store(ctx)
        descriptors = DescriptorCache(store, config.kvstore.descriptors_key).load()

        if not descriptors:
            click.echo(
                "Error: No cached descriptors; run 'reprise descriptors update' first", err=True
            )
            ctx.exit(1)

        apt = build_apt_repository(descriptors.values(), config.repository, config.vendor.origin)
        artifacts = MetadataArtifacts(apt=apt)
        if with_rpm:
            artifacts.rpm = build_rpm_repository(
                descriptors.values(), config.repository, config.vendor.origin
            )

        for architecture, selected in apt.selected.items():
            click.echo(f"binary-{architecture}: {len(selected)} package(s)")
        if artifacts.rpm is not None:
            click.echo(f"rpm: {len(artifacts.rpm.selected)} package(s)")

        if sign:
            signer = GpgSigner(config.signing)
            try:
                signed = signer.sign_release(apt.release)
                artifacts.public_key = signer.export_public_key()
            except SigningError as e:
                click.echo(f"Error: {e}", err=True)
                ctx.exit(1)
            artifacts.release_gpg = signed.release_gpg
            artifacts.inrelease = signed.inrelease
            click.echo("✓ Signed Release (Release.gpg, InRelease)")

        publisher = MetadataPublisher(store, config.repository)

        if output_dir:
            written = publisher.write_directory(artifacts, output_dir)
            click.echo(f"✓ Wrote {len(written)} file(s) to {output_dir}")

        if upload:
            try:
                keys = publisher.upload(artifacts)
            except StoreError as e:
                click.echo(f"Error: {e}", err=True)
                ctx.exit(1)
            click.echo(f"✓ Uploaded {len(keys)} key(s) to {config.kvstore.backend} store")

        if not output_dir and not upload:
            click.echo()
            click.echo(apt.release, nl=False)

    return metadata

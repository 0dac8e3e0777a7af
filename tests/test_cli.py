"""Tests for CLI module."""

import json
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from conftest import (
    MANIFEST_URL,
    ORIGIN,
    FakeSession,
    control_stanza,
    make_descriptor,
    manifest_document,
    sha512_hex,
)
from reprise.cli.main import cli
from reprise.core.config import KVStoreConfig
from reprise.core.kvstore import create_store
from reprise.descriptors.cache import DescriptorCache
from reprise.descriptors.inspector import StaticInspector

DEB_URL = f"{ORIGIN}download/mail/linux/1.9.1/vendor-mail_1.9.1_amd64.deb"
DEB_CONTENT = b"vendor mail archive" * 200


@pytest.fixture
def kv_url(tmp_path):
    return f"sqlite:///{tmp_path / 'kv.db'}"


@pytest.fixture
def config_file(tmp_path, kv_url):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "vendor": {"origin": ORIGIN, "products": ["mail"]},
                "kvstore": {"backend": "sql", "url": kv_url},
                "repository": {"architectures": ["amd64"]},
            }
        )
    )
    return path


@pytest.fixture
def seeded(kv_url):
    """Descriptor cache holding two versions of one package."""
    cache = DescriptorCache(create_store(KVStoreConfig(url=kv_url)))
    descriptors = [make_descriptor(version="1.9.1"), make_descriptor(version="1.10.0")]
    cache.save({d.url: d for d in descriptors})
    return descriptors


@pytest.fixture
def vendor():
    session = FakeSession()
    session.add_json(MANIFEST_URL, manifest_document([(".deb", DEB_URL, sha512_hex(DEB_CONTENT))]))
    session.add_bytes(DEB_URL, DEB_CONTENT)
    return session


def _invoke(config_file, *args):
    return CliRunner().invoke(cli, ["--config", str(config_file), *args])


def test_cli_version():
    """Test that --version works."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "version" in result.output.lower()


def test_cli_help():
    """Test that --help lists the command groups."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Reprise" in result.output
    for group in ("descriptors", "cache", "manifest", "metadata"):
        assert group in result.output


def test_invalid_config(tmp_path):
    """Test that an invalid configuration file exits with an error."""
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"download": {"parallel": 0}}))

    result = _invoke(path, "cache", "stats")

    assert result.exit_code == 1
    assert "Configuration validation error" in result.output


def test_init_config(tmp_path):
    """Test writing the example configuration."""
    output = tmp_path / "reprise.yaml"
    runner = CliRunner()

    result = runner.invoke(cli, ["init-config", str(output)])
    assert result.exit_code == 0
    assert yaml.safe_load(output.read_text())["kvstore"]["backend"] == "cloudflare"

    result = runner.invoke(cli, ["init-config", str(output)])
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_cache_stats_empty(config_file):
    """Test stats of an empty cache."""
    result = _invoke(config_file, "cache", "stats")
    assert result.exit_code == 0
    assert "Cache is empty" in result.output


def test_cache_stats(config_file, seeded):
    """Test stats of a populated cache."""
    result = _invoke(config_file, "cache", "stats")
    assert result.exit_code == 0
    assert "Total descriptors: 2" in result.output
    assert "vendor-mail" in result.output


def test_cache_clear(config_file, seeded, kv_url):
    """Test clearing the cache."""
    result = _invoke(config_file, "cache", "clear", "--force")

    assert result.exit_code == 0
    assert "Descriptors removed: 2" in result.output
    assert DescriptorCache(create_store(KVStoreConfig(url=kv_url))).load() == {}


def test_cache_clear_aborted(config_file, seeded, kv_url):
    """Test that declining the prompt keeps the cache."""
    result = CliRunner().invoke(
        cli, ["--config", str(config_file), "cache", "clear"], input="n\n"
    )

    assert "Aborted" in result.output
    assert len(DescriptorCache(create_store(KVStoreConfig(url=kv_url))).load()) == 2


def test_descriptors_show_json(config_file, seeded):
    """Test JSON output of cached descriptors."""
    result = _invoke(config_file, "descriptors", "show", "--format", "json")

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert set(payload) == {d.url for d in seeded}


def test_descriptors_show_table(config_file, seeded):
    """Test table output with a package filter."""
    result = _invoke(config_file, "descriptors", "show", "--package", "vendor-mail")

    assert result.exit_code == 0
    assert "Total: 2 of 2 cached descriptor(s)" in result.output


def test_descriptors_update(config_file, kv_url, vendor, tmp_path):
    """Test a full update run against a fake vendor."""
    inspector = StaticInspector({DEB_CONTENT: control_stanza("vendor-mail", "1.9.1")})
    output = tmp_path / "descriptors.json"

    with patch("reprise.descriptors.pipeline.create_session", return_value=vendor), patch(
        "reprise.descriptors.pipeline.default_inspector", return_value=inspector
    ):
        result = _invoke(config_file, "descriptors", "update", "--output", str(output))

    assert result.exit_code == 0, result.output
    assert "Newly Computed: 1" in result.output
    cached = DescriptorCache(create_store(KVStoreConfig(url=kv_url))).load()
    assert list(cached) == [DEB_URL]
    assert set(json.loads(output.read_text())) == {DEB_URL}


def test_descriptors_update_file_failure_exits_zero(config_file, vendor):
    """Test that individual file failures do not fail the command."""
    inspector = StaticInspector()  # every archive is unreadable

    with patch("reprise.descriptors.pipeline.create_session", return_value=vendor), patch(
        "reprise.descriptors.pipeline.default_inspector", return_value=inspector
    ):
        result = _invoke(config_file, "descriptors", "update")

    assert result.exit_code == 0
    assert "1 file(s) failed" in result.output


def test_descriptors_update_manifest_failure(config_file):
    """Test that a manifest failure exits non-zero."""
    with patch("reprise.descriptors.pipeline.create_session", return_value=FakeSession()):
        result = _invoke(config_file, "descriptors", "update")

    assert result.exit_code == 1
    assert "HTTP 404" in result.output


def test_descriptors_update_unknown_product(config_file):
    """Test that unknown products exit non-zero."""
    with patch("reprise.descriptors.pipeline.create_session", return_value=FakeSession()):
        result = _invoke(config_file, "descriptors", "update", "drive")

    assert result.exit_code == 1
    assert "Unknown product" in result.output


def test_manifest_check(config_file, vendor, kv_url):
    """Test manifest validation output and latest-versions upload."""
    with patch("reprise.cli.manifest_commands.create_session", return_value=vendor):
        result = _invoke(config_file, "manifest", "check", "--upload")

    assert result.exit_code == 0, result.output
    assert "1.9.1" in result.output
    stored = create_store(KVStoreConfig(url=kv_url)).get("latest-versions")
    assert json.loads(stored) == {"mail": "1.9.1"}


def test_manifest_check_failure(config_file):
    """Test that an invalid manifest exits non-zero."""
    session = FakeSession()
    session.add_json(MANIFEST_URL, {"Releases": []})

    with patch("reprise.cli.manifest_commands.create_session", return_value=session):
        result = _invoke(config_file, "manifest", "check")

    assert result.exit_code == 1
    assert "Invalid release manifest" in result.output


def test_metadata_generate(config_file, seeded, tmp_path):
    """Test rendering the repository tree from the cache."""
    output_dir = tmp_path / "repo"

    result = _invoke(config_file, "metadata", "generate", "--output-dir", str(output_dir))

    assert result.exit_code == 0, result.output
    packages = (output_dir / "dists" / "stable" / "main" / "binary-amd64" / "Packages").read_text()
    assert "Version: 1.10.0" in packages
    assert "Version: 1.9.1" not in packages
    assert (output_dir / "dists" / "stable" / "Release").exists()
    assert (output_dir / "repodata" / "repomd.xml").exists()


def test_metadata_generate_upload(config_file, seeded, kv_url):
    """Test uploading rendered metadata to the store."""
    result = _invoke(config_file, "metadata", "generate", "--upload", "--no-rpm")

    assert result.exit_code == 0, result.output
    store = create_store(KVStoreConfig(url=kv_url))
    assert store.get("apt-release").startswith("Origin: ")
    assert "Package: vendor-mail" in store.get("apt-packages")
    assert store.get("rpm-repomd") is None
    assert store.get("last-update-timestamp").endswith("Z")


def test_metadata_generate_prints_release(config_file, seeded):
    """Test that the Release file is printed without a destination."""
    result = _invoke(config_file, "metadata", "generate")

    assert result.exit_code == 0
    assert "Acquire-By-Hash: no" in result.output


def test_metadata_generate_empty_cache(config_file):
    """Test that an empty cache is an error."""
    result = _invoke(config_file, "metadata", "generate")

    assert result.exit_code == 1
    assert "No cached descriptors" in result.output

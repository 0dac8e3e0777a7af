"""Tests for GPG signing."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from reprise.core.config import SigningConfig
from reprise.core.errors import SigningError
from reprise.publish.signing import GpgSigner

RELEASE = "Origin: Vendor Repository Proxy\nSuite: stable\n"


def _fake_gpg(calls):
    """Emulate gpg by writing a marker to the --output file."""

    def run(command, **kwargs):
        calls.append((command, kwargs))
        if "--output" in command:
            output = Path(command[command.index("--output") + 1])
            source = Path(command[-1]).read_text()
            mode = "--clearsign" if "--clearsign" in command else "--detach-sign"
            output.write_text(f"SIGNED[{mode}]\n{source}")
        return subprocess.CompletedProcess(command, 0, stdout=b"", stderr=b"")

    return run


def test_sign_release(monkeypatch):
    """Test Release.gpg and InRelease generation."""
    monkeypatch.delenv("GPG_PASSPHRASE", raising=False)
    calls = []
    signer = GpgSigner(SigningConfig(key_id="ABCDEF0123456789", gnupg_home="/srv/gnupg"))

    with patch("reprise.publish.signing.subprocess.run", side_effect=_fake_gpg(calls)):
        signed = signer.sign_release(RELEASE)

    assert signed.release_gpg == f"SIGNED[--detach-sign]\n{RELEASE}"
    assert signed.inrelease == f"SIGNED[--clearsign]\n{RELEASE}"

    command, kwargs = calls[0]
    assert command[:3] == ["gpg", "--batch", "--yes"]
    assert command[command.index("--homedir") + 1] == "/srv/gnupg"
    assert command[command.index("--local-user") + 1] == "ABCDEF0123456789"
    assert "--armor" in command
    assert "--passphrase-fd" not in command
    assert kwargs["input"] is None


def test_sign_with_passphrase(monkeypatch):
    """Test that the passphrase is fed through stdin, never the command line."""
    monkeypatch.setenv("REPRISE_GPG_PASSPHRASE", "s3cret")
    calls = []
    signer = GpgSigner(SigningConfig(passphrase_env="REPRISE_GPG_PASSPHRASE"))

    with patch("reprise.publish.signing.subprocess.run", side_effect=_fake_gpg(calls)):
        signer.detach_sign(RELEASE)

    command, kwargs = calls[0]
    assert "s3cret" not in command
    assert command[command.index("--pinentry-mode") + 1] == "loopback"
    assert kwargs["input"] == b"s3cret\n"


def test_sign_failure(monkeypatch):
    """Test that a gpg error raises SigningError."""
    monkeypatch.delenv("GPG_PASSPHRASE", raising=False)
    error = subprocess.CalledProcessError(2, ["gpg"], stderr=b"gpg: signing failed: No secret key")

    with patch("reprise.publish.signing.subprocess.run", side_effect=error):
        with pytest.raises(SigningError, match="No secret key"):
            GpgSigner(SigningConfig()).clearsign(RELEASE)


def test_sign_missing_binary(monkeypatch):
    """Test that a missing gpg binary raises SigningError."""
    monkeypatch.delenv("GPG_PASSPHRASE", raising=False)
    signer = GpgSigner(SigningConfig(gpg_binary="/nonexistent/gpg"))

    with patch("reprise.publish.signing.subprocess.run", side_effect=FileNotFoundError()):
        with pytest.raises(SigningError, match="not found"):
            signer.detach_sign(RELEASE)


def test_sign_without_output(monkeypatch):
    """Test that gpg exiting cleanly without output is still an error."""
    monkeypatch.delenv("GPG_PASSPHRASE", raising=False)
    completed = subprocess.CompletedProcess([], 0, stdout=b"", stderr=b"")

    with patch("reprise.publish.signing.subprocess.run", return_value=completed):
        with pytest.raises(SigningError, match="did not produce Release.gpg"):
            GpgSigner(SigningConfig()).detach_sign(RELEASE)


def test_export_public_key():
    """Test armored public key export."""
    key = "-----BEGIN PGP PUBLIC KEY BLOCK-----\n...\n-----END PGP PUBLIC KEY BLOCK-----\n"
    completed = subprocess.CompletedProcess([], 0, stdout=key.encode(), stderr=b"")

    with patch("reprise.publish.signing.subprocess.run", return_value=completed) as run:
        exported = GpgSigner(SigningConfig(key_id="ABCDEF0123456789")).export_public_key()

    assert exported == key
    assert run.call_args[0][0] == ["gpg", "--batch", "--armor", "--export", "ABCDEF0123456789"]


def test_export_public_key_empty():
    """Test that an empty export is an error."""
    completed = subprocess.CompletedProcess([], 0, stdout=b"", stderr=b"")

    with patch("reprise.publish.signing.subprocess.run", return_value=completed):
        with pytest.raises(SigningError, match="no public key"):
            GpgSigner(SigningConfig()).export_public_key()

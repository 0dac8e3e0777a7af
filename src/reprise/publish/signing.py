from __future__ import annotations

"""
GPG signing of Release files.

Signing runs the external ``gpg`` binary against files in a temporary
directory: a detached armored signature becomes Release.gpg and a
clearsigned copy becomes InRelease.
"""

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from reprise.core.config import SigningConfig
from reprise.core.errors import SigningError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedRelease:
    """Signatures of one Release file."""

    release_gpg: str  # Detached armored signature
    inrelease: str  # Clearsigned Release


class GpgSigner:
    """Signs repository metadata with gpg."""

    def __init__(self, config: SigningConfig, timeout: int = 60):
        """Initialize signer.

        Args:
            config: Signing configuration (binary, key, passphrase source)
            timeout: Timeout per gpg invocation in seconds
        """
        self.config = config
        self.timeout = timeout

    def _passphrase(self) -> str | None:
        return os.environ.get(self.config.passphrase_env) or None

    def _command(self, *args: str) -> list[str]:
        command = [self.config.gpg_binary, "--batch", "--yes"]
        if self.config.gnupg_home:
            command += ["--homedir", self.config.gnupg_home]
        if self._passphrase() is not None:
            command += ["--pinentry-mode", "loopback", "--passphrase-fd", "0"]
        if self.config.key_id:
            command += ["--local-user", self.config.key_id]
        return command + list(args)

    def _run(self, command: list[str]) -> subprocess.CompletedProcess:
        passphrase = self._passphrase()
        try:
            return subprocess.run(
                command,
                input=(passphrase + "\n").encode() if passphrase is not None else None,
                capture_output=True,
                timeout=self.timeout,
                check=True,
            )
        except FileNotFoundError as e:
            raise SigningError(f"{self.config.gpg_binary} not found") from e
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors="replace").strip() if e.stderr else ""
            raise SigningError(f"gpg exited with status {e.returncode}: {stderr}") from e
        except subprocess.TimeoutExpired as e:
            raise SigningError(f"gpg timed out after {self.timeout}s") from e

    def _sign(self, release: str, mode: str, output_name: str) -> str:
        with tempfile.TemporaryDirectory(prefix="reprise-sign-") as tmpdir:
            release_file = Path(tmpdir) / "Release"
            output_file = Path(tmpdir) / output_name
            release_file.write_text(release, encoding="utf-8")

            self._run(
                self._command("--armor", mode, "--output", str(output_file), str(release_file))
            )

            if not output_file.exists():
                raise SigningError(f"gpg did not produce {output_name}")
            return output_file.read_text(encoding="utf-8")

    def detach_sign(self, release: str) -> str:
        """Create a detached armored signature (Release.gpg).

        Raises:
            SigningError: If gpg fails
        """
        return self._sign(release, "--detach-sign", "Release.gpg")

    def clearsign(self, release: str) -> str:
        """Create a clearsigned Release (InRelease).

        Raises:
            SigningError: If gpg fails
        """
        return self._sign(release, "--clearsign", "InRelease")

    def sign_release(self, release: str) -> SignedRelease:
        """Create both Release.gpg and InRelease for a Release file."""
        signed = SignedRelease(
            release_gpg=self.detach_sign(release),
            inrelease=self.clearsign(release),
        )
        logger.info("Signed Release file (Release.gpg, InRelease)")
        return signed

    def export_public_key(self) -> str:
        """Export the armored public key.

        Raises:
            SigningError: If gpg fails or exports nothing
        """
        command = [self.config.gpg_binary, "--batch", "--armor"]
        if self.config.gnupg_home:
            command += ["--homedir", self.config.gnupg_home]
        command.append("--export")
        if self.config.key_id:
            command.append(self.config.key_id)

        try:
            result = subprocess.run(command, capture_output=True, timeout=self.timeout, check=True)
        except FileNotFoundError as e:
            raise SigningError(f"{self.config.gpg_binary} not found") from e
        except subprocess.CalledProcessError as e:
            raise SigningError(f"gpg --export exited with status {e.returncode}") from e
        except subprocess.TimeoutExpired as e:
            raise SigningError(f"gpg --export timed out after {self.timeout}s") from e

        key = result.stdout.decode("utf-8", errors="replace")
        if not key.strip():
            raise SigningError("gpg exported no public key")
        return key

"""
Configuration management for Reprise.

This module provides Pydantic models for configuration validation and
YAML-based configuration loading.
"""

import os
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class ProxyConfig(BaseModel):
    """HTTP proxy configuration."""

    http_proxy: Optional[str] = None
    https_proxy: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


class SSLConfig(BaseModel):
    """SSL/TLS configuration for HTTPS connections."""

    # Path to CA bundle file (PEM format)
    ca_bundle: Optional[str] = None

    # Disable SSL verification (not recommended for production)
    verify: bool = True


class VendorConfig(BaseModel):
    """Upstream vendor whose release manifests are republished."""

    # Origin every file URL must be rooted at (trailing slash enforced)
    origin: str = "https://proton.me/"
    products: List[str] = Field(default_factory=lambda: ["mail", "pass"])
    manifest_path_template: str = "download/{product}/linux/version.json"

    # Only files whose identifier starts with one of these are processed
    identifier_prefixes: List[str] = Field(default_factory=lambda: [".deb"])

    # Placeholder/beta URLs that never carry stable content
    ignored_urls: List[str] = Field(default_factory=list)

    @field_validator("origin")
    @classmethod
    def validate_origin(cls, v: str) -> str:
        """Validate origin and normalize the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid vendor origin: {v}. Must be an http(s) URL")
        if not v.endswith("/"):
            v = v + "/"
        return v

    @field_validator("identifier_prefixes")
    @classmethod
    def validate_prefixes(cls, v: List[str]) -> List[str]:
        """Identifier prefixes are compared case-folded."""
        if not v:
            raise ValueError("identifier_prefixes cannot be empty")
        return [prefix.lower() for prefix in v]

    def manifest_url(self, product: str) -> str:
        """Get release manifest URL for a product."""
        return self.origin + self.manifest_path_template.format(product=product)


class DownloadConfig(BaseModel):
    """Download configuration for file downloads."""

    timeout: int = 300  # Download timeout in seconds
    chunk_size: int = 65536
    retry_attempts: int = 0  # Retries per file in the pipeline (0 = fail fast)
    parallel: int = 1  # Files processed concurrently
    user_agent: str = "reprise/0.1"

    @field_validator("parallel")
    @classmethod
    def validate_parallel(cls, v: int) -> int:
        """Validate parallel download count."""
        if v < 1:
            raise ValueError("parallel must be at least 1")
        if v > 32:
            raise ValueError("parallel cannot exceed 32")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate timeout value."""
        if v < 1:
            raise ValueError("timeout must be at least 1 second")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry attempts."""
        if v < 0:
            raise ValueError("retry_attempts cannot be negative")
        if v > 10:
            raise ValueError("retry_attempts cannot exceed 10")
        return v


class KVStoreConfig(BaseModel):
    """Key-value store holding the descriptor cache and rendered metadata."""

    backend: Literal["sql", "cloudflare"] = "sql"

    # SQL backend
    url: str = "sqlite:///reprise.db"

    # Cloudflare Workers KV backend
    account_id: Optional[str] = None
    namespace_id: Optional[str] = None
    api_token: Optional[str] = None  # Falls back to CLOUDFLARE_API_TOKEN

    descriptors_key: str = "package-descriptors-cache"

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "KVStoreConfig":
        """Cloudflare backend needs account and namespace."""
        if self.backend == "cloudflare" and not (self.account_id and self.namespace_id):
            raise ValueError(
                "kvstore backend 'cloudflare' requires 'account_id' and 'namespace_id'"
            )
        return self

    def get_api_token(self) -> Optional[str]:
        """Get API token (config value or CLOUDFLARE_API_TOKEN)."""
        return self.api_token or os.environ.get("CLOUDFLARE_API_TOKEN")


class RepositoryConfig(BaseModel):
    """Published repository identity and defaults."""

    origin: str = "Reprise Repository Proxy"
    label: str = "Reprise"
    suite: str = "stable"
    codename: str = "stable"
    component: str = "main"
    architectures: List[str] = Field(default_factory=lambda: ["amd64"])
    description: str = "Proxy repository for vendor applications"

    # Filename prefix the serving layer redirects back to the vendor
    proxy_prefix: str = "proxy"

    # Stanza defaults when the package control data omits them
    homepage: Optional[str] = None
    section: str = "utils"
    priority: str = "optional"

    rpm_compression: Literal["gzip", "zstandard", "bzip2", "none"] = "gzip"

    @field_validator("architectures")
    @classmethod
    def validate_architectures(cls, v: List[str]) -> List[str]:
        """Validate architectures list."""
        if not v:
            raise ValueError("At least one architecture is required")
        return v


class SigningConfig(BaseModel):
    """GPG signing configuration for Release files."""

    gpg_binary: str = "gpg"
    key_id: Optional[str] = None
    passphrase_env: str = "GPG_PASSPHRASE"
    gnupg_home: Optional[str] = None


class GlobalConfig(BaseModel):
    """Global Reprise configuration."""

    vendor: VendorConfig = Field(default_factory=VendorConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    proxy: Optional[ProxyConfig] = None
    ssl: Optional[SSLConfig] = None
    kvstore: KVStoreConfig = Field(default_factory=KVStoreConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    signing: SigningConfig = Field(default_factory=SigningConfig)

    def get_products(self, names: Optional[List[str]] = None) -> List[str]:
        """Get configured products, optionally restricted to names.

        Raises:
            ValueError: If a requested product is not configured
        """
        if not names:
            return list(self.vendor.products)

        unknown = [name for name in names if name not in self.vendor.products]
        if unknown:
            raise ValueError(
                f"Unknown product(s): {', '.join(unknown)}. "
                f"Configured: {', '.join(self.vendor.products)}"
            )
        return list(names)


class ConfigLoader:
    """Configuration file loader."""

    def __init__(self, config_path: Path):
        """Initialize config loader.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path

    def load(self) -> GlobalConfig:
        """Load configuration from YAML file.

        Returns:
            GlobalConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"YAML syntax error in {self.config_path}:\n{e}")

        try:
            return GlobalConfig(**config_data)
        except Exception as e:
            raise ValueError(f"Configuration validation error in {self.config_path}:\n{e}")


def load_config(config_path: Optional[Path] = None) -> GlobalConfig:
    """Load configuration from file.

    Priority:
    1. Explicit config_path parameter (--config CLI flag)
    2. REPRISE_CONFIG environment variable
    3. Default locations (/etc/reprise/config.yaml, ~/.config/reprise/config.yaml, ./config.yaml)

    Args:
        config_path: Path to config file. If None, tries REPRISE_CONFIG env or default locations.

    Returns:
        GlobalConfig instance

    Raises:
        FileNotFoundError: If an explicitly requested config file is missing
    """
    default_paths = [
        Path("/etc/reprise/config.yaml"),
        Path.home() / ".config" / "reprise" / "config.yaml",
        Path("config.yaml"),
    ]

    if config_path:
        paths_to_try = [config_path]
    elif os.environ.get("REPRISE_CONFIG"):
        paths_to_try = [Path(os.environ["REPRISE_CONFIG"])]
    else:
        paths_to_try = default_paths

    for path in paths_to_try:
        if path.exists():
            return ConfigLoader(path).load()

    if config_path:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    elif os.environ.get("REPRISE_CONFIG"):
        raise FileNotFoundError(
            f"Configuration file not found: {os.environ['REPRISE_CONFIG']} (from REPRISE_CONFIG)"
        )
    else:
        return GlobalConfig()


def create_example_config(output_path: Path) -> None:
    """Create an example configuration file.

    Args:
        output_path: Path to write example config
    """
    example_config = {
        "vendor": {
            "origin": "https://proton.me/",
            "products": ["mail", "pass"],
            "identifier_prefixes": [".deb"],
            "ignored_urls": [
                "https://proton.me/download/mail/linux/ProtonMail-desktop-beta.deb",
            ],
        },
        "download": {
            "timeout": 300,
            "parallel": 2,
        },
        "kvstore": {
            "backend": "cloudflare",
            "account_id": "your-account-id",
            "namespace_id": "your-namespace-id",
        },
        "repository": {
            "origin": "Proton Repository Proxy",
            "label": "Proton Apps",
            "suite": "stable",
            "codename": "stable",
            "component": "main",
            "architectures": ["amd64"],
            "description": "Proxy repository for Proton applications",
            "homepage": "https://proton.me/",
        },
        "signing": {
            "key_id": "ABCDEF0123456789",
            "passphrase_env": "GPG_PASSPHRASE",
        },
    }

    with open(output_path, "w") as f:
        yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)

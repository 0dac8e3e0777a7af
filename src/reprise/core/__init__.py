"""
Core functionality for Reprise.

This package provides configuration management, the streaming digest
engine, the key-value store backends and console output.
"""

from reprise.core.config import (
    ConfigLoader,
    DownloadConfig,
    GlobalConfig,
    KVStoreConfig,
    ProxyConfig,
    RepositoryConfig,
    SigningConfig,
    SSLConfig,
    VendorConfig,
    create_example_config,
    load_config,
)
from reprise.core.downloader import DigestEngine, DigestResult, create_session, digest_bytes
from reprise.core.kvstore import CloudflareKVStore, KeyValueStore, SqlKeyValueStore, create_store

__all__ = [
    "CloudflareKVStore",
    "ConfigLoader",
    "DigestEngine",
    "DigestResult",
    "DownloadConfig",
    "GlobalConfig",
    "KVStoreConfig",
    "KeyValueStore",
    "ProxyConfig",
    "RepositoryConfig",
    "SSLConfig",
    "SigningConfig",
    "SqlKeyValueStore",
    "VendorConfig",
    "create_example_config",
    "create_session",
    "create_store",
    "digest_bytes",
    "load_config",
]

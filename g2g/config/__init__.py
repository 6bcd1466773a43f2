"""
Config Module — Credential and sync policy resolution.
"""

from .loader import (
    Credential,
    SyncPolicy,
    SyncSettings,
    find_env_file,
    parse_env_file,
    resolve_settings,
)

__all__ = [
    "Credential",
    "SyncPolicy",
    "SyncSettings",
    "find_env_file",
    "parse_env_file",
    "resolve_settings",
]

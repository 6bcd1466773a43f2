"""
Config Loader — Resolve credentials and sync policy for one run.

Configuration comes from three layers, highest priority first:

1. Explicit overrides (CLI options), passed as a key → value mapping
2. The process environment (only the keys listed in KNOWN_KEYS)
3. A .env-style file (KEY=VALUE lines, # comments, optional quotes)

The file is parsed with python-dotenv's dotenv_values(), which returns a
mapping and never touches os.environ. Resolved values are threaded to the
pipeline stages explicitly; nothing is exported into the environment.

## Keys

    DEFAULT_GITHUB_USERNAME / DEFAULT_GITHUB_TOKEN   required for https transport
    GITHUB_USERNAME / GITHUB_TOKEN                   optional overrides
    GITHUB_REPO_NAME                                 mirror repo name (default: source dir name)
    G2G_TRANSPORT                                    https | ssh (default: ssh)
    G2G_DELETE                                       delete mirror-only files (default: true)
    G2G_AUTO_INIT                                    init mirror on source branch (default: true)
    G2G_EXCLUDE                                      extra comma-separated exclude patterns
    G2G_MIRROR_DIR                                   mirror directory (default: ../<repo>-github)
    G2G_PRIMARY_NAME                                 label used in mirror commits (default: Gitea)
    G2G_MIRROR_HOST                                  mirror git host (default: github.com)

## Usage

    from g2g.config.loader import resolve_settings

    settings = resolve_settings(Path(".env"), environ=os.environ)
    print(settings.policy.transport, settings.credential.username)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import dotenv_values

from ..errors import ConfigError

logger = logging.getLogger(__name__)

TRANSPORT_HTTPS = "https"
TRANSPORT_SSH = "ssh"
TRANSPORTS = (TRANSPORT_HTTPS, TRANSPORT_SSH)

SOURCE_OVERRIDE = "override"
SOURCE_DEFAULT = "default"

ENV_FILE_NAME = ".env"

# Never worth mirroring; same list the shell tool passed to rsync
DEFAULT_EXCLUDES = ("node_modules", "__pycache__", ".DS_Store", "*.log")

KNOWN_KEYS = (
    "DEFAULT_GITHUB_USERNAME",
    "DEFAULT_GITHUB_TOKEN",
    "GITHUB_USERNAME",
    "GITHUB_TOKEN",
    "GITHUB_REPO_NAME",
    "G2G_TRANSPORT",
    "G2G_DELETE",
    "G2G_AUTO_INIT",
    "G2G_EXCLUDE",
    "G2G_MIRROR_DIR",
    "G2G_PRIMARY_NAME",
    "G2G_MIRROR_HOST",
)

# (override key, default key) pairs needed per transport
TRANSPORT_REQUIREMENTS = {
    TRANSPORT_HTTPS: {
        "required": [
            ("GITHUB_USERNAME", "DEFAULT_GITHUB_USERNAME"),
            ("GITHUB_TOKEN", "DEFAULT_GITHUB_TOKEN"),
        ],
        "guidance": (
            "Set DEFAULT_GITHUB_USERNAME and DEFAULT_GITHUB_TOKEN in .env "
            "(create a token at https://github.com/settings/tokens), "
            "or switch to SSH with G2G_TRANSPORT=ssh"
        ),
    },
    TRANSPORT_SSH: {
        "required": [],
        "guidance": None,
    },
}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


@dataclass
class Credential:
    """Mirror account credential. The token never appears in repr()."""

    username: Optional[str] = None
    token: Optional[str] = field(default=None, repr=False)
    source: str = SOURCE_DEFAULT  # where the token (or, without one, the username) came from

    @property
    def noreply_email(self) -> Optional[str]:
        if not self.username:
            return None
        return f"{self.username}@users.noreply.github.com"


@dataclass
class SyncPolicy:
    """How the mirror is reconciled and reached. Derived fresh every run."""

    transport: str = TRANSPORT_SSH
    delete_on_reconcile: bool = True
    auto_init_mirror: bool = True
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))

    @property
    def is_https(self) -> bool:
        return self.transport == TRANSPORT_HTTPS


@dataclass
class SyncSettings:
    """Everything the pipeline needs from configuration."""

    credential: Credential = field(default_factory=Credential)
    policy: SyncPolicy = field(default_factory=SyncPolicy)
    repo_name: Optional[str] = None
    mirror_dir: Optional[Path] = None
    primary_name: str = "Gitea"
    mirror_host: str = "github.com"
    env_file: Optional[Path] = None


def parse_env_file(path: Optional[Path]) -> Dict[str, str]:
    """Parse a .env-style file into a plain mapping.

    Blank lines and comments are skipped and surrounding quotes are
    stripped. Keys without a value are dropped. A missing file is empty.
    """
    if path is None or not path.is_file():
        return {}
    values = dotenv_values(path)
    return {k: v for k, v in values.items() if v is not None}


def find_env_file(start: Path) -> Optional[Path]:
    """Find .env in `start` or a parent, stopping at the repository top.

    Pure filesystem walk, so no git command runs before config is valid.
    """
    current = start.resolve()
    for directory in [current, *current.parents]:
        candidate = directory / ENV_FILE_NAME
        if candidate.is_file():
            return candidate
        if (directory / ".git").exists():
            break
    return None


def _pick(values: Mapping[str, str], override_key: str, default_key: str) -> Tuple[Optional[str], str]:
    """Non-empty override wins; otherwise fall back to the default."""
    override = (values.get(override_key) or "").strip()
    if override:
        return override, SOURCE_OVERRIDE
    default = (values.get(default_key) or "").strip()
    return (default or None), SOURCE_DEFAULT


def _parse_bool(values: Mapping[str, str], key: str, default: bool, invalid: List[str]) -> bool:
    raw = (values.get(key) or "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    invalid.append(f"{key}={values[key]!r} is not a boolean")
    return default


def resolve_credential(values: Mapping[str, str]) -> Credential:
    """Resolve the credential pair, preferring non-empty overrides."""
    username, user_source = _pick(values, "GITHUB_USERNAME", "DEFAULT_GITHUB_USERNAME")
    token, token_source = _pick(values, "GITHUB_TOKEN", "DEFAULT_GITHUB_TOKEN")
    source = token_source if token else user_source
    return Credential(username=username, token=token, source=source)


def resolve_settings(
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Optional[str]]] = None,
) -> SyncSettings:
    """
    Load and validate configuration.

    Args:
        env_file: Path to a .env-style file (may be absent)
        environ: Environment mapping; only KNOWN_KEYS are read from it
        overrides: Highest-priority values (CLI options); None values are ignored

    Returns:
        Validated SyncSettings

    Raises:
        ConfigError: Listing every missing or invalid field
    """
    values: Dict[str, str] = dict(parse_env_file(env_file))
    for key in KNOWN_KEYS:
        if environ and environ.get(key):
            values[key] = environ[key]
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    missing: List[str] = []
    invalid: List[str] = []

    transport = (values.get("G2G_TRANSPORT") or TRANSPORT_SSH).strip().lower()
    if transport not in TRANSPORTS:
        invalid.append(
            f"G2G_TRANSPORT={values['G2G_TRANSPORT']!r} (expected one of: {', '.join(TRANSPORTS)})"
        )

    credential = resolve_credential(values)
    requirements = TRANSPORT_REQUIREMENTS.get(transport, {"required": [], "guidance": None})
    for override_key, default_key in requirements["required"]:
        value, _ = _pick(values, override_key, default_key)
        if not value:
            missing.append(default_key)

    delete = _parse_bool(values, "G2G_DELETE", True, invalid)
    auto_init = _parse_bool(values, "G2G_AUTO_INIT", True, invalid)

    if missing or invalid:
        raise ConfigError(missing=missing, invalid=invalid, remediation=requirements["guidance"])

    excludes = list(DEFAULT_EXCLUDES)
    for pattern in (values.get("G2G_EXCLUDE") or "").split(","):
        pattern = pattern.strip()
        if pattern and pattern not in excludes:
            excludes.append(pattern)

    mirror_dir = values.get("G2G_MIRROR_DIR", "").strip()

    settings = SyncSettings(
        credential=credential,
        policy=SyncPolicy(
            transport=transport,
            delete_on_reconcile=delete,
            auto_init_mirror=auto_init,
            exclude_patterns=excludes,
        ),
        repo_name=(values.get("GITHUB_REPO_NAME") or "").strip() or None,
        mirror_dir=Path(mirror_dir).expanduser() if mirror_dir else None,
        primary_name=(values.get("G2G_PRIMARY_NAME") or "").strip() or "Gitea",
        mirror_host=(values.get("G2G_MIRROR_HOST") or "").strip() or "github.com",
        env_file=env_file,
    )

    logger.debug(
        f"Config resolved: transport={transport}, delete={delete}, "
        f"auto_init={auto_init}, credential_source={credential.source}"
    )
    return settings

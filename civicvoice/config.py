"""
civicvoice.config — YAML Configuration Loader
==============================================

Reads ``config.yaml`` for portal-level settings (site identity, lawmaker
inbox, session lifetime, suggestion categories).  Secrets and connection
strings stay in the environment (``.env``).

Usage::

    from civicvoice.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.site_name)         # "Citizen Suggestion Platform"
    print(cfg.session_ttl_days)  # 7
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from civicvoice.constants import DEFAULT_CATEGORIES, SESSION_EXPIRY_DAYS


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PortalConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    site_name: str

    # Notifications
    lawmakers_email: str

    # Sessions
    session_ttl_days: int = SESSION_EXPIRY_DAYS
    cookie_secure: bool = False

    # Suggestions
    categories: tuple[str, ...] = field(default=DEFAULT_CATEGORIES)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PortalConfig:
    """Read *path* and return a :class:`PortalConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    categories = raw.get("categories")
    return PortalConfig(
        site_name=raw["site_name"],
        lawmakers_email=raw["lawmakers_email"],
        session_ttl_days=int(raw.get("session_ttl_days", SESSION_EXPIRY_DAYS)),
        cookie_secure=bool(raw.get("cookie_secure", False)),
        categories=tuple(categories) if categories else DEFAULT_CATEGORIES,
    )

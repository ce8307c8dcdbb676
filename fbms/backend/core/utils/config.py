"""
Configuration Loading Utilities.
"""

from __future__ import annotations

import copy
import os
import re
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = "configs/default_config.yaml"

REQUIRED_SECTIONS = ("business", "tax", "pos", "inventory", "purchasing", "database")

_NUMERIC_RE = re.compile(r"^-?\d+(\.\d+)?([eE][-+]?\d+)?$")


def _convert_numeric_strings(obj: Any) -> Any:
    """
    Recursively convert numeric strings to floats/ints.

    Zero-padded codes such as RDO ``"043"`` or OR numbers stay strings.
    """
    if isinstance(obj, dict):
        return {k: _convert_numeric_strings(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_convert_numeric_strings(item) for item in obj]
    elif isinstance(obj, str):
        if not _NUMERIC_RE.match(obj) or re.match(r"^-?0\d", obj):
            return obj
        if "." in obj or "e" in obj.lower():
            return float(obj)
        return int(obj)
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str | Path) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Values from the file are layered over :func:`get_default_config`, so a
    partial file only needs the keys it changes.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    config = _convert_numeric_strings(config)

    for section in REQUIRED_SECTIONS:
        if section not in config or config[section] is None:
            config[section] = {}

    config = _deep_merge(get_default_config(), config)

    db_url = os.getenv("FBMS_DATABASE_URL")
    if db_url:
        config["database"]["url"] = db_url

    return config


def load_runtime_config() -> dict[str, Any]:
    """Load the config named by ``FBMS_CONFIG``, falling back to the defaults."""
    path = Path(os.getenv("FBMS_CONFIG", DEFAULT_CONFIG_PATH))
    if path.exists():
        return load_config(path)
    config = get_default_config()
    db_url = os.getenv("FBMS_DATABASE_URL")
    if db_url:
        config["database"]["url"] = db_url
    return config


def save_config(config: dict[str, Any], config_path: str | Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Output path
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def get_default_config() -> dict[str, Any]:
    """
    Get default configuration dictionary.

    Returns:
        Default configuration
    """
    return {
        "business": {
            "name": "Filipino Business Management System",
            "address": "123 Business Street, Makati City, Metro Manila 1200",
            "tin": "123-456-789-000",
            "rdo_code": "043",
            "vat_registered": True,
            "receipt_footer": "Thank you for your purchase!",
        },
        "tax": {
            "vat_rate": 0.12,
        },
        "pos": {
            "wholesale_multiplier": 0.85,
            "loyalty_peso_per_point": 100,
            "loyalty_point_value": 1,
        },
        "inventory": {
            "prevent_negative_stock": True,
            "significant_variance_pct": 10,
            "near_expiry_days": 30,
        },
        "purchasing": {
            "manager_approval_limit": 100000,
            "over_receiving": {
                "enabled": True,
                "tolerance_type": "percentage",
                "tolerance_value": 5,
                "warning_threshold": 3,
                "block_threshold": 10,
                "require_approval": True,
                "approval_roles": ["manager"],
                "auto_accept": False,
            },
            "under_receiving": {
                "enabled": True,
                "tolerance_type": "percentage",
                "tolerance_value": 10,
                "warning_threshold": 5,
                "block_threshold": None,
                "require_approval": False,
                "approval_roles": ["employee"],
                "auto_accept": True,
            },
            "expiry": {
                "enabled": True,
                "reject_expired": True,
                "near_expiry_days": 7,
                "warn_before_days": 30,
                "near_expiry_requires_approval": True,
            },
        },
        "auth": {
            "token_ttl_hours": 12,
            "max_failed_logins": 5,
            "lockout_minutes": 15,
        },
        "database": {
            "url": "sqlite:///fbms.db",
            "echo": False,
        },
        "backup": {
            "directory": "backups",
            "keep": 10,
        },
        "logging": {
            "level": "WARNING",
            "file": None,
        },
        "output_dir": "outputs",
    }

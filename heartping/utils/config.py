# Config - YAML + Environment Configuration

"""
Config Module

Loads runner configuration:
1. Built-in defaults (DEFAULT_CONFIG)
2. config/config.yaml merged on top
3. Environment overrides (config/secrets.env is loaded first)

Environment variables:
- HEARTPING_TARGET
- HEARTPING_PORT
- HEARTPING_INTERVAL_MS
- HEARTPING_TIMEOUT_MS
- HEARTPING_LOG_LEVEL
"""

import os
from copy import deepcopy
from pathlib import Path
from typing import List, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_CONFIG = {
    'heartbeat': {
        'target': '',
        'port': None,
        'interval_ms': 3000,
        'timeout_ms': 5000,
    },
    'probe': {
        'request_timeout': 30.0,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}

# env var -> (section, key, cast)
ENV_OVERRIDES = {
    'HEARTPING_TARGET': ('heartbeat', 'target', str),
    'HEARTPING_PORT': ('heartbeat', 'port', int),
    'HEARTPING_INTERVAL_MS': ('heartbeat', 'interval_ms', float),
    'HEARTPING_TIMEOUT_MS': ('heartbeat', 'timeout_ms', float),
    'HEARTPING_LOG_LEVEL': ('logging', 'level', str),
}


def _merge(base: dict, override: dict) -> dict:
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_path: Optional[Union[str, Path]] = None,
) -> dict:
    """
    Load configuration from files and environment

    Args:
        config_path: YAML file (default: config/config.yaml)
        env_path: dotenv file (default: config/secrets.env)

    Returns:
        Config dict with heartbeat, probe and logging sections

    Raises:
        ValueError: YAML root is not a mapping or an env override cannot be parsed
    """
    load_dotenv(env_path or PROJECT_ROOT / "config" / "secrets.env")

    config = deepcopy(DEFAULT_CONFIG)

    config_path = Path(config_path) if config_path else PROJECT_ROOT / "config" / "config.yaml"
    if config_path.exists():
        with open(config_path) as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        config = _merge(config, loaded)

    for env_name, (section, key, cast) in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw == '':
            continue
        try:
            config.setdefault(section, {})[key] = cast(raw)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_name}: {raw!r}") from e

    return config


def _is_positive_number(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and value > 0


def validate_config(config: dict) -> Tuple[bool, List[str]]:
    """
    Validate configuration structure

    Returns:
        (is_valid, list of error messages)
    """
    errors = []

    heartbeat = config.get('heartbeat') or {}
    probe = config.get('probe') or {}

    if not heartbeat.get('target'):
        errors.append("Config error: heartbeat.target is required (or set HEARTPING_TARGET)")

    port = heartbeat.get('port')
    if port is not None and (isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536):
        errors.append("Config error: heartbeat.port must be an integer in 1..65535")

    numeric_checks = [
        ('heartbeat.interval_ms', heartbeat.get('interval_ms')),
        ('heartbeat.timeout_ms', heartbeat.get('timeout_ms')),
        ('probe.request_timeout', probe.get('request_timeout')),
    ]
    for key, value in numeric_checks:
        if not _is_positive_number(value):
            errors.append(f"Config error: {key} must be a positive number")

    return (len(errors) == 0, errors)

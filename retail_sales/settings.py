"""
Configuration loading.

The YAML file holds everything; only database connection parameters may be
overridden from the environment so credentials stay out of the file.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from retail_sales.etl.clean import CleaningSettings
from retail_sales.exceptions import ConfigError
from retail_sales.logger import setup_logger
from retail_sales.utils.db_urls import DatabaseTarget

logger = setup_logger("retail_sales.settings")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

# target key -> environment variable suffix
ENV_OVERRIDES = {
    "host": "HOST",
    "port": "PORT",
    "user": "USER",
    "password": "PASSWORD",
    "database": "DATABASE",
}


def _apply_env_overrides(target: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    prefix = target.get("env_prefix")
    if not prefix:
        return target

    target = dict(target)
    for key, suffix in ENV_OVERRIDES.items():
        var = f"{prefix}_{suffix}"
        if var in environ:
            target[key] = environ[var]
            logger.info(f"Target {target.get('name')}: {key} taken from ${var}")
    return target


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    environ = os.environ if environ is None else environ

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {config_path}") from exc

    for section in ("source", "cleaning", "sink"):
        if section not in config:
            raise ConfigError(f"Config section '{section}' missing in {config_path}")

    sink = config["sink"]
    sink["targets"] = [_apply_env_overrides(t, environ) for t in sink.get("targets") or []]
    return config


def cleaning_settings(config: Mapping[str, Any]) -> CleaningSettings:
    section = config.get("cleaning") or {}
    defaults = CleaningSettings()
    return CleaningSettings(
        currency_strip=tuple(section.get("currency_strip", defaults.currency_strip)),
        null_tokens=tuple(section.get("null_tokens", defaults.null_tokens)),
        date_formats=tuple(section.get("date_formats", defaults.date_formats)),
        time_formats=tuple(section.get("time_formats", defaults.time_formats)),
    )


def database_targets(config: Mapping[str, Any]) -> List[DatabaseTarget]:
    targets = []
    for raw in config["sink"].get("targets") or []:
        if not raw.get("name") or not raw.get("dialect"):
            raise ConfigError(f"Every sink target needs a name and a dialect: {raw}")
        targets.append(
            DatabaseTarget(
                name=raw["name"],
                dialect=raw["dialect"],
                driver=raw.get("driver"),
                host=raw.get("host"),
                port=int(raw["port"]) if raw.get("port") else None,
                user=raw.get("user"),
                password=raw.get("password"),
                database=raw.get("database"),
            )
        )
    if not targets:
        raise ConfigError("No sink targets configured")
    return targets

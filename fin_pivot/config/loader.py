from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    BusinessRulesConfig,
    PipelineConfig,
    create_date_config,
    default_date_config,
)

"""Config loader.

Responsibilities:
- Load the YAML pipeline config (config/pipeline.yml by default)
- Validate it against the bundled JSON schema (unknown keys rejected)
- Apply defaults (allowed years = current year, header on the first row, ...)
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "build_config",
    "resolve_config_path",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/pipeline.yml")
CONFIG_ENV_VAR = "FIN_PIVOT_CONFIG"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails validation (wrong types, unknown keys, ...)
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def build_config(data: dict[str, Any]) -> PipelineConfig:
    """Build a PipelineConfig from already-validated config data."""
    years = data.get("allowed_years")
    expected = data.get("expected_year")
    if expected is None and years:
        expected = years[0]
    if expected is None:
        date_cfg = default_date_config()
    else:
        date_cfg = create_date_config(expected, [y for y in years or [] if y != expected])

    rules_raw = data.get("business_rules") or {}
    defaults = BusinessRulesConfig()
    rules = BusinessRulesConfig(
        max_monthly_variation=rules_raw.get("max_monthly_variation", defaults.max_monthly_variation),
        allow_duplicate_cod_seg=rules_raw.get("allow_duplicate_cod_seg", defaults.allow_duplicate_cod_seg),
        minimum_non_zero_months=rules_raw.get("minimum_non_zero_months", defaults.minimum_non_zero_months),
        chronological_order=rules_raw.get("chronological_order", defaults.chronological_order),
    )

    sentinels = data.get("null_sentinels")
    return PipelineConfig(
        date=date_cfg,
        business_rules=rules,
        header_row=data.get("header_row", 0),
        null_sentinels={s.strip().upper() for s in sentinels} if sentinels else None,
        cross_sheet_check=data.get("cross_sheet_check", True),
    )


def load_config(path: Path | None = None, *, required: bool = False) -> PipelineConfig:
    """Load and validate the YAML config.

    A missing file yields the defaults unless ``required`` is set.

    Raises:
        ConfigError: If the file is required but missing, is not valid YAML,
            or fails schema validation
    """
    path = path or DEFAULT_CONFIG_PATH
    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        return build_config({})
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    return build_config(data)


def resolve_config_path(explicit: Path | None = None) -> tuple[Path, bool]:
    """Pick the config path: explicit argument, then $FIN_PIVOT_CONFIG, then the default.

    Returns:
        (path, required). Only the default path may be absent.
    """
    if explicit is not None:
        return explicit, True
    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value), True
    return DEFAULT_CONFIG_PATH, False

from __future__ import annotations

import json

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from fin_pivot.config.loader import SCHEMA_PATH

"""Config schema contract: bundled schema accepts the sample config and rejects unknown keys."""


@pytest.fixture(scope="module")
def schema():
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_is_valid_draft7(schema):
    jsonschema.Draft7Validator.check_schema(schema)


def test_sample_config_is_valid(schema):
    sample = yaml.safe_load(
        """
expected_year: 2025
allowed_years: [2025, 2024]
header_row: 0
null_sentinels: ["-", "N/A"]
cross_sheet_check: true
business_rules:
  max_monthly_variation: 5
  allow_duplicate_cod_seg: false
  minimum_non_zero_months: 1
  chronological_order: true
"""
    )
    jsonschema.validate(sample, schema)


def test_empty_config_is_valid(schema):
    jsonschema.validate({}, schema)


@pytest.mark.parametrize(
    "config",
    [
        {"database": {"host": "localhost"}},
        {"business_rules": {"unknown": 1}},
        {"allowed_years": []},
        {"allowed_years": [1999]},
        {"header_row": -1},
        {"business_rules": {"max_monthly_variation": 0}},
        {"cross_sheet_check": "yes"},
    ],
)
def test_invalid_configs_rejected(schema, config):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, schema)

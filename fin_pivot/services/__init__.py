"""Pipeline services: month normalization, validation, unpivot, orchestration."""

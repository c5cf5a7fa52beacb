"""Prometheus metrics for the recipe catalog and validator factory."""
from __future__ import annotations
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Catalog metrics
CATALOG_LOAD_TOTAL = Counter(
    "deploycore_catalog_load_total",
    "Total recipe catalog load attempts",
    ["outcome"],
)

CATALOG_LOAD_DURATION = Histogram(
    "deploycore_catalog_load_duration_seconds",
    "Duration of recipe catalog loads",
)

CATALOG_VALID_COUNT = Gauge(
    "deploycore_catalog_recipes_valid_count",
    "Current count of valid recipe definitions",
)

CATALOG_ERROR_COUNT = Gauge(
    "deploycore_catalog_error_count",
    "Current count of recipe diagnostics",
)

# Validator metrics
VALIDATORS_BUILT_TOTAL = Counter(
    "deploycore_validators_built_total",
    "Validator instances built from validator configs",
    ["scope"],
)

VALIDATION_FAILURES_TOTAL = Counter(
    "deploycore_validation_failures_total",
    "Failed validations by validator kind",
    ["kind"],
)

# Pre-create labelled samples so they appear in metrics output
for _scope in ("option_setting", "recipe"):
    VALIDATORS_BUILT_TOTAL.labels(scope=_scope).inc(0)


def record_catalog_load(outcome: str, valid: int, errors: int) -> None:
    CATALOG_LOAD_TOTAL.labels(outcome=outcome).inc()
    CATALOG_VALID_COUNT.set(valid)
    CATALOG_ERROR_COUNT.set(errors)


def metrics_response() -> tuple[bytes, str]:
    data = generate_latest()
    return data, CONTENT_TYPE_LATEST

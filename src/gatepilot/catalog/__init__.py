"""
GatePilot Gate Catalog

Loading and validation of the L-Gate catalog.

Usage:
    from gatepilot.catalog import load_catalog

    catalog = load_catalog()          # bundled L0-L6 catalog
    catalog = load_catalog(path)      # custom YAML/JSON file
"""
from __future__ import annotations

from .loader import (
    DEFAULT_CATALOG_PATH,
    CatalogLoader,
    catalog_from_schema,
    load_catalog,
)
from .schema import (
    EXPECTED_GATE_IDS,
    SCHEMA_VERSION,
    GateCatalogSchema,
    GateSchema,
    RequirementSchema,
    check_schema_version,
    validate_catalog,
)

__all__ = [
    "DEFAULT_CATALOG_PATH",
    "CatalogLoader",
    "catalog_from_schema",
    "load_catalog",
    "EXPECTED_GATE_IDS",
    "SCHEMA_VERSION",
    "GateCatalogSchema",
    "GateSchema",
    "RequirementSchema",
    "check_schema_version",
    "validate_catalog",
]

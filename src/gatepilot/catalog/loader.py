"""
GatePilot Gate Catalog Loader

Loads and validates the L-Gate catalog from YAML or JSON files.

Converts Pydantic schema models to GatePilot domain models.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ..exceptions import CatalogLoadError, CatalogValidationError
from ..models import GateCatalog, GateDefinition, GateRequirement, RequirementType
from .schema import GateCatalogSchema, GateSchema, check_schema_version, validate_catalog

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "gates.yaml"


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _convert_gate(schema: GateSchema, sequence: int) -> GateDefinition:
    return GateDefinition(
        id=schema.id,
        name=schema.name,
        sequence=sequence,
        requirements=tuple(
            GateRequirement(
                id=r.id,
                name=r.name,
                type=RequirementType(r.type),
                description=r.description,
                required=r.required,
            )
            for r in schema.requirements
        ),
    )


def catalog_from_schema(schema: GateCatalogSchema, source: Optional[str] = None) -> GateCatalog:
    """Convert a validated schema into a GateCatalog."""
    return GateCatalog(
        gates=[_convert_gate(g, i) for i, g in enumerate(schema.gates)],
        version=schema.schema_version,
        source=source,
    )


# =============================================================================
# Catalog Loader
# =============================================================================

class CatalogLoader:
    """
    Loads gate catalogs from files.

    Supports YAML (.yaml, .yml) and JSON (.json).

    Usage:
        loader = CatalogLoader()
        catalog = loader.load("gates.yaml")
    """

    def __init__(self, strict_version: bool = True):
        """
        Args:
            strict_version: Reject catalogs with an incompatible schema_version
        """
        self.strict_version = strict_version

    def load(self, path: Union[str, Path]) -> GateCatalog:
        """Load and validate a catalog file."""
        path = Path(path)
        if not path.exists():
            raise CatalogLoadError(
                message=f"Gate catalog not found: {path}",
                details={"path": str(path)},
            )

        try:
            text = path.read_text(encoding="utf-8")
            if path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise CatalogLoadError(
                message=f"Failed to parse gate catalog: {e}",
                details={"path": str(path)},
            ) from e

        catalog = self.load_dict(data, source=str(path))
        logger.info("Loaded gate catalog %s (%d gates)", path, len(catalog))
        return catalog

    def load_dict(self, data: Any, source: Optional[str] = None) -> GateCatalog:
        """Validate an already-parsed catalog document."""
        if not isinstance(data, dict):
            raise CatalogValidationError(
                message="Gate catalog must be a mapping at the top level",
                details={"source": source},
            )

        version = str(data.get("schema_version", "1.0.0"))
        if self.strict_version and not check_schema_version(version):
            raise CatalogValidationError(
                message=f"Unsupported catalog schema_version '{version}'",
                details={"source": source},
            )

        try:
            schema = validate_catalog(data)
        except ValidationError as e:
            raise CatalogValidationError(
                message="Gate catalog failed validation",
                details={
                    "source": source,
                    "errors": [
                        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                        for err in e.errors()
                    ],
                },
            ) from e

        return catalog_from_schema(schema, source=source)


def load_catalog(path: Union[str, Path, None] = None) -> GateCatalog:
    """Load a catalog, defaulting to the bundled gates.yaml."""
    return CatalogLoader().load(path or DEFAULT_CATALOG_PATH)

from __future__ import annotations

from pathlib import Path

from artifact_merge import RUNTIME_GROUP

from t3_mono.artifacts import read_manifest
from t3_mono.catalog import Catalog
from t3_mono.scaffolding.units import UnitResult, apply_unit


def detect_auth_provider(project_root: Path, catalog: Catalog) -> str | None:
    """Return the auth provider whose package is a runtime dependency of the project."""
    dependencies = read_manifest(project_root).get(RUNTIME_GROUP)
    if not isinstance(dependencies, dict):
        return None
    for provider_id in catalog.auth_providers:
        if provider_id in dependencies:
            return provider_id
    return None


def scaffold_auth_provider(
    provider_id: str,
    project_root: Path,
    catalog: Catalog,
    *,
    substitutions: dict[str, str],
) -> UnitResult:
    unit = catalog.auth_provider(provider_id)
    return apply_unit(project_root, catalog, unit, substitutions=substitutions)

from __future__ import annotations

from pathlib import Path

from t3_mono.artifacts import read_manifest, require_manifest
from t3_mono.catalog import Catalog, UnitSpec
from t3_mono.errors import IncompatibleExtensionError
from t3_mono.project import project_slug
from t3_mono.scaffolding.auth import detect_auth_provider
from t3_mono.scaffolding.units import UnitResult, apply_unit, template_substitutions


def check_compatible(unit: UnitSpec, auth_provider: str | None, catalog: Catalog) -> None:
    if unit.requires_auth is None or unit.requires_auth == auth_provider:
        return
    required = catalog.auth_provider(unit.requires_auth).label
    if auth_provider is None:
        found = "no auth provider"
    else:
        found = catalog.auth_provider(auth_provider).label
    raise IncompatibleExtensionError(
        f"Extension '{unit.id}' requires {required}, but this project uses {found}."
    )


def scaffold_extension(
    extension_id: str,
    project_root: Path,
    catalog: Catalog,
    *,
    substitutions: dict[str, str] | None = None,
) -> UnitResult:
    """Scaffold one extension into an existing project.

    Raises
    ------
    UnknownExtensionError
        ``extension_id`` is not in the catalog.
    IncompatibleExtensionError
        The extension requires an auth provider the project does not use.
    """

    unit = catalog.extension(extension_id)
    auth_provider = detect_auth_provider(project_root, catalog)
    check_compatible(unit, auth_provider, catalog)

    if substitutions is None:
        name = read_manifest(project_root).get("name")
        auth_label = catalog.auth_provider(auth_provider).label if auth_provider else ""
        substitutions = template_substitutions(
            project_name=name if isinstance(name, str) and name else project_slug(project_root),
            auth_label=auth_label,
        )
    return apply_unit(project_root, catalog, unit, substitutions=substitutions)


def add_extension(extension_id: str, project_root: Path, catalog: Catalog) -> UnitResult:
    """Retrofit one extension onto the project at ``project_root``.

    Nothing is written unless ``package.json`` exists there.
    """

    require_manifest(project_root)
    return scaffold_extension(extension_id, project_root, catalog)

from __future__ import annotations

import copy
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from artifact_merge import merge_dependencies

from t3_mono.artifacts import write_manifest
from t3_mono.catalog import Catalog
from t3_mono.errors import UnknownExtensionError
from t3_mono.project import (
    copy_template_tree,
    create_project_dirs,
    ensure_empty_target,
    init_git,
    project_slug,
)
from t3_mono.scaffolding.auth import scaffold_auth_provider
from t3_mono.scaffolding.extensions import check_compatible, scaffold_extension
from t3_mono.scaffolding.units import UnitResult, template_substitutions

DEFAULT_AUTH_PROVIDER = "better-auth"
GITIGNORE_TEMPLATE = "gitignore"


@dataclass(frozen=True)
class CreateOptions:
    target: Path
    auth_provider: str = DEFAULT_AUTH_PROVIDER
    extensions: Sequence[str] = ()
    git: bool = True
    allow_existing: bool = False


@dataclass
class CreateResult:
    project_root: Path
    project_name: str
    auth_provider: str
    units: list[UnitResult] = field(default_factory=list)
    git_initialized: bool | None = None

    @property
    def extensions(self) -> list[str]:
        return [u.unit_id for u in self.units[1:]]

    @property
    def next_steps(self) -> list[str]:
        return [step for u in self.units for step in u.next_steps]


def ordered_extensions(selected: Sequence[str], catalog: Catalog) -> list[str]:
    """Return the selected extension ids in catalog order, without duplicates."""
    for extension_id in selected:
        if extension_id not in catalog.extensions:
            raise UnknownExtensionError(extension_id, catalog.extensions)
    return [extension_id for extension_id in catalog.extensions if extension_id in selected]


def write_base_project(project_root: Path, catalog: Catalog, *, project_name: str, auth_provider: str) -> None:
    auth = catalog.auth_provider(auth_provider)
    substitutions = template_substitutions(project_name=project_name, auth_label=auth.label)

    create_project_dirs(project_root)
    for spec in catalog.base_copies:
        copy_template_tree(
            source=catalog.template(spec.source),
            dest_dir=project_root / spec.dest,
            substitutions=substitutions,
        )

    manifest = {"name": project_name, **copy.deepcopy(dict(catalog.base_package))}
    merge_dependencies(manifest, runtime=auth.dependencies, development=auth.dev_dependencies)
    write_manifest(project_root, manifest)


def create_project(options: CreateOptions, catalog: Catalog) -> CreateResult:
    """Scaffold a new project: base files, auth provider, extensions, then git.

    Inputs are validated before anything is written.
    """

    auth = catalog.auth_provider(options.auth_provider)
    extension_ids = ordered_extensions(options.extensions, catalog)
    for extension_id in extension_ids:
        check_compatible(catalog.extension(extension_id), auth.id, catalog)
    ensure_empty_target(options.target, allow_existing=options.allow_existing)

    project_root = options.target.resolve()
    project_name = project_slug(project_root)
    substitutions = template_substitutions(project_name=project_name, auth_label=auth.label)
    result = CreateResult(project_root=project_root, project_name=project_name, auth_provider=auth.id)

    write_base_project(project_root, catalog, project_name=project_name, auth_provider=auth.id)
    result.units.append(
        scaffold_auth_provider(auth.id, project_root, catalog, substitutions=substitutions)
    )
    for extension_id in extension_ids:
        result.units.append(
            scaffold_extension(extension_id, project_root, catalog, substitutions=substitutions)
        )

    if options.git:
        result.git_initialized = init_git(
            project_root,
            gitignore=catalog.read_template_text(GITIGNORE_TEMPLATE),
        )
    return result

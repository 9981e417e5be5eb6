from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from t3_mono.artifacts import (
    add_dependencies,
    check_dependency_groups,
    merge_messages,
    plan_schema_patch,
    write_schema,
)
from t3_mono.catalog import Catalog, UnitSpec
from t3_mono.errors import ArtifactError
from t3_mono.project import copy_template_tree

PROJECT_NAME_TOKEN = "__project_name__"
AUTH_LABEL_TOKEN = "__auth_label__"


@dataclass
class UnitResult:
    unit_id: str
    files: list[Path] = field(default_factory=list)
    schema_applied: bool = False
    next_steps: tuple[str, ...] = ()


def template_substitutions(*, project_name: str, auth_label: str) -> dict[str, str]:
    return {PROJECT_NAME_TOKEN: project_name, AUTH_LABEL_TOKEN: auth_label}


def _load_message_fragments(catalog: Catalog, unit: UnitSpec) -> dict[str, dict[str, Any]]:
    fragments: dict[str, dict[str, Any]] = {}
    for locale, rel in unit.messages.items():
        text = catalog.read_template_text(rel)
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ArtifactError(Path(rel), "parse template", exc) from exc
        if not isinstance(raw, dict):
            raise ArtifactError(Path(rel), "parse template", "expected a JSON object")
        fragments[locale] = raw
    return fragments


def apply_unit(
    project_root: Path,
    catalog: Catalog,
    unit: UnitSpec,
    *,
    substitutions: dict[str, str],
) -> UnitResult:
    """Copy a unit's templates and extend the project's artifacts with its fragments.

    The manifest groups, the message fragments and the schema patch are checked
    before anything is written.
    """

    result = UnitResult(unit_id=unit.id, next_steps=unit.next_steps)
    has_dependencies = bool(unit.dependencies or unit.dev_dependencies)
    if has_dependencies:
        check_dependency_groups(project_root, runtime=unit.dependencies, development=unit.dev_dependencies)
    messages = _load_message_fragments(catalog, unit)
    patch = catalog.schema_patch(unit)
    planned = plan_schema_patch(project_root, patch) if patch is not None else None

    for copy in unit.copies:
        result.files.extend(
            copy_template_tree(
                source=catalog.template(copy.source),
                dest_dir=project_root / copy.dest,
                substitutions=substitutions,
            )
        )

    if has_dependencies:
        add_dependencies(project_root, runtime=unit.dependencies, development=unit.dev_dependencies)

    if messages:
        result.files.extend(merge_messages(project_root, messages))

    if planned is not None:
        result.schema_applied = write_schema(project_root, planned)
    return result

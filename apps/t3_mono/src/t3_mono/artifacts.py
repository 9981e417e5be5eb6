from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from artifact_merge import (
    DEVELOPMENT_GROUP,
    RUNTIME_GROUP,
    PatchResult,
    SchemaPatch,
    merge_dependencies,
    merge_message_bundle,
    render_json,
    require_group,
)

from t3_mono.errors import ArtifactError, MissingProjectError
from t3_mono.project import write_file

PACKAGE_JSON = "package.json"
SCHEMA_PATH = "prisma/schema.prisma"
MESSAGES_DIR = "messages"

_DEPENDENCY_GROUPS = (RUNTIME_GROUP, DEVELOPMENT_GROUP)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ArtifactError(path, "read", exc) from exc


def read_json_object(path: Path) -> dict[str, Any]:
    text = _read_text(path)
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ArtifactError(path, "parse", exc) from exc
    if not isinstance(raw, dict):
        raise ArtifactError(path, "parse", f"expected a JSON object, got {type(raw).__name__}")
    return raw


def manifest_path(project_root: Path) -> Path:
    return project_root / PACKAGE_JSON


def require_manifest(project_root: Path) -> Path:
    path = manifest_path(project_root)
    if not path.is_file():
        raise MissingProjectError(project_root)
    return path


def write_manifest(project_root: Path, manifest: dict[str, Any]) -> None:
    write_file(manifest_path(project_root), render_json(manifest, sorted_groups=_DEPENDENCY_GROUPS))


def read_manifest(project_root: Path) -> dict[str, Any]:
    return read_json_object(require_manifest(project_root))


def check_dependency_groups(
    project_root: Path,
    *,
    runtime: Iterable[tuple[str, str]] = (),
    development: Iterable[tuple[str, str]] = (),
) -> None:
    """Raise `MissingGroupError` if a group that would receive dependencies is absent."""
    manifest = read_manifest(project_root)
    if tuple(runtime):
        require_group(manifest, (RUNTIME_GROUP,))
    if tuple(development):
        require_group(manifest, (DEVELOPMENT_GROUP,))


def add_dependencies(
    project_root: Path,
    *,
    runtime: Iterable[tuple[str, str]] = (),
    development: Iterable[tuple[str, str]] = (),
) -> dict[str, Any]:
    """Add missing dependencies to ``package.json``; existing versions are kept."""

    manifest = read_manifest(project_root)
    merge_dependencies(manifest, runtime=runtime, development=development)
    write_manifest(project_root, manifest)
    return manifest


def message_bundle_path(project_root: Path, locale: str) -> Path:
    return project_root / MESSAGES_DIR / f"{locale}.json"


def write_message_bundle(project_root: Path, locale: str, bundle: dict[str, Any]) -> None:
    write_file(message_bundle_path(project_root, locale), render_json(bundle))


def merge_messages(project_root: Path, fragments: Mapping[str, Mapping[str, Any]]) -> list[Path]:
    """Overlay per-locale namespace fragments onto ``messages/<locale>.json``.

    A missing bundle is created from the fragment alone.
    """

    written: list[Path] = []
    for locale, fragment in fragments.items():
        path = message_bundle_path(project_root, locale)
        bundle = read_json_object(path) if path.exists() else {}
        merge_message_bundle(bundle, fragment)
        write_message_bundle(project_root, locale, bundle)
        written.append(path)
    return written


def plan_schema_patch(project_root: Path, patch: SchemaPatch) -> PatchResult:
    """Compute the patched ``prisma/schema.prisma`` without writing it.

    Raises the schema errors ``patch.apply`` raises, so a unit can be checked
    before any of its files are written.
    """

    return patch.apply(_read_text(project_root / SCHEMA_PATH))


def write_schema(project_root: Path, result: PatchResult) -> bool:
    """Persist a planned patch; returns False when it was already present."""
    if result.applied:
        write_file(project_root / SCHEMA_PATH, result.text)
    return result.applied

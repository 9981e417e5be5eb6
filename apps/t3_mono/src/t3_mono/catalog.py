from __future__ import annotations

import importlib.resources
import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from artifact_merge import FieldsEdit, SchemaPatch, SettingEdit
from jsonschema import Draft202012Validator

from t3_mono.errors import ArtifactError, CatalogError, UnknownAuthProviderError, UnknownExtensionError

CATALOG_ENV_VAR = "T3_MONO_CATALOG"
_CATALOG_VERSION = 1


@dataclass(frozen=True)
class CopySpec:
    source: str
    dest: str


@dataclass(frozen=True)
class SchemaPatchSpec:
    fragment: str
    settings: tuple[SettingEdit, ...] = ()
    fields: tuple[FieldsEdit, ...] = ()


@dataclass(frozen=True)
class UnitSpec:
    """An auth provider or an extension: what to copy and which artifacts to extend."""

    id: str
    label: str
    copies: tuple[CopySpec, ...]
    summary: str | None = None
    dependencies: tuple[tuple[str, str], ...] = ()
    dev_dependencies: tuple[tuple[str, str], ...] = ()
    messages: Mapping[str, str] = field(default_factory=dict)
    schema: SchemaPatchSpec | None = None
    requires_auth: str | None = None
    next_steps: tuple[str, ...] = ()


@dataclass(frozen=True)
class Catalog:
    version: int
    locales: tuple[str, ...]
    base_copies: tuple[CopySpec, ...]
    base_package: Mapping[str, Any]
    auth_providers: Mapping[str, UnitSpec]
    extensions: Mapping[str, UnitSpec]
    templates_root: Traversable
    source_path: str

    def extension(self, extension_id: str) -> UnitSpec:
        spec = self.extensions.get(extension_id)
        if spec is None:
            raise UnknownExtensionError(extension_id, self.extensions)
        return spec

    def auth_provider(self, provider_id: str) -> UnitSpec:
        spec = self.auth_providers.get(provider_id)
        if spec is None:
            raise UnknownAuthProviderError(provider_id, self.auth_providers)
        return spec

    def template(self, rel: str) -> Traversable:
        node = self.templates_root
        for part in Path(rel).parts:
            if part == ".":
                continue
            node = node / part
        return node

    def read_template_text(self, rel: str) -> str:
        node = self.template(rel)
        try:
            return node.read_text(encoding="utf-8")
        except OSError as exc:
            raise ArtifactError(Path(rel), "read template", exc) from exc

    def schema_patch(self, unit: UnitSpec) -> SchemaPatch | None:
        if unit.schema is None:
            return None
        return SchemaPatch(
            fragment_id=unit.id,
            append_block=self.read_template_text(unit.schema.fragment),
            settings=unit.schema.settings,
            fields=unit.schema.fields,
        )


def _builtins() -> Traversable:
    return importlib.resources.files("t3_mono") / "builtins"


def _load_catalog_schema() -> dict[str, Any]:
    raw = json.loads((_builtins() / "catalog.schema.json").read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise CatalogError("catalog.schema.json must be a JSON object")
    return raw


def _format_errors(data: Any, schema: dict[str, Any]) -> list[str]:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: str(e.path))
    formatted: list[str] = []
    for error in errors:
        path = "$"
        for part in error.path:
            path += f"[{part!r}]" if isinstance(part, int) else f".{part}"
        formatted.append(f"{path}: {error.message}")
    return formatted


def _split_block_ref(ref: str) -> tuple[str, str]:
    kind, name = ref.split(" ", 1)
    return kind, name


def _parse_copies(raw: list[dict[str, str]]) -> tuple[CopySpec, ...]:
    return tuple(CopySpec(source=item["from"], dest=item["to"]) for item in raw)


def _parse_schema_patch(raw: dict[str, Any] | None) -> SchemaPatchSpec | None:
    if raw is None:
        return None
    settings: list[SettingEdit] = []
    for item in raw.get("settings", []):
        kind, name = _split_block_ref(item["block"])
        settings.append(SettingEdit(kind=kind, name=name, key=item["key"], value=item["value"]))
    fields: list[FieldsEdit] = []
    for item in raw.get("fields", []):
        kind, name = _split_block_ref(item["block"])
        fields.append(FieldsEdit(kind=kind, name=name, lines=tuple(item["lines"])))
    return SchemaPatchSpec(fragment=raw["fragment"], settings=tuple(settings), fields=tuple(fields))


def _parse_unit(unit_id: str, raw: dict[str, Any]) -> UnitSpec:
    return UnitSpec(
        id=unit_id,
        label=raw["label"],
        summary=raw.get("summary"),
        copies=_parse_copies(raw["copies"]),
        dependencies=tuple((raw.get("dependencies") or {}).items()),
        dev_dependencies=tuple((raw.get("devDependencies") or {}).items()),
        messages=dict(raw.get("messages") or {}),
        schema=_parse_schema_patch(raw.get("schema")),
        requires_auth=raw.get("requires_auth"),
        next_steps=tuple(raw.get("next_steps") or ()),
    )


def parse_catalog(data: Any, *, templates_root: Traversable, source_path: str) -> Catalog:
    """Validate raw catalog data and build a `Catalog`.

    Raises
    ------
    CatalogError
        When the data does not match ``catalog.schema.json`` or references an
        unknown auth provider.
    """

    errors = _format_errors(data, _load_catalog_schema())
    if errors:
        raise CatalogError(
            f"Invalid catalog {source_path}: " + "; ".join(errors),
            code="schema",
            details={"errors": errors},
        )

    auth_providers = {uid: _parse_unit(uid, raw) for uid, raw in data["auth_providers"].items()}
    extensions = {uid: _parse_unit(uid, raw) for uid, raw in data["extensions"].items()}
    for ext in extensions.values():
        if ext.requires_auth is not None and ext.requires_auth not in auth_providers:
            raise CatalogError(
                f"Invalid catalog {source_path}: extension '{ext.id}' requires unknown auth provider "
                f"'{ext.requires_auth}'",
                code="requires_auth",
            )
        missing_locales = sorted(set(ext.messages) - set(data["locales"]))
        if missing_locales:
            raise CatalogError(
                f"Invalid catalog {source_path}: extension '{ext.id}' has messages for undeclared "
                f"locales: {', '.join(missing_locales)}",
                code="locales",
            )

    return Catalog(
        version=data["version"],
        locales=tuple(data["locales"]),
        base_copies=_parse_copies(data["base"]["copies"]),
        base_package=data["base"]["package"],
        auth_providers=auth_providers,
        extensions=extensions,
        templates_root=templates_root,
        source_path=source_path,
    )


def _load_yaml_mapping(text: str, *, source_path: str) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CatalogError(f"Failed to parse YAML in {source_path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise CatalogError(f"Expected a YAML mapping in {source_path}, got {type(raw).__name__}.")
    return raw


def load_catalog(path: Path | None = None) -> Catalog:
    """Load the extension catalog.

    Resolution order: explicit ``path``, then ``$T3_MONO_CATALOG``, then the
    catalog bundled with the package. A catalog file outside the package reads
    its templates from a ``templates/`` directory next to it.
    """

    if path is None:
        env_path = os.environ.get(CATALOG_ENV_VAR, "").strip()
        if env_path:
            path = Path(env_path).expanduser()

    if path is None:
        builtins = _builtins()
        source_path = "builtins/catalog.yaml"
        text = (builtins / "catalog.yaml").read_text(encoding="utf-8")
        templates_root: Traversable = builtins / "templates"
    else:
        source_path = str(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise CatalogError(f"Failed to read {path}: {e}") from e
        templates_root = path.resolve().parent / "templates"

    data = _load_yaml_mapping(text, source_path=source_path)
    if data.get("version") not in (None, _CATALOG_VERSION):
        raise CatalogError(
            f"{source_path}: version {data.get('version')!r} is not supported by this t3-mono "
            f"({_CATALOG_VERSION})",
            code="version",
        )
    return parse_catalog(data, templates_root=templates_root, source_path=source_path)

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from t3_mono.catalog import CATALOG_ENV_VAR, load_catalog
from t3_mono.errors import CatalogError, UnknownAuthProviderError, UnknownExtensionError


def _minimal_catalog() -> dict[str, object]:
    return {
        "version": 1,
        "locales": ["en"],
        "base": {"copies": [], "package": {"dependencies": {}, "devDependencies": {}}},
        "auth_providers": {"better-auth": {"label": "Better Auth", "copies": []}},
        "extensions": {"extra": {"label": "Extra", "copies": []}},
    }


def _write_catalog(tmp_path: Path, data: object) -> Path:
    path = tmp_path / "catalog.yaml"
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def test_bundled_catalog_lists_extensions_in_order() -> None:
    catalog = load_catalog()
    assert list(catalog.extensions) == ["ai", "ui", "restate", "cmd"]
    assert list(catalog.auth_providers) == ["better-auth", "next-auth"]
    assert catalog.locales == ("en", "de")
    assert catalog.extension("cmd").requires_auth == "better-auth"
    assert catalog.extension("ai").requires_auth is None


def test_bundled_catalog_templates_exist() -> None:
    catalog = load_catalog()
    units = [*catalog.auth_providers.values(), *catalog.extensions.values()]
    for spec in catalog.base_copies:
        assert catalog.template(spec.source).is_dir(), spec.source
    for unit in units:
        for spec in unit.copies:
            assert catalog.template(spec.source).is_dir(), f"{unit.id}: {spec.source}"
        for rel in unit.messages.values():
            assert catalog.template(rel).is_file(), f"{unit.id}: {rel}"
        if unit.schema is not None:
            assert catalog.template(unit.schema.fragment).is_file(), f"{unit.id}: {unit.schema.fragment}"
    assert catalog.template("gitignore").is_file()


def test_schema_patch_is_built_from_catalog_entry() -> None:
    catalog = load_catalog()
    patch = catalog.schema_patch(catalog.extension("cmd"))
    assert patch is not None
    assert patch.fragment_id == "cmd"
    assert "model ChatThread {" in patch.append_block
    assert [(s.kind, s.name, s.key) for s in patch.settings] == [
        ("generator", "client", "previewFeatures"),
        ("datasource", "db", "extensions"),
    ]
    assert [(f.kind, f.name) for f in patch.fields] == [("model", "User")]
    assert catalog.schema_patch(catalog.extension("ai")) is None


def test_unknown_ids_list_valid_choices() -> None:
    catalog = load_catalog()
    with pytest.raises(UnknownExtensionError) as excinfo:
        catalog.extension("nope")
    assert "'ai', 'ui', 'restate', 'cmd'" in str(excinfo.value)
    with pytest.raises(UnknownAuthProviderError):
        catalog.auth_provider("clerk")


def test_env_var_overrides_catalog_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_catalog(tmp_path, _minimal_catalog())
    monkeypatch.setenv(CATALOG_ENV_VAR, str(path))

    catalog = load_catalog()

    assert list(catalog.extensions) == ["extra"]
    assert catalog.source_path == str(path)
    assert Path(str(catalog.templates_root)) == tmp_path.resolve() / "templates"


def test_schema_violations_are_reported_with_paths(tmp_path: Path) -> None:
    data = _minimal_catalog()
    data["extensions"] = {"extra": {"label": "Extra", "copies": [{"from": "../escape", "to": "."}], "bogus": 1}}

    with pytest.raises(CatalogError) as excinfo:
        load_catalog(_write_catalog(tmp_path, data))

    assert excinfo.value.code == "schema"
    errors = excinfo.value.details["errors"]
    assert any(e.startswith("$.extensions.extra:") and "bogus" in e for e in errors)
    assert any(e.startswith("$.extensions.extra.copies[0].from:") for e in errors)


def test_requires_auth_must_name_a_known_provider(tmp_path: Path) -> None:
    data = _minimal_catalog()
    data["extensions"] = {"extra": {"label": "Extra", "copies": [], "requires_auth": "clerk"}}

    with pytest.raises(CatalogError) as excinfo:
        load_catalog(_write_catalog(tmp_path, data))

    assert excinfo.value.code == "requires_auth"


def test_messages_must_use_declared_locales(tmp_path: Path) -> None:
    data = _minimal_catalog()
    data["extensions"] = {"extra": {"label": "Extra", "copies": [], "messages": {"fr": "extra/fr.json"}}}

    with pytest.raises(CatalogError) as excinfo:
        load_catalog(_write_catalog(tmp_path, data))

    assert excinfo.value.code == "locales"


def test_unsupported_version_is_rejected(tmp_path: Path) -> None:
    data = _minimal_catalog()
    data["version"] = 2

    with pytest.raises(CatalogError) as excinfo:
        load_catalog(_write_catalog(tmp_path, data))

    assert excinfo.value.code == "version"


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(CatalogError, match="Expected a YAML mapping"):
        load_catalog(path)


def test_missing_catalog_file_is_a_catalog_error(tmp_path: Path) -> None:
    with pytest.raises(CatalogError, match="Failed to read"):
        load_catalog(tmp_path / "missing.yaml")

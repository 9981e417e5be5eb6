from __future__ import annotations

import json
from pathlib import Path

import pytest
from artifact_merge import MissingBlockError, MissingGroupError

from t3_mono.catalog import load_catalog
from t3_mono.errors import IncompatibleExtensionError, MissingProjectError, UnknownExtensionError
from t3_mono.scaffolding import CreateOptions, add_extension, create_project, detect_auth_provider

BASE_SCHEMA = """generator client {
  provider = "prisma-client-js"
}

datasource db {
  provider = "postgresql"
  url      = env("DATABASE_URL")
}
"""


def _write_manifest(root: Path, manifest: dict) -> None:
    (root / "package.json").write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")


def test_add_without_manifest_writes_nothing(tmp_path: Path) -> None:
    catalog = load_catalog()

    with pytest.raises(MissingProjectError) as excinfo:
        add_extension("ai", tmp_path, catalog)

    assert excinfo.value.project_root == tmp_path
    assert "No package.json found" in str(excinfo.value)
    assert list(tmp_path.iterdir()) == []


def test_add_unknown_extension(tmp_path: Path) -> None:
    catalog = load_catalog()
    _write_manifest(tmp_path, {"name": "app", "dependencies": {}})

    with pytest.raises(UnknownExtensionError) as excinfo:
        add_extension("blockchain", tmp_path, catalog)

    assert excinfo.value.valid == ("ai", "ui", "restate", "cmd")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["package.json"]


def test_add_ai_keeps_existing_versions_and_unrelated_keys(tmp_path: Path) -> None:
    catalog = load_catalog()
    _write_manifest(
        tmp_path,
        {"name": "app", "scripts": {"dev": "next dev"}, "dependencies": {"zod": "^3.0.0", "next": "^16.1.1"}},
    )

    result = add_extension("ai", tmp_path, catalog)

    manifest = json.loads((tmp_path / "package.json").read_text(encoding="utf-8"))
    assert list(manifest) == ["name", "scripts", "dependencies"]
    assert manifest["scripts"] == {"dev": "next dev"}
    assert manifest["dependencies"]["zod"] == "^3.0.0"
    assert manifest["dependencies"]["langchain"] == "^1.2.25"
    assert "devDependencies" not in manifest
    assert (tmp_path / "src" / "ai" / "core" / "providers" / "index.ts").is_file()
    assert not result.schema_applied


def test_add_into_manifest_without_dependency_group_fails(tmp_path: Path) -> None:
    catalog = load_catalog()
    _write_manifest(tmp_path, {"name": "app"})

    with pytest.raises(MissingGroupError) as excinfo:
        add_extension("ui", tmp_path, catalog)

    assert excinfo.value.group_path == ("dependencies",)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["package.json"]


def test_add_restate_touches_no_artifacts(tmp_path: Path) -> None:
    catalog = load_catalog()
    _write_manifest(tmp_path, {"name": "app"})
    before = (tmp_path / "package.json").read_text(encoding="utf-8")

    result = add_extension("restate", tmp_path, catalog)

    assert (tmp_path / "package.json").read_text(encoding="utf-8") == before
    assert (tmp_path / "restate" / "README.md").is_file()
    assert result.next_steps == ("cd restate && docker-compose up -d", "cd services && npm install && npm run dev")


def test_add_cmd_to_next_auth_project_is_incompatible(tmp_path: Path) -> None:
    catalog = load_catalog()
    _write_manifest(tmp_path, {"name": "app", "dependencies": {"next-auth": "4.24.13"}})

    with pytest.raises(IncompatibleExtensionError, match="uses NextAuth"):
        add_extension("cmd", tmp_path, catalog)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["package.json"]


def test_add_cmd_requires_user_model(tmp_path: Path) -> None:
    catalog = load_catalog()
    _write_manifest(tmp_path, {"name": "app", "dependencies": {"better-auth": "^1.0.0"}, "devDependencies": {}})
    (tmp_path / "prisma").mkdir()
    (tmp_path / "prisma" / "schema.prisma").write_text(BASE_SCHEMA, encoding="utf-8")

    with pytest.raises(MissingBlockError) as excinfo:
        add_extension("cmd", tmp_path, catalog)

    assert (excinfo.value.kind, excinfo.value.name) == ("model", "User")
    assert (tmp_path / "prisma" / "schema.prisma").read_text(encoding="utf-8") == BASE_SCHEMA
    assert sorted(p.name for p in tmp_path.iterdir()) == ["package.json", "prisma"]
    assert json.loads((tmp_path / "package.json").read_text(encoding="utf-8"))["devDependencies"] == {}


def test_add_cmd_to_project_created_without_it(tmp_path: Path) -> None:
    catalog = load_catalog()
    target = tmp_path / "app"
    create_project(CreateOptions(target=target, extensions=("ai",), git=False), catalog)
    root = target.resolve()

    first = add_extension("cmd", root, catalog)
    schema_once = (root / "prisma" / "schema.prisma").read_text(encoding="utf-8")
    second = add_extension("cmd", root, catalog)

    assert first.schema_applied
    assert not second.schema_applied
    assert (root / "prisma" / "schema.prisma").read_text(encoding="utf-8") == schema_once
    assert schema_once.count("model ChatThread {") == 1
    en = json.loads((root / "messages" / "en.json").read_text(encoding="utf-8"))
    assert "common" in en
    assert "commandIsland" in en
    layout = (root / "src" / "app" / "layout.tsx").read_text(encoding="utf-8")
    assert 'title: "app"' in layout


def test_detect_auth_provider(tmp_path: Path) -> None:
    catalog = load_catalog()

    _write_manifest(tmp_path, {"dependencies": {"better-auth": "^1.0.0"}})
    assert detect_auth_provider(tmp_path, catalog) == "better-auth"

    _write_manifest(tmp_path, {"dependencies": {"next-auth": "4.24.13"}})
    assert detect_auth_provider(tmp_path, catalog) == "next-auth"

    _write_manifest(tmp_path, {"devDependencies": {"better-auth": "^1.0.0"}})
    assert detect_auth_provider(tmp_path, catalog) is None


def test_add_cmd_patches_user_model_with_commented_header(tmp_path: Path) -> None:
    catalog = load_catalog()
    _write_manifest(tmp_path, {"name": "app", "dependencies": {"better-auth": "^1.0.0"}, "devDependencies": {}})
    (tmp_path / "prisma").mkdir()
    schema = BASE_SCHEMA + "\nmodel User { // auth user\n  id String @id\n} // end User\n"
    (tmp_path / "prisma" / "schema.prisma").write_text(schema, encoding="utf-8")

    result = add_extension("cmd", tmp_path, catalog)

    assert result.schema_applied
    patched = (tmp_path / "prisma" / "schema.prisma").read_text(encoding="utf-8")
    assert "model User { // auth user\n" in patched
    assert "  aiDocSessions   AIDocSession[]\n} // end User\n" in patched

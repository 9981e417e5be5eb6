from __future__ import annotations

import re
import shutil
import subprocess
from importlib.resources.abc import Traversable
from pathlib import Path

from t3_mono.errors import ArtifactError, TargetNotEmptyError

DOT_PREFIX = "__dot__"

PROJECT_DIRS: tuple[str, ...] = (
    "src/app",
    "src/server/api/routers",
    "src/lib",
    "src/components",
    "prisma",
    "public",
    "messages",
)

_NPM_NAME_RE = re.compile(r"[^a-z0-9._~-]+")


def project_slug(target: Path) -> str:
    """Return an npm-safe package name derived from the target directory name."""
    s = target.resolve().name.strip().lower()
    s = _NPM_NAME_RE.sub("-", s)
    s = s.strip("-._")
    return s or "my-app"


def ensure_empty_target(target: Path, *, allow_existing: bool = False) -> None:
    if allow_existing or not target.exists():
        return
    if not target.is_dir():
        raise TargetNotEmptyError(target)
    try:
        has_entries = any(target.iterdir())
    except OSError as exc:
        raise ArtifactError(target, "list directory", exc) from exc
    if has_entries:
        raise TargetNotEmptyError(target)


def create_project_dirs(project_root: Path) -> None:
    for rel in PROJECT_DIRS:
        path = project_root / rel
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactError(path, "create directory", exc) from exc


def write_file(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8", newline="")
    except OSError as exc:
        raise ArtifactError(path, "write", exc) from exc


def output_name(name: str) -> str:
    if name.startswith(DOT_PREFIX):
        return "." + name[len(DOT_PREFIX) :]
    return name


def copy_template_tree(
    *,
    source: Traversable,
    dest_dir: Path,
    substitutions: dict[str, str] | None = None,
) -> list[Path]:
    """Copy a bundled template tree into ``dest_dir``, merging into existing directories.

    Path components starting with ``__dot__`` are written with a leading ``.``.
    Tokens in ``substitutions`` are replaced in UTF-8 text files; other files are
    copied byte for byte. Existing files are overwritten.

    Returns the written file paths.
    """

    if not source.is_dir():
        raise ArtifactError(Path(str(source)), "copy template", "not a directory")

    written: list[Path] = []
    pending: list[tuple[Traversable, Path]] = [(source, dest_dir)]
    while pending:
        src_dir, out_dir = pending.pop()
        for child in sorted(src_dir.iterdir(), key=lambda c: c.name):
            target = out_dir / output_name(child.name)
            if child.is_dir():
                pending.append((child, target))
                continue
            data = child.read_bytes()
            if substitutions:
                try:
                    text = data.decode("utf-8")
                except UnicodeDecodeError:
                    pass
                else:
                    for token, replacement in substitutions.items():
                        text = text.replace(token, replacement)
                    data = text.encode("utf-8")
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
            except OSError as exc:
                raise ArtifactError(target, "write", exc) from exc
            written.append(target)
    return written


def init_git(project_root: Path, *, gitignore: str) -> bool:
    """Write ``.gitignore`` and run ``git init``.

    Returns False when git is not on PATH or ``git init`` fails.
    """

    write_file(project_root / ".gitignore", gitignore)
    git = shutil.which("git")
    if git is None:
        return False
    cp = subprocess.run(
        [git, "init", "--quiet"],
        cwd=str(project_root),
        text=True,
        capture_output=True,
        check=False,
    )
    return cp.returncode == 0

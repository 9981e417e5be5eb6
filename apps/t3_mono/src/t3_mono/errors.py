from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any


class ScaffoldError(RuntimeError):
    pass


class CatalogError(ScaffoldError):
    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class MissingProjectError(ScaffoldError):
    def __init__(self, project_root: Path) -> None:
        self.project_root = project_root
        super().__init__(
            f"No package.json found in {project_root}. Run this command from the root of your project."
        )


class TargetNotEmptyError(ScaffoldError):
    def __init__(self, target: Path) -> None:
        self.target = target
        super().__init__(f"Directory '{target}' already exists and is not empty")


class _UnknownChoiceError(ScaffoldError):
    noun = "choice"

    def __init__(self, value: str, valid: Iterable[str]) -> None:
        self.value = value
        self.valid = tuple(valid)
        choices = ", ".join(f"'{v}'" for v in self.valid)
        super().__init__(f"Unknown {self.noun}: {value}. Use one of: {choices}.")


class UnknownExtensionError(_UnknownChoiceError):
    noun = "extension"


class UnknownAuthProviderError(_UnknownChoiceError):
    noun = "auth provider"


class IncompatibleExtensionError(ScaffoldError):
    pass


class ArtifactError(ScaffoldError):
    def __init__(self, path: Path, operation: str, reason: object) -> None:
        self.path = path
        self.operation = operation
        super().__init__(f"Failed to {operation} {path}: {reason}")

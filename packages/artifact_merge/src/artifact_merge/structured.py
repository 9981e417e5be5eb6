from __future__ import annotations

import copy
import json
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any

RUNTIME_GROUP = "dependencies"
DEVELOPMENT_GROUP = "devDependencies"


class MergeStrategy(Enum):
    """How a fragment key that already exists in the target group is handled."""

    INSERT_MISSING = "insert_missing"
    OVERWRITE = "overwrite"


class MergeError(ValueError):
    pass


class MissingGroupError(MergeError):
    def __init__(self, group_path: Sequence[str]) -> None:
        self.group_path = tuple(group_path)
        dotted = ".".join(self.group_path) if self.group_path else "<root>"
        super().__init__(f"Invalid document: missing object at {dotted}")


def require_group(document: Any, group_path: Sequence[str]) -> dict[str, Any]:
    """Return the object at ``group_path``, raising `MissingGroupError` when it is absent."""
    node = document
    if not isinstance(node, dict):
        raise MissingGroupError(())
    for idx, segment in enumerate(group_path):
        child = node.get(segment)
        if not isinstance(child, dict):
            raise MissingGroupError(group_path[: idx + 1])
        node = child
    return node


def _iter_fragment(fragment: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> Iterable[tuple[str, Any]]:
    if isinstance(fragment, Mapping):
        return fragment.items()
    return fragment


def merge_document(
    base: dict[str, Any],
    fragment: Mapping[str, Any] | Iterable[tuple[str, Any]],
    *,
    group_path: Sequence[str] = (),
    strategy: MergeStrategy,
) -> dict[str, Any]:
    """Merge ``fragment`` into the object found at ``group_path`` of ``base``.

    Parameters
    ----------
    base:
        Parsed document. Mutated in place and returned.
    fragment:
        Mapping or sequence of ``(key, value)`` pairs to add.
    group_path:
        Keys leading from the document root to the target object. The empty
        path targets the root itself.
    strategy:
        ``INSERT_MISSING`` leaves existing keys untouched; ``OVERWRITE``
        replaces their values wholesale.

    Returns
    -------
    dict[str, Any]
        The mutated ``base``.

    Raises
    ------
    MissingGroupError
        Raised when ``group_path`` does not lead to an object in ``base``.
    """

    group = require_group(base, group_path)
    for key, value in _iter_fragment(fragment):
        if strategy is MergeStrategy.INSERT_MISSING and key in group:
            continue
        group[key] = copy.deepcopy(value)
    return base


def merge_dependencies(
    manifest: dict[str, Any],
    *,
    runtime: Mapping[str, str] | Iterable[tuple[str, str]] = (),
    development: Mapping[str, str] | Iterable[tuple[str, str]] = (),
) -> dict[str, Any]:
    """Add missing runtime and development dependencies to a package manifest.

    A group is only required to exist when there is something to add to it: an
    empty fragment leaves the manifest untouched even when its group is missing,
    so extensions without dev dependencies can be added to manifests that have
    no `devDependencies`. Use `require_group` to check a group unconditionally.
    """

    runtime_items = list(_iter_fragment(runtime))
    development_items = list(_iter_fragment(development))
    if runtime_items:
        merge_document(
            manifest,
            runtime_items,
            group_path=(RUNTIME_GROUP,),
            strategy=MergeStrategy.INSERT_MISSING,
        )
    if development_items:
        merge_document(
            manifest,
            development_items,
            group_path=(DEVELOPMENT_GROUP,),
            strategy=MergeStrategy.INSERT_MISSING,
        )
    return manifest


def merge_message_bundle(bundle: dict[str, Any], fragment: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay ``fragment`` namespaces onto ``bundle``; colliding namespaces are replaced."""
    return merge_document(bundle, fragment, strategy=MergeStrategy.OVERWRITE)


def _sorted_copy(document: dict[str, Any], sorted_groups: Sequence[str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in document.items():
        if key in sorted_groups and isinstance(value, dict):
            out[key] = {k: value[k] for k in sorted(value)}
        else:
            out[key] = value
    return out


def render_json(document: dict[str, Any], *, sorted_groups: Sequence[str] = ()) -> str:
    """Serialize a document deterministically.

    Top-level key order is preserved; the objects named in ``sorted_groups``
    are emitted with their keys sorted.
    """

    payload = _sorted_copy(document, sorted_groups) if sorted_groups else document
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

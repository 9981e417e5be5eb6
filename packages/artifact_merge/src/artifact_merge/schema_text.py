"""
Text-level patching of Prisma schema artifacts.

Two layers live here:

- `apply_fragment` is the literal replace-then-append primitive. It is not
  idempotent: applying the same block twice duplicates it, and a replacement
  whose match is absent is silently skipped.
- `parse_schema` / `SchemaPatch` model the schema as a list of named blocks and
  free text. Edits target blocks by kind and name and fail loudly when the
  block is missing; appended fragments are guarded by a marker comment so a
  patch applies at most once per file.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

BLOCK_KINDS: tuple[str, ...] = ("model", "enum", "type", "view", "generator", "datasource")
SETTING_BLOCK_KINDS: frozenset[str] = frozenset({"generator", "datasource"})
FRAGMENT_MARKER_PREFIX = "// t3-mono:fragment "

_BLOCK_HEADER_RE = re.compile(
    r"^(?P<kind>" + "|".join(BLOCK_KINDS) + r")\s+(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"\s*\{\s*(?P<rest>\}?)\s*(?://.*)?$"
)
_BLOCK_CLOSE_RE = re.compile(r"^\s*\}\s*(?://.*)?$")
_SETTING_RE = re.compile(r"^\s*(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>.*?)\s*$")
_FIELD_NAME_RE = re.compile(r"^\s*(?P<name>[A-Za-z_][A-Za-z0-9_]*)")
_INDENT = "  "


class SchemaError(ValueError):
    pass


class MissingBlockError(SchemaError):
    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Schema has no `{kind} {name}` block")


class DuplicateBlockError(SchemaError):
    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Schema already defines `{kind} {name}`")


def apply_fragment(base_text: str, replacements: Iterable[tuple[str, str]], append_block: str) -> str:
    """Apply literal replacements in order, then append ``append_block``.

    A replacement whose match does not occur is a no-op. Nothing checks whether
    ``append_block`` is already present, so callers must apply a given block at
    most once per file.
    """

    text = base_text
    for match, replacement in replacements:
        text = text.replace(match, replacement)
    return text + append_block


def _newline_of(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    return "\n"


def _strip_newline(line: str) -> str:
    return line.rstrip("\r\n")


@dataclass
class SchemaBlock:
    """One `kind name { ... }` block, stored as its raw lines (header and closing brace included)."""

    kind: str
    name: str
    lines: list[str]

    @property
    def newline(self) -> str:
        return _newline_of(self.lines[0])

    def _expand_single_line(self) -> None:
        if len(self.lines) != 1:
            return
        nl = self.newline
        text = _strip_newline(self.lines[0])
        trailing = self.lines[0][len(text) :]
        head, _, tail = text.partition("{")
        # tail is "}" plus an optional trailing comment; the comment stays on the closing line.
        tail = tail.lstrip()[1:]
        self.lines = [f"{head.rstrip()} {{{nl}", f"}}{tail}{trailing}"]

    @property
    def body(self) -> list[str]:
        return self.lines[1:-1]

    def field_names(self) -> list[str]:
        names: list[str] = []
        for line in self.body:
            stripped = line.strip()
            if not stripped or stripped.startswith("//") or stripped.startswith("@@"):
                continue
            m = _FIELD_NAME_RE.match(stripped)
            if m:
                names.append(m.group("name"))
        return names

    def settings(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for line in self.body:
            m = _SETTING_RE.match(_strip_newline(line))
            if m:
                out[m.group("key")] = m.group("value")
        return out

    def set_setting(self, key: str, value: str) -> bool:
        """Add or replace ``key = value`` and realign the block; returns whether anything changed."""
        if self.kind not in SETTING_BLOCK_KINDS:
            raise SchemaError(f"`{self.kind} {self.name}` does not hold key/value settings")
        current = self.settings()
        if current.get(key) == value:
            return False

        self._expand_single_line()
        nl = self.newline
        body = self.body
        replaced = False
        for idx, line in enumerate(body):
            m = _SETTING_RE.match(_strip_newline(line))
            if m and m.group("key") == key:
                body[idx] = f"{_INDENT}{key} = {value}{nl}"
                replaced = True
                break
        if not replaced:
            body.append(f"{_INDENT}{key} = {value}{nl}")

        keys = [m.group("key") for m in (_SETTING_RE.match(_strip_newline(line)) for line in body) if m]
        width = max(len(k) for k in keys)
        aligned: list[str] = []
        for line in body:
            m = _SETTING_RE.match(_strip_newline(line))
            if m:
                aligned.append(f"{_INDENT}{m.group('key').ljust(width)} = {m.group('value')}{_newline_of(line)}")
            else:
                aligned.append(line)
        self.lines = [self.lines[0], *aligned, self.lines[-1]]
        return True

    def add_fields(self, field_lines: Sequence[str]) -> list[str]:
        """Insert field lines the block does not define yet after its last field.

        Returns the names of the fields that were added.
        """
        existing = set(self.field_names())
        pending: list[tuple[str, str]] = []
        for raw in field_lines:
            m = _FIELD_NAME_RE.match(raw)
            if m is None:
                raise SchemaError(f"Not a field definition: {raw!r}")
            name = m.group("name")
            if name in existing:
                continue
            existing.add(name)
            pending.append((name, raw.strip()))
        if not pending:
            return []

        self._expand_single_line()
        nl = self.newline
        body = self.body
        insert_at = len(body)
        for idx in range(len(body) - 1, -1, -1):
            stripped = body[idx].strip()
            if stripped and not stripped.startswith("//") and not stripped.startswith("@@"):
                insert_at = idx + 1
                break
        new_lines = [f"{_INDENT}{text}{nl}" for _, text in pending]
        if body[:insert_at] and body[insert_at - 1].strip():
            new_lines.insert(0, nl)
        body[insert_at:insert_at] = new_lines
        self.lines = [self.lines[0], *body, self.lines[-1]]
        return [name for name, _ in pending]

    def render(self) -> str:
        return "".join(self.lines)


@dataclass
class SchemaDocument:
    segments: list[str | SchemaBlock] = field(default_factory=list)

    def blocks(self) -> list[SchemaBlock]:
        return [seg for seg in self.segments if isinstance(seg, SchemaBlock)]

    def find(self, kind: str, name: str) -> SchemaBlock | None:
        for block in self.blocks():
            if block.kind == kind and block.name == name:
                return block
        return None

    def block(self, kind: str, name: str) -> SchemaBlock:
        found = self.find(kind, name)
        if found is None:
            raise MissingBlockError(kind, name)
        return found

    def render(self) -> str:
        return "".join(seg if isinstance(seg, str) else seg.render() for seg in self.segments)


def parse_schema(text: str) -> SchemaDocument:
    """Split schema text into blocks and the free text between them.

    ``parse_schema(text).render() == text`` holds for any input this accepts.
    """

    doc = SchemaDocument()
    pending_text: list[str] = []
    current: SchemaBlock | None = None

    for line in text.splitlines(keepends=True):
        if current is not None:
            current.lines.append(line)
            if _BLOCK_CLOSE_RE.match(_strip_newline(line)):
                doc.segments.append(current)
                current = None
            continue

        m = _BLOCK_HEADER_RE.match(_strip_newline(line))
        if m is None:
            pending_text.append(line)
            continue

        if pending_text:
            doc.segments.append("".join(pending_text))
            pending_text = []
        block = SchemaBlock(kind=m.group("kind"), name=m.group("name"), lines=[line])
        if m.group("rest") == "}":
            doc.segments.append(block)
        else:
            current = block

    if current is not None:
        raise SchemaError(f"Unterminated `{current.kind} {current.name}` block")
    if pending_text:
        doc.segments.append("".join(pending_text))
    return doc


@dataclass(frozen=True)
class SettingEdit:
    kind: str
    name: str
    key: str
    value: str


@dataclass(frozen=True)
class FieldsEdit:
    kind: str
    name: str
    lines: tuple[str, ...]


@dataclass(frozen=True)
class PatchResult:
    text: str
    applied: bool


@dataclass(frozen=True)
class SchemaPatch:
    """
    A schema fragment applied at most once per file.

    Parameters
    ----------
    fragment_id
        Stable identifier written into the schema as a marker comment ahead of
        ``append_block``. A schema that already carries the marker is returned
        unchanged.
    append_block
        Block text appended after the edits.
    settings
        Key/value edits for generator/datasource blocks.
    fields
        Field lines added to existing blocks (e.g. back-relations on `User`).
    """

    fragment_id: str
    append_block: str = ""
    settings: tuple[SettingEdit, ...] = ()
    fields: tuple[FieldsEdit, ...] = ()

    @property
    def marker(self) -> str:
        return f"{FRAGMENT_MARKER_PREFIX}{self.fragment_id}"

    def is_applied(self, text: str) -> bool:
        return any(line.strip() == self.marker for line in text.splitlines())

    def apply(self, text: str) -> PatchResult:
        if self.is_applied(text):
            return PatchResult(text=text, applied=False)

        doc = parse_schema(text)
        for incoming in parse_schema(self.append_block).blocks():
            if doc.find(incoming.kind, incoming.name) is not None:
                raise DuplicateBlockError(incoming.kind, incoming.name)
        for setting in self.settings:
            doc.block(setting.kind, setting.name).set_setting(setting.key, setting.value)
        for edit in self.fields:
            doc.block(edit.kind, edit.name).add_fields(edit.lines)

        out = doc.render()
        if out and not out.endswith("\n"):
            out += "\n"
        block = self.append_block.lstrip("\r\n")
        out += f"\n{self.marker}\n{block}"
        if not out.endswith("\n"):
            out += "\n"
        return PatchResult(text=out, applied=True)

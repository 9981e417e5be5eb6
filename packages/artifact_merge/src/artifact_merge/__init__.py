from artifact_merge.schema_text import (
    DuplicateBlockError,
    FieldsEdit,
    MissingBlockError,
    PatchResult,
    SchemaBlock,
    SchemaDocument,
    SchemaError,
    SchemaPatch,
    SettingEdit,
    apply_fragment,
    parse_schema,
)
from artifact_merge.structured import (
    DEVELOPMENT_GROUP,
    RUNTIME_GROUP,
    MergeError,
    MergeStrategy,
    MissingGroupError,
    merge_dependencies,
    merge_document,
    merge_message_bundle,
    render_json,
    require_group,
)

__all__ = [
    "DEVELOPMENT_GROUP",
    "DuplicateBlockError",
    "FieldsEdit",
    "MergeError",
    "MergeStrategy",
    "MissingBlockError",
    "MissingGroupError",
    "PatchResult",
    "RUNTIME_GROUP",
    "SchemaBlock",
    "SchemaDocument",
    "SchemaError",
    "SchemaPatch",
    "SettingEdit",
    "apply_fragment",
    "merge_dependencies",
    "merge_document",
    "merge_message_bundle",
    "parse_schema",
    "render_json",
    "require_group",
]

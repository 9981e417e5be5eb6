from t3_mono.scaffolding.auth import detect_auth_provider, scaffold_auth_provider
from t3_mono.scaffolding.base import CreateOptions, CreateResult, create_project, ordered_extensions
from t3_mono.scaffolding.extensions import add_extension, check_compatible, scaffold_extension
from t3_mono.scaffolding.units import UnitResult, apply_unit

__all__ = [
    "CreateOptions",
    "CreateResult",
    "UnitResult",
    "add_extension",
    "apply_unit",
    "check_compatible",
    "create_project",
    "detect_auth_provider",
    "ordered_extensions",
    "scaffold_auth_provider",
    "scaffold_extension",
]

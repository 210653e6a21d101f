"""Page registry and the cascading action queue that feeds it."""

from site_orchestrator.pages.actions import (
    Action,
    ActionKind,
    ActionQueue,
    BoundActions,
    CascadeReport,
)
from site_orchestrator.pages.registry import (
    PageRegistry,
    PageValidationResult,
    normalize_page_path,
    validate_page_input,
)

__all__ = [
    "Action",
    "ActionKind",
    "ActionQueue",
    "BoundActions",
    "CascadeReport",
    "PageRegistry",
    "PageValidationResult",
    "normalize_page_path",
    "validate_page_input",
]

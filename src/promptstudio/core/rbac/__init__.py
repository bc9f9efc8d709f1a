"""Authorization core domain."""

from promptstudio.core.rbac.guard import (
    authorize,
    ensure_admin_remains,
    evaluate,
    evaluate_admin_count_change,
)
from promptstudio.core.rbac.types import Action, ActionScope, Decision

__all__ = [
    "Action",
    "ActionScope",
    "Decision",
    "authorize",
    "ensure_admin_remains",
    "evaluate",
    "evaluate_admin_count_change",
]

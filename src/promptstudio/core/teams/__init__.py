"""Team registry core domain."""

from promptstudio.core.teams.entitlements import Feature, TeamEntitlements
from promptstudio.core.teams.registry import TeamRegistry
from promptstudio.core.teams.validation import suggest_slug

__all__ = [
    "Feature",
    "TeamEntitlements",
    "TeamRegistry",
    "suggest_slug",
]

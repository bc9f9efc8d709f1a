"""Subscription tier entitlements for teams."""

from enum import Enum

from promptstudio.core.auth.types import SubscriptionTier

DEFAULT_FREE_TEAM_MEMBER_LIMIT = 3
UNLIMITED = -1


class Feature(str, Enum):
    """Capabilities gated by subscription tier."""

    # Boolean
    CREATE_TEAM = "create_team"

    # Limits (numeric, -1 = unlimited)
    MAX_TEAM_MEMBERS = "max_team_members"


def tier_features(
    free_member_limit: int = DEFAULT_FREE_TEAM_MEMBER_LIMIT,
) -> dict[SubscriptionTier, dict[Feature, int | bool]]:
    """What each tier includes."""
    return {
        SubscriptionTier.FREE: {
            Feature.CREATE_TEAM: False,
            Feature.MAX_TEAM_MEMBERS: free_member_limit,
        },
        SubscriptionTier.PRO: {
            Feature.CREATE_TEAM: True,
            Feature.MAX_TEAM_MEMBERS: UNLIMITED,
        },
    }


class TeamEntitlements:
    """Answers tier questions for team creation and capacity.

    A team's capacity follows its owner's tier at the moment of the check;
    nothing about it is stored on the team.
    """

    def __init__(self, free_member_limit: int = DEFAULT_FREE_TEAM_MEMBER_LIMIT) -> None:
        """Initialize with the free-tier member cap."""
        self._features = tier_features(free_member_limit)

    def can_create_team(self, tier: SubscriptionTier) -> bool:
        """Whether users on ``tier`` may create teams."""
        return bool(self._features[tier][Feature.CREATE_TEAM])

    def member_limit(self, tier: SubscriptionTier) -> int | None:
        """Member cap for teams owned by a ``tier`` user, None if uncapped."""
        limit = int(self._features[tier][Feature.MAX_TEAM_MEMBERS])
        if limit == UNLIMITED:
            return None
        return limit

    def has_room(self, tier: SubscriptionTier, member_count: int) -> bool:
        """Whether one more member fits."""
        limit = self.member_limit(tier)
        return limit is None or member_count < limit

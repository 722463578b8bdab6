# moderation.py
# Status transitions of the recipe moderation workflow.

import enum

from recipebox.core.errors import Conflict
from recipebox.models import RecipeStatus


class ModerationAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    RECONSIDER = "reconsider"


# action -> (allowed source states, target state)
TRANSITIONS = {
    ModerationAction.APPROVE: (
        {RecipeStatus.PENDING, RecipeStatus.REJECTED},
        RecipeStatus.PUBLISHED,
    ),
    ModerationAction.REJECT: ({RecipeStatus.PENDING}, RecipeStatus.REJECTED),
    ModerationAction.RECONSIDER: ({RecipeStatus.REJECTED}, RecipeStatus.PENDING),
}


def next_status(current: RecipeStatus, action: ModerationAction) -> RecipeStatus:
    """
    Return the status `action` moves a recipe to from `current`.
    Raises Conflict when the transition is not allowed.
    """
    sources, target = TRANSITIONS[action]
    if current not in sources:
        if current == target:
            raise Conflict(f"Recipe is already {current.value}")
        raise Conflict(f"Cannot {action.value} a recipe that is {current.value}")
    return target

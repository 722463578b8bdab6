from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Identity:
    """
    The acting caller, decoded from a verified bearer token.
    """

    user_id: UUID
    is_admin: bool = False

    def can_manage(self, owner_id: UUID) -> bool:
        return self.is_admin or self.user_id == owner_id

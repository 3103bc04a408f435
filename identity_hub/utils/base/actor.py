from __future__ import annotations

from dataclasses import dataclass

from identity_hub.utils.base.ids import SYSTEM_USER_ID


@dataclass(frozen=True)
class Actor:
    """Identity on whose behalf a mutation runs; stamped into created_by/updated_by."""
    uid: str

    @classmethod
    def system(cls) -> "Actor":
        return cls(uid=SYSTEM_USER_ID)

    @classmethod
    def of(cls, user) -> "Actor":
        return cls(uid=user.uid)

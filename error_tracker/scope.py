"""Mutable per-process context attached to captured events."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from .models import UserInfo

UserLike = Union[UserInfo, Mapping[str, Any]]


def to_user(user: Optional[UserLike]) -> Optional[UserInfo]:
    """Coerce a mapping into UserInfo. Empty values clear the user."""
    if not user:
        return None
    if isinstance(user, UserInfo):
        return user
    return UserInfo.model_validate(dict(user))


@dataclass
class ScopeSnapshot:
    """Copy of the scope taken when an event is built."""

    tags: Dict[str, str]
    extras: Dict[str, Any]
    user: Optional[UserInfo]


@dataclass
class Scope:
    """
    Tags, user and extra context for future events.

    Mutations are visible to every event built after the call returns.
    Events already built hold their own snapshot and never change.
    """

    tags: Dict[str, str] = field(default_factory=dict)
    user: Optional[UserInfo] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def set_user(self, user: Optional[UserLike]) -> None:
        self.user = to_user(user)

    def set_tag(self, key: str, value: str) -> None:
        self.tags[key] = value

    def set_tags(self, tags: Mapping[str, str]) -> None:
        self.tags = {**self.tags, **tags}

    def set_extra(self, key: str, value: Any) -> None:
        """Set an extra value; None removes the key."""
        if value is None:
            self.extras.pop(key, None)
        else:
            self.extras[key] = value

    def set_extras(self, extras: Mapping[str, Any]) -> None:
        """Merge extras; keys mapped to None are removed."""
        for key, value in extras.items():
            self.set_extra(key, value)

    def snapshot(self) -> ScopeSnapshot:
        return ScopeSnapshot(
            tags=dict(self.tags),
            extras=dict(self.extras),
            user=self.user.detached_copy() if self.user is not None else None,
        )

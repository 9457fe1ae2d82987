"""
Value types consumed and produced by the permission engine.

Nothing in this module touches the database: actors, memberships and
decisions are plain immutable values so that every policy decision can be
evaluated (and tested) with fabricated inputs.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


class Role(str, enum.Enum):
    """Role a participant holds within a single group."""
    MENTEE = "mentee"
    MENTOR = "mentor"
    SUPERMENTOR = "supermentor"

    @property
    def rank(self) -> int:
        return _ROLE_RANKS[self]


_ROLE_RANKS = {Role.MENTEE: 0, Role.MENTOR: 1, Role.SUPERMENTOR: 2}


class Relationship(str, enum.Enum):
    """How an actor relates to another user across all shared groups."""
    SELF = "self"
    SUPERMENTOR_OF = "supermentor-of"
    MENTOR_OF = "mentor-of"
    UNRELATED = "unrelated"


class Resource(str, enum.Enum):
    GROUP = "group"
    USER = "user"
    ATTRIBUTE = "attribute"
    CONVERSATION = "conversation"
    QUESTION = "question"


class Action(str, enum.Enum):
    CREATE = "create"
    GET = "get"
    LIST = "list"
    UPDATE = "update"
    DELETE = "delete"
    JOIN = "join"


class Denial(str, enum.Enum):
    """Reason a decision was denied; values double as error codes."""
    NOT_ALLOWED = "not-allowed"
    NOT_FOUND = "entity-not-found"


@dataclass(frozen=True)
class Actor:
    """
    The authenticated user making a request.

    ``is_groot`` comes from the identity provider's claims and is never read
    from ambient state.
    """
    id: str
    is_groot: bool = False


@dataclass(frozen=True)
class Decision:
    """
    Outcome of a policy decision: allow, or deny with a reason.

    Usage:
        decision = can_get_group(actor, membership)
        if not decision.allowed:
            ...decision.denial...
    """
    denial: Optional[Denial] = None

    @property
    def allowed(self) -> bool:
        return self.denial is None

    @classmethod
    def allow(cls) -> "Decision":
        return cls()

    @classmethod
    def deny(cls, denial: Denial) -> "Decision":
        return cls(denial=denial)

    def __str__(self) -> str:
        return "allow" if self.allowed else f"deny({self.denial.value})"


@dataclass(frozen=True)
class Membership:
    """
    Immutable snapshot of one group's participants and conversations.

    The resolvers only ever see these snapshots, so a single decision cannot
    observe a role change halfway through a multi-group scan.
    """
    group_id: str
    participants: Mapping[str, Role] = field(default_factory=dict)
    conversations: frozenset[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "participants", MappingProxyType(dict(self.participants)))
        object.__setattr__(self, "conversations", frozenset(self.conversations))

    def role_of(self, user_id: str) -> Optional[Role]:
        return self.participants.get(user_id)

    def includes(self, user_id: str) -> bool:
        return user_id in self.participants

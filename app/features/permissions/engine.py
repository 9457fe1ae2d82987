"""
Permission engine: one pure decision function per resource and action.

Every function is total. It returns a :class:`Decision` and never raises for a
denial. Two rules run through the whole table:

- A groot actor is always allowed, but is told when the resource is missing.
- Everyone else is checked for authorization *before* existence, so a caller
  who may not see a resource cannot tell whether it exists.

Usage:
    decision = decide(Resource.GROUP, Action.GET, actor, membership=group_membership)
"""
from typing import Callable, Dict, Iterable, Optional, Tuple

from app.features.permissions.models import (
    Action,
    Actor,
    Decision,
    Denial,
    Membership,
    Relationship,
    Resource,
    Role,
)
from app.utils import get_logger


log = get_logger(__name__)

ALLOW = Decision.allow()
NOT_ALLOWED = Decision.deny(Denial.NOT_ALLOWED)
NOT_FOUND = Decision.deny(Denial.NOT_FOUND)

# Relationships that let an actor read a user's profile and attributes
READERS = frozenset({Relationship.SELF, Relationship.MENTOR_OF, Relationship.SUPERMENTOR_OF})
# Relationships that let an actor write another user's attributes
WRITERS = frozenset({Relationship.MENTOR_OF, Relationship.SUPERMENTOR_OF})


def _disclose(exists: bool) -> Decision:
    return ALLOW if exists else NOT_FOUND


def _groot_only(actor: Actor, exists: bool = True) -> Decision:
    if actor.is_groot:
        return _disclose(exists)
    return NOT_ALLOWED


# ============================================================================
# Groups
# ============================================================================

def can_create_group(actor: Actor) -> Decision:
    return _groot_only(actor)


def can_list_groups(actor: Actor) -> Decision:
    """Anyone may list groups; the listing itself is narrowed by :func:`visible_groups`."""
    return ALLOW


def visible_groups(actor: Actor, groups: Iterable[Membership]) -> list[Membership]:
    """Groot sees every group, everyone else only the groups they take part in."""
    if actor.is_groot:
        return list(groups)
    return [group for group in groups if group.includes(actor.id)]


def can_get_group(actor: Actor, membership: Optional[Membership]) -> Decision:
    """``membership`` is ``None`` when the group does not exist."""
    if actor.is_groot:
        return _disclose(membership is not None)
    if membership is not None and membership.includes(actor.id):
        return ALLOW
    return NOT_ALLOWED


def can_update_group(actor: Actor, membership: Optional[Membership]) -> Decision:
    if actor.is_groot:
        return _disclose(membership is not None)
    if membership is not None and membership.role_of(actor.id) is Role.SUPERMENTOR:
        return ALLOW
    return NOT_ALLOWED


def can_delete_group(actor: Actor, membership: Optional[Membership]) -> Decision:
    return _groot_only(actor, membership is not None)


def can_join_group(actor: Actor, membership: Optional[Membership]) -> Decision:
    """
    Any authenticated actor may join a group they hold the code for.

    The code itself is the secret, so an unknown code is reported as missing
    to everyone.
    """
    return _disclose(membership is not None)


# ============================================================================
# Users
# ============================================================================

def can_list_users(actor: Actor) -> Decision:
    return _groot_only(actor)


def can_get_user(actor: Actor, relationship: Relationship, exists: bool) -> Decision:
    if actor.is_groot:
        return _disclose(exists)
    if relationship in READERS:
        # A relationship can only be derived from an existing user, but the
        # user record may still have been removed since the groups were read.
        return _disclose(exists)
    return NOT_ALLOWED


# ============================================================================
# Attributes
# ============================================================================

def can_write_attribute(actor: Actor, relationship: Relationship, subject_exists: bool = True) -> Decision:
    """Decide on creating or updating an attribute of the subject."""
    if actor.is_groot:
        return _disclose(subject_exists)
    if relationship in WRITERS:
        return _disclose(subject_exists)
    return NOT_ALLOWED


def can_read_attributes(actor: Actor, relationship: Relationship, subject_exists: bool = True) -> Decision:
    """Decide on reading one or all attributes of the subject."""
    if actor.is_groot:
        return _disclose(subject_exists)
    if relationship in READERS:
        return _disclose(subject_exists)
    return NOT_ALLOWED


def can_delete_attribute(actor: Actor, relationship: Relationship, subject_exists: bool = True) -> Decision:
    """A subject may never delete their own attributes."""
    if actor.is_groot:
        return _disclose(subject_exists)
    if relationship is Relationship.SELF:
        return NOT_ALLOWED
    if relationship in WRITERS:
        return _disclose(subject_exists)
    return NOT_ALLOWED


# ============================================================================
# Conversations and questions
# ============================================================================

def can_manage_conversations(actor: Actor, exists: bool = True) -> Decision:
    """Create, update, delete and list conversations or questions."""
    return _groot_only(actor, exists)


def can_get_conversation(actor: Actor, eligible: bool, exists: bool) -> Decision:
    """
    Decide on reading a conversation, or questions within it.

    Eligibility is resolved against the parent conversation; ``exists`` is
    the existence of the thing being read.
    """
    if actor.is_groot:
        return _disclose(exists)
    if eligible:
        return _disclose(exists)
    return NOT_ALLOWED


# ============================================================================
# Dispatch
# ============================================================================

POLICY: Dict[Tuple[Resource, Action], Callable[..., Decision]] = {
    (Resource.GROUP, Action.CREATE): can_create_group,
    (Resource.GROUP, Action.LIST): can_list_groups,
    (Resource.GROUP, Action.GET): can_get_group,
    (Resource.GROUP, Action.UPDATE): can_update_group,
    (Resource.GROUP, Action.DELETE): can_delete_group,
    (Resource.GROUP, Action.JOIN): can_join_group,
    (Resource.USER, Action.LIST): can_list_users,
    (Resource.USER, Action.GET): can_get_user,
    (Resource.ATTRIBUTE, Action.CREATE): can_write_attribute,
    (Resource.ATTRIBUTE, Action.UPDATE): can_write_attribute,
    (Resource.ATTRIBUTE, Action.GET): can_read_attributes,
    (Resource.ATTRIBUTE, Action.LIST): can_read_attributes,
    (Resource.ATTRIBUTE, Action.DELETE): can_delete_attribute,
    (Resource.CONVERSATION, Action.CREATE): can_manage_conversations,
    (Resource.CONVERSATION, Action.UPDATE): can_manage_conversations,
    (Resource.CONVERSATION, Action.DELETE): can_manage_conversations,
    (Resource.CONVERSATION, Action.LIST): can_manage_conversations,
    (Resource.CONVERSATION, Action.GET): can_get_conversation,
    (Resource.QUESTION, Action.CREATE): can_manage_conversations,
    (Resource.QUESTION, Action.UPDATE): can_manage_conversations,
    (Resource.QUESTION, Action.DELETE): can_manage_conversations,
    (Resource.QUESTION, Action.LIST): can_get_conversation,
    (Resource.QUESTION, Action.GET): can_get_conversation,
}


def decide(resource: Resource, action: Action, actor: Actor, **facts) -> Decision:
    """
    Evaluate the decision registered for ``(resource, action)``.

    ``facts`` are passed to the decision function as keyword arguments.

    Raises:
        KeyError: if no decision is registered for the pair
    """
    decision = POLICY[(resource, action)](actor, **facts)
    if not decision.allowed:
        log.debug(
            "Denied actor=%s groot=%s resource=%s action=%s outcome=%s",
            actor.id, actor.is_groot, resource.value, action.value, decision,
        )
    return decision

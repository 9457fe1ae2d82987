"""
Role and eligibility resolution over group membership snapshots.

Mentorship is carried by groups, not by a user-to-user graph, so resolving a
relationship is a flat scan over the groups two users share.
"""
from typing import Iterable

from app.features.permissions.models import Membership, Relationship, Role


def resolve_role(actor_id: str, target_user_id: str, groups: Iterable[Membership]) -> Relationship:
    """
    Work out the strongest relationship ``actor_id`` holds over ``target_user_id``.

    ``groups`` should contain (at least) every group the target participates
    in; groups that do not contain both users are ignored. A supermentor role
    in any shared group wins over a mentor role in another.
    """
    if actor_id == target_user_id:
        return Relationship.SELF

    best = None
    for group in groups:
        if not group.includes(target_user_id):
            continue
        role = group.role_of(actor_id)
        if role is None:
            continue
        if best is None or role.rank > best.rank:
            best = role
        if best is Role.SUPERMENTOR:
            break

    if best is Role.SUPERMENTOR:
        return Relationship.SUPERMENTOR_OF
    if best is Role.MENTOR:
        return Relationship.MENTOR_OF
    return Relationship.UNRELATED


def is_eligible(actor_id: str, conversation_id: str, groups: Iterable[Membership]) -> bool:
    """Check whether any group the actor participates in offers the conversation."""
    return any(
        group.includes(actor_id) and conversation_id in group.conversations
        for group in groups
    )

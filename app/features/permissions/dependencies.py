"""
Glue between the permission engine and the HTTP layer.

Implements:
- Loading the facts a decision needs (relationship, eligibility)
- Turning a denial into the matching error
"""
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotAllowed, NotFound, ServerError
from app.features.groups.registry import GroupRegistry
from app.features.permissions.engine import decide
from app.features.permissions.models import Action, Actor, Decision, Denial, Relationship, Resource
from app.features.permissions.resolvers import is_eligible, resolve_role


def enforce(decision: Decision, message: str | None = None) -> None:
    """
    Raise the error matching a denied decision; do nothing when allowed.

    Raises:
        NotAllowed: for ``deny(not-allowed)``
        NotFound: for ``deny(not-found)``
    """
    if decision.allowed:
        return
    if decision.denial is Denial.NOT_FOUND:
        raise NotFound(message)
    if decision.denial is Denial.NOT_ALLOWED:
        raise NotAllowed()
    raise ServerError(message=f"Unhandled decision {decision}")


def authorize(resource: Resource, action: Action, actor: Actor, message: str | None = None, **facts) -> None:
    """
    Evaluate and enforce a decision in one step.

    Usage:
        authorize(Resource.GROUP, Action.GET, actor, "Group not found", membership=membership)

    ``message`` is only used when the outcome is not-found.
    """
    enforce(decide(resource, action, actor, **facts), message)


async def resolve_relationship(db: AsyncSession, actor: Actor, user_id: str) -> Relationship:
    """Resolve how ``actor`` relates to ``user_id`` from a fresh membership snapshot."""
    if actor.id == user_id:
        return Relationship.SELF
    groups = await GroupRegistry(db).memberships_containing(user_id)
    return resolve_role(actor.id, user_id, groups)


async def resolve_eligibility(db: AsyncSession, actor: Actor, conversation_id: str) -> bool:
    """Check whether ``actor`` may take ``conversation_id`` through any of their groups."""
    groups = await GroupRegistry(db).memberships_containing(actor.id)
    return is_eligible(actor.id, conversation_id, groups)

"""
Attribute feature routes, nested under the subject user.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.attributes.repository import SqlAttributeRepository
from app.features.attributes.schemas import Attribute, AttributeCreate, AttributeUpdate
from app.features.attributes.store import AttributeStore
from app.features.permissions.dependencies import authorize, resolve_relationship
from app.features.permissions.models import Action, Actor, Resource
from app.features.users.dependencies import get_current_actor
from app.features.users.models import User


router = APIRouter(tags=["attributes"])


async def get_attribute_store(db: Annotated[AsyncSession, Depends(get_db)]) -> AttributeStore:
    return AttributeStore(SqlAttributeRepository(db))


async def _authorize_subject(db: AsyncSession, actor: Actor, action: Action, user_id: str) -> None:
    relationship = await resolve_relationship(db, actor, user_id)
    subject_exists = await db.get(User, user_id) is not None
    authorize(
        Resource.ATTRIBUTE, action, actor, "User not found",
        relationship=relationship, subject_exists=subject_exists,
    )


@router.get("/{user_id}/attributes", response_model=list[Attribute])
async def list_attributes(
    user_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[AttributeStore, Depends(get_attribute_store)]
):
    """List a user's attributes (the user, their mentors, or groot)."""
    await _authorize_subject(db, actor, Action.LIST, user_id)
    return await store.list(user_id)


@router.post("/{user_id}/attributes", response_model=Attribute, status_code=status.HTTP_201_CREATED)
async def create_attribute(
    user_id: str,
    attribute_data: AttributeCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[AttributeStore, Depends(get_attribute_store)]
):
    """Create an attribute for a user (their mentors or groot)."""
    await _authorize_subject(db, actor, Action.CREATE, user_id)
    return await store.create(
        user_id, attribute_data.id, attribute_data.value,
        observer_id=actor.id, blame=attribute_data.message,
    )


@router.get("/{user_id}/attributes/{attribute_id}", response_model=Attribute)
async def get_attribute(
    user_id: str,
    attribute_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[AttributeStore, Depends(get_attribute_store)]
):
    """Get one attribute with its history."""
    await _authorize_subject(db, actor, Action.GET, user_id)
    return await store.get(user_id, attribute_id)


@router.put("/{user_id}/attributes/{attribute_id}", response_model=Attribute)
async def update_attribute(
    user_id: str,
    attribute_id: str,
    update_data: AttributeUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[AttributeStore, Depends(get_attribute_store)]
):
    """Change an attribute's value; the previous value stays in its history."""
    await _authorize_subject(db, actor, Action.UPDATE, user_id)
    return await store.update(
        user_id, attribute_id, update_data.value,
        observer_id=actor.id, blame=update_data.message,
    )


@router.delete("/{user_id}/attributes/{attribute_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attribute(
    user_id: str,
    attribute_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[AttributeStore, Depends(get_attribute_store)]
):
    """Delete an attribute. Users can never delete their own attributes."""
    await _authorize_subject(db, actor, Action.DELETE, user_id)
    await store.delete(user_id, attribute_id)

"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.dependencies import authorize, resolve_relationship
from app.features.permissions.models import Action, Actor, Resource
from app.features.users.models import User
from app.features.users.schemas import CurrentUserResponse, UserResponse, UserUpdate
from app.features.users.dependencies import get_current_actor, get_current_user


router = APIRouter(tags=["users"])


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_profile(
    actor: Annotated[Actor, Depends(get_current_actor)],
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    response = CurrentUserResponse.model_validate(user)
    response.is_groot = actor.is_groot
    return response


@router.patch("/me", response_model=UserResponse)
async def update_current_user_profile(
    update_data: UserUpdate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update current user's profile."""
    # Update only provided fields
    if update_data.name is not None:
        user.name = update_data.name
    if update_data.phone is not None:
        user.phone = update_data.phone
    
    await db.commit()
    await db.refresh(user)
    return user


@router.get("/", response_model=list[UserResponse])
async def list_users(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = 0,
    limit: int = 50
):
    """List all users (groot only)."""
    authorize(Resource.USER, Action.LIST, actor)
    
    result = await db.execute(
        select(User)
        .order_by(User.created_at, User.id)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_by_id(
    user_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Get a user's profile.
    
    Visible to the user, their mentors and supermentors, and groot. Anyone
    else is refused whether or not the user exists.
    """
    relationship = await resolve_relationship(db, actor, user_id)
    user = await db.get(User, user_id)
    authorize(
        Resource.USER, Action.GET, actor, "User not found",
        relationship=relationship, exists=user is not None,
    )
    return user

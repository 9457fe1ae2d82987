"""
Conversation feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.conversations.models import Conversation
from app.features.conversations.schemas import (
    ConversationCreate,
    ConversationUpdate,
    ConversationResponse,
)
from app.features.permissions.dependencies import authorize, resolve_eligibility
from app.features.permissions.models import Action, Actor, Resource
from app.features.users.dependencies import get_current_actor
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["conversations"])


@router.post("/", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    conversation_data: ConversationCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a conversation (groot only)."""
    authorize(Resource.CONVERSATION, Action.CREATE, actor)

    conversation = Conversation(**conversation_data.model_dump())
    db.add(conversation)
    await db.commit()
    await db.refresh(conversation)

    log.info("Conversation %s created by %s", conversation.id, actor.id)
    return conversation


@router.get("/", response_model=list[ConversationResponse])
async def list_conversations(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = 0,
    limit: int = 100
):
    """List all conversations (groot only)."""
    authorize(Resource.CONVERSATION, Action.LIST, actor)

    result = await db.execute(
        select(Conversation)
        .order_by(Conversation.created_at, Conversation.id)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get a conversation offered to one of the actor's groups."""
    eligible = await resolve_eligibility(db, actor, conversation_id)
    conversation = await db.get(Conversation, conversation_id)
    authorize(
        Resource.CONVERSATION, Action.GET, actor, "Conversation not found",
        eligible=eligible, exists=conversation is not None,
    )
    return conversation


@router.patch("/{conversation_id}", response_model=ConversationResponse)
async def update_conversation(
    conversation_id: str,
    update_data: ConversationUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update a conversation (groot only)."""
    conversation = await db.get(Conversation, conversation_id)
    authorize(
        Resource.CONVERSATION, Action.UPDATE, actor, "Conversation not found",
        exists=conversation is not None,
    )

    for key, value in update_data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(conversation, key, value)

    await db.commit()
    await db.refresh(conversation)
    return conversation


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a conversation and its questions (groot only)."""
    conversation = await db.get(Conversation, conversation_id)
    authorize(
        Resource.CONVERSATION, Action.DELETE, actor, "Conversation not found",
        exists=conversation is not None,
    )

    await db.delete(conversation)
    await db.commit()
    log.info("Conversation %s deleted by %s", conversation_id, actor.id)

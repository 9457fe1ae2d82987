"""
Question feature routes, nested under their conversation.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.conversations.models import Conversation
from app.features.permissions.dependencies import authorize, resolve_eligibility
from app.features.permissions.models import Action, Actor, Resource
from app.features.questions.models import Question
from app.features.questions.schemas import QuestionCreate, QuestionUpdate, QuestionResponse
from app.features.users.dependencies import get_current_actor
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["questions"])


async def get_question_in(db: AsyncSession, conversation_id: str, question_id: str) -> Question | None:
    result = await db.execute(
        select(Question).where(
            Question.id == question_id,
            Question.conversation_id == conversation_id,
        )
    )
    return result.scalar_one_or_none()


@router.post(
    "/{conversation_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_question(
    conversation_id: str,
    question_data: QuestionCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Add a question to a conversation (groot only)."""
    conversation = await db.get(Conversation, conversation_id)
    authorize(
        Resource.QUESTION, Action.CREATE, actor, "Conversation not found",
        exists=conversation is not None,
    )

    question = Question(
        conversation_id=conversation_id,
        **question_data.model_dump(mode="json", exclude={"options"}),
        options=[option.model_dump(mode="json") for option in question_data.options],
    )
    db.add(question)
    await db.commit()
    await db.refresh(question)

    log.info("Question %s added to conversation %s by %s", question.id, conversation_id, actor.id)
    return question


@router.get("/{conversation_id}/questions", response_model=list[QuestionResponse])
async def list_questions(
    conversation_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List the questions of a conversation offered to one of the actor's groups."""
    eligible = await resolve_eligibility(db, actor, conversation_id)
    conversation = await db.get(Conversation, conversation_id)
    authorize(
        Resource.QUESTION, Action.LIST, actor, "Conversation not found",
        eligible=eligible, exists=conversation is not None,
    )

    result = await db.execute(
        select(Question)
        .where(Question.conversation_id == conversation_id)
        .order_by(Question.created_at, Question.id)
    )
    return result.scalars().all()


@router.get("/{conversation_id}/questions/{question_id}", response_model=QuestionResponse)
async def get_question(
    conversation_id: str,
    question_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get one question of a conversation offered to one of the actor's groups."""
    eligible = await resolve_eligibility(db, actor, conversation_id)
    question = await get_question_in(db, conversation_id, question_id)
    authorize(
        Resource.QUESTION, Action.GET, actor, "Question not found",
        eligible=eligible, exists=question is not None,
    )
    return question


@router.patch("/{conversation_id}/questions/{question_id}", response_model=QuestionResponse)
async def update_question(
    conversation_id: str,
    question_id: str,
    update_data: QuestionUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update a question (groot only)."""
    question = await get_question_in(db, conversation_id, question_id)
    authorize(
        Resource.QUESTION, Action.UPDATE, actor, "Question not found",
        exists=question is not None,
    )

    changes = update_data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    for key, value in changes.items():
        setattr(question, key, value)

    await db.commit()
    await db.refresh(question)
    return question


@router.delete("/{conversation_id}/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    conversation_id: str,
    question_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a question (groot only)."""
    question = await get_question_in(db, conversation_id, question_id)
    authorize(
        Resource.QUESTION, Action.DELETE, actor, "Question not found",
        exists=question is not None,
    )

    await db.delete(question)
    await db.commit()

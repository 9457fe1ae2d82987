"""
Group feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.groups.models import Group
from app.features.groups.registry import GroupRegistry
from app.features.groups.schemas import GroupCreate, GroupUpdate, GroupResponse
from app.features.permissions.dependencies import authorize
from app.features.permissions.engine import visible_groups
from app.features.permissions.models import Action, Actor, Resource
from app.features.users.dependencies import get_current_actor
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["groups"])


async def get_group_registry(db: Annotated[AsyncSession, Depends(get_db)]) -> GroupRegistry:
    return GroupRegistry(db)


@router.post("/", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    registry: Annotated[GroupRegistry, Depends(get_group_registry)]
):
    """Create a new group (groot only)."""
    authorize(Resource.GROUP, Action.CREATE, actor)

    group = Group(
        name=group_data.name,
        conversations=list(dict.fromkeys(group_data.conversations)),
        reports=group_data.reports,
    )
    group.set_participants(group_data.participants)
    group = await registry.save_group(group)

    log.info("Group %s created by %s", group.id, actor.id)
    return group


@router.get("/", response_model=list[GroupResponse])
async def list_groups(
    actor: Annotated[Actor, Depends(get_current_actor)],
    registry: Annotated[GroupRegistry, Depends(get_group_registry)]
):
    """List groups: every group for groot, otherwise the groups the actor is part of."""
    authorize(Resource.GROUP, Action.LIST, actor)

    if actor.is_groot:
        groups = await registry.list_all_groups()
    else:
        groups = await registry.list_groups_containing(actor.id)
    visible = {m.group_id for m in visible_groups(actor, [g.membership() for g in groups])}
    return [group for group in groups if group.id in visible]


@router.put("/join/{code}", response_model=GroupResponse)
async def join_group(
    code: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    registry: Annotated[GroupRegistry, Depends(get_group_registry)]
):
    """Join a group as a mentee using its code. Joining twice changes nothing."""
    group = await registry.find_group_by_code(code)
    authorize(
        Resource.GROUP, Action.JOIN, actor, "No group uses this code",
        membership=group.membership() if group else None,
    )
    return await registry.join(group, actor.id)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    registry: Annotated[GroupRegistry, Depends(get_group_registry)]
):
    """Get a group the actor is part of."""
    group = await registry.get_group(group_id)
    authorize(
        Resource.GROUP, Action.GET, actor, "Group not found",
        membership=group.membership() if group else None,
    )
    return group


@router.patch("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    update_data: GroupUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    registry: Annotated[GroupRegistry, Depends(get_group_registry)]
):
    """Update a group (its supermentors or groot)."""
    group = await registry.get_group(group_id)
    authorize(
        Resource.GROUP, Action.UPDATE, actor, "Group not found",
        membership=group.membership() if group else None,
    )

    if update_data.name is not None:
        group.name = update_data.name
    if update_data.participants is not None:
        group.set_participants(update_data.participants)
    if update_data.conversations is not None:
        group.conversations = list(dict.fromkeys(update_data.conversations))
    if update_data.reports is not None:
        group.reports = update_data.reports
    if update_data.regenerate_code:
        group.code = await registry.generate_code()

    group = await registry.save_group(group)
    log.info("Group %s updated by %s", group.id, actor.id)
    return group


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    registry: Annotated[GroupRegistry, Depends(get_group_registry)]
):
    """Delete a group (groot only)."""
    group = await registry.get_group(group_id)
    authorize(
        Resource.GROUP, Action.DELETE, actor, "Group not found",
        membership=group.membership() if group else None,
    )
    await registry.delete_group(group_id)

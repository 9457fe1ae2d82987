"""
Group registry: data access for groups and their membership.

No policy lives here. Callers obtain a decision from the permission engine
before reading or mutating through the registry.
"""
import secrets
import string
from collections import defaultdict
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.errors import ImproperPayload, InvalidRelationship, NotFound
from app.features.groups.models import Group, GroupParticipant
from app.features.permissions.models import Membership, Role
from app.utils import get_logger


log = get_logger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


class GroupRegistry:
    """
    Group data-access backed by an async SQLAlchemy session.

    Usage:
        registry = GroupRegistry(db)
        group = await registry.find_group_by_code("X7K2Q9PA")
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_group(self, group_id: str) -> Group | None:
        return await self.db.get(Group, group_id)

    async def list_groups_containing(self, user_id: str) -> list[Group]:
        result = await self.db.execute(
            select(Group)
            .join(GroupParticipant, GroupParticipant.group_id == Group.id)
            .where(GroupParticipant.user_id == user_id)
            .order_by(Group.created_at, Group.id)
        )
        return list(result.scalars().unique().all())

    async def list_all_groups(self) -> list[Group]:
        result = await self.db.execute(select(Group).order_by(Group.created_at, Group.id))
        return list(result.scalars().all())

    async def find_group_by_code(self, code: str) -> Group | None:
        result = await self.db.execute(select(Group).where(Group.code == code))
        return result.scalar_one_or_none()

    async def save_group(self, group: Group) -> Group:
        """
        Insert or update ``group`` and commit.

        Raises:
            ImproperPayload: if a participant is not a registered user
        """
        if not group.code:
            group.code = await self.generate_code()
        name = group.name
        self.db.add(group)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            log.info("Rejected group %r with unregistered participants", name)
            raise ImproperPayload("Every participant must be a registered user")
        await self.db.refresh(group)
        return group

    async def delete_group(self, group_id: str) -> bool:
        """Delete a group; returns False if it did not exist."""
        group = await self.get_group(group_id)
        if group is None:
            return False
        await self.db.delete(group)
        await self.db.commit()
        log.info("Deleted group %s", group_id)
        return True

    async def join(self, group: Group, user_id: str) -> Group:
        """
        Add ``user_id`` to ``group`` as a mentee.

        Joining again is a no-op: an existing participant keeps their role.
        """
        if user_id in group.participants:
            return group
        group_id = group.id
        self.db.add(GroupParticipant(group_id=group_id, user_id=user_id, role=Role.MENTEE.value))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            # Lost a race with another join of the same user, or the user is unknown
            group = await self.db.get(Group, group_id, populate_existing=True)
            if group is None:
                raise NotFound("Group not found")
            if user_id not in group.participants:
                raise ImproperPayload("Every participant must be a registered user")
            log.info("User %s had already joined group %s", user_id, group_id)
            return group
        log.info("User %s joined group %s", user_id, group_id)
        await self.db.refresh(group)
        return group

    async def generate_code(self) -> str:
        """Generate a join code no other group uses."""
        while True:
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(config.GROUP_CODE_LENGTH))
            if await self.find_group_by_code(code) is None:
                return code

    async def memberships_containing(self, user_id: str) -> list[Membership]:
        """
        Snapshot every group ``user_id`` participates in.

        All rows are read with a single statement so the snapshot cannot mix
        membership states from before and after a concurrent change.

        Raises:
            InvalidRelationship: if a stored role is not recognised
        """
        groups_of_user = select(GroupParticipant.group_id).where(GroupParticipant.user_id == user_id)
        result = await self.db.execute(
            select(Group.id, Group.conversations, GroupParticipant.user_id, GroupParticipant.role)
            .join(GroupParticipant, GroupParticipant.group_id == Group.id)
            .where(Group.id.in_(groups_of_user))
        )

        participants: dict[str, dict[str, Role]] = defaultdict(dict)
        conversations: dict[str, list[str]] = {}
        for group_id, group_conversations, member_id, role in result.all():
            try:
                participants[group_id][member_id] = Role(role)
            except ValueError:
                log.error("Group %s has participant %s with unknown role %r", group_id, member_id, role)
                raise InvalidRelationship(
                    f"Participant {member_id} of group {group_id} has unknown role {role!r}"
                )
            conversations[group_id] = group_conversations or []

        return [
            Membership(
                group_id=group_id,
                participants=members,
                conversations=frozenset(conversations[group_id]),
            )
            for group_id, members in participants.items()
        ]

"""
Group models.

A group is the unit of mentorship: its participants each hold one role
(mentee, mentor or supermentor) and it lists the conversations its
participants may take.
"""
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import String, ForeignKey, JSON, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_ulid, utcnow
from app.core.errors import InvalidRelationship
from app.features.permissions.models import Membership, Role


class GroupParticipant(Base):
    """
    A user's role within one group.

    The composite primary key guarantees a user holds exactly one role per group.
    """
    __tablename__ = "group_participants"
    
    group_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    # Stored as plain text and parsed on read, see Group.membership()
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.MENTEE.value)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    
    group: Mapped["Group"] = relationship("Group", back_populates="members")
    
    def __repr__(self) -> str:
        return f"<GroupParticipant(group_id={self.group_id}, user_id={self.user_id}, role={self.role})>"


class Group(Base, TimestampMixin):
    """
    Group model.
    
    ``conversations`` holds conversation IDs and ``reports`` maps attribute IDs
    to reporting metadata that is passed through untouched.
    """
    __tablename__ = "groups"
    
    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    
    conversations: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    reports: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    
    # Relationships
    members: Mapped[list["GroupParticipant"]] = relationship(
        "GroupParticipant",
        back_populates="group",
        cascade="all, delete-orphan",
        lazy="selectin"
    )
    
    @property
    def participants(self) -> dict[str, str]:
        """Mapping of user ID to role name."""
        return {member.user_id: member.role for member in self.members}
    
    def set_participant(self, user_id: str, role: Role) -> None:
        """Add a participant or change their role in place."""
        for member in self.members:
            if member.user_id == user_id:
                member.role = role.value
                return
        self.members.append(GroupParticipant(user_id=user_id, role=role.value))
    
    def set_participants(self, participants: dict[str, Role]) -> None:
        """Replace the participants, keeping rows for users who stay."""
        self.members = [m for m in self.members if m.user_id in participants]
        for user_id, role in participants.items():
            self.set_participant(user_id, role)
    
    def membership(self) -> Membership:
        """
        Take an immutable snapshot for the permission engine.
        
        Raises:
            InvalidRelationship: if a stored role is not recognised
        """
        participants = {}
        for member in self.members:
            try:
                participants[member.user_id] = Role(member.role)
            except ValueError:
                raise InvalidRelationship(
                    f"Participant {member.user_id} of group {self.id} has unknown role {member.role!r}"
                )
        return Membership(
            group_id=self.id,
            participants=participants,
            conversations=frozenset(self.conversations or []),
        )
    
    def __repr__(self) -> str:
        return f"<Group(id={self.id}, name={self.name!r})>"

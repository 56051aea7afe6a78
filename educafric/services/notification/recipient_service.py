from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from educafric.models.auth.parent_student_relation import ParentStudentRelation
from educafric.models.auth.user import User
from educafric.utils.wa_link import normalize_e164


@dataclass
class Recipient:
    """Addressable person for a notification."""
    id: int
    display_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    phone_e164: Optional[str] = None
    whatsapp_opt_in: bool = False
    preferred_language: str = "fr"
    first_name: str = ""

    @classmethod
    def from_user(cls, user: User, default_language: str = "fr") -> "Recipient":
        language = user.preferred_language if user.preferred_language in ("fr", "en") else default_language
        return cls(
            id=user.id,
            display_name=user.full_name,
            email=user.email or None,
            phone=user.phone or None,
            phone_e164=normalize_e164(user.whatsapp_e164),
            whatsapp_opt_in=bool(user.wa_opt_in),
            preferred_language=language,
            first_name=user.first_name or "",
        )

    @property
    def can_receive_whatsapp(self) -> bool:
        return bool(self.phone_e164 and self.whatsapp_opt_in)


class RecipientService:
    """Resolve users and the parents of a student into recipients."""

    def __init__(self, db: AsyncSession, default_language: str = "fr"):
        self.db = db
        self.default_language = default_language

    async def get_user(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(and_(User.id == user_id, User.is_deleted == False))
        )
        return result.scalar_one_or_none()

    async def get_recipient(self, user_id: int) -> Optional[Recipient]:
        user = await self.get_user(user_id)
        if user is None or not user.is_active:
            return None
        return Recipient.from_user(user, self.default_language)

    async def get_parents_for_student(self, student_id: int) -> List[Recipient]:
        result = await self.db.execute(
            select(User)
            .join(ParentStudentRelation, ParentStudentRelation.parent_id == User.id)
            .where(
                and_(
                    ParentStudentRelation.student_id == student_id,
                    ParentStudentRelation.is_active == True,
                    User.is_active == True,
                    User.is_deleted == False,
                )
            )
            .order_by(ParentStudentRelation.is_primary.desc(), User.id)
        )
        return [Recipient.from_user(user, self.default_language) for user in result.scalars().all()]

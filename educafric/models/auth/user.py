from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from educafric.db.base import BaseModel
from educafric.models.shared.enums import Language

class User(BaseModel):
    __tablename__ = "users"

    school_id = Column(Integer, ForeignKey('schools.id'), nullable=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(255), index=True, nullable=True)
    phone = Column(String(30), nullable=True)
    whatsapp_e164 = Column(String(20), nullable=True)  # +237656200472
    wa_opt_in = Column(Boolean, default=False)
    preferred_language = Column(String(2), default=Language.FR.value)
    role = Column(String(20), nullable=False)  # Director, Teacher, Student, Parent, Commercial
    is_active = Column(Boolean, default=True)

    # Relationships
    school = relationship("School", back_populates="users")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

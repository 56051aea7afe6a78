from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from educafric.db.base import BaseModel

class School(BaseModel):
    __tablename__ = 'schools'

    name = Column(String(255), nullable=False)
    phone = Column(String(30))
    email = Column(String(255))
    city = Column(String(100))
    is_active = Column(Boolean, default=True)

    # Relationships
    users = relationship("User", back_populates="school")

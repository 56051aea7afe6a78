from sqlalchemy import Column, Integer, String, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from educafric.db.base import BaseModel

class FeeStructure(BaseModel):
    __tablename__ = 'fee_structures'

    school_id = Column(Integer, ForeignKey('schools.id'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    amount = Column(Integer, nullable=False)  # XAF, no minor unit
    fee_type = Column(String(30), default="tuition")  # tuition, registration, exam, transport, canteen
    frequency = Column(String(20), default="once")  # once, monthly, term, yearly
    is_active = Column(Boolean, default=True)

    # Relationships
    assigned_fees = relationship("AssignedFee", back_populates="fee_structure")

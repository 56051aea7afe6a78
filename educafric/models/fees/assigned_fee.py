from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from educafric.db.base import BaseModel
from educafric.models.shared.enums import FeeStatus

class AssignedFee(BaseModel):
    __tablename__ = 'assigned_fees'

    school_id = Column(Integer, ForeignKey('schools.id'), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    fee_structure_id = Column(Integer, ForeignKey('fee_structures.id'), nullable=True)
    final_amount = Column(Integer, nullable=False)
    paid_amount = Column(Integer, default=0)
    balance_amount = Column(Integer, nullable=False)
    status = Column(String(20), default=FeeStatus.PENDING.value, index=True)  # pending, partial, paid, overdue, cancelled
    due_date = Column(DateTime(timezone=True), index=True)
    last_payment_date = Column(DateTime(timezone=True))
    paid_date = Column(DateTime(timezone=True))
    notes = Column(Text)

    # Idempotency guards for the scheduled scans
    reminder_sent = Column(Boolean, default=False, nullable=False)
    reminder_sent_at = Column(DateTime(timezone=True))
    overdue_notice_sent = Column(Boolean, default=False, nullable=False)
    overdue_notice_sent_at = Column(DateTime(timezone=True))

    # Relationships
    fee_structure = relationship("FeeStructure", back_populates="assigned_fees")
    student = relationship("User", foreign_keys=[student_id])

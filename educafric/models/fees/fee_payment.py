from sqlalchemy import Column, Integer, String, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from educafric.db.base import BaseModel
from educafric.models.shared.enums import PaymentMethod

class FeePayment(BaseModel):
    __tablename__ = 'fee_payments'

    school_id = Column(Integer, ForeignKey('schools.id'), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    payment_method = Column(String(30), default=PaymentMethod.CASH.value)
    transaction_ref = Column(String(100))
    receipt_number = Column(String(60), unique=True, index=True)
    status = Column(String(20), default="completed")
    notes = Column(Text)
    recorded_by = Column(Integer)  # User ID
    extra_data = Column(JSON)

    # Relationships
    items = relationship("FeePaymentItem", back_populates="payment", cascade="all, delete-orphan")


class FeePaymentItem(BaseModel):
    __tablename__ = 'fee_payment_items'

    payment_id = Column(Integer, ForeignKey('fee_payments.id'), nullable=False, index=True)
    assigned_fee_id = Column(Integer, ForeignKey('assigned_fees.id'), nullable=False, index=True)
    amount = Column(Integer, nullable=False)

    # Relationships
    payment = relationship("FeePayment", back_populates="items")

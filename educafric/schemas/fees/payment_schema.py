from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional

from educafric.models.shared.enums import PaymentMethod


class PaymentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: int = Field(..., alias="studentId")
    amount: int
    payment_method: str = Field(PaymentMethod.CASH.value, alias="paymentMethod")
    transaction_ref: Optional[str] = Field(None, alias="transactionRef")
    assigned_fee_ids: Optional[List[int]] = Field(None, alias="assignedFeeIds")
    notes: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError('Amount must be positive')
        return v

    @field_validator('payment_method')
    @classmethod
    def validate_payment_method(cls, v):
        allowed = [m.value for m in PaymentMethod]
        if v not in allowed:
            raise ValueError(f'Payment method must be one of: {", ".join(allowed)}')
        return v


class AppliedFee(BaseModel):
    assignedFeeId: int
    amountApplied: int
    newBalance: int
    newStatus: str


class PaymentReceipt(BaseModel):
    receiptNumber: str
    amount: int
    formattedAmount: str
    paymentMethod: str
    studentName: str
    date: str


class PaymentResponse(BaseModel):
    success: bool
    payment: dict
    receipt: PaymentReceipt
    appliedTo: List[AppliedFee]
    excessAmount: int
    notificationQueued: bool = False

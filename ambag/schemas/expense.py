"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import date, datetime
from ambag.schemas.user import UserSummary

ExpenseCategory = Literal[
    "Food", "Transport", "Entertainment", "Shopping", "Bills", "Rent", "Travel", "Other"
]


class ParticipantShareIn(BaseModel):
    """A participant's share when creating or editing an expense."""
    user_id: int
    amount_owed: float = Field(ge=0)


class ExpenseCreate(BaseModel):
    """Schema for expense creation."""
    group_id: int
    paid_by: int
    amount: float = Field(gt=0)
    description: str = Field(min_length=1)
    category: Optional[ExpenseCategory] = None
    expense_date: Optional[date] = None  # Defaults to today
    participants: List[ParticipantShareIn]


class ExpenseUpdate(BaseModel):
    """Schema for expense update."""
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[ExpenseCategory] = None
    expense_date: Optional[date] = None
    amount: Optional[float] = Field(default=None, gt=0)
    paid_by: Optional[int] = None
    participants: Optional[List[ParticipantShareIn]] = None


class ParticipantPaymentUpdate(BaseModel):
    """Schema for recording how much of a share has been paid."""
    amount_paid: float = Field(ge=0)


class ExpenseParticipantResponse(BaseModel):
    """Schema for expense participant response."""
    id: int
    expense_id: int
    user_id: int
    amount_owed: float
    amount_paid: float
    user: Optional[UserSummary] = None
    
    class Config:
        from_attributes = True


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    group_id: int
    paid_by: int
    amount: float
    description: str
    category: Optional[str] = None
    expense_date: date
    payer: Optional[UserSummary] = None
    participants: List[ExpenseParticipantResponse] = []
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True

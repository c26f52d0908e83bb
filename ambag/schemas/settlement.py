"""
Pydantic schemas for Settlement entity.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from ambag.schemas.expense import ExpenseResponse
from ambag.schemas.user import UserSummary


class SettlementCreate(BaseModel):
    """Schema for settlement creation."""
    group_id: int
    from_user: int
    to_user: int
    amount: float
    notes: Optional[str] = None


class SettlementUpdate(BaseModel):
    """Schema for settlement update."""
    from_user: Optional[int] = None
    to_user: Optional[int] = None
    amount: Optional[float] = None
    notes: Optional[str] = None


class SettlementResponse(BaseModel):
    """Schema for settlement response."""
    id: int
    group_id: int
    from_user: int
    to_user: int
    amount: float
    notes: Optional[str] = None
    settled_at: datetime
    payer: Optional[UserSummary] = None
    receiver: Optional[UserSummary] = None
    
    class Config:
        from_attributes = True


class SettlementListResponse(BaseModel):
    """Page of settlements with the total count."""
    settlements: List[SettlementResponse]
    count: int


class TransactionCounts(BaseModel):
    """Counts for the combined transactions feed."""
    expenses_count: int
    settlements_count: int
    total_count: int
    recent_count: int


class GroupTransactionsResponse(BaseModel):
    """Expenses and settlements of a group in one response."""
    expenses: List[ExpenseResponse]
    settlements: List[SettlementResponse]
    counts: TransactionCounts

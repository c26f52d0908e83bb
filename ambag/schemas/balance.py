"""
Pydantic schemas for computed balances.
"""
from pydantic import BaseModel
from typing import List, Optional
from ambag.schemas.expense import ExpenseResponse
from ambag.schemas.group import GroupMemberResponse
from ambag.schemas.settlement import SettlementResponse


class DebtEdgeResponse(BaseModel):
    """A pairwise debt."""
    user_id: int
    amount: float
    
    class Config:
        from_attributes = True


class MemberBalanceResponse(BaseModel):
    """Schema for one member's balance."""
    user_id: int
    total_owed: float
    total_paid: float
    net_balance: float  # Positive = is owed, negative = owes
    owes_to: List[DebtEdgeResponse] = []
    owed_by: List[DebtEdgeResponse] = []
    
    class Config:
        from_attributes = True


class GroupBalanceItem(BaseModel):
    """A user's position in one group."""
    group_id: int
    group_name: str
    net_balance: float
    total_owed: float
    total_paid: float


class BalanceSummaryResponse(BaseModel):
    """A user's balances across all their groups."""
    user_id: int
    total_balance: float
    group_balances: List[GroupBalanceItem]
    group_count: int


class GroupDataSummaryResponse(BaseModel):
    """Everything a group page needs in one call."""
    expenses: List[ExpenseResponse]
    settlements: List[SettlementResponse]
    members: List[GroupMemberResponse]
    balance: Optional[MemberBalanceResponse] = None

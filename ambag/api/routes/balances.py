"""
Balance routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from ambag.db.session import get_db
from ambag.schemas.balance import MemberBalanceResponse
from ambag.services.balance_service import get_group_balances, get_user_balance_in_group
from ambag.api.routes.groups import check_group_exists

router = APIRouter(prefix="/balances", tags=["balances"])


@router.get("/{group_id}", response_model=List[MemberBalanceResponse])
async def get_balances(group_id: int, db: Session = Depends(get_db)):
    """Get the balance of every member of a group."""
    check_group_exists(group_id, db)
    return list(get_group_balances(group_id, db).values())


@router.get("/{group_id}/users/{user_id}", response_model=MemberBalanceResponse)
async def get_user_balance(group_id: int, user_id: int, db: Session = Depends(get_db)):
    """Get one member's balance in a group."""
    check_group_exists(group_id, db)
    
    balance = get_user_balance_in_group(group_id, user_id, db)
    if balance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Balance not found"
        )
    return balance

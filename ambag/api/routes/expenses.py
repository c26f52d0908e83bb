"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from ambag.db.session import get_db
from ambag.models.expense import Expense, ExpenseParticipant
from ambag.schemas.expense import (
    ExpenseCreate, ExpenseUpdate, ExpenseResponse,
    ExpenseParticipantResponse, ParticipantPaymentUpdate
)
from ambag.services import expense_service
from ambag.api.routes.groups import check_group_exists

router = APIRouter(prefix="/expenses", tags=["expenses"])


def check_expense_exists(expense_id: int, db: Session) -> Expense:
    """Return the expense or raise 404."""
    expense = expense_service.get_expense(expense_id, db)
    if not expense:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Expense not found"
        )
    return expense


@router.get("/group/{group_id}", response_model=List[ExpenseResponse])
async def get_group_expenses(group_id: int, db: Session = Depends(get_db)):
    """Get all expenses of a group, newest first."""
    check_group_exists(group_id, db)
    return expense_service.list_group_expenses(group_id, db)


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(expense_data: ExpenseCreate, db: Session = Depends(get_db)):
    """Create a new expense with participant shares."""
    check_group_exists(expense_data.group_id, db)
    
    try:
        return expense_service.create_expense(expense_data, db)
    except ValueError as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(expense_id: int, db: Session = Depends(get_db)):
    """Get a single expense."""
    return check_expense_exists(expense_id, db)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(expense_id: int, expense_data: ExpenseUpdate, db: Session = Depends(get_db)):
    """Update an expense. Replacing participants resets paid amounts."""
    expense = check_expense_exists(expense_id, db)
    
    try:
        return expense_service.update_expense(expense, expense_data, db)
    except ValueError as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{expense_id}")
async def delete_expense(expense_id: int, db: Session = Depends(get_db)):
    """Delete an expense."""
    expense = check_expense_exists(expense_id, db)
    expense_service.delete_expense(expense, db)
    return {"message": "Expense deleted successfully"}


@router.patch("/participants/{participant_id}", response_model=ExpenseParticipantResponse)
async def update_participant_payment(
    participant_id: int,
    payment: ParticipantPaymentUpdate,
    db: Session = Depends(get_db)
):
    """Record how much of a participant's share has been paid."""
    participant = db.query(ExpenseParticipant).filter(ExpenseParticipant.id == participant_id).first()
    if not participant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Participant not found"
        )
    
    try:
        return expense_service.update_participant_payment(participant, payment.amount_paid, db)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

"""
Expense service for expense-related business logic.
"""
import logging
from datetime import date, datetime
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from ambag.models.expense import Expense, ExpenseParticipant
from ambag.schemas.expense import ExpenseCreate, ExpenseUpdate, ParticipantShareIn
from ambag.services.balance_engine import EPSILON, ExpenseRecord, ParticipantShare
from ambag.services.group_service import require_members

logger = logging.getLogger(__name__)


def validate_participant_total(participants: List[ParticipantShareIn], amount: float) -> None:
    """Raise ValueError unless the shares add up to the expense amount."""
    if not participants:
        raise ValueError("An expense needs at least one participant")
    
    user_ids = [p.user_id for p in participants]
    if len(set(user_ids)) != len(user_ids):
        raise ValueError("Each participant may appear only once")
    
    total_owed = sum(float(p.amount_owed) for p in participants)
    if abs(total_owed - amount) > EPSILON:
        raise ValueError(
            f"Total amount owed ({total_owed}) must equal expense amount ({amount})"
        )


def get_expense(expense_id: int, db: Session) -> Optional[Expense]:
    return db.query(Expense).options(
        joinedload(Expense.payer),
        joinedload(Expense.participants).joinedload(ExpenseParticipant.user)
    ).filter(Expense.id == expense_id).first()


def list_group_expenses(group_id: int, db: Session) -> List[Expense]:
    """All expenses of a group with participants, newest first."""
    return db.query(Expense).options(
        joinedload(Expense.payer),
        joinedload(Expense.participants).joinedload(ExpenseParticipant.user)
    ).filter(Expense.group_id == group_id).order_by(
        Expense.expense_date.desc(), Expense.created_at.desc(), Expense.id.desc()
    ).all()


def create_expense(data: ExpenseCreate, db: Session) -> Expense:
    """
    Create an expense with participant shares.
    
    The payer's own share is recorded as already paid; everyone else starts
    at zero.
    """
    validate_participant_total(data.participants, data.amount)
    require_members(data.group_id, [data.paid_by] + [p.user_id for p in data.participants], db)
    
    expense = Expense(
        group_id=data.group_id,
        paid_by=data.paid_by,
        amount=data.amount,
        description=data.description,
        category=data.category,
        expense_date=data.expense_date or date.today()
    )
    db.add(expense)
    db.flush()
    
    for share in data.participants:
        db.add(ExpenseParticipant(
            expense_id=expense.id,
            user_id=share.user_id,
            amount_owed=share.amount_owed,
            amount_paid=share.amount_owed if share.user_id == data.paid_by else 0
        ))
    
    db.commit()
    logger.info(f"Created expense {expense.id} in group {data.group_id} for {data.amount:.2f}")
    
    return get_expense(expense.id, db)


def update_expense(expense: Expense, data: ExpenseUpdate, db: Session) -> Expense:
    """
    Apply a partial update to an expense.
    
    Replacing the participants resets every paid amount to zero.
    """
    amount = data.amount if data.amount is not None else float(expense.amount)
    
    if data.participants is not None:
        validate_participant_total(data.participants, amount)
    elif data.amount is not None:
        current_total = sum(float(p.amount_owed) for p in expense.participants)
        if abs(current_total - amount) > EPSILON:
            raise ValueError(
                f"Total amount owed ({current_total}) must equal expense amount ({amount})"
            )
    
    user_ids = []
    if data.paid_by is not None:
        user_ids.append(data.paid_by)
    if data.participants is not None:
        user_ids.extend(p.user_id for p in data.participants)
    if user_ids:
        require_members(expense.group_id, user_ids, db)
    
    if data.description is not None:
        expense.description = data.description
    if "category" in data.model_fields_set:
        expense.category = data.category
    if data.expense_date is not None:
        expense.expense_date = data.expense_date
    if data.amount is not None:
        expense.amount = data.amount
    if data.paid_by is not None:
        expense.paid_by = data.paid_by
    expense.updated_at = datetime.utcnow()
    
    if data.participants is not None:
        expense.participants.clear()
        db.flush()
        for share in data.participants:
            expense.participants.append(ExpenseParticipant(
                user_id=share.user_id,
                amount_owed=share.amount_owed,
                amount_paid=0
            ))
    
    db.commit()
    
    return get_expense(expense.id, db)


def update_participant_payment(participant: ExpenseParticipant, amount_paid: float, db: Session) -> ExpenseParticipant:
    """Record how much of a share has been paid directly."""
    if amount_paid < 0:
        raise ValueError("Amount paid cannot be negative")
    
    participant.amount_paid = amount_paid
    db.commit()
    db.refresh(participant)
    
    return participant


def delete_expense(expense: Expense, db: Session) -> None:
    db.delete(expense)
    db.commit()


def to_expense_record(expense: Expense) -> ExpenseRecord:
    """Snapshot an expense row for the balance engine."""
    return ExpenseRecord(
        id=expense.id,
        paid_by=expense.paid_by,
        amount=float(expense.amount),
        participants=tuple(
            ParticipantShare(
                user_id=p.user_id,
                amount_owed=float(p.amount_owed),
                amount_paid=float(p.amount_paid or 0)
            )
            for p in expense.participants
        )
    )

"""
Server-side balance computation.

Runs the expense aggregation inside the database with GROUP BY queries and
hands the aggregated rows to the balance engine's Ledger, which applies the
settlements and shapes the result exactly as the in-process computation does.

Aggregated rows are ordered by the (expense id, participant id) of the share
where the member or pair first appears, the same order the in-process walk
meets them, so debt edges come out in the same sequence on both paths.
"""
from typing import Dict
from sqlalchemy import and_, func
from sqlalchemy.orm import Session, aliased
from ambag.models.expense import Expense, ExpenseParticipant
from ambag.models.group import GroupMember
from ambag.models.settlement import Settlement
from ambag.services.balance_engine import EPSILON, Ledger, MemberBalance, MemberId


def compute_group_balances_sql(group_id: int, db: Session) -> Dict[MemberId, MemberBalance]:
    """Compute all member balances of a group using SQL aggregates."""
    ledger = Ledger()

    member_ids = db.query(GroupMember.user_id).filter(
        GroupMember.group_id == group_id
    ).order_by(GroupMember.joined_at, GroupMember.id).all()
    for (user_id,) in member_ids:
        ledger.seed(user_id)

    # Per-member totals across every share in the group
    totals_rows = db.query(
        ExpenseParticipant.user_id.label("user_id"),
        func.coalesce(func.sum(ExpenseParticipant.amount_owed), 0).label("owed"),
        func.coalesce(func.sum(ExpenseParticipant.amount_paid), 0).label("paid"),
        func.min(Expense.id).label("first_expense_id")
    ).join(Expense, Expense.id == ExpenseParticipant.expense_id).filter(
        Expense.group_id == group_id
    ).group_by(ExpenseParticipant.user_id).subquery()

    first_share = aliased(ExpenseParticipant)
    totals = db.query(
        totals_rows.c.user_id, totals_rows.c.owed, totals_rows.c.paid
    ).join(first_share, and_(
        first_share.expense_id == totals_rows.c.first_expense_id,
        first_share.user_id == totals_rows.c.user_id
    )).order_by(totals_rows.c.first_expense_id, first_share.id).all()
    for user_id, owed, paid in totals:
        ledger.add_totals(user_id, float(owed), float(paid))

    # Unpaid remainder per (participant, payer) pair; the threshold applies per share
    remaining = ExpenseParticipant.amount_owed - ExpenseParticipant.amount_paid
    debt_rows = db.query(
        ExpenseParticipant.user_id.label("debtor"),
        Expense.paid_by.label("creditor"),
        func.sum(remaining).label("amount"),
        func.min(Expense.id).label("first_expense_id")
    ).join(Expense, Expense.id == ExpenseParticipant.expense_id).filter(
        Expense.group_id == group_id,
        ExpenseParticipant.user_id != Expense.paid_by,
        remaining > EPSILON
    ).group_by(ExpenseParticipant.user_id, Expense.paid_by).subquery()

    first_debt = aliased(ExpenseParticipant)
    debts = db.query(
        debt_rows.c.debtor, debt_rows.c.creditor, debt_rows.c.amount
    ).join(first_debt, and_(
        first_debt.expense_id == debt_rows.c.first_expense_id,
        first_debt.user_id == debt_rows.c.debtor
    )).order_by(debt_rows.c.first_expense_id, first_debt.id).all()
    for debtor, creditor, amount in debts:
        ledger.add_debt(debtor, creditor, float(amount))

    settlements = db.query(Settlement).filter(
        Settlement.group_id == group_id
    ).order_by(Settlement.settled_at, Settlement.id).all()
    for settlement in settlements:
        ledger.apply_settlement(settlement)

    return ledger.freeze()

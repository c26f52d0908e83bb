"""
Group service for group and membership business logic.
"""
import secrets
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload
from ambag.core.config import settings
from ambag.models.group import Group, GroupMember, GroupRole
from ambag.models.expense import Expense, ExpenseParticipant
from ambag.models.settlement import Settlement


def generate_invite_code() -> str:
    """Short shareable code for joining a group."""
    return secrets.token_hex(4).upper()


def create_group(name: str, created_by: int, db: Session, description: Optional[str] = None) -> Group:
    """Create a group and add its creator as admin."""
    group = Group(
        name=name,
        description=description,
        created_by=created_by,
        invite_code=generate_invite_code()
    )
    db.add(group)
    db.flush()
    
    db.add(GroupMember(group_id=group.id, user_id=created_by, role=GroupRole.ADMIN))
    db.commit()
    db.refresh(group)
    
    return group


def get_member(group_id: int, user_id: int, db: Session) -> Optional[GroupMember]:
    return db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    ).first()


def get_member_ids(group_id: int, db: Session) -> List[int]:
    """User IDs of a group's members in join order."""
    rows = db.query(GroupMember.user_id).filter(
        GroupMember.group_id == group_id
    ).order_by(GroupMember.joined_at, GroupMember.id).all()
    return [user_id for (user_id,) in rows]


def list_members(group_id: int, db: Session) -> List[GroupMember]:
    return db.query(GroupMember).options(
        joinedload(GroupMember.user)
    ).filter(
        GroupMember.group_id == group_id
    ).order_by(GroupMember.joined_at, GroupMember.id).all()


def count_members(group_id: int, db: Session) -> int:
    return db.query(GroupMember).filter(GroupMember.group_id == group_id).count()


def require_members(group_id: int, user_ids: List[int], db: Session) -> None:
    """Raise ValueError unless every user is a member of the group."""
    member_ids = set(get_member_ids(group_id, db))
    missing = [uid for uid in user_ids if uid not in member_ids]
    if missing:
        raise ValueError(f"Users {missing} are not members of this group")


def add_member(group_id: int, user_id: int, db: Session, role: GroupRole = GroupRole.MEMBER) -> GroupMember:
    """Add an existing user to a group."""
    if get_member(group_id, user_id, db):
        raise ValueError("User is already a member")
    
    member = GroupMember(group_id=group_id, user_id=user_id, role=role)
    db.add(member)
    db.commit()
    db.refresh(member)
    
    return member


def remove_member(member: GroupMember, db: Session) -> None:
    """Remove a membership. Past expenses keep referencing the user."""
    db.delete(member)
    db.commit()


def list_user_groups(user_id: int, db: Session) -> List[Group]:
    return db.query(Group).join(GroupMember).filter(
        GroupMember.user_id == user_id
    ).order_by(Group.created_at.desc(), Group.id.desc()).all()


def get_group_transactions(group_id: int, db: Session, limit: Optional[int] = None) -> dict:
    """Expenses and settlements of a group with counts, newest first."""
    expense_query = db.query(Expense).options(
        joinedload(Expense.payer),
        joinedload(Expense.participants).joinedload(ExpenseParticipant.user)
    ).filter(Expense.group_id == group_id).order_by(
        Expense.expense_date.desc(), Expense.created_at.desc(), Expense.id.desc()
    )
    settlement_query = db.query(Settlement).options(
        joinedload(Settlement.payer),
        joinedload(Settlement.receiver)
    ).filter(Settlement.group_id == group_id).order_by(
        Settlement.settled_at.desc(), Settlement.id.desc()
    )
    
    expenses_count = db.query(Expense).filter(Expense.group_id == group_id).count()
    settlements_count = db.query(Settlement).filter(Settlement.group_id == group_id).count()
    
    since = datetime.utcnow() - timedelta(days=settings.RECENT_TRANSACTION_DAYS)
    recent_count = db.query(Expense).filter(
        Expense.group_id == group_id,
        Expense.created_at >= since
    ).count() + db.query(Settlement).filter(
        Settlement.group_id == group_id,
        Settlement.settled_at >= since
    ).count()
    
    if limit:
        expense_query = expense_query.limit(limit)
        settlement_query = settlement_query.limit(limit)
    
    return {
        "expenses": expense_query.all(),
        "settlements": settlement_query.all(),
        "counts": {
            "expenses_count": expenses_count,
            "settlements_count": settlements_count,
            "total_count": expenses_count + settlements_count,
            "recent_count": recent_count,
        },
    }

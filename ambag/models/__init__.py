"""Models package - Import all models for SQLAlchemy registration."""
from ambag.models.user import User
from ambag.models.group import Group, GroupMember, GroupRole
from ambag.models.expense import Expense, ExpenseParticipant
from ambag.models.settlement import Settlement

__all__ = [
    "User",
    "Group",
    "GroupMember",
    "GroupRole",
    "Expense",
    "ExpenseParticipant",
    "Settlement",
]

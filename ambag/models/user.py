"""
User model for group members.
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from ambag.db.base import BaseModel


class User(BaseModel):
    """User model. Credentials live with the external auth provider."""
    __tablename__ = "users"
    
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    
    # Relationships
    memberships = relationship("GroupMember", back_populates="user", cascade="all, delete-orphan")
    expenses_paid = relationship("Expense", foreign_keys="Expense.paid_by", back_populates="payer")
    expense_participants = relationship("ExpenseParticipant", back_populates="user")

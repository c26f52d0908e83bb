"""
Settlement model for direct payments between members.
"""
from datetime import datetime
from sqlalchemy import Column, Text, Numeric, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from ambag.db.base import BaseModel


class Settlement(BaseModel):
    """A cash transfer from one member to another, outside any expense."""
    __tablename__ = "settlements"
    
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    from_user = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_user = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    notes = Column(Text, nullable=True)
    settled_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    
    # Relationships
    group = relationship("Group", back_populates="settlements")
    payer = relationship("User", foreign_keys=[from_user])
    receiver = relationship("User", foreign_keys=[to_user])

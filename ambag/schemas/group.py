"""
Pydantic schemas for Group entity.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from ambag.models.group import GroupRole
from ambag.schemas.user import UserSummary


class GroupBase(BaseModel):
    """Base group schema."""
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class GroupCreate(GroupBase):
    """Schema for group creation."""
    created_by: int


class GroupUpdate(BaseModel):
    """Schema for group update."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class GroupResponse(GroupBase):
    """Schema for group response."""
    id: int
    created_by: int
    invite_code: Optional[str] = None
    member_count: int = 0
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class GroupMemberAdd(BaseModel):
    """Schema for adding a member to a group."""
    user_id: int
    role: GroupRole = GroupRole.MEMBER


class GroupMemberResponse(BaseModel):
    """Schema for group member response."""
    id: int
    role: GroupRole
    joined_at: datetime
    user: UserSummary
    
    class Config:
        from_attributes = True

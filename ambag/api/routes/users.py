"""
User management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from ambag.db.session import get_db
from ambag.models.user import User
from ambag.schemas.balance import BalanceSummaryResponse
from ambag.schemas.group import GroupResponse
from ambag.schemas.user import UserCreate, UserResponse
from ambag.services.balance_service import get_user_balance_summary
from ambag.services.group_service import count_members, list_user_groups

router = APIRouter(prefix="/users", tags=["users"])


def check_user_exists(user_id: int, db: Session) -> User:
    """Return the user or raise 404."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a user profile."""
    existing_email = db.query(User).filter(User.email == user_data.email).first()
    if existing_email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already exists"
        )
    
    new_user = User(
        email=user_data.email,
        full_name=user_data.full_name,
        avatar_url=user_data.avatar_url
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    
    return new_user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: Session = Depends(get_db)):
    """Get user by ID."""
    return check_user_exists(user_id, db)


@router.get("/{user_id}/groups", response_model=List[GroupResponse])
async def get_user_groups(user_id: int, db: Session = Depends(get_db)):
    """List all groups the user belongs to."""
    check_user_exists(user_id, db)
    
    groups = list_user_groups(user_id, db)
    return [
        GroupResponse.model_validate(group).model_copy(update={"member_count": count_members(group.id, db)})
        for group in groups
    ]


@router.get("/{user_id}/balance-summary", response_model=BalanceSummaryResponse)
async def get_balance_summary(user_id: int, db: Session = Depends(get_db)):
    """Get the user's balance across all their groups."""
    check_user_exists(user_id, db)
    return get_user_balance_summary(user_id, db)

"""
Group management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from ambag.db.session import get_db
from ambag.models.group import Group
from ambag.schemas.balance import GroupDataSummaryResponse
from ambag.schemas.group import (
    GroupCreate, GroupUpdate, GroupResponse,
    GroupMemberAdd, GroupMemberResponse
)
from ambag.schemas.settlement import GroupTransactionsResponse
from ambag.services import group_service
from ambag.services.balance_service import get_group_data_summary
from ambag.api.routes.users import check_user_exists

router = APIRouter(prefix="/groups", tags=["groups"])


def check_group_exists(group_id: int, db: Session) -> Group:
    """Return the group or raise 404."""
    group = db.query(Group).filter(Group.id == group_id).first()
    if not group:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found"
        )
    return group


def _group_response(group: Group, db: Session) -> GroupResponse:
    response = GroupResponse.model_validate(group)
    return response.model_copy(update={"member_count": group_service.count_members(group.id, db)})


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(group_data: GroupCreate, db: Session = Depends(get_db)):
    """Create a new group with its creator as admin."""
    check_user_exists(group_data.created_by, db)
    
    group = group_service.create_group(
        name=group_data.name,
        created_by=group_data.created_by,
        description=group_data.description,
        db=db
    )
    return _group_response(group, db)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(group_id: int, db: Session = Depends(get_db)):
    """Get group details."""
    group = check_group_exists(group_id, db)
    return _group_response(group, db)


@router.patch("/{group_id}", response_model=GroupResponse)
async def update_group(group_id: int, group_data: GroupUpdate, db: Session = Depends(get_db)):
    """Update group name or description."""
    group = check_group_exists(group_id, db)
    
    if group_data.name is not None:
        group.name = group_data.name
    if "description" in group_data.model_fields_set:
        group.description = group_data.description
    db.commit()
    db.refresh(group)
    
    return _group_response(group, db)


@router.delete("/{group_id}")
async def delete_group(group_id: int, db: Session = Depends(get_db)):
    """Delete a group with all its expenses and settlements."""
    group = check_group_exists(group_id, db)
    db.delete(group)
    db.commit()
    return {"message": "Group deleted successfully"}


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def get_members(group_id: int, db: Session = Depends(get_db)):
    """List members of a group."""
    check_group_exists(group_id, db)
    return group_service.list_members(group_id, db)


@router.post("/{group_id}/members", response_model=GroupMemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(group_id: int, member_data: GroupMemberAdd, db: Session = Depends(get_db)):
    """Add a user to the group."""
    check_group_exists(group_id, db)
    check_user_exists(member_data.user_id, db)
    
    try:
        return group_service.add_member(group_id, member_data.user_id, db, role=member_data.role)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{group_id}/members/{user_id}")
async def remove_member(group_id: int, user_id: int, db: Session = Depends(get_db)):
    """Remove a user from the group."""
    check_group_exists(group_id, db)
    
    member = group_service.get_member(group_id, user_id, db)
    if not member:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found"
        )
    group_service.remove_member(member, db)
    
    return {"message": "Member removed successfully"}


@router.get("/{group_id}/transactions", response_model=GroupTransactionsResponse)
async def get_transactions(
    group_id: int,
    limit: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db)
):
    """Get expenses and settlements of a group with counts."""
    check_group_exists(group_id, db)
    return group_service.get_group_transactions(group_id, db, limit=limit)


@router.get("/{group_id}/summary", response_model=GroupDataSummaryResponse)
async def get_summary(group_id: int, user_id: int, db: Session = Depends(get_db)):
    """Get everything a group page needs, including the user's balance."""
    group = check_group_exists(group_id, db)
    check_user_exists(user_id, db)
    return get_group_data_summary(group, user_id, db)

"""
Settlement management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from ambag.db.session import get_db
from ambag.models.settlement import Settlement
from ambag.schemas.settlement import (
    SettlementCreate, SettlementUpdate, SettlementResponse, SettlementListResponse
)
from ambag.services import settlement_service
from ambag.api.routes.groups import check_group_exists

router = APIRouter(prefix="/settlements", tags=["settlements"])


def check_settlement_exists(settlement_id: int, db: Session) -> Settlement:
    """Return the settlement or raise 404."""
    settlement = settlement_service.get_settlement(settlement_id, db)
    if not settlement:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Settlement not found"
        )
    return settlement


@router.get("/group/{group_id}", response_model=SettlementListResponse)
async def get_group_settlements(
    group_id: int,
    limit: Optional[int] = Query(default=None, ge=1),
    offset: Optional[int] = Query(default=None, ge=0),
    db: Session = Depends(get_db)
):
    """Get a group's settlements, newest first."""
    check_group_exists(group_id, db)
    
    settlements, count = settlement_service.list_group_settlements(group_id, db, limit=limit, offset=offset)
    return {"settlements": settlements, "count": count}


@router.post("", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def create_settlement(settlement_data: SettlementCreate, db: Session = Depends(get_db)):
    """Record a payment from one member to another."""
    check_group_exists(settlement_data.group_id, db)
    
    try:
        return settlement_service.create_settlement(settlement_data, db)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/{settlement_id}", response_model=SettlementResponse)
async def get_settlement(settlement_id: int, db: Session = Depends(get_db)):
    """Get a single settlement."""
    return check_settlement_exists(settlement_id, db)


@router.patch("/{settlement_id}", response_model=SettlementResponse)
async def update_settlement(
    settlement_id: int,
    settlement_data: SettlementUpdate,
    db: Session = Depends(get_db)
):
    """Update a settlement."""
    settlement = check_settlement_exists(settlement_id, db)
    
    try:
        return settlement_service.update_settlement(settlement, settlement_data, db)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{settlement_id}")
async def delete_settlement(settlement_id: int, db: Session = Depends(get_db)):
    """Delete a settlement."""
    settlement = check_settlement_exists(settlement_id, db)
    settlement_service.delete_settlement(settlement, db)
    return {"message": "Settlement deleted successfully"}

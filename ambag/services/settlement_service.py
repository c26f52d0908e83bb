"""
Settlement service for recording direct payments between members.
"""
import logging
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session, joinedload
from ambag.models.settlement import Settlement
from ambag.schemas.settlement import SettlementCreate, SettlementUpdate
from ambag.services.balance_engine import SettlementRecord
from ambag.services.group_service import require_members

logger = logging.getLogger(__name__)


def validate_settlement(from_user: int, to_user: int, amount: float) -> None:
    """Raise ValueError for a settlement that cannot be recorded."""
    if from_user == to_user:
        raise ValueError("From user and to user must be different")
    if amount is None or amount <= 0:
        raise ValueError("Amount must be greater than 0")


def get_settlement(settlement_id: int, db: Session) -> Optional[Settlement]:
    return db.query(Settlement).options(
        joinedload(Settlement.payer),
        joinedload(Settlement.receiver)
    ).filter(Settlement.id == settlement_id).first()


def list_group_settlements(
    group_id: int,
    db: Session,
    limit: Optional[int] = None,
    offset: Optional[int] = None
) -> Tuple[List[Settlement], int]:
    """A page of a group's settlements, newest first, and the total count."""
    query = db.query(Settlement).filter(Settlement.group_id == group_id)
    count = query.count()
    
    query = query.options(
        joinedload(Settlement.payer),
        joinedload(Settlement.receiver)
    ).order_by(Settlement.settled_at.desc(), Settlement.id.desc())
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)
    
    return query.all(), count


def create_settlement(data: SettlementCreate, db: Session) -> Settlement:
    validate_settlement(data.from_user, data.to_user, data.amount)
    require_members(data.group_id, [data.from_user, data.to_user], db)
    
    settlement = Settlement(
        group_id=data.group_id,
        from_user=data.from_user,
        to_user=data.to_user,
        amount=data.amount,
        notes=data.notes or None
    )
    db.add(settlement)
    db.commit()
    logger.info(
        f"Recorded settlement {settlement.id}: {data.from_user} -> {data.to_user} {data.amount:.2f}"
    )
    
    return get_settlement(settlement.id, db)


def update_settlement(settlement: Settlement, data: SettlementUpdate, db: Session) -> Settlement:
    """Apply a partial update; validation runs on the merged values."""
    from_user = data.from_user if data.from_user is not None else settlement.from_user
    to_user = data.to_user if data.to_user is not None else settlement.to_user
    amount = data.amount if data.amount is not None else float(settlement.amount)
    
    validate_settlement(from_user, to_user, amount)
    require_members(settlement.group_id, [from_user, to_user], db)
    
    settlement.from_user = from_user
    settlement.to_user = to_user
    settlement.amount = amount
    if "notes" in data.model_fields_set:
        settlement.notes = data.notes
    db.commit()
    
    return get_settlement(settlement.id, db)


def delete_settlement(settlement: Settlement, db: Session) -> None:
    db.delete(settlement)
    db.commit()


def to_settlement_record(settlement: Settlement) -> SettlementRecord:
    """Snapshot a settlement row for the balance engine."""
    return SettlementRecord(
        id=settlement.id,
        from_user=settlement.from_user,
        to_user=settlement.to_user,
        amount=float(settlement.amount),
        notes=settlement.notes,
        settled_at=settlement.settled_at
    )

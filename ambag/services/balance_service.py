"""
Balance service: fetches a group's rows and obtains member balances.

The preferred source depends on BALANCE_STRATEGY. Both the database and the
remote source fall back to the in-process engine when they fail.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from ambag.core.config import settings
from ambag.models.expense import Expense
from ambag.models.group import Group
from ambag.models.settlement import Settlement
from ambag.services.balance_engine import (
    DebtEdge, ExpenseRecord, MemberBalance, MemberId, SettlementRecord,
    balances_agree, compute_balances
)
from ambag.services.expense_service import list_group_expenses, to_expense_record
from ambag.services.group_service import get_member_ids, list_members, list_user_groups
from ambag.services.ledger_query import compute_group_balances_sql
from ambag.services.settlement_service import list_group_settlements, to_settlement_record

logger = logging.getLogger(__name__)


def load_group_snapshot(
    group_id: int,
    db: Session
) -> Tuple[List[ExpenseRecord], List[int], List[SettlementRecord]]:
    """Read expenses, members and settlements of a group as engine records."""
    expenses = db.query(Expense).options(
        joinedload(Expense.participants)
    ).filter(Expense.group_id == group_id).order_by(Expense.id).all()

    # Same order as the server-side computation
    settlements = db.query(Settlement).filter(
        Settlement.group_id == group_id
    ).order_by(Settlement.settled_at, Settlement.id).all()

    return (
        [to_expense_record(e) for e in expenses],
        get_member_ids(group_id, db),
        [to_settlement_record(s) for s in settlements],
    )


def compute_local_balances(group_id: int, db: Session) -> Dict[MemberId, MemberBalance]:
    expenses, members, settlements = load_group_snapshot(group_id, db)
    return compute_balances(expenses, members, settlements)


def _pick(item: Dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in item:
        return item[camel]
    return item.get(snake, default)


def _parse_user_id(value: Any) -> int:
    """Member ids are integer keys; numeric strings are accepted."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    raise ValueError(f"Invalid member id in remote ledger payload: {value!r}")


def _parse_edges(raw: Any) -> Tuple[DebtEdge, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        DebtEdge(
            user_id=_parse_user_id(_pick(edge, "userId", "user_id")),
            amount=float(edge.get("amount") or 0)
        )
        for edge in raw
    )


def parse_member_balance(item: Dict[str, Any]) -> MemberBalance:
    """Build a MemberBalance from a camelCase or snake_case payload."""
    return MemberBalance(
        user_id=_parse_user_id(_pick(item, "userId", "user_id")),
        total_owed=float(_pick(item, "totalOwed", "total_owed") or 0),
        total_paid=float(_pick(item, "totalPaid", "total_paid") or 0),
        net_balance=float(_pick(item, "netBalance", "net_balance") or 0),
        owes_to=_parse_edges(_pick(item, "owesTo", "owes_to")),
        owed_by=_parse_edges(_pick(item, "owedBy", "owed_by")),
    )


def fetch_remote_balances(
    group_id: int,
    client: Optional[httpx.Client] = None
) -> Dict[MemberId, MemberBalance]:
    """
    Fetch balances from the remote ledger service.

    Raises httpx.HTTPError on transport or status failures and ValueError
    when the payload is not a list of balances.
    """
    if not settings.REMOTE_LEDGER_URL:
        raise ValueError("REMOTE_LEDGER_URL is not configured")

    url = f"{settings.REMOTE_LEDGER_URL.rstrip('/')}/groups/{group_id}/balances"
    logger.info(f"Fetching balances for group {group_id} from remote ledger")

    if client is None:
        response = httpx.get(url, timeout=settings.REMOTE_LEDGER_TIMEOUT)
    else:
        response = client.get(url, timeout=settings.REMOTE_LEDGER_TIMEOUT)
    response.raise_for_status()
    data = response.json()

    if settings.DEBUG:
        logger.debug(f"Remote ledger response: {data}")

    if not isinstance(data, list):
        raise ValueError(f"Unexpected remote ledger payload: {type(data).__name__}")

    try:
        balances = [parse_member_balance(item) for item in data]
    except (AttributeError, KeyError, TypeError) as e:
        raise ValueError(f"Malformed remote ledger payload: {e}")
    return {balance.user_id: balance for balance in balances}


def get_group_balances(
    group_id: int,
    db: Session,
    strategy: Optional[str] = None,
    client: Optional[httpx.Client] = None
) -> Dict[MemberId, MemberBalance]:
    """Balances of every member of a group from the configured source."""
    strategy = strategy or settings.BALANCE_STRATEGY
    balances = None

    if strategy == "database":
        try:
            balances = compute_group_balances_sql(group_id, db)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Server-side balance computation failed for group {group_id}: {e}", exc_info=True)
    elif strategy == "remote":
        try:
            balances = fetch_remote_balances(group_id, client)
            # Members the remote ledger has no row for still get a zero balance
            for uid in get_member_ids(group_id, db):
                balances.setdefault(uid, MemberBalance(user_id=uid))
        except httpx.HTTPError as e:
            logger.warning(f"Remote ledger unavailable for group {group_id}: {e}")
        except ValueError as e:
            logger.warning(f"Remote ledger returned unusable data for group {group_id}: {e}")

    if balances is None:
        if strategy != "local":
            logger.info(f"Falling back to local balance computation for group {group_id}")
        return compute_local_balances(group_id, db)

    if settings.VERIFY_BALANCES:
        local = compute_local_balances(group_id, db)
        if not balances_agree(balances, local):
            logger.warning(f"{strategy} balances for group {group_id} disagree with the local computation")

    return balances


def get_user_balance_in_group(
    group_id: int,
    user_id: int,
    db: Session,
    strategy: Optional[str] = None,
    client: Optional[httpx.Client] = None
) -> Optional[MemberBalance]:
    return get_group_balances(group_id, db, strategy, client).get(user_id)


def get_user_balance_summary(user_id: int, db: Session) -> dict:
    """A user's position in each of their groups and the overall total."""
    group_balances = []
    for group in list_user_groups(user_id, db):
        balance = get_user_balance_in_group(group.id, user_id, db) or MemberBalance(user_id=user_id)
        group_balances.append({
            "group_id": group.id,
            "group_name": group.name,
            "net_balance": balance.net_balance,
            "total_owed": balance.total_owed,
            "total_paid": balance.total_paid,
        })

    return {
        "user_id": user_id,
        "total_balance": sum(g["net_balance"] for g in group_balances),
        "group_balances": group_balances,
        "group_count": len(group_balances),
    }


def get_group_data_summary(group: Group, user_id: int, db: Session) -> dict:
    """Expenses, settlements, members and the user's balance for a group page."""
    settlements, _ = list_group_settlements(group.id, db)
    return {
        "expenses": list_group_expenses(group.id, db),
        "settlements": settlements,
        "members": list_members(group.id, db),
        "balance": get_user_balance_in_group(group.id, user_id, db),
    }

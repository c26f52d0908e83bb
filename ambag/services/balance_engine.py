"""
Balance engine: per-member ledger computed from expenses and settlements.

This module performs no I/O. Callers fetch a point-in-time snapshot of a
group's expenses, members and settlements and pass it in; a fresh result is
built on every call and the inputs are never mutated.

The computation runs in three steps:

1. Every participant share adds to the participant's totals. Whatever part of
   the share is still unpaid becomes a debt from the participant to the payer,
   merged per counterparty.
2. Settlements are applied in the order given. A settlement first pays down
   what the sender owes the receiver; any leftover pays down what the receiver
   owes the sender. Anything still left is absorbed.
3. Edges at or below EPSILON are dropped and the net balance is rolled up.

The server-side computation in ``ledger_query`` feeds the same ``Ledger`` from
SQL aggregates, so both paths share steps 2 and 3 verbatim.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Two-decimal currency: anything at or below one cent counts as zero
EPSILON = 0.01

MemberId = Hashable


@dataclass(frozen=True)
class ParticipantShare:
    """One member's obligation within one expense."""
    user_id: MemberId
    amount_owed: float
    amount_paid: float = 0.0


@dataclass(frozen=True)
class ExpenseRecord:
    """A single spend event with one payer."""
    id: Any
    paid_by: MemberId
    amount: float
    participants: Tuple[ParticipantShare, ...] = ()


@dataclass(frozen=True)
class SettlementRecord:
    """A direct transfer between two members."""
    id: Any
    from_user: MemberId
    to_user: MemberId
    amount: float
    notes: Optional[str] = None
    settled_at: Optional[datetime] = None


@dataclass(frozen=True)
class DebtEdge:
    """Amount owed to or by a counterparty."""
    user_id: MemberId
    amount: float


@dataclass(frozen=True)
class MemberBalance:
    """Computed ledger position of one member. Positive net means they are owed."""
    user_id: MemberId
    total_owed: float = 0.0
    total_paid: float = 0.0
    net_balance: float = 0.0
    owes_to: Tuple[DebtEdge, ...] = ()
    owed_by: Tuple[DebtEdge, ...] = ()

    def amount_owed_to(self, user_id: MemberId) -> float:
        """What this member still owes ``user_id``."""
        return sum(edge.amount for edge in self.owes_to if edge.user_id == user_id)

    def amount_owed_by(self, user_id: MemberId) -> float:
        """What ``user_id`` still owes this member."""
        return sum(edge.amount for edge in self.owed_by if edge.user_id == user_id)


def member_id(member: Any) -> MemberId:
    """Accept a bare identifier or any record exposing ``user_id`` or ``id``."""
    if hasattr(member, "user_id"):
        return member.user_id
    return getattr(member, "id", member)


class Ledger:
    """
    Accumulator for a single computation.

    Pairwise debts are kept once, keyed by (debtor, creditor); both the
    ``owes_to`` and ``owed_by`` views are projected from that map when the
    ledger is frozen.
    """

    def __init__(self):
        self._totals: Dict[MemberId, List[float]] = {}
        self._debts: Dict[Tuple[MemberId, MemberId], float] = {}

    def seed(self, user_id: MemberId) -> None:
        """Make sure ``user_id`` appears in the result."""
        self._totals.setdefault(user_id, [0.0, 0.0])

    def add_totals(self, user_id: MemberId, owed: float, paid: float) -> None:
        self.seed(user_id)
        totals = self._totals[user_id]
        totals[0] += owed
        totals[1] += paid

    def add_debt(self, debtor: MemberId, creditor: MemberId, amount: float) -> None:
        self.seed(debtor)
        self.seed(creditor)
        key = (debtor, creditor)
        self._debts[key] = self._debts.get(key, 0.0) + amount

    def debt(self, debtor: MemberId, creditor: MemberId) -> float:
        return self._debts.get((debtor, creditor), 0.0)

    def record_share(self, payer: MemberId, share: Any) -> None:
        """Step 1 for one participant share."""
        amount_owed = float(share.amount_owed or 0)
        amount_paid = float(share.amount_paid or 0)
        self.add_totals(share.user_id, amount_owed, amount_paid)

        remaining = amount_owed - amount_paid
        if remaining > EPSILON and share.user_id != payer:
            self.add_debt(share.user_id, payer, remaining)

    def _reduce(self, debtor: MemberId, creditor: MemberId, amount: float) -> float:
        """Pay down debtor -> creditor by up to ``amount``; return what is left over."""
        key = (debtor, creditor)
        current = self._debts.get(key, 0.0)
        if current <= 0:
            return amount
        reduction = min(amount, current)
        self._debts[key] = current - reduction
        return amount - reduction

    def apply_settlement(self, settlement: Any) -> None:
        """Step 2 for one settlement."""
        sender, receiver = settlement.from_user, settlement.to_user
        leftover = self._reduce(sender, receiver, float(settlement.amount))
        if leftover > 0:
            leftover = self._reduce(receiver, sender, leftover)
        if leftover > EPSILON:
            logger.debug(
                f"Settlement {getattr(settlement, 'id', None)} exceeds recorded debt "
                f"between {sender} and {receiver}; absorbing {leftover:.2f}"
            )

    def freeze(self) -> Dict[MemberId, MemberBalance]:
        """Step 3: prune near-zero edges and roll up net balances."""
        owes_to: Dict[MemberId, List[DebtEdge]] = {uid: [] for uid in self._totals}
        owed_by: Dict[MemberId, List[DebtEdge]] = {uid: [] for uid in self._totals}
        for (debtor, creditor), amount in self._debts.items():
            if amount <= EPSILON:
                continue
            owes_to[debtor].append(DebtEdge(user_id=creditor, amount=amount))
            owed_by[creditor].append(DebtEdge(user_id=debtor, amount=amount))

        balances = {}
        for uid, (total_owed, total_paid) in self._totals.items():
            net = sum(e.amount for e in owed_by[uid]) - sum(e.amount for e in owes_to[uid])
            balances[uid] = MemberBalance(
                user_id=uid,
                total_owed=total_owed,
                total_paid=total_paid,
                net_balance=net,
                owes_to=tuple(owes_to[uid]),
                owed_by=tuple(owed_by[uid]),
            )
        return balances


def compute_balances(
    expenses: Iterable[Any],
    members: Iterable[Any],
    settlements: Optional[Iterable[Any]] = None
) -> Dict[MemberId, MemberBalance]:
    """
    Compute every member's balance for one group.

    Expenses need ``paid_by`` and ``participants`` (each with ``user_id``,
    ``amount_owed`` and ``amount_paid``); settlements need ``from_user``,
    ``to_user`` and ``amount``. ORM rows and the records above both qualify.

    Every member in ``members`` gets an entry, as does any participant or
    payer encountered along the way.
    """
    ledger = Ledger()
    for member in members:
        ledger.seed(member_id(member))

    for expense in expenses:
        for share in expense.participants or ():
            ledger.record_share(expense.paid_by, share)

    for settlement in settlements or ():
        ledger.apply_settlement(settlement)

    return ledger.freeze()


def get_member_balance(
    expenses: Iterable[Any],
    members: Iterable[Any],
    user_id: MemberId,
    settlements: Optional[Iterable[Any]] = None
) -> Optional[MemberBalance]:
    """Balance of a single member, or None if they have no entry."""
    return compute_balances(expenses, members, settlements).get(user_id)


def _edges_agree(left: Tuple[DebtEdge, ...], right: Tuple[DebtEdge, ...], epsilon: float) -> bool:
    left_map = {e.user_id: e.amount for e in left}
    right_map = {e.user_id: e.amount for e in right}
    if left_map.keys() != right_map.keys():
        return False
    return all(abs(left_map[uid] - right_map[uid]) <= epsilon for uid in left_map)


def balances_agree(
    left: Mapping[MemberId, MemberBalance],
    right: Mapping[MemberId, MemberBalance],
    epsilon: float = EPSILON
) -> bool:
    """True when two balance mappings match member-for-member within ``epsilon``."""
    if set(left) != set(right):
        return False
    for uid, a in left.items():
        b = right[uid]
        if abs(a.total_owed - b.total_owed) > epsilon:
            return False
        if abs(a.total_paid - b.total_paid) > epsilon:
            return False
        if abs(a.net_balance - b.net_balance) > epsilon:
            return False
        if not _edges_agree(a.owes_to, b.owes_to, epsilon):
            return False
        if not _edges_agree(a.owed_by, b.owed_by, epsilon):
            return False
    return True

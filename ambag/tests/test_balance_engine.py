"""
Tests for the pure balance engine.
"""
from types import SimpleNamespace
import pytest
from ambag.services.balance_engine import (
    EPSILON, DebtEdge, ExpenseRecord, MemberBalance, ParticipantShare, SettlementRecord,
    balances_agree, compute_balances, get_member_balance
)


def expense(expense_id, payer, *shares):
    """Build an expense from (user_id, owed, paid) tuples."""
    participants = tuple(ParticipantShare(uid, owed, paid) for uid, owed, paid in shares)
    return ExpenseRecord(
        id=expense_id,
        paid_by=payer,
        amount=sum(s.amount_owed for s in participants),
        participants=participants
    )


def settlement(settlement_id, from_user, to_user, amount):
    return SettlementRecord(id=settlement_id, from_user=from_user, to_user=to_user, amount=amount)


DINNER = expense(1, "A", ("A", 30.0, 30.0), ("B", 30.0, 0.0), ("C", 30.0, 0.0))


def all_edges(balances):
    for balance in balances.values():
        yield from balance.owes_to
        yield from balance.owed_by


def test_single_expense_split_three_ways():
    """One payer, two debtors."""
    balances = compute_balances([DINNER], ["A", "B", "C"])

    assert balances["B"].owes_to == (DebtEdge("A", 30.0),)
    assert balances["C"].owes_to == (DebtEdge("A", 30.0),)
    assert balances["A"].owed_by == (DebtEdge("B", 30.0), DebtEdge("C", 30.0))
    assert balances["A"].owes_to == ()
    assert balances["A"].net_balance == 60.0
    assert balances["B"].net_balance == -30.0
    assert balances["C"].net_balance == -30.0
    assert balances["A"].total_owed == 30.0
    assert balances["A"].total_paid == 30.0
    assert balances["B"].total_paid == 0.0


def test_full_settlement_clears_edge():
    """B pays A back in full; C is untouched."""
    balances = compute_balances([DINNER], ["A", "B", "C"], [settlement(1, "B", "A", 30.0)])

    assert balances["B"].owes_to == ()
    assert balances["A"].owed_by == (DebtEdge("C", 30.0),)
    assert balances["A"].net_balance == 30.0
    assert balances["B"].net_balance == 0.0
    assert balances["C"].owes_to == (DebtEdge("A", 30.0),)
    assert balances["C"].net_balance == -30.0


def test_settlement_without_forward_debt_reduces_reverse_debt():
    """A pays B while B owes A: B's debt shrinks, no edge appears the other way."""
    lunch = expense(1, "A", ("A", 50.0, 50.0), ("B", 50.0, 0.0))
    balances = compute_balances([lunch], ["A", "B"], [settlement(1, "A", "B", 20.0)])

    assert balances["B"].owes_to == (DebtEdge("A", 30.0),)
    assert balances["A"].owed_by == (DebtEdge("B", 30.0),)
    assert balances["A"].owes_to == ()
    assert balances["B"].owed_by == ()


def test_members_without_activity_are_seeded():
    """Empty input still yields an all-zero balance per member."""
    balances = compute_balances([], ["A", "B"])

    assert set(balances) == {"A", "B"}
    for uid in ("A", "B"):
        assert balances[uid] == MemberBalance(user_id=uid)


def test_debts_between_same_pair_are_merged():
    """Two expenses with A owing B become one edge."""
    expenses = [
        expense(1, "B", ("A", 10.0, 0.0), ("B", 10.0, 10.0)),
        expense(2, "B", ("A", 15.0, 0.0), ("B", 5.0, 5.0)),
    ]
    balances = compute_balances(expenses, ["A", "B"])

    assert balances["A"].owes_to == (DebtEdge("B", 25.0),)
    assert balances["B"].owed_by == (DebtEdge("A", 25.0),)


def test_debt_towards_payer_matches_unpaid_shares():
    """Recorded debt equals the amount minus the payer's own share."""
    groceries = expense(1, "P", ("P", 40.0, 40.0), ("Q", 35.0, 0.0), ("R", 25.0, 0.0))
    balances = compute_balances([groceries], ["P", "Q", "R"])

    owed_to_payer = sum(
        edge.amount
        for uid, balance in balances.items()
        for edge in balance.owes_to
        if edge.user_id == "P"
    )
    assert owed_to_payer == pytest.approx(groceries.amount - 40.0)


def test_partial_payment_reduces_debt():
    """amount_paid on a share lowers what is owed to the payer."""
    taxi = expense(1, "A", ("A", 20.0, 20.0), ("B", 20.0, 12.5))
    balances = compute_balances([taxi], ["A", "B"])

    assert balances["B"].amount_owed_to("A") == pytest.approx(7.5)
    assert balances["B"].total_paid == 12.5


def test_overpaid_share_creates_no_debt():
    taxi = expense(1, "A", ("A", 20.0, 20.0), ("B", 20.0, 25.0))
    balances = compute_balances([taxi], ["A", "B"])

    assert balances["B"].owes_to == ()
    assert balances["B"].total_paid == 25.0


def test_near_zero_amounts_are_pruned():
    """Remainders at or below one cent never surface as edges."""
    expenses = [
        expense(1, "A", ("A", 10.0, 10.0), ("B", 10.0, 9.995)),
        expense(2, "C", ("C", 10.0, 10.0), ("A", 10.0, 0.0)),
    ]
    balances = compute_balances(expenses, ["A", "B", "C"], [settlement(1, "A", "C", 9.995)])

    assert balances["B"].owes_to == ()
    assert balances["A"].owes_to == ()
    assert balances["C"].owed_by == ()
    assert all(edge.amount > EPSILON for edge in all_edges(balances))


def test_partial_settlement_touches_only_its_edge():
    """Paying down A -> B by 20 leaves every other edge as it was."""
    expenses = [
        expense(1, "B", ("B", 10.0, 10.0), ("A", 50.0, 0.0), ("C", 20.0, 0.0)),
        expense(2, "C", ("C", 10.0, 10.0), ("A", 10.0, 0.0)),
    ]
    before = compute_balances(expenses, ["A", "B", "C"])
    after = compute_balances(expenses, ["A", "B", "C"], [settlement(1, "A", "B", 20.0)])

    assert after["A"].amount_owed_to("B") == before["A"].amount_owed_to("B") - 20.0
    assert after["A"].amount_owed_to("C") == before["A"].amount_owed_to("C")
    assert after["C"].amount_owed_to("B") == before["C"].amount_owed_to("B")
    assert after["B"].amount_owed_by("A") == pytest.approx(30.0)


def test_large_settlement_nets_both_directions():
    """A settlement covering both directions leaves the pair clear."""
    expenses = [
        expense(1, "B", ("B", 30.0, 30.0), ("A", 30.0, 0.0)),
        expense(2, "A", ("A", 10.0, 10.0), ("B", 10.0, 0.0)),
    ]
    balances = compute_balances(expenses, ["A", "B"], [settlement(1, "A", "B", 40.0)])

    assert balances["A"].owes_to == ()
    assert balances["B"].owes_to == ()
    assert balances["A"].net_balance == 0.0
    assert balances["B"].net_balance == 0.0


def test_settlement_excess_is_absorbed():
    """Paying more than is owed leaves no credit behind."""
    balances = compute_balances([DINNER], ["A", "B", "C"], [settlement(1, "B", "A", 100.0)])

    assert balances["B"].owes_to == ()
    assert balances["B"].owed_by == ()
    assert balances["A"].owes_to == ()
    assert balances["B"].net_balance == 0.0
    assert balances["A"].net_balance == 30.0


def test_settlement_between_unrelated_members_has_no_effect():
    balances = compute_balances([DINNER], ["A", "B", "C"], [settlement(1, "B", "C", 10.0)])

    assert balances == compute_balances([DINNER], ["A", "B", "C"])


def test_unknown_participant_is_seeded():
    """A participant missing from the member list still gets an entry."""
    balances = compute_balances([DINNER], ["A", "B"])

    assert "C" in balances
    assert balances["C"].owes_to == (DebtEdge("A", 30.0),)
    assert balances["A"].owed_by == (DebtEdge("B", 30.0), DebtEdge("C", 30.0))


def test_payer_outside_member_list_keeps_mirror_edge():
    """A former member who paid is seeded so both sides of the debt exist."""
    dinner = expense(1, "Z", ("A", 15.0, 0.0), ("B", 15.0, 0.0))
    balances = compute_balances([dinner], ["A", "B"])

    assert balances["Z"].owed_by == (DebtEdge("A", 15.0), DebtEdge("B", 15.0))
    assert balances["Z"].net_balance == 30.0
    assert balances["Z"].total_owed == 0.0


def test_members_may_be_records():
    members = [SimpleNamespace(user_id="A"), SimpleNamespace(user_id="B")]
    balances = compute_balances([], members)

    assert set(balances) == {"A", "B"}


def test_members_may_be_user_rows():
    """Rows exposing only ``id`` are keyed by that id."""
    members = [SimpleNamespace(id="A", name="Ana"), SimpleNamespace(id="B", name="Ben")]
    balances = compute_balances([DINNER], members)

    assert set(balances) == {"A", "B", "C"}
    assert balances["B"].owes_to == (DebtEdge("A", 30.0),)


def test_duck_typed_rows_are_not_mutated():
    """Plain objects work as input and come back unchanged."""
    share_a = SimpleNamespace(user_id="A", amount_owed=12.0, amount_paid=12.0)
    share_b = SimpleNamespace(user_id="B", amount_owed=12.0, amount_paid=0.0)
    row = SimpleNamespace(paid_by="A", participants=[share_a, share_b])
    payment = SimpleNamespace(id=7, from_user="B", to_user="A", amount=5.0)

    balances = compute_balances([row], ["A", "B"], [payment])

    assert balances["B"].amount_owed_to("A") == pytest.approx(7.0)
    assert share_b.amount_paid == 0.0
    assert payment.amount == 5.0
    assert len(row.participants) == 2


def test_settlements_default_to_empty():
    assert compute_balances([DINNER], ["A", "B", "C"]) == compute_balances([DINNER], ["A", "B", "C"], [])


def test_repeated_calls_give_equal_results():
    settlements = [settlement(1, "B", "A", 12.5), settlement(2, "A", "C", 3.0)]
    first = compute_balances([DINNER], ["A", "B", "C"], settlements)
    second = compute_balances([DINNER], ["A", "B", "C"], settlements)

    assert first == second
    assert first is not second


def test_net_balances_sum_to_zero():
    expenses = [
        DINNER,
        expense(2, "B", ("A", 12.34, 0.0), ("B", 12.33, 12.33), ("C", 12.33, 0.0)),
        expense(3, "C", ("A", 7.0, 2.0), ("C", 7.0, 7.0)),
    ]
    balances = compute_balances(expenses, ["A", "B", "C"], [settlement(1, "C", "A", 10.0)])

    assert sum(b.net_balance for b in balances.values()) == pytest.approx(0.0)


def test_get_member_balance():
    balance = get_member_balance([DINNER], ["A", "B", "C"], "B", [settlement(1, "B", "A", 10.0)])

    assert balance.user_id == "B"
    assert balance.amount_owed_to("A") == pytest.approx(20.0)


def test_get_member_balance_unknown_member():
    assert get_member_balance([DINNER], ["A", "B", "C"], "Q") is None


def test_balances_agree_within_epsilon():
    left = compute_balances([DINNER], ["A", "B", "C"])
    nudged = expense(1, "A", ("A", 30.0, 30.0), ("B", 30.004, 0.0), ("C", 30.0, 0.0))
    right = compute_balances([nudged], ["A", "B", "C"])

    assert balances_agree(left, right)


def test_balances_disagree():
    left = compute_balances([DINNER], ["A", "B", "C"])
    right = compute_balances([DINNER], ["A", "B", "C"], [settlement(1, "B", "A", 5.0)])

    assert not balances_agree(left, right)
    assert not balances_agree(left, compute_balances([DINNER], ["A", "B", "C", "D"]))

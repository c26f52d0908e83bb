"""
Tests for the server-side balance computation.

The SQL path and the in-process engine must agree on the same rows.
"""
import pytest
from ambag.models.expense import ExpenseParticipant
from ambag.schemas.expense import ExpenseCreate, ExpenseUpdate, ParticipantShareIn
from ambag.schemas.settlement import SettlementCreate
from ambag.services.balance_engine import DebtEdge, balances_agree
from ambag.services.balance_service import compute_local_balances
from ambag.services.expense_service import create_expense, update_expense, update_participant_payment
from ambag.services.group_service import get_member, remove_member
from ambag.services.ledger_query import compute_group_balances_sql
from ambag.services.settlement_service import create_settlement


def add_expense(db, group_id, payer, shares, description="Expense"):
    return create_expense(ExpenseCreate(
        group_id=group_id,
        paid_by=payer,
        amount=round(sum(shares.values()), 2),
        description=description,
        participants=[ParticipantShareIn(user_id=uid, amount_owed=owed) for uid, owed in shares.items()]
    ), db)


def add_settlement(db, group_id, from_user, to_user, amount):
    return create_settlement(SettlementCreate(
        group_id=group_id, from_user=from_user, to_user=to_user, amount=amount
    ), db)


def test_empty_group(db_session, make_group):
    """Members are seeded with zero balances."""
    group, users = make_group("Ana", "Ben")

    balances = compute_group_balances_sql(group.id, db_session)

    assert set(balances) == set(users.values())
    for balance in balances.values():
        assert balance.net_balance == 0.0
        assert balance.owes_to == ()
        assert balance.owed_by == ()


def test_single_expense(db_session, make_group):
    group, u = make_group("Ana", "Ben", "Cy")
    add_expense(db_session, group.id, u["Ana"], {u["Ana"]: 30.0, u["Ben"]: 30.0, u["Cy"]: 30.0})

    balances = compute_group_balances_sql(group.id, db_session)

    assert balances[u["Ben"]].owes_to == (DebtEdge(u["Ana"], 30.0),)
    assert balances[u["Ana"]].net_balance == pytest.approx(60.0)
    assert balances[u["Ana"]].total_paid == pytest.approx(30.0)
    assert {e.user_id for e in balances[u["Ana"]].owed_by} == {u["Ben"], u["Cy"]}


def test_matches_local_engine(db_session, make_group):
    """Both computations agree on a mixed history."""
    group, u = make_group("Ana", "Ben", "Cy", "Dee")
    add_expense(db_session, group.id, u["Ana"], {u["Ana"]: 33.34, u["Ben"]: 33.33, u["Cy"]: 33.33})
    add_expense(db_session, group.id, u["Ben"], {u["Ana"]: 12.5, u["Ben"]: 12.5, u["Dee"]: 25.0})
    expense = add_expense(db_session, group.id, u["Cy"], {u["Cy"]: 8.0, u["Dee"]: 16.0})
    add_expense(db_session, group.id, u["Ben"], {u["Ana"]: 4.0, u["Ben"]: 4.0})

    share = next(p for p in expense.participants if p.user_id == u["Dee"])
    update_participant_payment(share, 6.0, db_session)

    add_settlement(db_session, group.id, u["Ben"], u["Ana"], 20.0)
    add_settlement(db_session, group.id, u["Ana"], u["Ben"], 50.0)
    add_settlement(db_session, group.id, u["Dee"], u["Cy"], 4.0)

    server = compute_group_balances_sql(group.id, db_session)
    local = compute_local_balances(group.id, db_session)

    assert balances_agree(server, local)
    assert server[u["Dee"]].amount_owed_to(u["Cy"]) == pytest.approx(6.0)
    # Ana's 50 clears her 16.5 to Ben and the leftover pays down Ben's 13.33
    assert server[u["Ana"]].amount_owed_to(u["Ben"]) == 0.0
    assert server[u["Ben"]].amount_owed_to(u["Ana"]) == 0.0


def test_removed_member_still_counted(db_session, make_group):
    """A payer who left the group keeps an entry in both computations."""
    group, u = make_group("Ana", "Ben", "Cy")
    add_expense(db_session, group.id, u["Cy"], {u["Ana"]: 10.0, u["Cy"]: 10.0})
    remove_member(get_member(group.id, u["Cy"], db_session), db_session)

    server = compute_group_balances_sql(group.id, db_session)
    local = compute_local_balances(group.id, db_session)

    assert u["Cy"] in server
    assert server[u["Cy"]].owed_by == (DebtEdge(u["Ana"], 10.0),)
    assert balances_agree(server, local)


def test_fully_paid_shares_create_no_debt(db_session, make_group):
    group, u = make_group("Ana", "Ben")
    expense = add_expense(db_session, group.id, u["Ana"], {u["Ana"]: 5.0, u["Ben"]: 5.0})
    share = db_session.query(ExpenseParticipant).filter(
        ExpenseParticipant.expense_id == expense.id,
        ExpenseParticipant.user_id == u["Ben"]
    ).one()
    update_participant_payment(share, 5.0, db_session)

    server = compute_group_balances_sql(group.id, db_session)

    assert server[u["Ben"]].owes_to == ()
    assert server[u["Ben"]].total_paid == pytest.approx(5.0)
    assert balances_agree(server, compute_local_balances(group.id, db_session))


def test_edge_order_follows_expense_order(db_session, make_group):
    """Replaced shares keep their place in the expense walk, not their row id."""
    group, u = make_group("Ana", "Ben", "Cy")
    first = add_expense(db_session, group.id, u["Ana"], {u["Ana"]: 10.0, u["Ben"]: 10.0}, "Taxi")
    add_expense(db_session, group.id, u["Ana"], {u["Ana"]: 10.0, u["Cy"]: 10.0}, "Lunch")
    update_expense(first, ExpenseUpdate(participants=[
        ParticipantShareIn(user_id=u["Ana"], amount_owed=8.0),
        ParticipantShareIn(user_id=u["Ben"], amount_owed=12.0),
    ]), db_session)

    server = compute_group_balances_sql(group.id, db_session)
    local = compute_local_balances(group.id, db_session)

    assert server[u["Ana"]].owed_by == (DebtEdge(u["Ben"], 12.0), DebtEdge(u["Cy"], 10.0))
    assert server[u["Ana"]].owed_by == local[u["Ana"]].owed_by
    assert server == local

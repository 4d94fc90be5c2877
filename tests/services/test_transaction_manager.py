import pytest
from sqlalchemy import select

from marketplace.models import User
from marketplace.services.base.service_result import ServiceResult
from marketplace.services.base.transaction_manager import TransactionAborted, TransactionManager


@pytest.fixture
def transactions(db_session):
    return TransactionManager(db_session)


def user_names(db_session):
    return sorted(db_session.execute(select(User.name)).scalars().all())


def test_effects_run_after_commit_in_order(transactions, db_session):
    seen = []

    with transactions.start() as ctx:
        db_session.add(User(name="Ana", email="ana@example.com"))
        ctx.after_commit("first", lambda: seen.append(("first", user_names(db_session))))
        ctx.after_commit("second", lambda: seen.append(("second", ctx.committed)))
        assert seen == []

    assert seen == [("first", ["Ana"]), ("second", True)]
    assert ctx.effects_run == ["first", "second"]


def test_failing_effect_is_isolated(transactions, db_session):
    seen = []

    def explode():
        raise RuntimeError("boom")

    with transactions.start() as ctx:
        db_session.add(User(name="Ana", email="ana@example.com"))
        ctx.after_commit("explode", explode)
        ctx.after_commit("record", lambda: seen.append("ran"))

    assert seen == ["ran"]
    assert [failure.name for failure in ctx.effect_failures] == ["explode"]
    assert user_names(db_session) == ["Ana"]


def test_failed_result_from_effect_is_recorded(transactions):
    with transactions.start() as ctx:
        ctx.after_commit("refuse", lambda: ServiceResult.conflict("taken"))

    assert [failure.name for failure in ctx.effect_failures] == ["refuse"]
    assert ctx.effects_run == []


def test_abort_rolls_back_and_drops_effects(transactions, db_session):
    seen = []

    with pytest.raises(TransactionAborted) as raised:
        with transactions.start() as ctx:
            db_session.add(User(name="Ana", email="ana@example.com"))
            db_session.flush()
            ctx.after_commit("never", lambda: seen.append("ran"))
            raise TransactionAborted(ServiceResult.conflict("taken"))

    assert raised.value.result.message == "taken"
    assert ctx.rolled_back
    assert seen == []
    assert user_names(db_session) == []


def test_nested_unit_joins_outer(transactions, db_session):
    seen = []

    with transactions.start() as outer:
        with transactions.start() as inner:
            assert inner is outer
            inner.after_commit("inner", lambda: seen.append("inner"))
        assert seen == []
        db_session.add(User(name="Ana", email="ana@example.com"))

    assert seen == ["inner"]
    assert outer.committed


def test_savepoint_rolls_back_only_its_step(transactions, db_session):
    with transactions.start() as ctx:
        db_session.add(User(name="Kept", email="kept@example.com"))
        db_session.flush()
        with pytest.raises(RuntimeError):
            with transactions.savepoint("step"):
                db_session.add(User(name="Dropped", email="dropped@example.com"))
                db_session.flush()
                raise RuntimeError("step failed")

    assert ctx.savepoints == ["step"]
    assert user_names(db_session) == ["Kept"]

import asyncio

import pytest

from pointmint.domain.exceptions import InvalidTransactionId, TransactionNotFound
from pointmint.domain.models import OperationType, StatusCode
from pointmint.domain.transaction import generate_transaction_id


@pytest.mark.asyncio()
async def test_scenario_add_reduce_rollback_top(memory_app):
    points = memory_app.points
    t1, t2 = generate_transaction_id(), generate_transaction_id()

    await points.add("u", t1, 50)
    assert await points.get("u") == 150
    (add_entry,) = await memory_app.audit.find(t1)
    assert (add_entry.old_value, add_entry.new_value) == (0, 150)

    await points.reduce("u", t2, 30)
    assert await points.get("u") == 120

    result = await points.rollback("u", t2)
    assert result.code is StatusCode.OK
    assert await points.get("u") == 150

    (original,) = await memory_app.audit.find(t2)
    assert original.is_rollback is True
    rollback_id = original.rollback_transaction
    assert points.check_transaction_id(rollback_id)

    (act,) = await memory_app.audit.find(rollback_id)
    assert act.operation is OperationType.ROLLBACK
    assert act.rollback_transaction == t2
    assert (act.old_value, act.new_value) == (120, 150)
    assert act.is_rollback is False

    top = await memory_app.ranking.get_top_n(1)
    assert [(entry.userid, entry.points) for entry in top] == [("u", 150)]


@pytest.mark.asyncio()
async def test_second_rollback_is_rejected(memory_app):
    points = memory_app.points
    await points.add("u", generate_transaction_id(), 10)
    tx = generate_transaction_id()
    await points.add("u", tx, 25)

    first = await points.rollback("u", tx)
    assert first.code is StatusCode.OK
    assert await points.get("u") == 110

    second = await points.rollback("u", tx)
    assert second.code is StatusCode.BAD_REQUEST
    assert second.message == "Transaction already rolled back"
    assert await points.get("u") == 110
    rollbacks = [e for e in memory_app.ledger_store.dump() if e.operation is OperationType.ROLLBACK]
    rejected = rollbacks[-1]
    assert rejected.status is StatusCode.BAD_REQUEST
    assert tx in rejected.comment


@pytest.mark.asyncio()
async def test_rollback_applies_delta_to_current_balance(memory_app):
    points = memory_app.points
    tx = generate_transaction_id()
    await points.set("u", generate_transaction_id(), 100)
    await points.add("u", tx, 40)
    await points.add("u", generate_transaction_id(), 5)

    assert (await points.rollback("u", tx)).code is StatusCode.OK
    assert await points.get("u") == 105


@pytest.mark.asyncio()
async def test_rollback_that_would_go_negative_is_rejected_and_retryable(memory_app):
    points = memory_app.points
    tx = generate_transaction_id()
    await points.add("u", tx, 50)
    await points.reduce("u", generate_transaction_id(), 140)
    assert await points.get("u") == 10

    result = await points.rollback("u", tx)
    assert result.code is StatusCode.INSUFFICIENT_BALANCE
    assert await points.get("u") == 10
    (original,) = await memory_app.audit.find(tx)
    assert original.is_rollback is False
    assert original.rollback_transaction is None

    await points.add("u", generate_transaction_id(), 200)
    assert (await points.rollback("u", tx)).code is StatusCode.OK
    assert await points.get("u") == 60


@pytest.mark.asyncio()
async def test_rollback_unknown_or_foreign_transaction(memory_app):
    points = memory_app.points
    tx = generate_transaction_id()
    await points.add("alice", tx, 10)

    unknown = await points.rollback("alice", generate_transaction_id())
    assert unknown.code is StatusCode.BAD_REQUEST
    foreign = await points.rollback("bob", tx)
    assert foreign.code is StatusCode.BAD_REQUEST
    malformed = await points.rollback("alice", "bogus")
    assert malformed.message == "Invalid transaction id"
    assert await points.get("alice") == 110


@pytest.mark.asyncio()
async def test_rejected_attempt_cannot_be_rolled_back(memory_app):
    points = memory_app.points
    await points.add("u", generate_transaction_id(), 1)
    tx = generate_transaction_id()
    assert (await points.reduce("u", tx, 10_000)).code is StatusCode.INSUFFICIENT_BALANCE
    assert (await points.rollback("u", tx)).code is StatusCode.BAD_REQUEST


@pytest.mark.asyncio()
async def test_concurrent_rollbacks_only_one_succeeds(memory_app):
    points = memory_app.points
    await points.add("u", generate_transaction_id(), 1)
    tx = generate_transaction_id()
    await points.add("u", tx, 30)

    results = await asyncio.gather(*(points.rollback("u", tx) for _ in range(5)))
    codes = sorted(int(result.code) for result in results)
    assert codes == [200, 400, 400, 400, 400]
    assert await points.get("u") == 101


@pytest.mark.asyncio()
async def test_transaction_status(memory_app):
    points = memory_app.points
    tx = generate_transaction_id()
    await points.add("u", tx, 30)

    status = await points.get_transaction_status(tx)
    assert status.is_rollback is False
    assert status.rollback_transaction is None
    assert status.rollback_time is None

    await points.rollback("u", tx)
    status = await points.get_transaction_status(tx)
    assert status.is_rollback is True
    (act,) = await memory_app.audit.find(status.rollback_transaction)
    assert status.rollback_time == act.timestamp


@pytest.mark.asyncio()
async def test_transaction_status_of_rejected_attempt(memory_app):
    points = memory_app.points
    await points.add("u", generate_transaction_id(), 10)
    tx = generate_transaction_id()
    result = await points.reduce("u", tx, 500)
    assert result.code is StatusCode.INSUFFICIENT_BALANCE

    status = await points.get_transaction_status(tx)
    assert status.is_rollback is False
    assert status.rollback_transaction is None
    assert status.rollback_time is None

@pytest.mark.asyncio()
async def test_transaction_status_errors(memory_app):
    with pytest.raises(InvalidTransactionId):
        await memory_app.points.get_transaction_status("nope")
    with pytest.raises(TransactionNotFound):
        await memory_app.points.get_transaction_status(generate_transaction_id())


@pytest.mark.asyncio()
async def test_rolling_back_account_creation_removes_seeded_points(memory_app):
    tx = generate_transaction_id()
    await memory_app.points.add("u", tx, 30)
    assert (await memory_app.points.rollback("u", tx)).code is StatusCode.OK
    assert await memory_app.points.get("u") == 0

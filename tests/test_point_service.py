import pytest

from pointmint.domain.models import OperationType, StatusCode
from pointmint.domain.transaction import generate_transaction_id


@pytest.mark.asyncio()
async def test_get_unknown_user_returns_none(memory_app):
    assert await memory_app.points.get("ghost") is None
    entries = memory_app.ledger_store.dump()
    assert len(entries) == 1
    assert entries[0].operation is OperationType.GET
    assert entries[0].status is StatusCode.OK


@pytest.mark.asyncio()
async def test_add_creates_account_with_initial_points(memory_app):
    tx = generate_transaction_id()
    result = await memory_app.points.add("u1", tx, 50, "shop")
    assert result.code is StatusCode.OK
    assert await memory_app.points.get("u1") == 150

    (entry,) = await memory_app.audit.find(tx)
    assert entry.old_value == 0
    assert entry.new_value == 150
    assert entry.plugin_name == "shop"
    assert entry.is_rollback is False


@pytest.mark.asyncio()
async def test_add_then_reduce(memory_app):
    points = memory_app.points
    t1, t2 = generate_transaction_id(), generate_transaction_id()
    assert (await points.add("u1", t1, 40)).code is StatusCode.OK
    assert (await points.reduce("u1", t2, 25)).code is StatusCode.OK
    assert await points.get("u1") == 115

    for tx in (t1, t2):
        entries = await memory_app.audit.find(tx)
        assert len(entries) == 1
        assert entries[0].is_rollback is False
    (reduce_entry,) = await memory_app.audit.find(t2)
    assert (reduce_entry.old_value, reduce_entry.new_value) == (140, 115)


@pytest.mark.asyncio()
@pytest.mark.parametrize("operation", ["add", "reduce", "set"])
async def test_negative_amount_is_rejected_without_write(memory_app, operation):
    tx = generate_transaction_id()
    result = await getattr(memory_app.points, operation)("u1", tx, -5)
    assert result.code is StatusCode.BAD_REQUEST
    assert await memory_app.account_store.get("u1") is None

    (entry,) = memory_app.ledger_store.dump()
    assert entry.status is StatusCode.BAD_REQUEST
    assert entry.old_value is None and entry.new_value is None


@pytest.mark.asyncio()
@pytest.mark.parametrize("operation", ["add", "reduce"])
async def test_zero_amount_is_a_logged_noop(memory_app, operation):
    await memory_app.points.set("u1", generate_transaction_id(), 30)
    before = len(memory_app.ledger_store.dump())

    result = await getattr(memory_app.points, operation)("u1", generate_transaction_id(), 0)
    assert result.code is StatusCode.NO_CONTENT
    assert await memory_app.account_store.get("u1") is not None
    assert (await memory_app.account_store.get("u1")).points == 30

    entries = memory_app.ledger_store.dump()
    assert len(entries) == before + 1
    assert entries[-1].status is StatusCode.NO_CONTENT


@pytest.mark.asyncio()
async def test_zero_add_does_not_create_account(memory_app):
    result = await memory_app.points.add("u1", generate_transaction_id(), 0)
    assert result.code is StatusCode.NO_CONTENT
    assert await memory_app.account_store.get("u1") is None


@pytest.mark.asyncio()
@pytest.mark.parametrize("operation", ["add", "reduce", "set"])
async def test_invalid_transaction_id_is_rejected(memory_app, operation):
    result = await getattr(memory_app.points, operation)("u1", "not-a-transaction", 5)
    assert result.code is StatusCode.BAD_REQUEST
    assert result.message == "Invalid transaction id"
    (entry,) = memory_app.ledger_store.dump()
    assert entry.transaction_id is None


@pytest.mark.asyncio()
async def test_non_integer_points_are_rejected(memory_app):
    result = await memory_app.points.add("u1", generate_transaction_id(), 1.5)
    assert result.code is StatusCode.BAD_REQUEST
    result = await memory_app.points.add("u1", generate_transaction_id(), True)
    assert result.code is StatusCode.BAD_REQUEST


@pytest.mark.asyncio()
async def test_set_overwrites_and_logs_previous_value(memory_app):
    t1, t2 = generate_transaction_id(), generate_transaction_id()
    assert (await memory_app.points.set("u1", t1, 70)).code is StatusCode.OK
    assert (await memory_app.points.set("u1", t2, 5)).code is StatusCode.OK
    assert await memory_app.points.get("u1") == 5

    (first,) = await memory_app.audit.find(t1)
    (second,) = await memory_app.audit.find(t2)
    assert (first.old_value, first.new_value) == (0, 70)
    assert (second.old_value, second.new_value) == (70, 5)


@pytest.mark.asyncio()
async def test_reduce_unknown_user(memory_app):
    result = await memory_app.points.reduce("ghost", generate_transaction_id(), 10)
    assert result.code is StatusCode.BAD_REQUEST
    assert result.message == "User not found"


@pytest.mark.asyncio()
async def test_reduce_insufficient_balance_leaves_balance(memory_app):
    await memory_app.points.add("u1", generate_transaction_id(), 10)
    tx = generate_transaction_id()
    result = await memory_app.points.reduce("u1", tx, 500)
    assert result.code is StatusCode.INSUFFICIENT_BALANCE
    assert await memory_app.points.get("u1") == 110
    (entry,) = await memory_app.audit.find(tx)
    assert entry.status is StatusCode.INSUFFICIENT_BALANCE
    assert entry.new_value is None


@pytest.mark.asyncio()
async def test_update_username(memory_app):
    await memory_app.points.add("u1", generate_transaction_id(), 1)
    result = await memory_app.points.update_username("u1", "alice")
    assert result.code is StatusCode.OK
    assert await memory_app.points.get_username("u1") == "alice"


@pytest.mark.asyncio()
async def test_update_username_unknown_user(memory_app):
    result = await memory_app.points.update_username("ghost", "casper")
    assert result.code is StatusCode.OK
    assert result.message == "No account to update"
    assert await memory_app.points.get_username("ghost") is None


@pytest.mark.asyncio()
async def test_sync_username_only_writes_changes(memory_app):
    points = memory_app.points
    assert await points.sync_username("u1", "alice") is None  # no account yet

    await points.add("u1", generate_transaction_id(), 1)
    first = await points.sync_username("u1", "alice")
    assert first is not None and first.code is StatusCode.OK
    assert await points.sync_username("u1", "alice") is None
    assert await points.sync_username("u1", None) is None

    renames = [
        entry
        for entry in memory_app.ledger_store.dump()
        if entry.operation is OperationType.UPDATE_USERNAME
    ]
    assert len(renames) == 1

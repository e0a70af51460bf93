import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, scoped_session

from farmsync.extensions import db
from farmsync.services.entity_store import EntityStore, ReadFailure
from farmsync.services.snapshot_service import get_snapshot
from farmsync.services.sync_service import sync_batch

from conftest import make_loan, make_product, make_transaction


def test_empty_snapshot(db_session):
    assert get_snapshot("u1") == {"transactions": [], "loans": [], "products": [], "settings": {}}


def test_snapshot_shapes_use_client_field_names(db_session):
    sync_batch("u1", {
        "transactions": [make_transaction()],
        "loans": [make_loan("L1", reminders=[{"at": "2026-03-08"}], reminderSent=True,
                            lastReminderDate="2026-03-08T09:00:00Z")],
        "products": [make_product("Maize")],
        "settings": {"currency": "KES"},
    })

    snapshot = get_snapshot("u1")

    txn = snapshot["transactions"][0]
    assert set(txn) == {"id", "date", "productId", "productName", "quantity",
                        "orderPrice", "sellingPrice", "profit"}
    assert txn["productName"] == "Maize"
    assert txn["date"] == "2026-03-01T10:00:00.000Z"
    assert txn["quantity"] == 3

    loan = snapshot["loans"][0]
    assert loan["id"] == "L1"
    assert loan["fullName"] == "Jane Wanjiru"
    assert loan["totalAmount"] == 1500.5
    assert loan["products"] == [{"name": "Maize", "quantity": 2, "price": 750.25}]
    assert loan["reminders"] == [{"at": "2026-03-08"}]
    assert loan["reminderSent"] is True
    assert loan["lastReminderDate"] == "2026-03-08T09:00:00.000Z"
    assert loan["datePaid"] is None

    product = snapshot["products"][0]
    assert set(product) == {"id", "name", "orderPrice", "sellingPrice", "reserveStock", "marketStock"}

    assert snapshot["settings"] == {"currency": "KES"}


def test_transactions_newest_date_first(db_session):
    sync_batch("u1", {"transactions": [
        make_transaction(date="2026-03-01T10:00:00Z", productName="old"),
        make_transaction(date="2026-03-05T10:00:00Z", productName="new"),
        make_transaction(date="2026-03-03T10:00:00Z", productName="mid"),
    ]})

    names = [t["productName"] for t in get_snapshot("u1")["transactions"]]
    assert names == ["new", "mid", "old"]


def test_loans_newest_created_first(db_session):
    sync_batch("u1", {"loans": [make_loan("L1")]})
    sync_batch("u1", {"loans": [make_loan("L2")]})
    # updating L1 does not move it; ordering follows creation
    sync_batch("u1", {"loans": [make_loan("L1", status="paid")]})

    assert [loan["id"] for loan in get_snapshot("u1")["loans"]] == ["L2", "L1"]


def test_snapshot_only_returns_own_rows(db_session):
    sync_batch("u1", {"products": [make_product("Maize")]})
    sync_batch("u2", {"products": [make_product("Beans")], "settings": {"theme": "dark"}})

    snapshot = get_snapshot("u1")
    assert [p["name"] for p in snapshot["products"]] == ["Maize"]
    assert snapshot["settings"] == {}


def test_store_error_becomes_read_failure(db_session):
    class BrokenStore(EntityStore):
        def loans_for(self, user_id):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

    with pytest.raises(ReadFailure, match="Failed to fetch data"):
        get_snapshot("u1", store=BrokenStore())


def test_default_store_read_closes_its_transaction(db_session):
    store = EntityStore()
    assert isinstance(store.session, scoped_session)

    with store.consistent_read():
        store.transactions_for("u1")

    assert store.session.get_transaction() is None


def test_batch_committed_between_reads_is_not_mixed_in(db_session, tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'snapshot.db'}")
    with engine.connect() as conn:
        # WAL lets the writer commit while the reader holds its snapshot
        conn.exec_driver_sql("PRAGMA journal_mode=WAL")
    db.metadata.create_all(engine)
    writer = Session(engine)
    reader = Session(engine)

    class InterleavedStore(EntityStore):
        def transactions_for(self, user_id):
            rows = super().transactions_for(user_id)
            sync_batch(user_id, {"transactions": [make_transaction()], "loans": [make_loan("L1")]},
                       store=EntityStore(writer))
            return rows

    try:
        during = get_snapshot("u1", store=InterleavedStore(reader))
        after = get_snapshot("u1", store=EntityStore(reader))
    finally:
        writer.close()
        reader.close()
        engine.dispose()

    assert during["transactions"] == []
    assert during["loans"] == []
    assert len(after["transactions"]) == 1
    assert len(after["loans"]) == 1

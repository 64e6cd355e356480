"""
Property-based checks of the ledger invariants over random call sequences.

Each generated example runs against its own in-memory database, so
examples never share state.
"""

from contextlib import contextmanager

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from watercan.core.exceptions import ExcessiveReturn, InsufficientBalance, InsufficientStock
from watercan.db.init_db import create_tables
from watercan.models.customer import Customer
from watercan.models.inventory import InventorySnapshot
from watercan.services import balance_service, customer_service, inventory_service, order_service

from conftest import CUSTOMER_ID, OWNER_ID

PRICE = 30

balance_calls = st.lists(
    st.one_of(
        st.tuples(st.just("credit"), st.integers(min_value=1, max_value=500)),
        st.tuples(st.just("debit"), st.integers(min_value=1, max_value=500)),
        st.tuples(st.just("order"), st.integers(min_value=1, max_value=10)),
        st.tuples(st.just("return"), st.integers(min_value=1, max_value=10)),
    ),
    max_size=20,
)

inventory_calls = st.lists(
    st.tuples(st.sampled_from(["add", "remove"]), st.integers(min_value=1, max_value=60)),
    max_size=20,
)


@contextmanager
def fresh_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_tables(engine)
    db = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@settings(max_examples=40, deadline=None)
@given(opening=st.integers(min_value=0, max_value=1000), calls=balance_calls)
def test_balance_follows_every_accepted_call(opening, calls):
    with fresh_session() as db:
        customer_service.create_customer(
            db, CUSTOMER_ID, name="Alice Moshi", address="12 Uhuru Street", phone="+255700000001",
            balance=opening, actor_id=OWNER_ID
        )
        balance, cans = opening, 0

        for kind, value in calls:
            if kind == "credit":
                balance_service.adjust_balance(db, CUSTOMER_ID, value, "credit", None, OWNER_ID)
                balance += value
            elif kind == "debit":
                if value > balance:
                    with pytest.raises(InsufficientBalance):
                        balance_service.adjust_balance(db, CUSTOMER_ID, value, "debit", None, OWNER_ID)
                else:
                    balance_service.adjust_balance(db, CUSTOMER_ID, value, "debit", None, OWNER_ID)
                    balance -= value
            elif kind == "order":
                if value * PRICE > balance:
                    with pytest.raises(InsufficientBalance):
                        order_service.place_order(db, CUSTOMER_ID, value, unit_price=PRICE)
                else:
                    placement = order_service.place_order(db, CUSTOMER_ID, value, unit_price=PRICE)
                    assert placement.total_amount == value * PRICE
                    balance -= value * PRICE
                    cans += value
            else:
                if value > cans:
                    with pytest.raises(ExcessiveReturn):
                        order_service.process_can_return(db, CUSTOMER_ID, value)
                else:
                    assert order_service.process_can_return(db, CUSTOMER_ID, value) == cans - value
                    cans -= value

            customer = db.get(Customer, CUSTOMER_ID)
            assert (customer.balance, customer.cans_in_possession) == (balance, cans)
            assert balance_service.verify_customer_ledger(db, CUSTOMER_ID).consistent


@settings(max_examples=40, deadline=None)
@given(calls=inventory_calls)
def test_inventory_never_goes_negative(calls):
    with fresh_session() as db:
        current = inventory_service.get_current_inventory(db, OWNER_ID)

        for operation, quantity in calls:
            if operation == "remove" and quantity > current.available_cans:
                with pytest.raises(InsufficientStock):
                    inventory_service.adjust_inventory(db, operation, quantity, None, OWNER_ID)
                assert inventory_service.get_current_inventory(db, OWNER_ID).id == current.id
                continue

            change = inventory_service.adjust_inventory(db, operation, quantity, None, OWNER_ID)
            current = change.snapshot
            assert current.total_cans >= 0
            assert current.available_cans >= 0

        snapshots = db.query(InventorySnapshot).order_by(InventorySnapshot.sequence).all()
        assert [s.sequence for s in snapshots] == list(range(1, len(snapshots) + 1))


@settings(max_examples=30, deadline=None)
@given(quantity=st.integers(min_value=1, max_value=100), price=st.integers(min_value=1, max_value=100))
def test_order_total_is_price_times_quantity(quantity, price):
    with fresh_session() as db:
        customer_service.create_customer(
            db, CUSTOMER_ID, name="Alice Moshi", address="12 Uhuru Street", phone="+255700000001",
            balance=price * quantity, actor_id=OWNER_ID
        )
        placement = order_service.place_order(db, CUSTOMER_ID, quantity, unit_price=price)
        assert placement.total_amount == price * quantity

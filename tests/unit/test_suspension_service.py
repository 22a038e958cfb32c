"""
Unit tests for held carts (ventas en espera).
"""

import pytest
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from posledger.exceptions import NotFoundError, PersistenceError, ValidationError
from posledger.models import Sale, SuspendedSale


CART = [
    {'product_id': 'p-canilla', 'product_name': 'Pan Canilla', 'quantity': 4, 'unit_price': '0.50'},
    {'product_id': 'p-polvorosas', 'product_name': 'Galletas Polvorosas', 'quantity': 1, 'unit_price': 2.5},
]


class TestHold:

    def test_hold_computes_total(self, suspensions):
        held = suspensions.hold_sale('Señora de rojo', CART)

        assert held.customer_name == 'Señora de rojo'
        assert held.total == Decimal('4.50')
        assert held.items[1]['unit_price'] == '2.50'
        assert held.to_dict()['date'] == '2026-10-19T12:00:00Z'

    def test_hold_does_not_touch_stock_or_ledger(self, session, suspensions, catalog, bread):
        suspensions.hold_sale('Señora de rojo', CART)

        assert catalog.require(bread.id).stock == 10
        assert session.query(Sale).count() == 0

    def test_explicit_total_is_kept(self, suspensions):
        held = suspensions.hold_sale('Mesa 2', CART, total='4.00')

        assert held.total == Decimal('4.00')

    def test_reference_label_required(self, suspensions):
        with pytest.raises(ValidationError):
            suspensions.hold_sale('  ', CART)

    def test_empty_cart_rejected(self, suspensions):
        with pytest.raises(ValidationError):
            suspensions.hold_sale('Mesa 2', [])

    def test_list_oldest_first(self, suspensions, clock):
        first = suspensions.hold_sale('Mesa 1', CART)
        clock.advance(minutes=5)
        second = suspensions.hold_sale('Mesa 2', CART)

        assert [h.id for h in suspensions.list_held()] == [first.id, second.id]


class TestResume:

    def test_resume_returns_items_and_removes_cart(self, session, suspensions):
        held = suspensions.hold_sale('Señora de rojo', CART)

        items = suspensions.resume_sale(held.id)

        assert [item['product_id'] for item in items] == ['p-canilla', 'p-polvorosas']
        assert items[0]['quantity'] == 4
        assert items[1]['unit_price'] == Decimal('2.50')
        assert session.query(SuspendedSale).count() == 0

    def test_second_resume_fails(self, suspensions):
        held = suspensions.hold_sale('Señora de rojo', CART)
        suspensions.resume_sale(held.id)

        with pytest.raises(NotFoundError):
            suspensions.resume_sale(held.id)

    def test_resume_after_discard_fails(self, suspensions):
        held = suspensions.hold_sale('Señora de rojo', CART)
        suspensions.discard_sale(held.id)

        with pytest.raises(NotFoundError):
            suspensions.resume_sale(held.id)
        with pytest.raises(NotFoundError):
            suspensions.discard_sale(held.id)


def test_resume_returns_exactly_what_was_held(suspensions):
    items = [
        {'product_id': 'p-canilla', 'product_name': 'Pan Canilla', 'quantity': 10, 'unit_price': Decimal('0.50')},
        {'product_id': 'p-queso', 'product_name': 'Pan de Queso', 'quantity': 5, 'unit_price': Decimal('2.00')},
    ]
    held = suspensions.hold_sale('Walk-in A', items, Decimal('15.00'))

    assert suspensions.resume_sale(held.id) == items
    with pytest.raises(NotFoundError):
        suspensions.resume_sale(held.id)


def test_hold_with_failed_commit_keeps_one_cart(suspensions, commit_then_fail):
    commit_then_fail()
    with pytest.raises(PersistenceError):
        suspensions.hold_sale('Walk-in A', CART)

    assert len(suspensions.list_held()) == 1


def test_hold_retried_after_lock_timeout_uses_one_id(session, suspensions, monkeypatch):
    store = suspensions.store
    real_add = store.add
    calls = []

    def add(suspended):
        calls.append(suspended.id)
        if len(calls) == 1:
            raise OperationalError('INSERT INTO suspended_sale ...', {}, Exception('database is locked'))
        return real_add(suspended)

    monkeypatch.setattr(store, 'add', add)
    held = suspensions.hold_sale('Walk-in A', CART)

    assert calls == [held.id, held.id]
    assert [h.id for h in suspensions.list_held()] == [held.id]

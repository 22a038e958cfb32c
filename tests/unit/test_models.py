"""
Unit tests for SQLAlchemy models.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from posledger.models import Client, Product, Sale, SaleItem, SaleType, SuspendedSale


class TestProductModel:
    """Tests for Product model."""

    def test_to_dict_serializes_money_as_strings(self, bread):
        data = bread.to_dict()

        assert data['id'] == 'p-canilla'
        assert data['price_retail'] == '0.50'
        assert data['price_wholesale'] == '0.35'
        assert data['stock'] == 10

    def test_negative_price_rejected(self, session):
        session.add(Product(id='bad', name='Bad', price_retail=Decimal('-1'), price_wholesale=0, cost=0, stock=0))

        with pytest.raises(IntegrityError):
            session.commit()


class TestClientModel:
    """Tests for Client model."""

    def test_display_name_prefers_business_name(self, bodega):
        assert bodega.display_name == 'Bodega La Esquina'

    def test_display_name_falls_back_to_name(self):
        client = Client(id='c1', name='Ana', business_name='')
        assert client.display_name == 'Ana'

    def test_over_credit_limit_is_advisory(self, session, bodega):
        bodega.debt = Decimal('150.00')
        session.commit()

        assert bodega.over_credit_limit is True
        assert bodega.to_dict()['over_credit_limit'] is True

    def test_zero_credit_limit_means_no_limit(self):
        client = Client(id='c1', name='Ana', debt=Decimal('500'), credit_limit=Decimal('0'))
        assert client.over_credit_limit is False


class TestSaleModel:
    """Tests for Sale and SaleItem models."""

    def _sale(self, sale_id='s1'):
        return Sale(
            id=sale_id,
            date=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
            type=SaleType.RETAIL,
            total_amount=Decimal('1.50'),
            seller_id='seller-1',
            items=[
                SaleItem(position=1, product_id='b', product_name='B', quantity=1, unit_price=Decimal('0.50'), subtotal=Decimal('0.50')),
                SaleItem(position=0, product_id='a', product_name='A', quantity=2, unit_price=Decimal('0.50'), subtotal=Decimal('1.00')),
            ],
        )

    def test_items_ordered_by_position(self, session):
        session.add(self._sale())
        session.commit()
        session.expire_all()

        sale = session.get(Sale, 's1')
        assert [item.product_id for item in sale.items] == ['a', 'b']

    def test_to_dict_uses_utc_z_dates(self, session):
        session.add(self._sale())
        session.commit()

        data = session.get(Sale, 's1').to_dict()
        assert data['date'] == '2026-10-19T12:00:00Z'
        assert data['type'] == 'retail'
        assert data['total_amount'] == '1.50'
        assert len(data['items']) == 2

    def test_deleting_sale_removes_items(self, session):
        session.add(self._sale())
        session.commit()

        session.delete(session.get(Sale, 's1'))
        session.commit()

        assert session.query(SaleItem).count() == 0

    def test_quantity_must_be_positive(self, session):
        sale = self._sale()
        sale.items[0].quantity = 0
        session.add(sale)

        with pytest.raises(IntegrityError):
            session.commit()


class TestSuspendedSaleModel:
    """Tests for SuspendedSale model."""

    def test_items_round_trip_as_json(self, session):
        items = [{'product_id': 'a', 'product_name': 'A', 'quantity': 2, 'unit_price': '0.50'}]
        session.add(SuspendedSale(
            id='h1',
            customer_name='Señora de rojo',
            items=items,
            date=datetime(2026, 10, 19, tzinfo=timezone.utc),
            total=Decimal('1.00'),
        ))
        session.commit()
        session.expire_all()

        held = session.get(SuspendedSale, 'h1')
        assert held.items == items
        assert held.to_dict()['total'] == '1.00'


class TestBalanceConstraints:
    """Stock and debt can never be stored below zero."""

    def test_negative_stock_rejected(self, session, bread):
        bread.stock = -1

        with pytest.raises(IntegrityError):
            session.commit()

    def test_negative_debt_rejected(self, session, bodega):
        bodega.debt = Decimal('-0.01')

        with pytest.raises(IntegrityError):
            session.commit()

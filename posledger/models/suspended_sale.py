"""Suspended Sale model for parked carts."""
from sqlalchemy import Column, String, Numeric, DateTime, JSON
from posledger.database import Base
from posledger.utils.time_utils import to_utc_z


class SuspendedSale(Base):
    """
    Suspended Sale - a cart put on hold (venta en espera).

    Items are a JSON snapshot of the cart; they have not touched stock and
    are not in the sale ledger. The row is removed when resumed or discarded.
    """

    __tablename__ = 'suspended_sale'

    id = Column(String(64), primary_key=True)
    customer_name = Column(String(200), nullable=False)
    # [{"product_id", "product_name", "quantity", "unit_price"}], prices as strings
    items = Column(JSON, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    def __repr__(self):
        return f"<SuspendedSale(id='{self.id}', customer_name='{self.customer_name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'customer_name': self.customer_name,
            'items': self.items,
            'date': to_utc_z(self.date),
            'total': str(self.total),
        }

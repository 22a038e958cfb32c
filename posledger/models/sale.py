"""Sale model."""
from sqlalchemy import Column, String, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from posledger.database import Base
from posledger.utils.time_utils import to_utc_z
import enum


class SaleType(str, enum.Enum):
    """Sale type enum."""
    RETAIL = 'retail'      # venta de mostrador, pagada al momento
    DISPATCH = 'dispatch'  # despacho a crédito, suma a la deuda del cliente


class Sale(Base):
    """Sale (venta registrada)."""

    __tablename__ = 'sale'

    # Caller-supplied so a retried submission can be recognised
    id = Column(String(64), primary_key=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    type = Column(Enum(SaleType, name='sale_type', values_callable=lambda e: [m.value for m in e]), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    seller_id = Column(String(64), nullable=False, index=True)

    client_id = Column(String(64), ForeignKey('client.id'), nullable=True, index=True)
    # Snapshot taken at creation, not re-synced when the client is renamed
    client_name = Column(String(200), nullable=True)

    # Not persisted: set when a create call returned this already stored sale
    replayed = False

    # Relationships
    client = relationship('Client', back_populates='sales')
    items = relationship(
        'SaleItem',
        back_populates='sale',
        cascade='all, delete-orphan',
        order_by='SaleItem.position',
    )

    def __repr__(self):
        return f"<Sale(id='{self.id}', type={self.type.value}, total={self.total_amount})>"

    def to_dict(self):
        return {
            'id': self.id,
            'date': to_utc_z(self.date),
            'type': self.type.value,
            'items': [item.to_dict() for item in self.items],
            'total_amount': str(self.total_amount),
            'seller_id': self.seller_id,
            'client_id': self.client_id,
            'client_name': self.client_name,
        }

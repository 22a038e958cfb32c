"""Sale Item model."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from posledger.database import Base


class SaleItem(Base):
    """Sale Item (detalle de venta). Name and price are snapshots."""

    __tablename__ = 'sale_item'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_sale_item_quantity'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sale_id = Column(String(64), ForeignKey('sale.id', ondelete='CASCADE'), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    # No FK: history must survive catalog edits
    product_id = Column(String(64), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    # Relationships
    sale = relationship('Sale', back_populates='items')

    def __repr__(self):
        return f"<SaleItem(sale_id='{self.sale_id}', product_id='{self.product_id}', quantity={self.quantity})>"

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price),
            'subtotal': str(self.subtotal),
        }

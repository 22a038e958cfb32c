"""Product model."""
from sqlalchemy import Column, String, Integer, Numeric, DateTime, CheckConstraint
from sqlalchemy.sql import func
from posledger.database import Base


class Product(Base):
    """Catalog product (precio detal / mayor, costo, existencia)."""

    __tablename__ = 'product'
    __table_args__ = (
        CheckConstraint('price_retail >= 0', name='ck_product_price_retail'),
        CheckConstraint('price_wholesale >= 0', name='ck_product_price_wholesale'),
        CheckConstraint('cost >= 0', name='ck_product_cost'),
        CheckConstraint('stock >= 0', name='ck_product_stock'),
    )

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    price_retail = Column(Numeric(12, 2), nullable=False, default=0)
    price_wholesale = Column(Numeric(12, 2), nullable=False, default=0)
    cost = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    stock = Column(Integer, nullable=False, default=0, server_default='0')
    category = Column(String(100), nullable=False, default='', server_default='')
    image_url = Column(String(500), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Product(id='{self.id}', name='{self.name}', stock={self.stock})>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price_retail': str(self.price_retail),
            'price_wholesale': str(self.price_wholesale),
            'cost': str(self.cost),
            'stock': self.stock,
            'category': self.category,
            'image_url': self.image_url,
        }

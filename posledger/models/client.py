"""Client model."""
from sqlalchemy import Column, String, Text, Numeric, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from posledger.database import Base


class Client(Base):
    """Registered wholesale client (cliente de despacho) with a running debt."""

    __tablename__ = 'client'
    __table_args__ = (
        CheckConstraint('debt >= 0', name='ck_client_debt'),
    )

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    business_name = Column(String(200), nullable=False, default='', server_default='')
    debt = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    # Advisory only: shown to the seller, never enforced as a hard cap
    credit_limit = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    address = Column(Text, nullable=False, default='', server_default='')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    sales = relationship('Sale', back_populates='client')

    def __repr__(self):
        return f"<Client(id='{self.id}', name='{self.name}', debt={self.debt})>"

    @property
    def display_name(self):
        """Name snapshotted on dispatch sales: business name first."""
        return self.business_name or self.name

    @property
    def over_credit_limit(self):
        return bool(self.credit_limit) and self.debt > self.credit_limit

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'business_name': self.business_name,
            'debt': str(self.debt),
            'credit_limit': str(self.credit_limit),
            'address': self.address,
            'over_credit_limit': self.over_credit_limit,
        }

"""Application settings model."""
from sqlalchemy import Column, Integer, Numeric, DateTime
from sqlalchemy.sql import func
from posledger.database import Base


class AppSettings(Base):
    """Global settings, single row with id = 1."""

    __tablename__ = 'app_settings'

    id = Column(Integer, primary_key=True)
    exchange_rate = Column(Numeric(12, 4), nullable=False)  # Bs per USD
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<AppSettings(exchange_rate={self.exchange_rate})>"

    def to_dict(self):
        return {'exchange_rate': str(self.exchange_rate)}

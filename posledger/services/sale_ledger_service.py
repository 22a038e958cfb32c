"""Sale ledger - append/amend store of sale records."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from posledger.exceptions import NotFoundError
from posledger.models import Sale, SaleItem, SaleType


class SaleLedger:
    """Sale records. ``add`` and ``replace_items`` only flush; the caller commits."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, sale_id: str) -> Optional[Sale]:
        return self.session.get(Sale, sale_id)

    def require(self, sale_id: str) -> Sale:
        sale = self.get(sale_id)
        if sale is None:
            raise NotFoundError(f'Venta {sale_id} no encontrada')
        return sale

    def exists(self, sale_id: str) -> bool:
        return self.session.query(Sale.id).filter(Sale.id == sale_id).first() is not None

    def add(self, sale: Sale) -> Sale:
        self.session.add(sale)
        self.session.flush()
        return sale

    def list(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        seller_id: Optional[str] = None,
        client_id: Optional[str] = None,
        sale_type: Optional[SaleType] = None,
    ) -> List[Sale]:
        """Sales newest first; ``start`` is inclusive, ``end`` exclusive."""
        query = self.session.query(Sale).options(selectinload(Sale.items))
        if start is not None:
            query = query.filter(Sale.date >= start)
        if end is not None:
            query = query.filter(Sale.date < end)
        if seller_id:
            query = query.filter(Sale.seller_id == seller_id)
        if client_id:
            query = query.filter(Sale.client_id == client_id)
        if sale_type is not None:
            query = query.filter(Sale.type == sale_type)
        return query.order_by(Sale.date.desc(), Sale.id.desc()).all()

    def replace_items(self, sale: Sale, lines: List[Dict[str, Any]], total: Decimal) -> Sale:
        """Swap the item rows and total of a stored sale."""
        sale.items = [build_item(position, line) for position, line in enumerate(lines)]
        sale.total_amount = total
        self.session.flush()
        return sale


def build_item(position: int, line: Dict[str, Any]) -> SaleItem:
    return SaleItem(
        position=position,
        product_id=line['product_id'],
        product_name=line['product_name'],
        quantity=line['quantity'],
        unit_price=line['unit_price'],
        subtotal=line['subtotal'],
    )

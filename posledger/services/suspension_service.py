"""
Suspension service - carts put on hold (ventas en espera).

Holding a cart is not a sale: it never touches stock, debt or the sale
ledger. A held cart is removed from the store when it is resumed or
discarded; there is no status flag.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from posledger.exceptions import NotFoundError, ValidationError
from posledger.models import SuspendedSale
from posledger.services.concurrency import DEFAULT_ATTEMPTS, DEFAULT_BACKOFF, run_in_transaction
from posledger.utils.identifiers import new_id
from posledger.utils.number_format import parse_money, parse_quantity, to_money
from posledger.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class SuspendedSaleStore:
    """Persistence for held carts. Methods only flush; the caller commits."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, suspended: SuspendedSale) -> SuspendedSale:
        self.session.add(suspended)
        self.session.flush()
        return suspended

    def list(self) -> List[SuspendedSale]:
        return self.session.query(SuspendedSale).order_by(SuspendedSale.date, SuspendedSale.id).all()

    def pop(self, suspension_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch-and-delete in a single DELETE ... RETURNING statement.

        Two concurrent pops of the same id cannot both get the row.
        """
        table = SuspendedSale.__table__
        row = self.session.execute(
            table.delete()
            .where(table.c.id == suspension_id)
            .returning(table.c.id, table.c.customer_name, table.c["items"], table.c.date, table.c.total)
        ).first()
        if row is None:
            return None
        return dict(row._mapping)

    def delete(self, suspension_id: str) -> bool:
        table = SuspendedSale.__table__
        result = self.session.execute(table.delete().where(table.c.id == suspension_id))
        return result.rowcount == 1


def _clean_cart(items: Any) -> List[Dict[str, Any]]:
    """Validate the cart snapshot and store prices as strings for JSON."""
    if not items or not isinstance(items, (list, tuple)):
        raise ValidationError('No hay productos en el carrito')

    cart = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f'Línea {index}: formato inválido')
        product_id = str(item.get('product_id') or '').strip()
        if not product_id:
            raise ValidationError(f'Línea {index}: falta el producto')
        try:
            quantity = parse_quantity(item.get('quantity'))
            unit_price = parse_money(item.get('unit_price'))
        except ValueError as e:
            raise ValidationError(f'Línea {index}: {e}')
        cart.append({
            'product_id': product_id,
            'product_name': str(item.get('product_name') or '').strip(),
            'quantity': quantity,
            'unit_price': str(unit_price),
        })
    return cart


def cart_items(stored: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Turn the stored JSON snapshot back into cart lines with Decimal prices."""
    return [
        {
            'product_id': item['product_id'],
            'product_name': item['product_name'],
            'quantity': item['quantity'],
            'unit_price': Decimal(item['unit_price']),
        }
        for item in stored
    ]


class SuspensionManager:
    """Moves cart state into and out of the suspended sale store."""

    def __init__(
        self,
        session: Session,
        store: SuspendedSaleStore,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
        retry_attempts: int = DEFAULT_ATTEMPTS,
        retry_backoff: float = DEFAULT_BACKOFF,
    ):
        self.session = session
        self.store = store
        self.clock = clock
        self.id_factory = id_factory
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    def hold_sale(self, customer_name: str, items: List[Dict[str, Any]], total: Any = None) -> SuspendedSale:
        """Park a cart under a reference label (e.g. "Señora de rojo")."""
        customer_name = str(customer_name or '').strip()
        if not customer_name:
            raise ValidationError('Indique un nombre de referencia para la venta en espera')
        cart = _clean_cart(items)

        if total is None:
            total = to_money(sum((item['quantity'] * Decimal(item['unit_price']) for item in cart), Decimal('0')))
        else:
            try:
                total = parse_money(total)
            except ValueError as e:
                raise ValidationError(f'Total: {e}')

        suspension_id = self.id_factory()

        def _op():
            return self.store.add(SuspendedSale(
                id=suspension_id,
                customer_name=customer_name,
                items=cart,
                date=self.clock(),
                total=total,
            ))

        suspended = run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        logger.info(f"Cart held as {suspended.id} for '{customer_name}' ({len(cart)} lines)")
        return suspended

    def resume_sale(self, suspension_id: str) -> List[Dict[str, Any]]:
        """Remove the held cart and hand its items back for the active cart."""
        def _op():
            row = self.store.pop(suspension_id)
            if row is None:
                raise NotFoundError('La venta en espera ya no existe')
            return row

        row = run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        logger.info(f"Held cart {suspension_id} resumed")
        return cart_items(row['items'])

    def discard_sale(self, suspension_id: str) -> None:
        def _op():
            if not self.store.delete(suspension_id):
                raise NotFoundError('La venta en espera ya no existe')

        run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        logger.info(f"Held cart {suspension_id} discarded")

    def list_held(self) -> List[SuspendedSale]:
        return self.store.list()

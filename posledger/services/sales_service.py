"""
Sales service with transactional logic.

The TransactionCoordinator is the only component that produces a sale
together with its stock and debt effects. Every command runs as one
database transaction: the sale row, every conditional stock decrement and
the debt charge either all commit or all roll back.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posledger.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from posledger.models import Client, Sale, SaleType
from posledger.services.catalog_service import CatalogStore
from posledger.services.client_service import ClientStore
from posledger.services.concurrency import DEFAULT_ATTEMPTS, DEFAULT_BACKOFF, run_in_transaction
from posledger.services.sale_ledger_service import SaleLedger, build_item
from posledger.utils.number_format import parse_money, parse_quantity, to_money
from posledger.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# Price list used when a line arrives without a unit price snapshot
PRICE_FIELD = {
    SaleType.RETAIL: 'price_retail',
    SaleType.DISPATCH: 'price_wholesale',
}


def parse_items(items: Any) -> List[Dict[str, Any]]:
    """
    Validate the requested lines before anything is touched.

    Each line needs ``product_id`` and a positive whole ``quantity``.
    ``product_name`` and ``unit_price`` are optional snapshots; when a
    ``subtotal`` is sent it must equal quantity x unit_price.
    """
    if not items or not isinstance(items, (list, tuple)):
        raise ValidationError('La venta debe tener al menos un producto')

    parsed = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f'Línea {index}: formato inválido')

        product_id = str(item.get('product_id') or '').strip()
        if not product_id:
            raise ValidationError(f'Línea {index}: falta el producto')

        try:
            quantity = parse_quantity(item.get('quantity'))
        except ValueError as e:
            raise ValidationError(f'Línea {index}: {e}')

        unit_price = None
        if item.get('unit_price') is not None:
            try:
                unit_price = parse_money(item['unit_price'])
            except ValueError as e:
                raise ValidationError(f'Línea {index}: precio unitario - {e}')

        subtotal = None
        if item.get('subtotal') is not None:
            try:
                subtotal = parse_money(item['subtotal'])
            except ValueError as e:
                raise ValidationError(f'Línea {index}: subtotal - {e}')
            if unit_price is None:
                raise ValidationError(f'Línea {index}: el subtotal requiere precio unitario')
            if subtotal != to_money(quantity * unit_price):
                raise ValidationError(
                    f'Línea {index}: el subtotal ({subtotal}) no coincide con cantidad x precio ({to_money(quantity * unit_price)})'
                )

        product_name = item.get('product_name')
        parsed.append({
            'product_id': product_id,
            'product_name': product_name.strip() if isinstance(product_name, str) and product_name.strip() else None,
            'quantity': quantity,
            'unit_price': unit_price,
        })
    return parsed


def sale_total(lines: List[Dict[str, Any]]) -> Decimal:
    """total_amount is always the sum of the line subtotals."""
    return to_money(sum((line['subtotal'] for line in lines), Decimal('0.00')))


class TransactionCoordinator:
    """Creates sales, registers payments and amends sale records."""

    def __init__(
        self,
        session: Session,
        catalog: CatalogStore,
        clients: ClientStore,
        sales: SaleLedger,
        clock: Callable[[], datetime] = utcnow,
        retry_attempts: int = DEFAULT_ATTEMPTS,
        retry_backoff: float = DEFAULT_BACKOFF,
    ):
        self.session = session
        self.catalog = catalog
        self.clients = clients
        self.sales = sales
        self.clock = clock
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    # =====================================================
    # COMMANDS
    # =====================================================

    def create_retail_sale(self, sale_id: str, items: List[Dict[str, Any]], seller_id: str) -> Sale:
        """Counter sale: record the sale and decrement stock for every line."""
        return self._create_sale(sale_id, SaleType.RETAIL, items, seller_id)

    def create_dispatch_sale(self, sale_id: str, client_id: str, items: List[Dict[str, Any]], seller_id: str) -> Sale:
        """Credit sale: as a retail sale, plus ``client.debt += total_amount``."""
        client_id = str(client_id or '').strip()
        if not client_id:
            raise ValidationError('El despacho requiere un cliente')
        return self._create_sale(sale_id, SaleType.DISPATCH, items, seller_id, client_id=client_id)

    def register_payment(self, client_id: str, amount: Any) -> Client:
        """
        Credit a payment: ``debt = max(0, debt - amount)``.

        The clamp is evaluated by the store at the instant the update
        applies, so a dispatch charge racing with the payment is not lost.
        """
        try:
            amount = parse_money(amount, allow_zero=False)
        except ValueError as e:
            raise ValidationError(f'Abono inválido: {e}')

        def _op():
            self.clients.credit(client_id, amount)

        run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        client = self.clients.require(client_id)
        logger.info(f"Payment of {amount} registered for client {client_id}, debt now {client.debt}")
        return client

    def amend_sale(self, sale_id: str, items: List[Dict[str, Any]]) -> Sale:
        """
        Replace the items and total of a stored sale.

        Stock and debt are NOT reconciled: the amendment only rewrites the
        sale record. Lines keep the price they had on the original sale
        unless a new unit price is sent.
        """
        requested = parse_items(items)

        def _op():
            sale = self.sales.require(sale_id)
            previous = {item.product_id: item for item in sale.items}
            lines = []
            for line in requested:
                old = previous.get(line['product_id'])
                product_name = line['product_name'] or (old.product_name if old else None)
                unit_price = line['unit_price'] if line['unit_price'] is not None else (old.unit_price if old else None)
                if product_name is None or unit_price is None:
                    product = self.catalog.require(line['product_id'])
                    product_name = product_name or product.name
                    if unit_price is None:
                        unit_price = getattr(product, PRICE_FIELD[sale.type])
                lines.append(self._line(line['product_id'], product_name, line['quantity'], unit_price))
            return self.sales.replace_items(sale, lines, sale_total(lines))

        sale = run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        logger.warning(f"Sale {sale_id} amended to {sale.total_amount}; stock and debt were not reconciled")
        return sale

    def decrement_stock(self, product_id: str, quantity: int) -> None:
        """Step of sale creation; must run inside the sale's transaction."""
        self.catalog.decrement_stock(product_id, quantity)

    # =====================================================
    # QUERIES
    # =====================================================

    def get_sale(self, sale_id: str) -> Sale:
        return self.sales.require(sale_id)

    def list_sales(self, start=None, end=None, seller_id=None, client_id=None, sale_type=None) -> List[Sale]:
        return self.sales.list(start=start, end=end, seller_id=seller_id, client_id=client_id, sale_type=sale_type)

    # =====================================================
    # PRIVATE HELPERS
    # =====================================================

    def _create_sale(
        self,
        sale_id: str,
        sale_type: SaleType,
        items: List[Dict[str, Any]],
        seller_id: str,
        client_id: Optional[str] = None,
    ) -> Sale:
        sale_id = str(sale_id or '').strip()
        if not sale_id:
            raise ValidationError('La venta requiere un id')
        seller_id = str(seller_id or '').strip()
        if not seller_id:
            raise ValidationError('La venta requiere un vendedor')
        requested = parse_items(items)

        def _op():
            # 1. Idempotency: a retried submission returns the stored sale
            existing = self.sales.get(sale_id)
            if existing is not None:
                return self._replay(existing, sale_type, client_id, seller_id, requested)

            # 2. Re-read client and products (never cached across calls)
            client = self.clients.require(client_id) if sale_type == SaleType.DISPATCH else None
            lines = self._snapshot_lines(requested, sale_type)
            total = sale_total(lines)

            # 3. Sale record
            sale = Sale(
                id=sale_id,
                date=self.clock(),
                type=sale_type,
                total_amount=total,
                seller_id=seller_id,
                client_id=client.id if client else None,
                client_name=client.display_name if client else None,
                items=[build_item(position, line) for position, line in enumerate(lines)],
            )
            self.sales.add(sale)

            # 4. Conditional stock decrements
            for line in lines:
                self.decrement_stock(line['product_id'], line['quantity'])

            # 5. Debt charge
            if client is not None:
                self.clients.charge(client.id, total)

            return sale

        try:
            sale = run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        except IntegrityError:
            # Same sale id committed elsewhere first, or the client vanished
            existing = self.sales.get(sale_id)
            if existing is None:
                if client_id is not None and self.clients.get(client_id) is None:
                    # Client deleted between the read and the insert
                    raise NotFoundError(f'Cliente {client_id} no encontrado')
                logger.exception(f"Integrity error creating sale {sale_id}")
                raise PersistenceError('No se pudo registrar la venta')
            sale = self._replay(existing, sale_type, client_id, seller_id, requested)

        logger.info(f"Sale {sale.id} ({sale.type.value}) committed: total {sale.total_amount}, {len(sale.items)} items")
        return sale

    def _snapshot_lines(self, requested: List[Dict[str, Any]], sale_type: SaleType) -> List[Dict[str, Any]]:
        """Fill name/price snapshots from the catalog; every product must exist."""
        lines = []
        for line in requested:
            product = self.catalog.require(line['product_id'])
            unit_price = line['unit_price']
            if unit_price is None:
                unit_price = getattr(product, PRICE_FIELD[sale_type])
            lines.append(self._line(product.id, line['product_name'] or product.name, line['quantity'], unit_price))
        return lines

    @staticmethod
    def _line(product_id: str, product_name: str, quantity: int, unit_price: Decimal) -> Dict[str, Any]:
        unit_price = to_money(unit_price)
        return {
            'product_id': product_id,
            'product_name': product_name,
            'quantity': quantity,
            'unit_price': unit_price,
            'subtotal': to_money(quantity * unit_price),
        }

    def _replay(
        self,
        existing: Sale,
        sale_type: SaleType,
        client_id: Optional[str],
        seller_id: str,
        requested: List[Dict[str, Any]],
    ) -> Sale:
        """Return the stored sale if the request is a retry of it, else refuse the id."""
        same = (
            existing.type == sale_type
            and existing.seller_id == seller_id
            and (existing.client_id or None) == (client_id or None)
            and len(existing.items) == len(requested)
            and all(
                item.product_id == line['product_id']
                and item.quantity == line['quantity']
                and (line['unit_price'] is None or item.unit_price == line['unit_price'])
                for item, line in zip(existing.items, requested)
            )
        )
        if not same:
            raise ConflictError(f'El id de venta {existing.id} ya fue usado por otra venta')
        logger.info(f"Sale {existing.id} already recorded, returning stored sale")
        existing.replayed = True
        return existing

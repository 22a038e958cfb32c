"""Catalog store - product records, admin upserts and the conditional stock decrement."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posledger.exceptions import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from posledger.models import Product, SaleItem
from posledger.services.concurrency import DEFAULT_ATTEMPTS, DEFAULT_BACKOFF, run_in_transaction
from posledger.utils.number_format import parse_money, parse_whole

logger = logging.getLogger(__name__)

MONEY_FIELDS = ('price_retail', 'price_wholesale', 'cost')
TEXT_FIELDS = ('name', 'category', 'image_url')


def _parse_stock(value) -> int:
    """Stock set by an admin edit: whole, non-negative units."""
    try:
        return parse_whole(value, allow_zero=True)
    except ValueError as e:
        raise ValidationError(f'Existencia: {e}')


def clean_product_data(data: Dict[str, Any], creating: bool) -> Dict[str, Any]:
    """Validate and normalise an upsert payload."""
    clean = {}

    for field in MONEY_FIELDS:
        if field in data:
            try:
                clean[field] = parse_money(data[field])
            except ValueError as e:
                raise ValidationError(f'{field}: {e}')

    if 'stock' in data:
        clean['stock'] = _parse_stock(data['stock'])

    for field in TEXT_FIELDS:
        if field in data:
            value = data[field]
            clean[field] = value.strip() if isinstance(value, str) else value

    if 'name' in clean and not clean['name']:
        raise ValidationError('El nombre del producto es obligatorio')

    if creating:
        if not clean.get('name'):
            raise ValidationError('El nombre del producto es obligatorio')
        for field in MONEY_FIELDS:
            clean.setdefault(field, parse_money(0))
        clean.setdefault('stock', 0)
        clean.setdefault('category', '')

    if clean.get('category') is None and 'category' in clean:
        clean['category'] = ''

    return clean


class CatalogStore:
    """
    Product records.

    ``upsert`` and ``delete`` are standalone commands and commit their own
    unit of work. ``decrement_stock`` is a step: it only flushes and must
    run inside the caller's transaction.
    """

    def __init__(self, session: Session, retry_attempts: int = DEFAULT_ATTEMPTS, retry_backoff: float = DEFAULT_BACKOFF):
        self.session = session
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    def get(self, product_id: str) -> Optional[Product]:
        return self.session.get(Product, product_id)

    def require(self, product_id: str) -> Product:
        product = self.get(product_id)
        if product is None:
            raise NotFoundError(f'Producto {product_id} no encontrado')
        return product

    def list(self, category: Optional[str] = None) -> List[Product]:
        query = self.session.query(Product)
        if category:
            query = query.filter(Product.category == category)
        return query.order_by(Product.category, Product.name, Product.id).all()

    def categories(self) -> List[str]:
        rows = self.session.query(Product.category).distinct().order_by(Product.category).all()
        return [row[0] for row in rows if row[0]]

    def upsert(self, data: Dict[str, Any]) -> Product:
        """Insert the product if its id is new, else update the given fields."""
        product_id = str(data.get('id') or '').strip()
        if not product_id:
            raise ValidationError('El id del producto es obligatorio')

        def _op():
            product = self.get(product_id)
            clean = clean_product_data(data, creating=product is None)
            if product is None:
                product = Product(id=product_id, **clean)
                self.session.add(product)
            else:
                for field, value in clean.items():
                    setattr(product, field, value)
            self.session.flush()
            return product

        try:
            product = run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        except IntegrityError as e:
            raise ConflictError(f'No se pudo guardar el producto {product_id}: {e.orig}')

        logger.info(f"Product {product_id} saved")
        return product

    def delete(self, product_id: str) -> None:
        """Delete a product that no historical sale references."""
        def _op():
            product = self.require(product_id)
            referenced = self.session.query(SaleItem.id).filter(SaleItem.product_id == product_id).first()
            if referenced:
                raise ConflictError(f'El producto "{product.name}" tiene ventas registradas y no puede eliminarse')
            self.session.delete(product)
            self.session.flush()

        run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        logger.info(f"Product {product_id} deleted")

    def decrement_stock(self, product_id: str, quantity: int) -> None:
        """
        Atomic conditional decrement: ``stock -= quantity`` only if
        ``stock >= quantity`` at the instant of application.

        Raises NotFoundError if the product is gone and
        InsufficientStockError if the condition failed.
        """
        if quantity <= 0:
            raise ValidationError('La cantidad debe ser mayor a 0')

        result = self.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        row = self.session.query(Product.name, Product.stock).filter(Product.id == product_id).first()
        if row is None:
            raise NotFoundError(f'Producto {product_id} no encontrado')
        logger.warning(f"Stock conflict on {product_id}: requested {quantity}, available {row.stock}")
        raise InsufficientStockError(row.name, quantity, row.stock)

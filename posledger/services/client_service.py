"""Client ledger store - client records and atomic debt mutations."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posledger.exceptions import ConflictError, NotFoundError, ValidationError
from posledger.models import Client, Sale
from posledger.services.concurrency import DEFAULT_ATTEMPTS, DEFAULT_BACKOFF, run_in_transaction
from posledger.utils.number_format import parse_money

logger = logging.getLogger(__name__)


def _get_client_data(data: Dict[str, Any], creating: bool) -> Dict[str, Any]:
    """Extract and sanitize client fields from an upsert payload."""
    clean = {}
    for field in ('name', 'business_name', 'address'):
        if field in data:
            value = data[field]
            clean[field] = str(value or '').strip()

    if 'credit_limit' in data:
        try:
            clean['credit_limit'] = parse_money(data['credit_limit'])
        except ValueError as e:
            raise ValidationError(f'Límite de crédito: {e}')

    if 'name' in clean and not clean['name']:
        raise ValidationError('El nombre del cliente es obligatorio')

    if creating:
        if not clean.get('name'):
            raise ValidationError('El nombre del cliente es obligatorio')
        clean.setdefault('business_name', '')
        clean.setdefault('address', '')
        clean.setdefault('credit_limit', Decimal('0.00'))

    return clean


class ClientStore:
    """
    Client records.

    The debt column is only written through ``charge`` and ``credit``, both
    single conditional UPDATE statements evaluated against the committed
    value. They are steps and must run inside the caller's transaction.
    """

    def __init__(self, session: Session, retry_attempts: int = DEFAULT_ATTEMPTS, retry_backoff: float = DEFAULT_BACKOFF):
        self.session = session
        self.retry_attempts = retry_attempts
        self.retry_backoff = retry_backoff

    def get(self, client_id: str) -> Optional[Client]:
        return self.session.get(Client, client_id)

    def require(self, client_id: str) -> Client:
        client = self.get(client_id)
        if client is None:
            raise NotFoundError(f'Cliente {client_id} no encontrado')
        return client

    def list(self, search: Optional[str] = None) -> List[Client]:
        query = self.session.query(Client)
        if search:
            pattern = f'%{search.strip().lower()[:100]}%'
            query = query.filter(or_(
                func.lower(Client.name).like(pattern),
                func.lower(Client.business_name).like(pattern),
            ))
        return query.order_by(Client.name, Client.id).all()

    def upsert(self, data: Dict[str, Any]) -> Client:
        """
        Insert the client if its id is new, else update the given fields.

        A new client may carry an opening debt. For existing clients the
        debt is owned by sales and payments: a payload that tries to change
        it is rejected.
        """
        client_id = str(data.get('id') or '').strip()
        if not client_id:
            raise ValidationError('El id del cliente es obligatorio')

        def _op():
            client = self.get(client_id)
            clean = _get_client_data(data, creating=client is None)

            if client is None:
                opening_debt = Decimal('0.00')
                if data.get('debt') is not None:
                    try:
                        opening_debt = parse_money(data['debt'])
                    except ValueError as e:
                        raise ValidationError(f'Deuda inicial: {e}')
                client = Client(id=client_id, debt=opening_debt, **clean)
                self.session.add(client)
            else:
                if data.get('debt') is not None:
                    try:
                        requested_debt = parse_money(data['debt'])
                    except ValueError as e:
                        raise ValidationError(f'Deuda: {e}')
                    if requested_debt != client.debt:
                        raise ValidationError('La deuda solo cambia con despachos y abonos')
                for field, value in clean.items():
                    setattr(client, field, value)
            self.session.flush()
            return client

        try:
            client = run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        except IntegrityError as e:
            raise ConflictError(f'No se pudo guardar el cliente {client_id}: {e.orig}')

        logger.info(f"Client {client_id} saved")
        return client

    def delete(self, client_id: str) -> None:
        """Delete a client with no pending debt and no dispatch history."""
        def _op():
            client = self.require(client_id)
            if client.debt > 0:
                raise ConflictError(f'El cliente "{client.name}" tiene deuda pendiente y no puede eliminarse')
            has_sales = self.session.query(Sale.id).filter(Sale.client_id == client_id).first()
            if has_sales:
                raise ConflictError(f'El cliente "{client.name}" tiene despachos registrados y no puede eliminarse')
            self.session.delete(client)
            self.session.flush()

        run_in_transaction(self.session, _op, attempts=self.retry_attempts, backoff_base=self.retry_backoff)
        logger.info(f"Client {client_id} deleted")

    def charge(self, client_id: str, amount: Decimal) -> None:
        """debt = debt + amount, in one statement."""
        result = self.session.execute(
            update(Client)
            .where(Client.id == client_id)
            .values(debt=Client.debt + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError(f'Cliente {client_id} no encontrado')

    def credit(self, client_id: str, amount: Decimal) -> None:
        """debt = max(0, debt - amount), clamped against the committed value."""
        remaining = Client.debt - amount
        result = self.session.execute(
            update(Client)
            .where(Client.id == client_id)
            .values(debt=case((remaining < 0, 0), else_=remaining))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError(f'Cliente {client_id} no encontrado')

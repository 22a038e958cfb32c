"""
Backup service - JSON export of the whole store and initial catalogue seed.

Restore from a dump is not offered.
"""
import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from posledger.constants import INITIAL_PRODUCTS
from posledger.models import Product
from posledger.services.catalog_service import CatalogStore, clean_product_data
from posledger.services.client_service import ClientStore
from posledger.services.concurrency import run_in_transaction
from posledger.services.sale_ledger_service import SaleLedger
from posledger.services.settings_service import SettingsService
from posledger.utils.time_utils import to_utc_z, utcnow

logger = logging.getLogger(__name__)


def build_dump(session: Session, settings_service: SettingsService = None, clock=utcnow) -> Dict[str, Any]:
    """Snapshot products, clients, sales and settings as JSON-ready dicts."""
    settings_service = settings_service or SettingsService(session)
    dump = {
        'products': [p.to_dict() for p in CatalogStore(session).list()],
        'clients': [c.to_dict() for c in ClientStore(session).list()],
        'sales': [s.to_dict() for s in SaleLedger(session).list()],
        'settings': settings_service.get().to_dict(),
        'backup_date': to_utc_z(clock()),
    }
    logger.info(
        f"Dump built: {len(dump['products'])} products, {len(dump['clients'])} clients, {len(dump['sales'])} sales"
    )
    return dump


def seed_catalog(session: Session) -> int:
    """Insert the initial catalogue only if there are no products yet, all or nothing."""
    def _op():
        if session.query(Product.id).first() is not None:
            return 0
        for data in INITIAL_PRODUCTS:
            clean = clean_product_data(data, creating=True)
            session.add(Product(id=data['id'], **clean))
        session.flush()
        return len(INITIAL_PRODUCTS)

    inserted = run_in_transaction(session, _op)
    if inserted:
        logger.info(f"Seeded {inserted} products")
    return inserted

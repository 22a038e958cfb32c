"""Wire stores and services onto a session using the application config."""
from typing import Any, Mapping

from sqlalchemy.orm import Session

from posledger.services.catalog_service import CatalogStore
from posledger.services.client_service import ClientStore
from posledger.services.sale_ledger_service import SaleLedger
from posledger.services.sales_service import TransactionCoordinator
from posledger.services.settings_service import SettingsService
from posledger.services.suspension_service import SuspendedSaleStore, SuspensionManager


def _retry(config: Mapping[str, Any]) -> dict:
    return {
        'retry_attempts': config.get('DB_RETRY_ATTEMPTS', 3),
        'retry_backoff': config.get('DB_RETRY_BACKOFF', 0.1),
    }


def catalog_store(session: Session, config: Mapping[str, Any]) -> CatalogStore:
    return CatalogStore(session, **_retry(config))


def client_store(session: Session, config: Mapping[str, Any]) -> ClientStore:
    return ClientStore(session, **_retry(config))


def coordinator(session: Session, config: Mapping[str, Any]) -> TransactionCoordinator:
    return TransactionCoordinator(
        session,
        catalog=catalog_store(session, config),
        clients=client_store(session, config),
        sales=SaleLedger(session),
        **_retry(config),
    )


def suspension_manager(session: Session, config: Mapping[str, Any]) -> SuspensionManager:
    return SuspensionManager(session, SuspendedSaleStore(session), **_retry(config))


def settings_service(session: Session, config: Mapping[str, Any]) -> SettingsService:
    return SettingsService(session, default_exchange_rate=config.get('DEFAULT_EXCHANGE_RATE', '46.00'))

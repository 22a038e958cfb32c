import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from posledger import create_app
from posledger.database import create_all, make_engine, make_session_factory
from posledger.models import Client, Product
from posledger.services.catalog_service import CatalogStore
from posledger.services.client_service import ClientStore
from posledger.services.sale_ledger_service import SaleLedger
from posledger.services.sales_service import TransactionCoordinator
from posledger.services.settings_service import SettingsService
from posledger.services.suspension_service import SuspendedSaleStore, SuspensionManager


class FixedClock:
    """Deterministic clock; call ``advance`` to move it forward."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing (fresh in-memory database)."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def engine():
    """In-memory SQLite engine with every table created."""
    engine = make_engine('sqlite://')
    create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope='function')
def session(engine):
    """Create database session for testing."""
    session = make_session_factory(engine)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def clock():
    return FixedClock()


@pytest.fixture(scope='function')
def catalog(session):
    return CatalogStore(session, retry_backoff=0)


@pytest.fixture(scope='function')
def clients(session):
    return ClientStore(session, retry_backoff=0)


@pytest.fixture(scope='function')
def ledger(session):
    return SaleLedger(session)


@pytest.fixture(scope='function')
def coordinator(session, catalog, clients, ledger, clock):
    return TransactionCoordinator(session, catalog, clients, ledger, clock=clock, retry_backoff=0)


@pytest.fixture(scope='function')
def suspensions(session, clock):
    return SuspensionManager(session, SuspendedSaleStore(session), clock=clock, retry_backoff=0)


@pytest.fixture(scope='function')
def settings(session):
    return SettingsService(session)


@pytest.fixture(scope='function')
def bread(session):
    """Pan Canilla with 10 units in stock."""
    product = Product(
        id='p-canilla',
        name='Pan Canilla',
        price_retail=Decimal('0.50'),
        price_wholesale=Decimal('0.35'),
        cost=Decimal('0.20'),
        stock=10,
        category='Panadería Salada',
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def cookies(session):
    """Galletas Polvorosas with 5 units in stock."""
    product = Product(
        id='p-polvorosas',
        name='Galletas Polvorosas',
        price_retail=Decimal('2.50'),
        price_wholesale=Decimal('2.00'),
        cost=Decimal('1.00'),
        stock=5,
        category='Repostería',
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def bodega(session):
    """Dispatch client with a business name and no debt."""
    client = Client(
        id='c-bodega',
        name='Carlos Pérez',
        business_name='Bodega La Esquina',
        debt=Decimal('0.00'),
        credit_limit=Decimal('100.00'),
        address='Calle 5',
    )
    session.add(client)
    session.commit()
    return client


@pytest.fixture(scope='function')
def commit_then_fail(session, monkeypatch):
    """Call it to make the next commit apply and then report a dropped connection."""
    real_commit = session.commit
    armed = []

    def commit():
        real_commit()
        if armed:
            armed.clear()
            raise OperationalError('COMMIT', {}, Exception('server closed the connection unexpectedly'))

    monkeypatch.setattr(session, 'commit', commit)
    return lambda: armed.append(True)

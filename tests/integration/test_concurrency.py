"""
Concurrency tests against a file-backed SQLite database.

Every worker thread gets its own session (and connection), like separate
terminals hitting the same store.
"""

import threading
from decimal import Decimal

import pytest

from posledger.database import create_all, make_engine, make_session_factory
from posledger.exceptions import InsufficientStockError, NotFoundError
from posledger.models import Client, Product, Sale
from posledger.services.catalog_service import CatalogStore
from posledger.services.client_service import ClientStore
from posledger.services.sale_ledger_service import SaleLedger
from posledger.services.sales_service import TransactionCoordinator
from posledger.services.suspension_service import SuspendedSaleStore, SuspensionManager


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}", busy_timeout=10)
    create_all(engine)
    yield make_session_factory(engine)
    engine.dispose()


def _coordinator(session):
    return TransactionCoordinator(
        session,
        CatalogStore(session, retry_backoff=0.05),
        ClientStore(session, retry_backoff=0.05),
        SaleLedger(session),
        retry_attempts=5,
        retry_backoff=0.05,
    )


def _run_concurrently(session_factory, jobs):
    """Run each job(session) in its own thread; return results or exceptions in order."""
    barrier = threading.Barrier(len(jobs))
    outcomes = [None] * len(jobs)

    def worker(index, job):
        session = session_factory()
        try:
            barrier.wait()
            outcomes[index] = job(session)
        except Exception as exc:
            outcomes[index] = exc
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(i, job)) for i, job in enumerate(jobs)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def test_concurrent_sales_never_oversell(session_factory):
    with session_factory() as session:
        session.add(Product(id='p1', name='Catalinas', price_retail=Decimal('0.60'),
                            price_wholesale=Decimal('0.40'), cost=Decimal('0.20'), stock=5))
        session.commit()

    def sell(sale_id):
        def job(session):
            return _coordinator(session).create_retail_sale(sale_id, [{'product_id': 'p1', 'quantity': 2}], 'seller-1').id
        return job

    outcomes = _run_concurrently(session_factory, [sell(f's{i}') for i in range(3)])

    successes = [o for o in outcomes if isinstance(o, str)]
    rejected = [o for o in outcomes if isinstance(o, InsufficientStockError)]
    assert len(successes) == 2
    assert len(rejected) == 1

    with session_factory() as session:
        assert session.get(Product, 'p1').stock == 1
        assert session.query(Sale).count() == 2


def test_concurrent_resume_hands_cart_out_once(session_factory):
    with session_factory() as session:
        held = SuspensionManager(session, SuspendedSaleStore(session)).hold_sale(
            'Señora de rojo', [{'product_id': 'p1', 'product_name': 'Catalinas', 'quantity': 3, 'unit_price': '0.60'}]
        )
        held_id = held.id

    def resume(session):
        return SuspensionManager(session, SuspendedSaleStore(session), retry_attempts=5, retry_backoff=0.05).resume_sale(held_id)

    outcomes = _run_concurrently(session_factory, [resume, resume])

    carts = [o for o in outcomes if isinstance(o, list)]
    missing = [o for o in outcomes if isinstance(o, NotFoundError)]
    assert len(carts) == 1
    assert len(missing) == 1
    assert carts[0][0]['quantity'] == 3


def test_concurrent_charges_and_payments_are_not_lost(session_factory):
    with session_factory() as session:
        session.add(Product(id='p1', name='Pan de Queso', price_retail=Decimal('2.00'),
                            price_wholesale=Decimal('1.60'), cost=Decimal('0.90'), stock=10))
        session.add(Client(id='c1', name='Bodega', debt=Decimal('50.00')))
        session.commit()

    def dispatch(sale_id):
        def job(session):
            items = [{'product_id': 'p1', 'quantity': 1, 'unit_price': '2.50'}]
            return _coordinator(session).create_dispatch_sale(sale_id, 'c1', items, 'seller-1').id
        return job

    def pay(session):
        return _coordinator(session).register_payment('c1', '5.00').id

    jobs = [dispatch(f's{i}') for i in range(4)] + [pay] * 4
    outcomes = _run_concurrently(session_factory, jobs)

    assert not [o for o in outcomes if isinstance(o, Exception)]
    with session_factory() as session:
        assert session.get(Client, 'c1').debt == Decimal('40.00')
        assert session.get(Product, 'p1').stock == 6

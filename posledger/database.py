"""Database configuration and initialization."""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine (request-scoped, used by the HTTP layer only)
engine = None
db_session = None


def make_engine(database_uri, echo=False, connect_timeout=5, statement_timeout_ms=5000, busy_timeout=5.0):
    """
    Build an engine with bounded waits for the configured backend.

    PostgreSQL gets a connect timeout and a server-side statement timeout;
    SQLite gets a busy timeout and foreign-key enforcement.
    """
    if database_uri.startswith('sqlite'):
        kwargs = {
            'echo': echo,
            'connect_args': {'check_same_thread': False, 'timeout': busy_timeout},
        }
        if database_uri in ('sqlite://', 'sqlite:///:memory:'):
            # Single shared connection so every session sees the same memory DB
            kwargs['poolclass'] = StaticPool
        sqlite_engine = create_engine(database_uri, **kwargs)

        @event.listens_for(sqlite_engine, 'connect')
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

        return sqlite_engine

    return create_engine(
        database_uri,
        echo=echo,
        pool_pre_ping=True,  # Enable connection health checks
        pool_size=10,
        max_overflow=20,
        pool_timeout=connect_timeout,
        connect_args={
            'connect_timeout': connect_timeout,
            'options': f'-c statement_timeout={statement_timeout_ms}',
        },
    )


def make_session_factory(bind):
    """Session factory shared by the HTTP layer, the CLI and the tests."""
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=True)


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = make_engine(
        app.config['SQLALCHEMY_DATABASE_URI'],
        echo=app.config.get('SQLALCHEMY_ECHO', False),
        connect_timeout=app.config.get('DB_CONNECT_TIMEOUT', 5),
        statement_timeout_ms=app.config.get('DB_STATEMENT_TIMEOUT_MS', 5000),
        busy_timeout=app.config.get('DB_BUSY_TIMEOUT', 5.0),
    )

    db_session = scoped_session(make_session_factory(engine))

    if app.config.get('DB_CREATE_ALL'):
        create_all(engine)

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all(bind):
    """Create every table known to the models package."""
    import posledger.models  # noqa: F401  (registers the mappers)
    Base.metadata.create_all(bind)


def get_session():
    """Get database session."""
    return db_session


def get_engine():
    """Get database engine."""
    return engine

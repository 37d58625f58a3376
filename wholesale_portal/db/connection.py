# wholesale_portal/db/connection.py
from contextlib import contextmanager
from typing import Any, Dict, Literal, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from supabase import Client, create_client

from wholesale_portal.config import config
from wholesale_portal.exceptions import DatabaseError
from wholesale_portal.logging_setup import get_logger
from wholesale_portal.models import Base

DatabaseType = Literal["postgresql", "sqlite", "supabase"]

logger = get_logger('db')


class DatabaseConfig:
    """Configuration for database connections."""

    @staticmethod
    def get_db_type() -> DatabaseType:
        """Get database type from configuration."""
        return config.get_db_type()

    @staticmethod
    def get_pool_config() -> Dict[str, Any]:
        """Get SQLAlchemy connection pool configuration."""
        return {
            'pool_size': config.get_int('DATABASE', 'pool_size', default=10),
            'max_overflow': config.get_int('DATABASE', 'max_overflow', default=20),
            'pool_timeout': config.get_int('DATABASE', 'pool_timeout', default=30),
            'pool_recycle': config.get_int('DATABASE', 'pool_recycle', default=1800),
        }

    @staticmethod
    def get_supabase_config() -> Dict[str, str]:
        """Get Supabase connection configuration."""
        return config.supabase_config


class DatabaseConnection:
    """Database connection handler for SQLAlchemy engines and Supabase.

    Nothing connects until ``initialize()`` is called or a session, engine or
    client is first requested.
    """

    _instance = None

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._engine = None
        self._SessionLocal = None
        self._supabase = None
        self._db_type: Optional[DatabaseType] = None
        self._initialized = True

    def initialize(self, connection_string: Optional[str] = None, db_type: Optional[DatabaseType] = None):
        """Initialize the database connection.

        Args:
            connection_string: Optional SQLAlchemy URL. If not provided, the
                configured database is used.
            db_type: Optional override of the configured database type
        """
        if connection_string is not None and db_type is None:
            db_type = 'sqlite' if connection_string.startswith('sqlite') else 'postgresql'

        db_type = db_type or DatabaseConfig.get_db_type()

        if db_type == 'supabase':
            self._initialize_supabase()
        elif db_type in ('postgresql', 'sqlite'):
            self._initialize_sqlalchemy(connection_string or config.get_db_url(), db_type)
        else:
            raise DatabaseError(f"Unknown database type: {db_type}")

        self._db_type = db_type
        logger.info(f"Database initialized ({db_type})")

    def _initialize_sqlalchemy(self, connection_string: str, db_type: DatabaseType):
        """Initialize a SQLAlchemy engine and session factory."""
        echo = config.get_boolean('DATABASE', 'echo', False)
        try:
            if db_type == 'sqlite':
                self._engine = create_engine(connection_string, echo=echo)
            else:
                self._engine = create_engine(
                    connection_string,
                    echo=echo,
                    **DatabaseConfig.get_pool_config()
                )

            self._SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self._engine
            )
        except Exception as e:
            raise DatabaseError(f"Failed to initialize {db_type} connection: {str(e)}")

    def _initialize_supabase(self):
        """Initialize Supabase connection."""
        supabase_config = DatabaseConfig.get_supabase_config()

        if not supabase_config['url'] or not supabase_config['key']:
            raise DatabaseError("Supabase URL and key must be provided")

        try:
            self._supabase = create_client(supabase_config['url'], supabase_config['key'])
        except Exception as e:
            raise DatabaseError(f"Failed to initialize Supabase connection: {str(e)}")

    def _ensure_initialized(self):
        if self._db_type is None:
            self.initialize()

    def test_connection(self):
        """Run a trivial query against the configured backend."""
        self._ensure_initialized()
        try:
            if self._db_type == 'supabase':
                self._supabase.table('settings').select('key').limit(1).execute()
            else:
                with self._engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
        except Exception as e:
            raise DatabaseError(f"Connection test failed: {str(e)}")

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_session(self) -> Session:
        """Get a new SQLAlchemy session."""
        self._ensure_initialized()
        if self._SessionLocal is None:
            raise DatabaseError("Sessions are only available for SQLAlchemy connections")
        return self._SessionLocal()

    def get_supabase(self) -> Client:
        """Get Supabase client (Supabase only)."""
        self._ensure_initialized()
        if self._db_type != 'supabase':
            raise DatabaseError("get_supabase is only available for Supabase connections")
        return self._supabase

    @property
    def engine(self):
        """Get SQLAlchemy engine."""
        self._ensure_initialized()
        if self._engine is None:
            raise DatabaseError("engine is only available for SQLAlchemy connections")
        return self._engine

    @property
    def db_type(self) -> DatabaseType:
        """Get current database type."""
        self._ensure_initialized()
        return self._db_type

    def create_all_tables(self):
        """Create all tables defined in the models."""
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        """Drop all tables from the database."""
        Base.metadata.drop_all(self.engine)

    def dispose(self):
        """Release the engine and forget the current backend."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._SessionLocal = None
        self._supabase = None
        self._db_type = None

# Singleton instance
db = DatabaseConnection()

@contextmanager
def session_scope():
    """Context manager for database sessions."""
    with db.session_scope() as session:
        yield session

def get_session():
    """Get a new database session."""
    return db.get_session()

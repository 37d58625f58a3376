# wholesale_portal/db/__init__.py
from .connection import DatabaseConnection, db, session_scope, get_session
from .interface import OrderStore, SettingsStore, SQLAlchemyStore, SupabaseStore, get_order_store

__all__ = [
    'db',
    'session_scope',
    'get_session',
    'DatabaseConnection',
    'OrderStore',
    'SettingsStore',
    'SQLAlchemyStore',
    'SupabaseStore',
    'get_order_store'
]

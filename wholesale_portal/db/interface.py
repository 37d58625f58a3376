# wholesale_portal/db/interface.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from wholesale_portal.exceptions import DatabaseError
from wholesale_portal.models import Order, OrderStatus, Setting


class OrderStore(ABC):
    """Order persistence boundary used by the delivery scheduler."""

    @abstractmethod
    def fetch_pending_orders(self) -> List[Dict[str, Any]]:
        """Return pending orders as dicts with id, delivery_date and status."""
        pass

    @abstractmethod
    def confirm_if_pending(self, order_id: str) -> bool:
        """Move an order from pending to confirmed.

        The write only applies while the order is still pending.

        Returns:
            True if the order was transitioned by this call
        """
        pass

    def close(self) -> None:
        """Release resources held by the store."""
        pass


class SettingsStore(ABC):
    """Key/value organisation settings boundary."""

    @abstractmethod
    def get_setting(self, key: str) -> Any:
        """Return the stored value for key, or None."""
        pass

    @abstractmethod
    def get_all_settings(self) -> Dict[str, Any]:
        """Return all settings as a key -> value dict."""
        pass

    @abstractmethod
    def set_setting(self, key: str, value: Any) -> None:
        """Insert or update a setting."""
        pass


class SQLAlchemyStore(OrderStore, SettingsStore):
    """Store backed by a SQLAlchemy session (PostgreSQL or SQLite)."""

    def __init__(self, session: Session, owns_session: bool = False):
        self.session = session
        self._owns_session = owns_session

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def fetch_pending_orders(self) -> List[Dict[str, Any]]:
        rows = (
            self.session.query(Order.id, Order.delivery_date, Order.status)
            .filter(Order.status == OrderStatus.PENDING.value)
            .all()
        )
        return [
            {'id': row.id, 'delivery_date': row.delivery_date, 'status': row.status}
            for row in rows
        ]

    def confirm_if_pending(self, order_id: str) -> bool:
        try:
            updated = (
                self.session.query(Order)
                .filter(Order.id == order_id, Order.status == OrderStatus.PENDING.value)
                .update(
                    {'status': OrderStatus.CONFIRMED.value, 'updated_at': datetime.now()},
                    synchronize_session=False
                )
            )
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to confirm order {order_id}: {str(e)}")

        return updated == 1

    def get_setting(self, key: str) -> Any:
        setting = self.session.get(Setting, key)
        return setting.value if setting else None

    def get_all_settings(self) -> Dict[str, Any]:
        return {s.key: s.value for s in self.session.query(Setting).order_by(Setting.key).all()}

    def set_setting(self, key: str, value: Any) -> None:
        setting = self.session.get(Setting, key)
        if setting is None:
            self.session.add(Setting(key=key, value=value))
        else:
            setting.value = value

        try:
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to save setting {key}: {str(e)}")


class SupabaseStore(OrderStore, SettingsStore):
    """Store backed by the Supabase (PostgREST) client."""

    def __init__(self, client):
        """Initialize with Supabase client."""
        self.client = client

    @staticmethod
    def _check(result, action: str):
        if hasattr(result, 'error') and result.error:
            raise DatabaseError(f"Supabase {action} error: {result.error}")
        return result.data or []

    def fetch_pending_orders(self) -> List[Dict[str, Any]]:
        result = (
            self.client.table('orders')
            .select('id, delivery_date, status')
            .eq('status', OrderStatus.PENDING.value)
            .execute()
        )
        return self._check(result, 'query')

    def confirm_if_pending(self, order_id: str) -> bool:
        result = (
            self.client.table('orders')
            .update({'status': OrderStatus.CONFIRMED.value, 'updated_at': datetime.now().isoformat()})
            .eq('id', order_id)
            .eq('status', OrderStatus.PENDING.value)
            .execute()
        )
        return len(self._check(result, 'update')) > 0

    def get_setting(self, key: str) -> Any:
        result = self.client.table('settings').select('key, value').eq('key', key).limit(1).execute()
        rows = self._check(result, 'query')
        return rows[0]['value'] if rows else None

    def get_all_settings(self) -> Dict[str, Any]:
        result = self.client.table('settings').select('*').order('key').execute()
        return {row['key']: row['value'] for row in self._check(result, 'query')}

    def set_setting(self, key: str, value: Any) -> None:
        result = self.client.table('settings').upsert({'key': key, 'value': value}).execute()
        self._check(result, 'upsert')



def get_order_store(session: Optional[Session] = None):
    """Get a store for the configured database type.

    Args:
        session: Existing SQLAlchemy session to use instead of a new one

    Returns:
        SQLAlchemyStore or SupabaseStore. A store built without a session owns
        the session it opens and closes it in ``close()``.
    """
    if session is not None:
        return SQLAlchemyStore(session)

    from wholesale_portal.db.connection import db

    if db.db_type == 'supabase':
        return SupabaseStore(db.get_supabase())
    return SQLAlchemyStore(db.get_session(), owns_session=True)

# wholesale_portal/services/client_service.py
import logging
import re
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from wholesale_portal.core.delivery import INDEX_TO_DAY, resolve_delivery_days
from wholesale_portal.exceptions import (
    DatabaseError, InvalidDeliveryDay, NotFoundError, ValidationError
)
from wholesale_portal.models import Client, ClientRole
from wholesale_portal.utils.validation import SUPPORTED_LOCALES

if TYPE_CHECKING:
    from wholesale_portal.auth.permissions import RequestContext

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r'^[a-z0-9-]+$')

CLIENT_FIELDS = (
    'company_name',
    'contact_name',
    'contact_email',
    'contact_phone',
    'client_role_id',
    'remise',
    'delivery_days',
    'preferred_locale',
)


def normalize_delivery_days(delivery_days: Iterable) -> List[str]:
    """Validate delivery days and return their canonical names (Sunday first).

    Raises:
        ValidationError when the list is empty or holds an unknown day
    """
    try:
        indices = resolve_delivery_days(delivery_days)
    except InvalidDeliveryDay as e:
        raise ValidationError(
            "Invalid delivery days",
            code='validation-error',
            details={'delivery_days': e.message}
        ) from e
    return [INDEX_TO_DAY[index] for index in indices]


def _validate_localized_name(name, errors: Dict[str, str], field: str = 'name'):
    if not isinstance(name, dict) or not all(
        isinstance(name.get(locale), str) and name[locale].strip() for locale in SUPPORTED_LOCALES
    ):
        errors[field] = f"A name is required for: {', '.join(SUPPORTED_LOCALES)}"


class ClientService:
    """Employee management of client roles and clients, delivery days included."""

    def __init__(self, session: Session):
        self.session = session

    def _commit(self, action: str):
        try:
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to {action}: {str(e)}")

    def _ensure_slug_available(self, slug: str, role_id: Optional[str] = None):
        existing = self.session.query(ClientRole).filter(ClientRole.slug == slug).first()
        if existing is not None and existing.id != role_id:
            raise ValidationError(f"Slug {slug} already exists", code='slug-exists', details={'slug': slug})

    def get_client_roles(self) -> List[ClientRole]:
        return self.session.query(ClientRole).order_by(ClientRole.slug).all()

    def create_client_role(
        self,
        ctx: "RequestContext",
        slug: str,
        name: Dict[str, str],
        default_delivery_days: Iterable,
        description: Optional[Dict[str, str]] = None
    ) -> str:
        """Create a client role.

        Args:
            ctx: Request context of the employee
            slug: Lowercase identifier (letters, digits, hyphens)
            name: Name per locale (fr, nl and en required)
            default_delivery_days: Delivery days inherited by new clients
            description: Optional description per locale

        Returns:
            ID of the new role
        """
        ctx.require_permission('manage_client_roles')

        errors = {}
        if not isinstance(slug, str) or not SLUG_PATTERN.match(slug):
            errors['slug'] = 'Slug must contain only lowercase letters, numbers, and hyphens'
        _validate_localized_name(name, errors)
        if errors:
            raise ValidationError("Invalid client role", code='validation-error', details=errors)

        days = normalize_delivery_days(default_delivery_days)
        self._ensure_slug_available(slug)

        role = ClientRole(slug=slug, name=name, description=description, default_delivery_days=days)
        self.session.add(role)
        self._commit(f"create client role {slug}")

        logger.info(f"Employee {ctx.user_id} created client role {slug} delivering on {days}")
        return role.id

    def update_client_role(
        self,
        ctx: "RequestContext",
        role_id: str,
        slug: Optional[str] = None,
        name: Optional[Dict[str, str]] = None,
        default_delivery_days: Optional[Iterable] = None,
        description: Optional[Dict[str, str]] = None
    ) -> ClientRole:
        """Update a client role. Only the given fields change."""
        ctx.require_permission('manage_client_roles')

        role = self.session.get(ClientRole, role_id)
        if role is None:
            raise NotFoundError(f"Client role {role_id} not found", code='not-found')

        errors = {}
        if slug is not None and not SLUG_PATTERN.match(slug):
            errors['slug'] = 'Slug must contain only lowercase letters, numbers, and hyphens'
        if name is not None:
            _validate_localized_name(name, errors)
        if errors:
            raise ValidationError("Invalid client role", code='validation-error', details=errors)

        days = None
        if default_delivery_days is not None:
            days = normalize_delivery_days(default_delivery_days)
        if slug is not None and slug != role.slug:
            self._ensure_slug_available(slug, role.id)
            role.slug = slug
        if days is not None:
            role.default_delivery_days = days
        if name is not None:
            role.name = name
        if description is not None:
            role.description = description

        self._commit(f"update client role {role_id}")
        return role

    def delete_client_role(self, ctx: "RequestContext", role_id: str) -> None:
        """Delete a client role that no client uses."""
        ctx.require_permission('manage_client_roles')

        role = self.session.get(ClientRole, role_id)
        if role is None:
            raise NotFoundError(f"Client role {role_id} not found", code='not-found')

        in_use = self.session.query(Client.id).filter(Client.client_role_id == role_id).first()
        if in_use is not None:
            raise ValidationError(f"Client role {role.slug} is assigned to clients", code='has-clients')

        self.session.delete(role)
        self._commit(f"delete client role {role_id}")

    def _validate_client_fields(self, values: Dict[str, Any]) -> Dict[str, str]:
        errors = {}
        if 'company_name' in values and not (values['company_name'] or '').strip():
            errors['company_name'] = 'Company name is required'
        if 'contact_email' in values and '@' not in (values['contact_email'] or ''):
            errors['contact_email'] = 'A valid email is required'
        if values.get('remise') is not None:
            remise = values['remise']
            if isinstance(remise, bool) or not isinstance(remise, (int, float)) or not 0 <= remise <= 100:
                errors['remise'] = 'Discount must be between 0 and 100'
        if values.get('preferred_locale') is not None and values['preferred_locale'] not in SUPPORTED_LOCALES:
            errors['preferred_locale'] = f"Locale must be one of: {', '.join(SUPPORTED_LOCALES)}"
        return errors

    def create_client(
        self,
        ctx: "RequestContext",
        company_name: str,
        contact_email: str,
        client_role_id: str,
        delivery_days: Optional[Iterable] = None,
        client_id: Optional[str] = None,
        **fields
    ) -> str:
        """Create a client profile.

        Without delivery days the client gets the role's default days.

        Args:
            ctx: Request context of the employee
            company_name: Company name
            contact_email: Contact email
            client_role_id: Client role
            delivery_days: Optional delivery days
            client_id: Optional ID (the authenticated user's id)
            **fields: contact_name, contact_phone, remise, preferred_locale

        Returns:
            ID of the new client
        """
        ctx.require_permission('manage_clients')

        unknown = set(fields) - set(CLIENT_FIELDS)
        if unknown:
            raise ValidationError("Unknown client fields", code='validation-error',
                                  details={field: 'Unknown field' for field in sorted(unknown)})

        values = dict(fields, company_name=company_name, contact_email=contact_email)
        errors = self._validate_client_fields(values)
        if errors:
            raise ValidationError("Invalid client", code='validation-error', details=errors)

        role = self.session.get(ClientRole, client_role_id)
        if role is None:
            raise NotFoundError(f"Client role {client_role_id} not found", code='not-found')

        if delivery_days:
            days = normalize_delivery_days(delivery_days)
        else:
            days = list(role.default_delivery_days or [])

        client = Client(
            client_role_id=role.id,
            delivery_days=days,
            remise=values.pop('remise', None) or 0.0,
            **values
        )
        if client_id:
            client.id = client_id
        self.session.add(client)
        self._commit(f"create client {company_name}")

        logger.info(f"Employee {ctx.user_id} created client {client.id} ({company_name})")
        return client.id

    def update_client(self, ctx: "RequestContext", client_id: str, **values) -> Client:
        """Update client fields, delivery days included. Only the given fields change."""
        ctx.require_permission('manage_clients')

        unknown = set(values) - set(CLIENT_FIELDS)
        if unknown:
            raise ValidationError("Unknown client fields", code='validation-error',
                                  details={field: 'Unknown field' for field in sorted(unknown)})

        client = self.session.get(Client, client_id)
        if client is None:
            raise NotFoundError(f"Client {client_id} not found", code='not-found')

        errors = self._validate_client_fields(values)
        if errors:
            raise ValidationError("Invalid client", code='validation-error', details=errors)

        if 'delivery_days' in values:
            values['delivery_days'] = normalize_delivery_days(values['delivery_days'])

        if 'client_role_id' in values and self.session.get(ClientRole, values['client_role_id']) is None:
            raise NotFoundError(f"Client role {values['client_role_id']} not found", code='not-found')

        for field, value in values.items():
            setattr(client, field, value)

        self._commit(f"update client {client_id}")
        logger.info(f"Employee {ctx.user_id} updated client {client_id}: {sorted(values)}")
        return client

from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    PortalError, SchedulingError, InvalidCutoffFormat, InvalidDeliveryDay,
    NoValidDeliveryDateFound, OrderError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'PortalError',
    'SchedulingError',
    'InvalidCutoffFormat',
    'InvalidDeliveryDay',
    'NoValidDeliveryDateFound',
    'OrderError'
]

class PortalError(Exception):
    """Base exception for Wholesale Portal errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Wholesale Portal"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(PortalError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DatabaseError(PortalError):
    """Exception raised for database-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class ValidationError(PortalError):
    """Exception raised for data validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class OrderError(PortalError):
    """Exception raised for order-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Order error"
        super().__init__(message, code, details)


class NotFoundError(PortalError):
    """Exception raised when a requested resource is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Resource not found"
        super().__init__(message, code, details)


class AuthenticationError(PortalError):
    """Exception raised when no authenticated user is available."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Authentication required"
        super().__init__(message, code or 'unauthenticated', details)


class PermissionDeniedError(PortalError):
    """Exception raised when the current user lacks a permission."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Permission denied"
        super().__init__(message, code or 'unauthorized', details)


class SchedulingError(ConfigError):
    """Base exception for delivery scheduling configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Delivery scheduling error"
        super().__init__(message, code, details)


class InvalidCutoffFormat(SchedulingError):
    """Raised when the cutoff time is not a valid 24h HH:mm value."""

    def __init__(self, value, message=None):
        self.value = value
        message = message or f'Invalid cutoff time format: "{value}"'
        super().__init__(message, 'invalid-cutoff-format', {'value': value})


class InvalidCutoffOffset(SchedulingError):
    """Raised when the cutoff day offset is not a non-negative integer."""

    def __init__(self, value, message=None):
        self.value = value
        message = message or f"Invalid cutoff day offset: {value!r}"
        super().__init__(message, 'invalid-cutoff-offset', {'value': value})


class InvalidDeliveryDay(SchedulingError):
    """Raised when delivery days are empty or contain an unknown weekday."""

    def __init__(self, value, message=None):
        self.value = value
        message = message or f'Unsupported delivery day: "{value}"'
        super().__init__(message, 'invalid-delivery-day', {'value': value})


class NoValidDeliveryDateFound(SchedulingError):
    """Raised when no delivery date is reachable within the search horizon."""

    def __init__(self, weeks, message=None):
        self.weeks = weeks
        message = message or f"Unable to calculate next delivery date within {weeks} weeks"
        super().__init__(message, 'no-valid-delivery-date', {'weeks': weeks})

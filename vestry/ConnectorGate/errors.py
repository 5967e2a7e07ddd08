"""
ConnectorGate error taxonomy.

Every error carries the user-visible message that ends up in the
response's ``error`` field.
"""


class ConnectorError(Exception):
    """Base class for all connector errors."""
    pass


class ConfigurationError(ConnectorError):
    """Raised at construction time when the configuration is unusable."""
    pass


class DecodeError(ConnectorError):
    """Raised when an identifier cannot be decoded."""
    pass


class InvalidCommand(ConnectorError):
    """Raised for unknown or disabled command names."""
    pass


class AccessDenied(ConnectorError):
    """Raised when a capability check fails or a path escapes the root."""
    pass


class AlreadyExists(ConnectorError):
    """Raised when an operation would overwrite an existing path."""
    pass


class DoesNotExist(ConnectorError):
    """Raised when an operation targets a missing path."""
    pass


class CommandNotImplemented(ConnectorError):
    """Raised for stub commands or commands missing their handler."""
    pass


class OperationFailed(ConnectorError):
    """Raised when an underlying filesystem call fails."""
    pass

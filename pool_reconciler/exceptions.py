"""Custom exceptions for the pool reconciler."""


class ReconcilerError(Exception):
    """Base exception for all pool reconciler errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class ProviderQueryError(ReconcilerError):
    """Exception raised when listing, creating or deleting instances fails."""

    pass


class PreconditionError(ReconcilerError):
    """Exception raised when a required identity field is missing."""

    pass


class AmbiguityError(ReconcilerError):
    """Exception raised when more instances exist than can be disambiguated."""

    pass


class MasterUnavailableError(ReconcilerError):
    """Exception raised when the master pool could not be located in time."""

    pass


class RemoteTransportError(ReconcilerError):
    """Exception raised for SSH connect, read and close failures."""

    pass


class ConfigurationError(ReconcilerError):
    """Exception raised for configuration errors."""

    pass


class BootstrapScriptError(ReconcilerError):
    """Exception raised when a bootstrap script cannot be loaded."""

    pass


class UnknownResourceKindError(ReconcilerError):
    """Exception raised when no reconciler is registered for a pool kind."""

    pass

"""Errors raised by tool handlers."""


class ToolExecutionError(Exception):
    """A handler's user-facing description of a failed remote call."""


class ResourceReadError(Exception):
    """A resource could not be fetched from Cliniko."""

"""
Errors raised by the Flags Service.
"""

from typing import Dict, Any, Optional

from shared.errors import NotFoundError, ValidationError


class FlagNotFoundError(NotFoundError):
    """The flag does not exist within the caller's tenant."""

    def __init__(self, flag_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("Flag not found", {"flag_id": flag_id, **(details or {})}, code="FLAG_NOT_FOUND")
        self.flag_id = flag_id


class FlagDefinitionError(ValidationError):
    """A stored flag definition could not be parsed."""

# --- File: library_desk/schemas/common/base.py ---
"""
Base schema classes with common configuration.
"""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

__all__ = [
    "BaseSchema",
    "BaseCreateSchema",
    "BaseUpdateSchema",
    "BaseResponseSchema",
]


class BaseSchema(BaseModel):
    """
    Base schema with common Pydantic configuration.

    Fields are declared in snake_case and serialised with camelCase aliases
    so persisted snapshots keep the dashboard's storage layout
    (``registrationDate``, ``isOccupied``...). Either spelling is accepted
    on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        # Keep enums as Enum instances to retain full type information;
        # callers can still access `.value` if needed.
        use_enum_values=False,
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    def to_storage(self) -> Dict[str, Any]:
        """JSON-compatible dict using the storage (camelCase) aliases."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BaseCreateSchema(BaseSchema):
    """Base schema for create operations."""
    pass


class BaseUpdateSchema(BaseSchema):
    """
    Base schema for update operations.

    Note:
        Subclasses intended for partial updates declare every field as
        Optional with a default, and callers read back only the fields
        that were explicitly set (``model_dump(exclude_unset=True)``).
    """
    pass


class BaseResponseSchema(BaseSchema):
    """Base schema for read-only views."""
    pass

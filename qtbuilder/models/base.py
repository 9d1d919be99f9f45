"""Base model for all QtBuilder Pydantic models.

This module provides a base model class that enforces consistent serialization
behavior across all QtBuilder models.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class QtBuilderBaseModel(BaseModel):
    """Base model class for all QtBuilder Pydantic models.

    Enum fields keep their enum members in Python mode so callers can use
    enum properties; ``to_dict`` serializes them to their values.
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary with consistent serialization parameters.

        Returns:
            Dictionary representation using JSON-compatible serialization
        """
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")

    def to_dict_full(self) -> dict[str, Any]:
        """Convert model to dictionary including all fields (even unset ones)."""
        return self.model_dump(by_alias=True, exclude_unset=False, mode="json")

"""
Label entity models.

Two types describe a label: `NewLabel` is what a caller submits, `Label` is
what the store returns. Server-assigned fields (`id`, timestamps) only
exist on `Label`.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from labelstore.core.errors import ValidationError

LABEL_NAME_MIN_LENGTH = 1
LABEL_NAME_MAX_LENGTH = 255


class NewLabel(BaseModel):
    """A label that has not been stored yet."""

    model_config = ConfigDict(frozen=True)

    label_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    label_name: str = Field(
        ...,
        min_length=LABEL_NAME_MIN_LENGTH,
        max_length=LABEL_NAME_MAX_LENGTH,
        examples=["urgent"],
    )

    # Only set by pydantic validation. model_construct() and model_copy(update=...)
    # leave it False.
    _validated: bool = PrivateAttr(default=False)

    @model_validator(mode="after")
    def _mark_validated(self) -> NewLabel:
        self._validated = True
        return self

    @classmethod
    def new(cls, label_name: str) -> NewLabel:
        """
        Build an unvalidated NewLabel with a fresh random label_id.

        Never fails. Call `validated()` before handing it to the repository.
        """
        return cls.model_construct(label_id=uuid.uuid4(), label_name=label_name)

    @property
    def is_validated(self) -> bool:
        return self._validated

    def model_copy(
        self, *, update: dict[str, Any] | None = None, deep: bool = False
    ) -> NewLabel:
        copied = super().model_copy(update=update, deep=deep)
        if update:
            copied._validated = False
        return copied

    def validated(self) -> NewLabel:
        """
        Check the field constraints and mark this label as validated.

        Returns:
            self, so calls can be chained: `NewLabel.new(name).validated()`

        Raises:
            ValidationError: If label_name is not 1-255 characters long
        """
        try:
            type(self).model_validate(
                {"label_id": self.label_id, "label_name": self.label_name}
            )
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            details: dict[str, Any] = {"field": field, "constraint": error["type"]}
            if error["type"] in ("string_too_short", "string_too_long"):
                details["min_length"] = LABEL_NAME_MIN_LENGTH
                details["max_length"] = LABEL_NAME_MAX_LENGTH
            raise ValidationError(f"Invalid {field}: {error['msg']}", details=details) from e

        self._validated = True
        return self


class Label(BaseModel):
    """A persisted label, as returned by the store."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    label_id: uuid.UUID
    label_name: str = Field(..., min_length=LABEL_NAME_MIN_LENGTH, max_length=LABEL_NAME_MAX_LENGTH)
    created_at: AwareDatetime
    updated_at: AwareDatetime

    @property
    def internal_id(self) -> int:
        """Storage-assigned integer id."""
        return self.id

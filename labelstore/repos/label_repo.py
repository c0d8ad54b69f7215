"""
Repository layer for Label data access.

The repository holds a shared reference to the async engine (the process's
connection pool) and never disposes it. Storage errors are not caught:
IntegrityError on a duplicate label_id, pool timeouts and transport failures
reach the caller unchanged.
"""

import logging

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine

from labelstore.core.errors import ValidationError
from labelstore.db.models import LabelRecord
from labelstore.domain.label import Label, NewLabel

logger = logging.getLogger(__name__)


class LabelRepository:
    """Mediates access to persisted Label rows."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def create(self, new_label: NewLabel) -> Label:
        """
        Insert a new label and return the stored row.

        The insert is a single INSERT ... RETURNING round trip; id and both
        timestamps are assigned by the store.

        Args:
            new_label: Label to store; must have passed `NewLabel.validated()`

        Returns:
            Fully populated Label

        Raises:
            ValidationError: If new_label was never validated
            sqlalchemy.exc.IntegrityError: If label_id already exists
            sqlalchemy.exc.SQLAlchemyError: On pool or transport failure

        Example:
            repo = LabelRepository(get_async_engine())
            label = await repo.create(NewLabel.new("urgent").validated())
        """
        if not new_label.is_validated:
            raise ValidationError(
                "NewLabel must be validated before it is stored",
                details={"field": "label_name", "constraint": "validated"},
            )

        stmt = (
            insert(LabelRecord)
            .values(label_id=new_label.label_id, label_name=new_label.label_name)
            .returning(
                LabelRecord.id,
                LabelRecord.label_id,
                LabelRecord.label_name,
                LabelRecord.created_at,
                LabelRecord.updated_at,
            )
        )

        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
            row = result.mappings().one()

        label = Label.model_validate(dict(row))
        logger.debug(
            f"Created label: {label.label_id}",
            extra={"label_id": str(label.label_id), "id": label.id},
        )
        return label

"""
Durable per-processor checkpoint store backed by the ``indexer_status`` table.
"""

from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from charity_indexer.core.database import dialect_insert, get_session_maker
from charity_indexer.core.exceptions import CheckpointError
from charity_indexer.models.indexer_status import ProcessorCheckpoint

from .core.types import Checkpoint, CheckpointState


logger = structlog.get_logger(__name__)


class CheckpointStore:
    """
    Reads and advances the last processed transaction version per processor.

    Writes are compare-and-swap: the stored version only moves forward, so
    overlapping sync passes cannot regress the watermark.
    """

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_maker = session_maker
        self.logger = logger.bind(service="checkpoint_store")

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        return self._session_maker or get_session_maker()

    async def read_strict(self, processor_name: str) -> Checkpoint:
        """
        Read the checkpoint of ``processor_name``.

        Raises:
            CheckpointError: If the store cannot be queried
        """
        try:
            async with self.session_maker() as session:
                version = await session.scalar(
                    select(ProcessorCheckpoint.last_processed_version)
                    .where(ProcessorCheckpoint.processor_name == processor_name)
                )
        except SQLAlchemyError as e:
            raise CheckpointError(processor_name, str(e)) from e

        if version is None:
            return Checkpoint.not_started(processor_name)

        return Checkpoint(
            processor_name=processor_name,
            version=int(version),
            state=CheckpointState.ACTIVE,
        )

    async def read(self, processor_name: str) -> Checkpoint:
        """Read the checkpoint, treating any read failure as never started."""
        try:
            return await self.read_strict(processor_name)
        except CheckpointError as e:
            self.logger.warning(
                "Could not read checkpoint, starting from version 0",
                processor_name=processor_name,
                error=e.details.get("reason"),
            )
            return Checkpoint.not_started(processor_name)

    async def write(self, processor_name: str, version: int) -> bool:
        """
        Upsert the checkpoint if ``version`` is ahead of the stored one.

        Returns:
            True if the stored version changed

        Raises:
            CheckpointError: If the store cannot be written
        """
        table = ProcessorCheckpoint.__table__

        try:
            async with self.session_maker() as session:
                stmt = dialect_insert(session, table).values(
                    processor_name=processor_name,
                    last_processed_version=version,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[table.c.processor_name],
                    set_={
                        "last_processed_version": stmt.excluded.last_processed_version,
                        "updated_at": func.now(),
                    },
                    where=table.c.last_processed_version < stmt.excluded.last_processed_version,
                ).returning(table.c.processor_name)

                result = await session.execute(stmt)
                changed = result.scalar_one_or_none() is not None
                await session.commit()
        except SQLAlchemyError as e:
            raise CheckpointError(processor_name, str(e)) from e

        if changed:
            self.logger.info("Checkpoint advanced", processor_name=processor_name, version=version)
        else:
            self.logger.info(
                "Checkpoint not advanced, stored version is already ahead",
                processor_name=processor_name,
                version=version,
            )
        return changed

"""Revenue Store — SQLAlchemy implementation of the append-only RevenueStore.

Invariants:
    - create raises ConflictError if (service_id, order_id) was already recorded,
      independently of any check the engine made before calling it
    - No update or delete path exists
"""

import logging

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from balance_service.core.domain_types import (
    OrderId, OwnerId, RevenueRecord, ServiceId,
)
from balance_service.core.errors import ConflictError, ErrorContext
from balance_service.core.money import MoneyAmount
from balance_service.models.revenue_record import RevenueRecordRow

logger = logging.getLogger(__name__)


class SqlAlchemyRevenueStore:
    """Revenue records table access bound to one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def create(self, record: RevenueRecord) -> RevenueRecord:
        self._db.add(RevenueRecordRow(
            id=record.id,
            owner_id=record.owner_id,
            service_id=record.service_id,
            order_id=record.order_id,
            amount=record.amount.minor_units,
            settled_at=record.settled_at,
        ))
        try:
            await self._db.flush()
        except IntegrityError:
            logger.warning(
                "Revenue already recorded for order",
                extra={"order_id": str(record.order_id), "error_code": "CONFLICT"},
            )
            raise ConflictError(
                f"Order '{record.order_id}' of service '{record.service_id}' "
                "is already settled",
                ErrorContext(owner_id=str(record.owner_id), operation="record_revenue"),
            )
        return record

    async def exists(self, service_id: ServiceId, order_id: OrderId) -> bool:
        result = await self._db.execute(
            select(exists().where(
                RevenueRecordRow.service_id == service_id,
                RevenueRecordRow.order_id == order_id,
            )),
        )
        return bool(result.scalar())

    async def list_for_owner(self, owner_id: OwnerId) -> list[RevenueRecord]:
        result = await self._db.execute(
            select(RevenueRecordRow)
            .where(RevenueRecordRow.owner_id == owner_id)
            .order_by(RevenueRecordRow.settled_at),
        )
        return [
            RevenueRecord(
                id=row.id,
                owner_id=OwnerId(row.owner_id),
                service_id=ServiceId(row.service_id),
                order_id=OrderId(row.order_id),
                amount=MoneyAmount(row.amount),
                settled_at=row.settled_at,
            )
            for row in result.scalars().all()
        ]

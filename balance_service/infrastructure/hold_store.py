"""Hold Store — SQLAlchemy implementation of the HoldStore protocol.

Invariants:
    - find_matching orders oldest first (created_at, then id), deterministic
    - delete_by_id raises ResourceNotFoundError when nothing was deleted, so a
      hold drained by a concurrent settlement is never counted twice
    - A stored row is always a PLACED hold; leaving PLACED deletes the row
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from balance_service.core.domain_types import (
    Hold, HoldId, HoldState, OrderId, OwnerId, ServiceId,
)
from balance_service.core.errors import ResourceNotFoundError
from balance_service.core.money import MoneyAmount
from balance_service.models.hold import HoldRow


def _to_entity(row: HoldRow) -> Hold:
    return Hold(
        id=row.id,
        hold_id=HoldId(row.hold_id),
        owner_id=OwnerId(row.owner_id),
        service_id=ServiceId(row.service_id),
        order_id=OrderId(row.order_id),
        amount=MoneyAmount(row.amount),
        created_at=row.created_at,
        state=HoldState.PLACED,
    )


class SqlAlchemyHoldStore:
    """Holds table access bound to one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def create(self, hold: Hold) -> Hold:
        row = HoldRow(
            id=hold.id,
            hold_id=hold.hold_id,
            owner_id=hold.owner_id,
            service_id=hold.service_id,
            order_id=hold.order_id,
            amount=hold.amount.minor_units,
            created_at=hold.created_at,
        )
        self._db.add(row)
        await self._db.flush()
        return _to_entity(row)

    async def get(self, hold_id: HoldId) -> Hold | None:
        result = await self._db.execute(
            select(HoldRow).where(HoldRow.hold_id == hold_id),
        )
        row = result.scalar_one_or_none()
        return _to_entity(row) if row else None

    async def find_matching(
        self,
        owner_id: OwnerId,
        service_id: ServiceId,
        order_id: OrderId,
        amount: MoneyAmount,
    ) -> list[Hold]:
        result = await self._db.execute(
            select(HoldRow)
            .where(
                HoldRow.owner_id == owner_id,
                HoldRow.service_id == service_id,
                HoldRow.order_id == order_id,
                HoldRow.amount == amount.minor_units,
            )
            .order_by(HoldRow.created_at, HoldRow.id),
        )
        return [_to_entity(row) for row in result.scalars().all()]

    async def delete_by_id(self, hold_id: HoldId) -> None:
        result = await self._db.execute(
            delete(HoldRow).where(HoldRow.hold_id == hold_id),
        )
        if result.rowcount == 0:
            raise ResourceNotFoundError("Hold", str(hold_id))

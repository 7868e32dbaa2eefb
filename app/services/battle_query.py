"""Battle query service — read-only per-user views of stored battles.

Request "status" is never stored: sent, received and in-progress lists are
pure projections over Battle state, recomputed on every read.
"""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.battle import Battle, BattleState
from app.services.battle_store import get_battle, store_read
from app.services.errors import BattleForbiddenError, BattleNotFoundError


async def list_user_battles(db: AsyncSession, user_id: int) -> list[Battle]:
    """All battles the user takes part in, any state, oldest first."""
    stmt = (
        select(Battle)
        .where(or_(Battle.player_one_id == user_id, Battle.player_two_id == user_id))
        .order_by(Battle.id)
        .execution_options(populate_existing=True)
    )
    async with store_read(db):
        result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_battle_for_user(db: AsyncSession, battle_id: int, user_id: int) -> Battle:
    async with store_read(db):
        battle = await get_battle(db, battle_id, refresh=True)
    if battle is None:
        raise BattleNotFoundError(f"Battle {battle_id} not found")
    if battle.side_of(user_id) is None:
        raise BattleForbiddenError("You are not a player in this battle")
    return battle


def sent_requests(battles: list[Battle], user_id: int) -> list[Battle]:
    return [
        b for b in battles
        if b.player_one_id == user_id and b.state == BattleState.requested
    ]


def received_requests(battles: list[Battle], user_id: int) -> list[Battle]:
    return [
        b for b in battles
        if b.player_two_id == user_id and b.state == BattleState.requested
    ]


def in_progress_battles(battles: list[Battle], user_id: int) -> list[Battle]:
    return [
        b for b in battles
        if b.side_of(user_id) is not None and b.state == BattleState.active
    ]

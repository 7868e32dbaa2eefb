"""Battle store — loading and atomic per-battle mutation of Battle aggregates.

Every write to a battle goes through ``battle_transaction``:
  1. take the battle's lock (bounded wait, TransientUnavailable on timeout),
  2. re-read the aggregate so the caller never decides on stale state,
  3. let the caller mutate it,
  4. bump ``Battle.version`` and commit, if anything changed.

The version bump makes the UPDATE conditional on the version that was read,
so a writer in another process that got there first turns into an
InvalidState here instead of a lost update. Any exception rolls back.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.models.battle import Battle
from app.services.errors import (
    BattleNotFoundError,
    InvalidStateError,
    TransientUnavailableError,
)

logger = logging.getLogger(__name__)


class BattleLocks:
    """Registry of per-key asyncio locks.

    A lock only lives in the registry while some task holds or waits for it,
    so the registry does not grow with the number of battles ever touched.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: Hashable, timeout: float) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError:
                raise TransientUnavailableError(
                    f"Timed out after {timeout}s waiting for {key!r}"
                ) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


battle_locks = BattleLocks()


def pair_key(user_a: int, user_b: int) -> tuple[str, int, int]:
    """Lock key for the unordered pair of users, shared by both request directions."""
    low, high = sorted((user_a, user_b))
    return ("pair", low, high)


async def get_battle(db: AsyncSession, battle_id: int, refresh: bool = False) -> Battle | None:
    stmt = select(Battle).where(Battle.id == battle_id)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def add_battle(db: AsyncSession, battle: Battle) -> Battle:
    """Insert a new battle and return it reloaded with server defaults."""
    db.add(battle)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise
    except (OperationalError, PoolTimeoutError) as exc:
        await db.rollback()
        logger.warning("Store unavailable while creating battle: %s", exc)
        raise TransientUnavailableError("Battle store is unavailable, please retry") from exc
    return await get_battle(db, battle.id, refresh=True)


@asynccontextmanager
async def store_read(db: AsyncSession) -> AsyncIterator[None]:
    """Report a store outage during a plain read as TransientUnavailable."""
    try:
        yield
    except (OperationalError, PoolTimeoutError) as exc:
        await db.rollback()
        logger.warning("Store unavailable during read: %s", exc)
        raise TransientUnavailableError("Battle store is unavailable, please retry") from exc


@asynccontextmanager
async def locked(key: Hashable) -> AsyncIterator[None]:
    async with battle_locks.hold(key, settings.store_timeout_seconds):
        yield


@asynccontextmanager
async def battle_transaction(db: AsyncSession, battle_id: int) -> AsyncIterator[Battle]:
    """Yield a fresh, exclusively held Battle and commit whatever the caller changes.

    After a successful exit the yielded object reflects the committed row.
    """
    async with locked(("battle", battle_id)):
        try:
            battle = await get_battle(db, battle_id, refresh=True)
            if battle is None:
                raise BattleNotFoundError(f"Battle {battle_id} not found")
            yield battle
            if db.new or db.dirty or db.deleted:
                battle.version = battle.version + 1
            await db.commit()
        except StaleDataError as exc:
            await db.rollback()
            logger.warning("Battle %s changed concurrently; rejecting write", battle_id)
            raise InvalidStateError(
                "Battle state changed, please refresh and try again"
            ) from exc
        except (OperationalError, PoolTimeoutError) as exc:
            await db.rollback()
            logger.warning("Store unavailable while updating battle %s: %s", battle_id, exc)
            raise TransientUnavailableError("Battle store is unavailable, please retry") from exc
        except BaseException:
            await db.rollback()
            raise
        # Reload so server-side values and newly inserted children are populated.
        await get_battle(db, battle_id, refresh=True)

"""BodyMapGeneration: one current body map per user plus the saved history."""

import logging
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bodymap.concepts.dates import parse_datetime
from bodymap.core.security import fresh_id
from bodymap.models.body_map import BodyMap, DailyGenerationStatus, MapOwner
from bodymap.sync_engine import action, query

logger = logging.getLogger(__name__)

DAILY_STATUS_ID = "dailyGeneration"


class BodyMapGeneration:
    """Generates blank body maps and keeps the previous ones as saved maps.

    Daily generation only records that today's run happened; fanning out a
    new map per user is left to the synchronizations.
    """

    name = "BodyMapGeneration"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @action(outputs=("mapId",))
    async def generateMap(self, user: str) -> dict:
        """Create a new current map for ``user``, saving the previous one."""
        async with self.session_factory() as db:
            owner = await db.get(MapOwner, user)
            if owner is None:
                owner = MapOwner(user_id=user, current_map_id=None)
                db.add(owner)
            elif owner.current_map_id:
                previous = await db.get(BodyMap, owner.current_map_id)
                if previous is not None:
                    previous.is_saved = True

            body_map = BodyMap(id=fresh_id(), owner_id=user, creation_date=datetime.utcnow(), is_saved=False)
            db.add(body_map)
            owner.current_map_id = body_map.id
            await db.commit()

        logger.debug(f"Generated map {body_map.id} for user {user}")
        return {"mapId": body_map.id}

    @action()
    async def saveMap(self, user: str) -> dict:
        async with self.session_factory() as db:
            owner = await db.get(MapOwner, user)
            current = await db.get(BodyMap, owner.current_map_id) if owner and owner.current_map_id else None
            if current is None:
                return {"error": f"User {user} does not have a current map to save."}

            current.is_saved = True
            await db.commit()
        return {}

    @action()
    async def clearMap(self, user: str) -> dict:
        """Delete the current map; the user is left without one."""
        async with self.session_factory() as db:
            owner = await db.get(MapOwner, user)
            current = await db.get(BodyMap, owner.current_map_id) if owner and owner.current_map_id else None
            if current is None:
                return {"error": f"User {user} does not have a current map to clear."}

            await db.delete(current)
            owner.current_map_id = None
            await db.commit()
        return {}

    @action(outputs=("date",))
    async def triggerDailyMapGeneration(self) -> dict:
        """Mark today's generation as done; fails when it already ran today."""
        today = datetime.utcnow().date()
        async with self.session_factory() as db:
            status = await db.get(DailyGenerationStatus, DAILY_STATUS_ID)
            if status is not None and status.last_run_date == today:
                return {"error": "Daily map generation has already run for today."}

            if status is None:
                db.add(DailyGenerationStatus(id=DAILY_STATUS_ID, last_run_date=today))
            else:
                status.last_run_date = today
            await db.commit()

        logger.info(f"Daily map generation triggered for {today.isoformat()}")
        return {"date": today.isoformat()}

    @query(outputs=("map",))
    async def _getCurrentMap(self, user: str) -> list[dict]:
        async with self.session_factory() as db:
            owner = await db.get(MapOwner, user)
            current = await db.get(BodyMap, owner.current_map_id) if owner and owner.current_map_id else None
        return [{"map": current.to_state() if current else None}]

    @query(outputs=("maps",))
    async def _getSavedMaps(self, user: str) -> list[dict]:
        """Saved maps of ``user``, oldest first, never including the current one."""
        async with self.session_factory() as db:
            owner = await db.get(MapOwner, user)
            stmt = (
                select(BodyMap)
                .where(BodyMap.owner_id == user, BodyMap.is_saved.is_(True))
                .order_by(BodyMap.creation_date)
            )
            if owner and owner.current_map_id:
                stmt = stmt.where(BodyMap.id != owner.current_map_id)
            result = await db.execute(stmt)
            maps = result.scalars().all()
        return [{"maps": [m.to_state() for m in maps]}]

    @query(outputs=("user",))
    async def _getUsers(self) -> list[dict]:
        """One record per known user."""
        async with self.session_factory() as db:
            result = await db.execute(select(MapOwner.user_id).order_by(MapOwner.user_id))
            return [{"user": user_id} for user_id in result.scalars().all()]

    @query(outputs=("maps",))
    async def _getMapsForUser(self, user: str, start=None, end=None) -> list[dict]:
        """Ids of every map owned by ``user``, optionally within [start, end].

        An unparseable bound matches no maps.
        """
        stmt = select(BodyMap.id).where(BodyMap.owner_id == user).order_by(BodyMap.creation_date)
        if start is not None:
            start_at = parse_datetime(start)
            if start_at is None:
                return [{"maps": []}]
            stmt = stmt.where(BodyMap.creation_date >= start_at)
        if end is not None:
            end_at = parse_datetime(end, end_of_day=True)
            if end_at is None:
                return [{"maps": []}]
            stmt = stmt.where(BodyMap.creation_date <= end_at)

        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [{"maps": list(result.scalars().all())}]

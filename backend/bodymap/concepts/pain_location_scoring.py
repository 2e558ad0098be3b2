"""PainLocationScoring: named pain regions on body maps, each with a 1-10 score."""

import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bodymap.core.security import fresh_id
from bodymap.models.pain_region import PainRegion, TrackedMap
from bodymap.sync_engine import action, query

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 10


class PainLocationScoring:
    """Regions belong to a map and a user.

    Map ownership is learned through ``trackMap``, so region actions can be
    validated without reading another module's state.
    """

    name = "PainLocationScoring"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @action()
    async def trackMap(self, user: str, map: str) -> dict:
        """Record that ``map`` belongs to ``user``."""
        async with self.session_factory() as db:
            tracked = await db.get(TrackedMap, map)
            if tracked is not None:
                if tracked.user_id != user:
                    return {"error": f"Map {map} is already tracked for another user."}
                return {}
            db.add(TrackedMap(map_id=map, user_id=user))
            await db.commit()
        return {}

    @action(outputs=("region",))
    async def addRegion(self, user: str, map: str, regionName: str) -> dict:
        if not isinstance(regionName, str) or not regionName.strip():
            return {"error": "Region name cannot be empty."}

        async with self.session_factory() as db:
            tracked = await db.get(TrackedMap, map)
            if tracked is None or tracked.user_id != user:
                return {"error": f"Map {map} does not exist or does not belong to user {user}."}

            region = PainRegion(id=fresh_id(), map_id=map, user_id=user, name=regionName.strip())
            db.add(region)
            await db.commit()

        logger.debug(f"Added region {region.name} to map {map}")
        return {"region": region.id}

    @action()
    async def scoreRegion(self, user: str, region: str, score) -> dict:
        if (
            isinstance(score, bool)
            or not isinstance(score, (int, float))
            or score != int(score)
            or not MIN_SCORE <= score <= MAX_SCORE
        ):
            return {"error": f"Score must be a whole number between {MIN_SCORE} and {MAX_SCORE}."}

        async with self.session_factory() as db:
            state = await db.get(PainRegion, region)
            if state is None or state.user_id != user:
                return {"error": f"Region {region} does not exist or does not belong to user {user}."}
            state.score = int(score)
            await db.commit()
        return {}

    @action()
    async def deleteRegion(self, user: str, region: str) -> dict:
        async with self.session_factory() as db:
            state = await db.get(PainRegion, region)
            if state is None or state.user_id != user:
                return {"error": f"Region {region} does not exist or does not belong to user {user}."}
            await db.delete(state)
            await db.commit()
        return {}

    @query(outputs=("region",))
    async def _getRegion(self, user: str, region: str) -> list[dict]:
        async with self.session_factory() as db:
            state = await db.get(PainRegion, region)
        if state is None or state.user_id != user:
            return []
        return [{"region": state.to_state()}]

    @query(outputs=("regions",))
    async def _getRegionsForMap(self, user: str, map: str) -> list[dict]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(PainRegion)
                .where(PainRegion.map_id == map, PainRegion.user_id == user)
                .order_by(PainRegion.name)
            )
            regions = result.scalars().all()
        return [{"regions": [r.to_state() for r in regions]}]

    @query(outputs=("scores",))
    async def _getScoresForRegion(self, user: str, maps: list, regionName: str) -> list[dict]:
        """One entry per appearance of ``regionName`` on ``maps``; None when unscored."""
        if not maps:
            return [{"scores": []}]
        async with self.session_factory() as db:
            result = await db.execute(
                select(PainRegion.score).where(
                    PainRegion.user_id == user,
                    PainRegion.map_id.in_(list(maps)),
                    PainRegion.name == regionName,
                )
            )
            return [{"scores": list(result.scalars().all())}]

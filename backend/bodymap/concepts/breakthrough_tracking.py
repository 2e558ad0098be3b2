"""BreakThroughTracking: timed breakthrough pain episodes grouped by month."""

import logging
from datetime import datetime
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bodymap.concepts.dates import parse_datetime
from bodymap.core.security import fresh_id
from bodymap.models.breakthrough import Breakthrough
from bodymap.sync_engine import action, query

logger = logging.getLogger(__name__)

NOT_FOUND = "Breakthrough not found or does not belong to the user."


def _minutes(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)


class BreakThroughTracking:
    """Episodes of one user never overlap within a month.

    A user has at most one ongoing episode per month; only completed
    episodes count towards the monthly summary.
    """

    name = "BreakThroughTracking"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @action(outputs=("pain",))
    async def startBreakthrough(self, user: str, startTime, month: str) -> dict:
        start = parse_datetime(startTime)
        if start is None:
            return {"error": "Invalid startTime provided. Must be a valid Date object."}

        async with self.session_factory() as db:
            for other in await self._episodes(db, user, month):
                if other.end_time is None or other.start_time <= start <= other.end_time:
                    return {"error": "An overlapping breakthrough already exists or is ongoing for this user in this month."}

            pain = Breakthrough(id=fresh_id(), user_id=user, month_id=month, start_time=start)
            db.add(pain)
            await db.commit()
            return {"pain": pain.to_state()}

    @action(outputs=("pain",))
    async def endBreakthrough(self, user: str, pain: str, endTime) -> dict:
        end = parse_datetime(endTime)
        if end is None:
            return {"error": "Invalid endTime provided. Must be a valid Date object."}

        async with self.session_factory() as db:
            state = await db.get(Breakthrough, pain)
            if state is None or state.user_id != user:
                return {"error": NOT_FOUND}
            if state.end_time is not None:
                return {"error": "Breakthrough already has an end time."}
            if end < state.start_time:
                return {"error": "End time cannot be before start time."}

            state.end_time = end
            state.duration = _minutes(state.start_time, end)
            await db.commit()
            return {"pain": state.to_state()}

    @action(outputs=("pain",))
    async def editBreakthrough(self, user: str, pain: str, newStart, newEnd) -> dict:
        """Move an episode to a new time range and recompute its duration."""
        start = parse_datetime(newStart)
        end = parse_datetime(newEnd)
        if start is None or end is None:
            return {"error": "Invalid newStart or newEnd time provided. Must be valid Date objects."}

        async with self.session_factory() as db:
            state = await db.get(Breakthrough, pain)
            if state is None or state.user_id != user:
                return {"error": NOT_FOUND}
            if end < start:
                return {"error": "newEnd time cannot be before newStart time."}

            for other in await self._episodes(db, user, state.month_id):
                if other.id == state.id:
                    continue
                if other.start_time < end and (other.end_time is None or start < other.end_time):
                    return {"error": "Edited breakthrough overlaps with another existing breakthrough for this user in this month."}

            state.start_time = start
            state.end_time = end
            state.duration = _minutes(start, end)
            await db.commit()
            return {"pain": state.to_state()}

    @action()
    async def deleteBreakthrough(self, user: str, pain: str) -> dict:
        async with self.session_factory() as db:
            state = await db.get(Breakthrough, pain)
            if state is None or state.user_id != user:
                return {"error": NOT_FOUND}
            await db.delete(state)
            await db.commit()
        return {}

    @action(outputs=("frequency", "avgDuration", "summary"))
    async def summarise(self, user: str, month: str) -> dict:
        """Count and average the completed episodes of one month."""
        async with self.session_factory() as db:
            episodes = await self._episodes(db, user, month)

        durations = [e.duration for e in episodes if e.end_time is not None]
        frequency = len(durations)
        average = sum(durations) / frequency if frequency else 0
        return {
            "frequency": frequency,
            "avgDuration": average,
            "summary": (
                f"Summary for {user} in {month}: {frequency} breakthrough(s) "
                f"with an average duration of {average:.2f} minutes."
            ),
        }

    @query(outputs=("breakthroughs",))
    async def _getBreakthroughs(self, user: str, month: str) -> list[dict]:
        async with self.session_factory() as db:
            episodes = await self._episodes(db, user, month)
        return [{"breakthroughs": [e.to_state() for e in episodes]}]

    async def _episodes(self, db: AsyncSession, user: str, month: str) -> list[Breakthrough]:
        result = await db.execute(
            select(Breakthrough)
            .where(Breakthrough.user_id == user, Breakthrough.month_id == month)
            .order_by(Breakthrough.start_time)
        )
        return list(result.scalars().all())

"""MapSummaryGeneration: per-region statistics and summaries over a period."""

import logging
import statistics
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bodymap.concepts.dates import parse_datetime
from bodymap.core.security import fresh_id
from bodymap.models.summary import RegionSummary
from bodymap.sync_engine import action, query

logger = logging.getLogger(__name__)


def median_score(scores) -> float:
    """Median of the recorded scores, ignoring unscored entries; 0 when there are none."""
    recorded = sorted(s for s in scores if s is not None)
    if not recorded:
        return 0
    return statistics.median(recorded)


class MapSummaryGeneration:
    """Summarises how often a region appeared and how much it hurt.

    The region appearances are supplied by the caller, so the module only
    owns the stored summaries.
    """

    name = "MapSummaryGeneration"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @action(outputs=("score", "frequency"))
    async def sumRegion(self, scores: list) -> dict:
        """Count the appearances and take the median of their scores."""
        if not isinstance(scores, (list, tuple)):
            return {"error": "Scores must be a list."}
        return {"score": median_score(scores), "frequency": len(scores)}

    @action(outputs=("summary",))
    async def summarise(self, start, end, regionName: str, score, frequency: int) -> dict:
        period = self._period(start, end)
        if "error" in period:
            return period
        if not isinstance(regionName, str) or not regionName.strip():
            return {"error": "Region name cannot be empty."}

        start_text = period["start"].date().isoformat()
        end_text = period["end"].date().isoformat()
        if frequency == 0:
            summary = f"No occurrences of {regionName} during {start_text} to {end_text}."
        elif score == 0:
            summary = (
                f"{regionName} appeared {frequency} time(s) during {start_text} to {end_text}, "
                f"but no scores were recorded."
            )
        else:
            summary = (
                f"{regionName} appeared {frequency} time(s) with a median score of "
                f"{score:.1f} during {start_text} to {end_text}."
            )
        return {"summary": summary}

    @action(outputs=("summaryId",))
    async def generateAndStoreSummary(self, user: str, start, end, regionName: str, scores: list) -> dict:
        """sumRegion followed by summarise, with the result stored for ``user``."""
        totals = await self.sumRegion(scores)
        if "error" in totals:
            return totals
        text = await self.summarise(start, end, regionName, totals["score"], totals["frequency"])
        if "error" in text:
            return text

        period = self._period(start, end)
        async with self.session_factory() as db:
            summary = RegionSummary(
                id=fresh_id(),
                user_id=user,
                name=regionName,
                frequency=totals["frequency"],
                median_score=float(totals["score"]),
                summary=text["summary"],
                period_start=period["start"].date(),
                period_end=period["end"].date(),
            )
            db.add(summary)
            await db.commit()

        logger.info(f"Stored summary {summary.id} of {regionName} for user {user}")
        return {"summaryId": summary.id}

    @query(outputs=("summary",))
    async def _getSummary(self, summaryId: str) -> list[dict]:
        async with self.session_factory() as db:
            summary = await db.get(RegionSummary, summaryId)
        return [{"summary": summary.to_state() if summary else None}]

    @query(outputs=("summaries",))
    async def _getUserSummaries(self, user: str) -> list[dict]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(RegionSummary)
                .where(RegionSummary.user_id == user)
                .order_by(RegionSummary.created_at)
            )
            summaries = result.scalars().all()
        return [{"summaries": [s.to_state() for s in summaries]}]

    def _period(self, start, end) -> dict:
        start_at = parse_datetime(start)
        end_at = parse_datetime(end, end_of_day=True)
        if start_at is None or end_at is None:
            return {"error": "Invalid period provided. Start and end must be dates."}
        if start_at > end_at:
            return {"error": "Period start date must be before end date."}
        return {"start": start_at, "end": end_at}

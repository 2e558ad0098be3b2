"""Synchronization engine: the dispatch loop that couples independent modules."""

import logging
from dataclasses import replace
from typing import Any, Mapping

from bodymap.core.config import settings
from bodymap.sync_engine.dispatcher import EffectDispatcher
from bodymap.sync_engine.errors import (
    CascadeLimitExceeded,
    FanOutLimitExceeded,
    MalformedRuleError,
    UnknownOperationError,
)
from bodymap.sync_engine.event_emitter import OccurrenceEmitter
from bodymap.sync_engine.frames import Frames
from bodymap.sync_engine.matcher import PatternMatcher
from bodymap.sync_engine.models import CycleReport, Diagnostic, Occurrence, SyncRule
from bodymap.sync_engine.operation_registry import OperationRegistry
from bodymap.sync_engine.pipeline import SyncPipeline
from bodymap.sync_engine.rule_registry import RuleRegistry

logger = logging.getLogger(__name__)


class _Cycle:
    """Per-cycle state: the occurrences seen so far and the matches consumed."""

    def __init__(self) -> None:
        self.history: list[Occurrence] = []
        self._consumed: set[tuple[str, frozenset[int]]] = set()

    def record(self, occurrence: Occurrence) -> Occurrence:
        occurrence = replace(occurrence, id=len(self.history) + 1)
        self.history.append(occurrence)
        return occurrence

    def consume(self, rule: str, key: frozenset[int]) -> bool:
        """Mark a match as used; False if it was already used in this cycle."""
        if (rule, key) in self._consumed:
            return False
        self._consumed.add((rule, key))
        return True


class SyncEngine:
    """Evaluates every synchronization against every occurrence.

    One externally triggered occurrence starts a dispatch cycle. The cycle
    processes occurrences one generation at a time: each occurrence is
    matched against the rules that have a trigger clause on its operation,
    fully matched rules run their pipeline and consequents, and the
    consequents' occurrences form the next generation. The cycle ends when a
    generation produces nothing, or when a guard trips.

    The rule registry is frozen when the engine takes it, so the rule set
    stays fixed for the engine's lifetime.
    """

    def __init__(
        self,
        operations: OperationRegistry,
        rules: RuleRegistry,
        max_generations: int | None = None,
        max_fanout: int | None = None,
        emitter: OccurrenceEmitter | None = None,
    ):
        """Initialize the engine.

        Args:
            operations: Registry used to invoke actions and queries
            rules: The synchronizations to evaluate; frozen on construction
            max_generations: Cascade guard, defaults to SYNC_MAX_GENERATIONS
            max_fanout: Frames allowed per rule firing, defaults to SYNC_MAX_FANOUT
            emitter: Receives every recorded occurrence
        """
        rules.freeze()
        self.operations = operations
        self.rules = rules
        if max_generations is None:
            max_generations = settings.SYNC_MAX_GENERATIONS
        if max_fanout is None:
            max_fanout = settings.SYNC_MAX_FANOUT
        self.max_generations = max_generations
        self.emitter = emitter or OccurrenceEmitter()
        self.matcher = PatternMatcher()
        self.pipeline = SyncPipeline(operations, max_fanout)
        self.dispatcher = EffectDispatcher(operations)

    async def invoke(
        self, module: str, operation: str, inputs: Mapping[str, Any] | None = None
    ) -> CycleReport:
        """Invoke an action and run the cycle its occurrence starts.

        This is the entry point for the request boundary and for timers.
        """
        occurrence = await self.operations.invoke(module, operation, inputs)
        return await self.dispatch(occurrence)

    async def dispatch(self, occurrence: Occurrence) -> CycleReport:
        """Run one dispatch cycle starting from ``occurrence``.

        Guard trips and malformed rules are recorded on the returned report
        and logged; they are never raised.
        """
        cycle = _Cycle()
        occurrence = cycle.record(replace(occurrence, generation=0))
        report = CycleReport(trigger=occurrence)
        self._observe(report, occurrence)

        logger.info(
            f"Dispatch cycle started by {occurrence.module}.{occurrence.operation}"
        )

        current = [occurrence]
        generation = 0
        while current:
            report.generations = generation + 1
            produced: list[Occurrence] = []

            for occ in current:
                for rule in self.rules.get_by_trigger(occ.module, occ.operation):
                    try:
                        await self._fire(rule, occ, cycle, generation, produced)
                    except (CascadeLimitExceeded, FanOutLimitExceeded) as e:
                        logger.warning(f"Aborting dispatch cycle: {e}")
                        report.diagnostics.append(Diagnostic(rule.name, generation, e))
                        report.aborted = True
                    except (MalformedRuleError, UnknownOperationError) as e:
                        logger.error(f"Malformed rule {rule.name}: {e}")
                        report.diagnostics.append(Diagnostic(rule.name, generation, e))
                    if report.aborted:
                        break
                if report.aborted:
                    break

            next_generation = []
            for occ in produced:
                occ = cycle.record(occ)
                self._observe(report, occ)
                next_generation.append(occ)

            if report.aborted:
                break
            current = next_generation
            generation += 1

        logger.info(
            f"Dispatch cycle finished: {len(report.occurrences)} occurrences, "
            f"{report.generations} generations"
            + (", aborted" if report.aborted else "")
        )
        return report

    async def _fire(
        self,
        rule: SyncRule,
        occurrence: Occurrence,
        cycle: _Cycle,
        generation: int,
        produced: list[Occurrence],
    ) -> None:
        for match in self.matcher.complete_matches(rule, occurrence, cycle.history):
            if not cycle.consume(rule.name, match.key):
                continue

            frames = await self.pipeline.run(rule, Frames([match.frame]), generation)
            if not frames:
                logger.debug(f"Rule {rule.name}: no frames left after pipeline")
                continue

            if generation >= self.max_generations:
                raise CascadeLimitExceeded(rule.name, generation, self.max_generations)

            logger.info(f"Rule {rule.name} fired for {len(frames)} frame(s)")
            produced.extend(await self.dispatcher.dispatch(rule, frames, generation))

    def _observe(self, report: CycleReport, occurrence: Occurrence) -> None:
        report.occurrences.append(occurrence)
        self.emitter.emit(occurrence)

# backend/bodymap/services/runtime.py
"""Wires the concepts, the sync catalog and the engine together."""

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bodymap.concepts import (
    BodyMapGeneration,
    BreakThroughTracking,
    MapSummaryGeneration,
    PainLocationScoring,
    Requesting,
    UserAuthentication,
)
from bodymap.sync_engine import (
    OccurrenceEmitter,
    OperationRegistry,
    RuleRegistry,
    SyncEngine,
    SyncRule,
    log_occurrence,
)
from bodymap.syncs import ALL_SYNCS

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    operations: OperationRegistry
    rules: RuleRegistry
    engine: SyncEngine
    requesting: Requesting
    emitter: OccurrenceEmitter


def build_runtime(
    session_factory: async_sessionmaker[AsyncSession],
    syncs: Iterable[SyncRule] | None = None,
    max_generations: int | None = None,
    max_fanout: int | None = None,
) -> Runtime:
    """Register every concept, load the sync catalog and build the engine.

    The rule set is frozen once the engine owns it.
    """
    operations = OperationRegistry()
    requesting = Requesting()
    for concept in (
        UserAuthentication(session_factory),
        BodyMapGeneration(session_factory),
        PainLocationScoring(session_factory),
        MapSummaryGeneration(session_factory),
        BreakThroughTracking(session_factory),
        requesting,
    ):
        operations.register_concept(concept)

    rules = RuleRegistry(operations)
    rules.register_all(ALL_SYNCS if syncs is None else syncs)
    logger.info(f"Loaded {len(rules)} synchronizations over {len(operations)} operations")

    emitter = OccurrenceEmitter()
    emitter.subscribe(log_occurrence)
    engine = SyncEngine(
        operations,
        rules,
        max_generations=max_generations,
        max_fanout=max_fanout,
        emitter=emitter,
    )
    return Runtime(
        operations=operations,
        rules=rules,
        engine=engine,
        requesting=requesting,
        emitter=emitter,
    )

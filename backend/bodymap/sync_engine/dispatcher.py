"""Effect dispatcher: invokes a rule's consequent actions for each frame."""

import logging
from dataclasses import replace

from bodymap.sync_engine.errors import MalformedRuleError
from bodymap.sync_engine.frames import Frames
from bodymap.sync_engine.models import Occurrence, SyncRule
from bodymap.sync_engine.operation_registry import OperationRegistry

logger = logging.getLogger(__name__)


class EffectDispatcher:
    """Instantiates consequent clauses and invokes them.

    Every frame gets every consequent, in declared order. A failure-shaped
    output does not stop the remaining calls; it simply becomes a failure
    occurrence for other rules to react to.
    """

    def __init__(self, operations: OperationRegistry):
        self.operations = operations

    async def dispatch(self, rule: SyncRule, frames: Frames, generation: int) -> list[Occurrence]:
        """Invoke the consequents of ``rule`` for every frame.

        All templates are instantiated before the first call, so an unbound
        variable aborts the firing without leaving half of it applied.

        Returns:
            The produced occurrences, stamped with ``generation + 1`` and
            the rule name as their cause

        Raises:
            MalformedRuleError: If a consequent references an unbound variable
        """
        try:
            calls = [
                (clause, frame.resolve(clause.inputs))
                for frame in frames
                for clause in rule.then
            ]
        except MalformedRuleError as e:
            raise MalformedRuleError(str(e), rule=rule.name) from e

        produced = []
        for clause, inputs in calls:
            occurrence = await self.operations.invoke(clause.module, clause.operation, inputs)
            occurrence = replace(occurrence, generation=generation + 1, cause=rule.name)
            if occurrence.failed:
                logger.info(
                    f"Rule {rule.name}: {clause.module}.{clause.operation} failed: {occurrence.error}"
                )
            else:
                logger.debug(f"Rule {rule.name}: invoked {clause.module}.{clause.operation}")
            produced.append(occurrence)

        return produced

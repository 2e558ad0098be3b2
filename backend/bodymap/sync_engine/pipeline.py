"""Join/filter stage: runs a rule's ``where`` steps over its frames."""

import logging
from functools import partial

from bodymap.sync_engine.errors import FanOutLimitExceeded, MalformedRuleError
from bodymap.sync_engine.frames import Frames
from bodymap.sync_engine.models import FilterStep, MapStep, QueryStep, SyncRule
from bodymap.sync_engine.operation_registry import OperationRegistry

logger = logging.getLogger(__name__)


class SyncPipeline:
    """Applies query, filter and map steps in declared order.

    Query steps are relational joins against live module state: a frame with
    no matching records is dropped, a frame with K records becomes K frames.
    Filter steps only narrow. Map steps only add bindings.
    """

    def __init__(self, operations: OperationRegistry, max_fanout: int):
        self.operations = operations
        self.max_fanout = max_fanout

    async def run(self, rule: SyncRule, frames: Frames, generation: int = 0) -> Frames:
        """Run every pipeline step of ``rule`` over ``frames``.

        Raises:
            FanOutLimitExceeded: If a step leaves more frames than allowed
            MalformedRuleError: If a step cannot be evaluated as declared
        """
        for step in rule.where:
            before = len(frames)
            try:
                frames = await self._run_step(step, frames)
            except MalformedRuleError as e:
                if e.rule is None:
                    raise MalformedRuleError(str(e), rule=rule.name) from e
                raise

            logger.debug(f"Rule {rule.name}: {type(step).__name__} {before} -> {len(frames)} frames")

            if len(frames) > self.max_fanout:
                raise FanOutLimitExceeded(rule.name, generation, len(frames), self.max_fanout)
            if not frames:
                break

        return frames

    async def _run_step(self, step, frames: Frames) -> Frames:
        if isinstance(step, QueryStep):
            invoke = partial(self.operations.query, step.module, step.query)
            return await frames.query(invoke, step.inputs, step.outputs)
        elif isinstance(step, FilterStep):
            label = step.description or "filter step"
            call = partial(frames.filter, step.predicate)
        elif isinstance(step, MapStep):
            label = step.description or "map step"
            call = partial(frames.map, step.fn, step.binds)
        else:
            raise MalformedRuleError(f"unknown pipeline step {step!r}")

        try:
            return call()
        except MalformedRuleError:
            raise
        except KeyError as e:
            raise MalformedRuleError(f"{label} read unbound name {e}") from e
        except Exception as e:
            raise MalformedRuleError(f"{label} raised {type(e).__name__}: {e}") from e

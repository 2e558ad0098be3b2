"""Pattern matching of occurrences against trigger clauses."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from bodymap.sync_engine.frames import Frame
from bodymap.sync_engine.models import Clause, Occurrence, Outcome, SyncRule, Var

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Match:
    """A complete match of a rule's trigger clauses.

    ``occurrence_ids`` lists, clause by clause, the occurrence that
    satisfied each clause.
    """

    frame: Frame
    occurrence_ids: tuple[int, ...]

    @property
    def key(self) -> frozenset[int]:
        return frozenset(self.occurrence_ids)


class PatternMatcher:
    """Matches occurrences against trigger clauses.

    A clause matches an occurrence when the module and operation are the
    same, the outcome agrees with the clause, every literal field equals the
    occurrence's value, and every variable field either binds a new name or
    agrees with the frame's existing binding.
    """

    def match_clause(self, clause: Clause, occurrence: Occurrence, frame: Frame) -> Frame | None:
        """Try to extend ``frame`` by matching ``clause`` against ``occurrence``.

        Returns:
            The extended frame, or None if the clause does not match
        """
        if clause.key != (occurrence.module, occurrence.operation):
            return None

        expected = clause.expects(occurrence.contract.failure_field)
        if expected is Outcome.SUCCESS and occurrence.failed:
            return None
        if expected is Outcome.FAILURE and not occurrence.failed:
            return None

        frame = self._match_fields(clause.inputs, occurrence.inputs, frame)
        if frame is None:
            return None
        return self._match_fields(clause.outputs, occurrence.outputs, frame)

    def _match_fields(
        self, pattern: Mapping[str, Any], values: Mapping[str, Any], frame: Frame
    ) -> Frame | None:
        bindings = {}
        for field_name, expected in pattern.items():
            if field_name not in values:
                return None
            actual = values[field_name]
            if isinstance(expected, Var):
                if expected.name in bindings and bindings[expected.name] != actual:
                    return None
                bindings[expected.name] = actual
            elif expected != actual:
                return None
        return frame.extend(bindings)

    def complete_matches(
        self, rule: SyncRule, occurrence: Occurrence, history: Sequence[Occurrence]
    ) -> list[Match]:
        """Find every complete match of ``rule`` that uses ``occurrence``.

        ``occurrence`` fills one clause; the remaining clauses are filled from
        ``history`` (the occurrences observed earlier in the same cycle). An
        occurrence fills at most one clause of a match, and a set of
        occurrences is reported once even if it can fill the clauses in more
        than one way.
        """
        matches: list[Match] = []
        seen: set[frozenset[int]] = set()
        candidates = [past for past in history if past.id != occurrence.id]

        for slot, clause in enumerate(rule.when):
            frame = self.match_clause(clause, occurrence, Frame())
            if frame is None:
                continue
            for match in self._fill(rule.when, {slot: occurrence}, frame, candidates):
                if match.key in seen:
                    continue
                seen.add(match.key)
                matches.append(match)

        if matches:
            logger.debug(f"Rule {rule.name} matched {len(matches)} time(s) on occurrence {occurrence.id}")
        return matches

    def _fill(
        self,
        clauses: tuple[Clause, ...],
        assigned: dict[int, Occurrence],
        frame: Frame,
        candidates: list[Occurrence],
    ):
        open_slots = [i for i in range(len(clauses)) if i not in assigned]
        if not open_slots:
            yield Match(frame, tuple(assigned[i].id for i in range(len(clauses))))
            return

        slot = open_slots[0]
        used = {occ.id for occ in assigned.values()}
        for past in candidates:
            if past.id in used:
                continue
            extended = self.match_clause(clauses[slot], past, frame)
            if extended is None:
                continue
            yield from self._fill(clauses, {**assigned, slot: past}, extended, candidates)

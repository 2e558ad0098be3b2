"""Rule registry for managing synchronization definitions."""

from typing import Iterable

from bodymap.sync_engine.errors import MalformedRuleError, RegistryFrozenError
from bodymap.sync_engine.models import (
    FilterStep,
    MapStep,
    OperationKind,
    QueryStep,
    SyncRule,
    Var,
    collect_vars,
)
from bodymap.sync_engine.operation_registry import OperationRegistry


class RuleRegistry:
    """Registry for synchronization rules.

    Rules are indexed by every (module, operation) pair that appears in
    their trigger clauses. Registration validates each rule as far as can be
    done statically; once the registry is frozen it no longer accepts
    changes and is shared, read-only, by the engine.
    """

    def __init__(self, operations: OperationRegistry | None = None):
        """Initialize an empty registry.

        Args:
            operations: When given, rules are checked against the registered
                operation contracts
        """
        self.operations = operations
        self._rules: dict[str, SyncRule] = {}
        self._trigger_index: dict[tuple[str, str], list[str]] = {}
        self._frozen = False

    def register(self, rule: SyncRule) -> None:
        """Register a rule.

        Raises:
            RegistryFrozenError: If the registry has been frozen
            MalformedRuleError: If the rule is invalid or its name is taken
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{rule.name}': rule set is frozen")
        if rule.name in self._rules:
            raise MalformedRuleError(f"Rule '{rule.name}' is already registered")

        self._validate(rule)
        self._rules[rule.name] = rule

        for key in sorted(rule.trigger_keys()):
            self._trigger_index.setdefault(key, []).append(rule.name)

    def register_all(self, rules: Iterable[SyncRule]) -> None:
        for rule in rules:
            self.register(rule)

    def lookup(self, rule_name: str) -> SyncRule | None:
        return self._rules.get(rule_name)

    def get_by_trigger(self, module: str, operation: str) -> list[SyncRule]:
        """Rules with at least one trigger clause on this operation, in registration order."""
        return [self._rules[name] for name in self._trigger_index.get((module, operation), [])]

    def get_all(self) -> list[SyncRule]:
        return list(self._rules.values())

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def clear(self) -> None:
        """Clear all registered rules."""
        if self._frozen:
            raise RegistryFrozenError("Cannot clear a frozen rule set")
        self._rules.clear()
        self._trigger_index.clear()

    def _validate(self, rule: SyncRule) -> None:
        def fail(message: str):
            raise MalformedRuleError(message, rule=rule.name)

        if not rule.when:
            fail("a rule needs at least one trigger clause")
        if not rule.then:
            fail("a rule needs at least one consequent clause")

        bound: set[str] = set()
        for clause in rule.when:
            self._check_contract(rule, clause.module, clause.operation, OperationKind.ACTION)
            for field_name, value in {**clause.inputs, **clause.outputs}.items():
                if not isinstance(value, Var) and collect_vars(value):
                    fail(f"trigger field '{field_name}' nests variables inside a literal")
            bound |= clause.variables()

        for step in rule.where:
            if isinstance(step, QueryStep):
                self._check_contract(rule, step.module, step.query, OperationKind.QUERY)
                unbound = collect_vars(step.inputs) - bound
                if unbound:
                    fail(f"query {step.module}.{step.query} uses unbound {sorted(unbound)}")
                if not all(isinstance(v, Var) for v in step.outputs.values()):
                    fail(f"query {step.module}.{step.query} outputs must bind variables")
                bound |= collect_vars(step.outputs)
            elif isinstance(step, MapStep):
                unread = set(step.reads) - bound
                if unread:
                    fail(f"map step reads unbound {sorted(unread)}")
                rebound = set(step.binds) & bound
                if rebound:
                    fail(f"map step rebinds {sorted(rebound)}")
                bound |= set(step.binds)
            elif isinstance(step, FilterStep):
                unread = set(step.reads) - bound
                if unread:
                    fail(f"filter step reads unbound {sorted(unread)}")
            else:
                fail(f"unknown pipeline step {step!r}")

        for clause in rule.then:
            contract = self._check_contract(rule, clause.module, clause.operation, OperationKind.ACTION)
            unbound = collect_vars(clause.inputs) - bound
            if unbound:
                fail(f"consequent {clause.module}.{clause.operation} uses unbound {sorted(unbound)}")
            if clause.outputs:
                fail(f"consequent {clause.module}.{clause.operation} cannot declare outputs")
            if contract is not None and not contract.extra_inputs:
                unknown = set(clause.inputs) - set(contract.inputs)
                if unknown:
                    fail(f"{contract.qualified_name} has no input(s) {sorted(unknown)}")

    def _check_contract(self, rule: SyncRule, module: str, operation: str, kind: OperationKind | None):
        if self.operations is None:
            return None
        contract = self.operations.lookup(module, operation)
        if contract is None:
            raise MalformedRuleError(f"unknown operation {module}.{operation}", rule=rule.name)
        if kind is not None and contract.kind is not kind:
            raise MalformedRuleError(
                f"{contract.qualified_name} is a {contract.kind.value.lower()}, expected {kind.value.lower()}",
                rule=rule.name,
            )
        return contract

    def __len__(self) -> int:
        """Return the number of registered rules."""
        return len(self._rules)

    def __contains__(self, rule_name: str) -> bool:
        """Check if a rule is registered."""
        return rule_name in self._rules

"""Shared data models for the synchronization engine."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Union

if TYPE_CHECKING:
    from bodymap.sync_engine.errors import SyncEngineError
    from bodymap.sync_engine.frames import Frame


FAILURE_FIELD = "error"

# Input/output fields never written to logs or reports
SENSITIVE_FIELDS = frozenset({"password"})
REDACTED = "***"


def redact(values: Mapping[str, Any]) -> dict[str, Any]:
    """Copy ``values`` with every sensitive field masked."""
    return {name: REDACTED if name in SENSITIVE_FIELDS else value for name, value in values.items()}


class OperationKind(Enum):
    ACTION = "ACTION"
    QUERY = "QUERY"


class Outcome(Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ANY = "ANY"


def _frozen(values: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class OperationContract:
    """Declared shape of one module operation.

    Outputs are a tagged union: an output mapping carrying ``failure_field``
    is the failure variant, anything else is the success variant.
    """

    module: str
    name: str
    kind: OperationKind = OperationKind.ACTION
    inputs: tuple[str, ...] = ()
    required: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    extra_inputs: bool = False
    failure_field: str = FAILURE_FIELD
    description: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.module, self.name)

    @property
    def qualified_name(self) -> str:
        return f"{self.module}.{self.name}"

    def is_failure(self, output: Mapping[str, Any]) -> bool:
        return self.failure_field in output


@dataclass(frozen=True)
class Var:
    """A rule variable. Anything in a template that is not a Var is a literal."""

    name: str

    def __repr__(self) -> str:
        return f"?{self.name}"


def variables(*names: str) -> tuple[Var, ...]:
    """Create several variables at once: ``user, map = variables("user", "map")``."""
    return tuple(Var(name) for name in names)


def collect_vars(template: Any) -> set[str]:
    """Return the names of every Var appearing anywhere in ``template``."""
    if isinstance(template, Var):
        return {template.name}
    if isinstance(template, Mapping):
        found: set[str] = set()
        for value in template.values():
            found |= collect_vars(value)
        return found
    if isinstance(template, (list, tuple)):
        found = set()
        for item in template:
            found |= collect_vars(item)
        return found
    return set()


@dataclass(frozen=True, eq=False)
class Occurrence:
    """One concrete firing of an operation.

    ``id`` and ``generation`` are assigned by the engine loop when the
    occurrence enters a dispatch cycle; ``cause`` names the rule whose
    consequent produced it and is None for external triggers.
    """

    contract: OperationContract
    inputs: Mapping[str, Any] = field(default_factory=dict)
    outputs: Mapping[str, Any] = field(default_factory=dict)
    id: int = 0
    generation: int = 0
    cause: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", _frozen(self.inputs))
        object.__setattr__(self, "outputs", _frozen(self.outputs))

    @property
    def module(self) -> str:
        return self.contract.module

    @property
    def operation(self) -> str:
        return self.contract.name

    @property
    def failed(self) -> bool:
        return self.contract.is_failure(self.outputs)

    @property
    def error(self) -> Any:
        return self.outputs.get(self.contract.failure_field)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "module": self.module,
            "operation": self.operation,
            "inputs": redact(self.inputs),
            "outputs": redact(self.outputs),
            "generation": self.generation,
            "cause": self.cause,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class Clause:
    """A pattern over one operation's inputs and outputs.

    Used both as a trigger clause (``when``) and as a consequent template
    (``then``). In a trigger, literal fields act as guards and Var fields bind
    or unify. When ``outcome`` is not given, a clause whose output template
    names the failure field only matches failures and every other clause
    only matches successes.
    """

    module: str
    operation: str
    inputs: Mapping[str, Any] = field(default_factory=dict)
    outputs: Mapping[str, Any] = field(default_factory=dict)
    outcome: Outcome | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", _frozen(self.inputs))
        object.__setattr__(self, "outputs", _frozen(self.outputs))

    @property
    def key(self) -> tuple[str, str]:
        return (self.module, self.operation)

    def expects(self, failure_field: str = FAILURE_FIELD) -> Outcome:
        if self.outcome is not None:
            return self.outcome
        if failure_field in self.outputs:
            return Outcome.FAILURE
        return Outcome.SUCCESS

    def variables(self) -> set[str]:
        return collect_vars(self.inputs) | collect_vars(self.outputs)

    def __repr__(self) -> str:
        return f"[{self.module}.{self.operation}, {dict(self.inputs)!r}, {dict(self.outputs)!r}]"


class ConceptRef:
    """Builds clauses for one module: ``Requesting.request({...}, {...})``."""

    def __init__(self, module: str):
        self.module = module

    def __getattr__(self, operation: str) -> Callable[..., Clause]:
        if operation.startswith("__"):
            raise AttributeError(operation)

        def build(
            inputs: Mapping[str, Any] | None = None,
            outputs: Mapping[str, Any] | None = None,
            outcome: Outcome | None = None,
        ) -> Clause:
            return Clause(self.module, operation, inputs or {}, outputs or {}, outcome)

        return build

    def __repr__(self) -> str:
        return f"ConceptRef({self.module!r})"


@dataclass(frozen=True)
class QueryStep:
    """Join each frame with the records of a read-only query.

    ``outputs`` maps record field names to the variables they bind.
    """

    module: str
    query: str
    inputs: Mapping[str, Any] = field(default_factory=dict)
    outputs: Mapping[str, Var] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", _frozen(self.inputs))
        object.__setattr__(self, "outputs", _frozen(self.outputs))


@dataclass(frozen=True)
class FilterStep:
    """Drop the frames for which ``predicate`` is falsy.

    ``reads`` names the bindings the predicate looks at; registration
    rejects the rule when one of them is never bound before the step.
    """

    predicate: Callable[["Frame"], Any]
    description: str | None = None
    reads: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "reads", tuple(self.reads))


@dataclass(frozen=True)
class MapStep:
    """Derive the bindings named in ``binds`` from each frame, reading ``reads``."""

    fn: Callable[["Frame"], Mapping[str, Any]]
    binds: tuple[str, ...]
    description: str | None = None
    reads: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "binds", tuple(self.binds))
        object.__setattr__(self, "reads", tuple(self.reads))


PipelineStep = Union[QueryStep, FilterStep, MapStep]


def project(source: str, field_name: str, into: str) -> MapStep:
    """Bind ``into`` to ``source[field_name]`` (None when the field is absent)."""

    def fn(frame: "Frame") -> dict[str, Any]:
        value = frame[source]
        return {into: value.get(field_name) if isinstance(value, Mapping) else None}

    return MapStep(fn, (into,), description=f"{into} = {source}.{field_name}", reads=(source,))


def alias(source: str, into: str) -> MapStep:
    """Bind ``into`` to the value already bound to ``source``."""
    return MapStep(
        lambda frame: {into: frame[source]}, (into,), description=f"{into} = {source}", reads=(source,)
    )


@dataclass(frozen=True)
class SyncRule:
    """A synchronization: trigger clauses, pipeline steps, consequent clauses.

    All ``when`` clauses must be matched, with consistent bindings, by
    occurrences of the same dispatch cycle before ``where`` runs.
    """

    name: str
    when: tuple[Clause, ...]
    then: tuple[Clause, ...]
    where: tuple[PipelineStep, ...] = ()
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "when", tuple(self.when))
        object.__setattr__(self, "then", tuple(self.then))
        object.__setattr__(self, "where", tuple(self.where))

    def trigger_keys(self) -> set[tuple[str, str]]:
        return {clause.key for clause in self.when}


def sync(
    name: str,
    when: Iterable[Clause],
    then: Iterable[Clause],
    where: Iterable[PipelineStep] = (),
    description: str | None = None,
) -> SyncRule:
    return SyncRule(
        name=name,
        when=tuple(when),
        then=tuple(then),
        where=tuple(where),
        description=description,
    )


@dataclass(frozen=True)
class Diagnostic:
    """An operator-visible problem recorded while running a cycle."""

    rule: str
    generation: int
    error: "SyncEngineError"

    @property
    def kind(self) -> str:
        return type(self.error).__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "rule": self.rule,
            "generation": self.generation,
            "message": str(self.error),
        }


@dataclass
class CycleReport:
    """What happened during one dispatch cycle."""

    trigger: Occurrence
    occurrences: list[Occurrence] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    generations: int = 0
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def find(self, module: str, operation: str) -> list[Occurrence]:
        """Occurrences of one operation, in the order they were recorded."""
        return [
            occ
            for occ in self.occurrences
            if occ.module == module and occ.operation == operation
        ]

    def raise_for_diagnostics(self) -> None:
        if self.diagnostics:
            raise self.diagnostics[0].error

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger": self.trigger.to_dict(),
            "occurrences": [occ.to_dict() for occ in self.occurrences],
            "diagnostics": [diag.to_dict() for diag in self.diagnostics],
            "generations": self.generations,
            "aborted": self.aborted,
            "ok": self.ok,
        }

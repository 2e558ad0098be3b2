"""Operation registry: contracts plus pass-through invokers for module operations."""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from bodymap.sync_engine.errors import SyncEngineError, UnknownOperationError
from bodymap.sync_engine.models import (
    Occurrence,
    OperationContract,
    OperationKind,
)

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class _OperationSpec:
    kind: OperationKind
    outputs: tuple[str, ...]
    description: str | None


def _mark(kind: OperationKind, outputs: tuple[str, ...], description: str | None):
    def decorator(fn):
        fn.__sync_operation__ = _OperationSpec(
            kind=kind,
            outputs=tuple(outputs),
            description=description or inspect.getdoc(fn),
        )
        return fn

    return decorator


def action(*, outputs: tuple[str, ...] = (), description: str | None = None):
    """Declare a concept method as a state-mutating action."""
    return _mark(OperationKind.ACTION, outputs, description)


def query(*, outputs: tuple[str, ...] = (), description: str | None = None):
    """Declare a concept method as a read-only query returning records."""
    return _mark(OperationKind.QUERY, outputs, description)


class OperationRegistry:
    """Registry of operation contracts keyed by (module, operation).

    The registry knows nothing about what an operation does: it stores the
    declared contract next to a callable and passes inputs through to it.
    Actions always produce an Occurrence, converting unexpected exceptions
    into failure-shaped outputs; queries always produce a list of records.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._contracts: dict[tuple[str, str], OperationContract] = {}
        self._handlers: dict[tuple[str, str], Handler] = {}

    def register(self, contract: OperationContract, handler: Handler) -> None:
        """Register a contract and the callable that implements it.

        Raises:
            ValueError: If the (module, operation) pair is already registered
        """
        if contract.key in self._contracts:
            raise ValueError(f"Operation {contract.qualified_name} is already registered")
        self._contracts[contract.key] = contract
        self._handlers[contract.key] = handler

    def register_concept(self, concept: Any, module: str | None = None) -> list[OperationContract]:
        """Register every ``@action`` / ``@query`` method of a concept instance.

        The module name defaults to the concept's ``name`` attribute.
        Input fields are read from each method's signature; a ``**kwargs``
        parameter means the operation accepts extra input fields.

        Returns:
            The contracts that were registered
        """
        module = module or getattr(concept, "name", None) or type(concept).__name__
        registered = []
        for attr_name, member in inspect.getmembers(concept, predicate=inspect.ismethod):
            spec = getattr(member.__func__, "__sync_operation__", None)
            if spec is None:
                continue

            params = [
                p for p in inspect.signature(member).parameters.values()
                if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
            ]
            contract = OperationContract(
                module=module,
                name=attr_name,
                kind=spec.kind,
                inputs=tuple(p.name for p in params),
                required=tuple(p.name for p in params if p.default is p.empty),
                outputs=spec.outputs,
                extra_inputs=any(
                    p.kind is p.VAR_KEYWORD
                    for p in inspect.signature(member).parameters.values()
                ),
                description=spec.description,
            )
            self.register(contract, member)
            registered.append(contract)

        logger.info(f"Registered {len(registered)} operations for module {module}")
        return registered

    def lookup(self, module: str, operation: str) -> OperationContract | None:
        """Look up a contract, returning None if it is not registered."""
        return self._contracts.get((module, operation))

    def require(self, module: str, operation: str) -> OperationContract:
        """Look up a contract.

        Raises:
            UnknownOperationError: If it is not registered
        """
        contract = self.lookup(module, operation)
        if contract is None:
            raise UnknownOperationError(module, operation)
        return contract

    def list_by_module(self, module: str) -> list[OperationContract]:
        return [c for (m, _), c in self._contracts.items() if m == module]

    def list_all(self) -> list[OperationContract]:
        return list(self._contracts.values())

    async def invoke(
        self, module: str, operation: str, inputs: Mapping[str, Any] | None = None
    ) -> Occurrence:
        """Invoke an action and return the resulting occurrence.

        Missing required inputs and exceptions raised by the handler are
        reported as failure-shaped outputs rather than raised.

        Raises:
            UnknownOperationError: If the action is not registered
            SyncEngineError: If the operation is a query
        """
        contract = self.require(module, operation)
        if contract.kind is not OperationKind.ACTION:
            raise SyncEngineError(f"{contract.qualified_name} is a query, not an action")

        inputs = dict(inputs or {})
        missing = [name for name in contract.required if name not in inputs]
        if missing:
            output = {
                contract.failure_field: f"Missing input(s) {', '.join(missing)} for {contract.qualified_name}"
            }
            return Occurrence(contract, inputs, output)

        try:
            result = await self._handlers[contract.key](**self._arguments(contract, inputs))
        except Exception as e:
            logger.exception(f"Operation {contract.qualified_name} raised")
            result = {contract.failure_field: f"{contract.qualified_name} failed: {e}"}

        if result is None:
            result = {}
        elif not isinstance(result, Mapping):
            logger.warning(
                f"Operation {contract.qualified_name} returned {type(result).__name__}, expected a mapping"
            )
            result = {contract.failure_field: f"{contract.qualified_name} returned a malformed output"}

        return Occurrence(contract, inputs, result)

    async def query(
        self, module: str, operation: str, inputs: Mapping[str, Any] | None = None
    ) -> list[Mapping[str, Any]]:
        """Run a read-only query and return its records.

        A single mapping is treated as one record and None as no records.
        Failure-shaped results and exceptions yield no records.

        Raises:
            UnknownOperationError: If the query is not registered
            SyncEngineError: If the operation is an action
        """
        contract = self.require(module, operation)
        if contract.kind is not OperationKind.QUERY:
            raise SyncEngineError(f"{contract.qualified_name} is an action, not a query")

        inputs = dict(inputs or {})
        missing = [name for name in contract.required if name not in inputs]
        if missing:
            logger.warning(f"Query {contract.qualified_name} called without {missing}")
            return []

        try:
            result = await self._handlers[contract.key](**self._arguments(contract, inputs))
        except Exception:
            logger.exception(f"Query {contract.qualified_name} raised")
            return []

        if result is None:
            return []
        if isinstance(result, Mapping):
            if contract.is_failure(result):
                logger.warning(f"Query {contract.qualified_name} failed: {result[contract.failure_field]}")
                return []
            return [result]
        return list(result)

    def _arguments(self, contract: OperationContract, inputs: dict[str, Any]) -> dict[str, Any]:
        if contract.extra_inputs:
            return inputs
        return {name: value for name, value in inputs.items() if name in contract.inputs}

    def __len__(self) -> int:
        return len(self._contracts)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._contracts


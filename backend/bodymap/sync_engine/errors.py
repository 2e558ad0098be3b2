"""Exceptions raised by the synchronization engine."""


class SyncEngineError(Exception):
    """Base class for engine errors."""


class MalformedRuleError(SyncEngineError, ValueError):
    """A synchronization cannot be registered or evaluated as written."""

    def __init__(self, message: str, rule: str | None = None):
        super().__init__(message if rule is None else f"{rule}: {message}")
        self.rule = rule


class UnboundVariableError(MalformedRuleError):
    """A template referenced a variable that no frame binds."""

    def __init__(self, variable: str, rule: str | None = None):
        super().__init__(f"variable '{variable}' is not bound", rule=rule)
        self.variable = variable


class UnknownOperationError(SyncEngineError, LookupError):
    """No contract is registered for a (module, operation) pair."""

    def __init__(self, module: str, operation: str):
        super().__init__(f"Operation {module}.{operation} is not registered")
        self.module = module
        self.operation = operation


class RegistryFrozenError(SyncEngineError):
    """The rule set was modified after the engine took ownership of it."""


class CascadeLimitExceeded(SyncEngineError):
    """A cascade tried to grow past the configured number of generations."""

    def __init__(self, rule: str, generation: int, limit: int):
        super().__init__(
            f"Rule '{rule}' would start generation {generation + 1}, "
            f"exceeding the cascade limit of {limit}"
        )
        self.rule = rule
        self.generation = generation
        self.limit = limit


class FanOutLimitExceeded(SyncEngineError):
    """A rule firing expanded into more frames than allowed."""

    def __init__(self, rule: str, generation: int, frames: int, limit: int):
        super().__init__(
            f"Rule '{rule}' expanded into {frames} frames at generation "
            f"{generation}, exceeding the fan-out limit of {limit}"
        )
        self.rule = rule
        self.generation = generation
        self.frames = frames
        self.limit = limit

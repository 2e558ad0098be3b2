"""Synchronization engine coupling independent concepts through declarative rules.

Concepts never call one another. The engine observes every action
occurrence, matches occurrences against synchronizations, and:

- binds rule variables by unifying trigger clauses with occurrences
- joins the resulting frames against live concept state through queries
- filters and derives bindings
- invokes the consequent actions, whose occurrences cascade back in
"""

# Operation registry
from bodymap.sync_engine.operation_registry import OperationRegistry, action, query

# Rule registry and engine
from bodymap.sync_engine.rule_registry import RuleRegistry
from bodymap.sync_engine.sync_engine import SyncEngine

# Engine stages
from bodymap.sync_engine.frames import Frame, Frames
from bodymap.sync_engine.matcher import Match, PatternMatcher
from bodymap.sync_engine.pipeline import SyncPipeline
from bodymap.sync_engine.dispatcher import EffectDispatcher

# Observers
from bodymap.sync_engine.event_emitter import OccurrenceEmitter, log_occurrence

# Errors
from bodymap.sync_engine.errors import (
    CascadeLimitExceeded,
    FanOutLimitExceeded,
    MalformedRuleError,
    RegistryFrozenError,
    SyncEngineError,
    UnboundVariableError,
    UnknownOperationError,
)

# Data models
from bodymap.sync_engine.models import (
    # Contracts and occurrences
    OperationKind,
    OperationContract,
    Occurrence,
    Outcome,
    # Rule definition
    Var,
    variables,
    Clause,
    ConceptRef,
    QueryStep,
    FilterStep,
    MapStep,
    project,
    alias,
    SyncRule,
    sync,
    # Cycle results
    CycleReport,
    Diagnostic,
    SENSITIVE_FIELDS,
    redact,
)

__all__ = [
    # Operation registry
    "OperationRegistry",
    "action",
    "query",
    # Rule registry and engine
    "RuleRegistry",
    "SyncEngine",
    # Engine stages
    "Frame",
    "Frames",
    "Match",
    "PatternMatcher",
    "SyncPipeline",
    "EffectDispatcher",
    # Observers
    "OccurrenceEmitter",
    "log_occurrence",
    # Errors
    "CascadeLimitExceeded",
    "FanOutLimitExceeded",
    "MalformedRuleError",
    "RegistryFrozenError",
    "SyncEngineError",
    "UnboundVariableError",
    "UnknownOperationError",
    # Data models
    "OperationKind",
    "OperationContract",
    "Occurrence",
    "Outcome",
    "Var",
    "variables",
    "Clause",
    "ConceptRef",
    "QueryStep",
    "FilterStep",
    "MapStep",
    "project",
    "alias",
    "SyncRule",
    "sync",
    "CycleReport",
    "Diagnostic",
    "SENSITIVE_FIELDS",
    "redact",
]

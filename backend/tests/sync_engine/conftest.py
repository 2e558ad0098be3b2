"""Small in-memory modules used to exercise the engine in isolation."""

import pytest

from bodymap.sync_engine import OperationRegistry, RuleRegistry, SyncEngine, action, query


class Recorder:
    """Actions that only record how they were called."""

    name = "Recorder"

    def __init__(self):
        self.calls: list[tuple[str, dict]] = []

    @action(outputs=("id",))
    async def create(self, name: str):
        self.calls.append(("create", {"name": name}))
        return {"id": f"{name}-id"}

    @action()
    async def track(self, ownerId: str):
        self.calls.append(("track", {"ownerId": ownerId}))
        return {}

    @action()
    async def note(self, **fields):
        self.calls.append(("note", fields))
        return {}

    @action(outputs=("n",))
    async def ping(self, n: int):
        self.calls.append(("ping", {"n": n}))
        return {"n": n + 1}

    @action()
    async def fail(self, reason: str):
        self.calls.append(("fail", {"reason": reason}))
        return {"error": reason}

    @action()
    async def boom(self):
        raise RuntimeError("kaput")

    def called(self, operation: str) -> list[dict]:
        return [inputs for name, inputs in self.calls if name == operation]


class Catalog:
    """Read-only records keyed by owner."""

    name = "Catalog"

    def __init__(self):
        self.items: dict[str, list[dict]] = {}
        self.owners: dict[str, dict] = {}

    @query(outputs=("item",))
    async def _itemsFor(self, owner: str):
        return [{"item": item} for item in self.items.get(owner, [])]

    @query(outputs=("state",))
    async def _owner(self, owner: str):
        return [{"state": self.owners.get(owner)}]

    @query()
    async def _broken(self, owner: str):
        raise RuntimeError("query exploded")


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def catalog():
    return Catalog()


@pytest.fixture
def operations(recorder, catalog):
    registry = OperationRegistry()
    registry.register_concept(recorder)
    registry.register_concept(catalog)
    return registry


@pytest.fixture
def build_engine(operations):
    """Build an engine over the toy modules from a list of rules."""

    def build(rules, **kwargs) -> SyncEngine:
        registry = RuleRegistry(operations)
        registry.register_all(rules)
        return SyncEngine(operations, registry, **kwargs)

    return build

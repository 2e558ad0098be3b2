"""Frames: immutable variable bindings threaded through a rule evaluation.

A ``Frame`` maps variable names to opaque values. Frames are only ever
extended; binding a name that is already bound to a different value is a
unification failure and yields ``None`` instead of a frame.

``Frames`` is the ordered set of candidate completions of one rule. Every
operation on it returns a new ``Frames`` and leaves the original untouched, so
a frame shared by several branches of a join can never be changed through one
of them.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Awaitable, Callable, Iterable, Iterator

from bodymap.sync_engine.errors import MalformedRuleError, UnboundVariableError
from bodymap.sync_engine.models import Var


QueryInvoker = Callable[[dict[str, Any]], Awaitable[list[Mapping[str, Any]]]]


class Frame(Mapping[str, Any]):
    """An immutable, mutually consistent set of bindings."""

    __slots__ = ("_bindings",)

    def __init__(self, bindings: Mapping[str, Any] | None = None):
        self._bindings: dict[str, Any] = dict(bindings or {})

    def __getitem__(self, name: str) -> Any:
        return self._bindings[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"Frame({self._bindings!r})"

    def bind(self, name: str, value: Any) -> "Frame | None":
        """Return this frame extended with one binding, or None on conflict."""
        return self.extend({name: value})

    def extend(self, bindings: Mapping[str, Any]) -> "Frame | None":
        """Return a new frame with ``bindings`` merged in.

        Returns None when a name is already bound to a different value.
        """
        merged = dict(self._bindings)
        for name, value in bindings.items():
            if name in merged:
                if merged[name] != value:
                    return None
            else:
                merged[name] = value
        return Frame(merged)

    def resolve(self, template: Any) -> Any:
        """Substitute bound values for every ``Var`` in ``template``.

        Dicts, lists and tuples are walked recursively; anything else is a
        literal and returned as is.

        Raises:
            UnboundVariableError: If the template names a variable this frame
                does not bind.
        """
        if isinstance(template, Var):
            if template.name not in self._bindings:
                raise UnboundVariableError(template.name)
            return self._bindings[template.name]
        if isinstance(template, Mapping):
            return {key: self.resolve(value) for key, value in template.items()}
        if isinstance(template, list):
            return [self.resolve(item) for item in template]
        if isinstance(template, tuple):
            return tuple(self.resolve(item) for item in template)
        return template


class Frames(Sequence[Frame]):
    """An ordered, immutable sequence of frames."""

    __slots__ = ("_frames",)

    def __init__(self, frames: Iterable[Frame] = ()):
        self._frames: tuple[Frame, ...] = tuple(frames)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Frames(self._frames[index])
        return self._frames[index]

    def __len__(self) -> int:
        return len(self._frames)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Frames):
            return self._frames == other._frames
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"Frames({list(self._frames)!r})"

    def filter(self, predicate: Callable[[Frame], Any]) -> "Frames":
        """Keep the frames for which ``predicate`` is truthy."""
        return Frames(frame for frame in self._frames if predicate(frame))

    def map(
        self, fn: Callable[[Frame], Mapping[str, Any]], binds: Iterable[str]
    ) -> "Frames":
        """Extend every frame with the bindings ``fn`` derives from it.

        ``fn`` may only introduce the names listed in ``binds``.

        Raises:
            MalformedRuleError: If ``fn`` returns an undeclared name or tries
                to rebind a name to a different value.
        """
        allowed = set(binds)
        mapped = []
        for frame in self._frames:
            derived = dict(fn(frame))
            undeclared = set(derived) - allowed
            if undeclared:
                raise MalformedRuleError(
                    f"map step produced undeclared bindings {sorted(undeclared)}"
                )
            extended = frame.extend(derived)
            if extended is None:
                raise MalformedRuleError(
                    f"map step rebinds {sorted(set(derived) & set(frame))}"
                )
            mapped.append(extended)
        return Frames(mapped)

    async def query(
        self,
        invoke: QueryInvoker,
        inputs: Mapping[str, Any],
        outputs: Mapping[str, Var],
    ) -> "Frames":
        """Join every frame against the records a query returns.

        For each frame the query is called with ``inputs`` resolved against
        that frame. Each returned record becomes one output frame with the
        record fields named in ``outputs`` bound to their variables. A frame
        whose query returns no records produces no output frames; a record
        that lacks a declared field or disagrees with an existing binding is
        skipped.
        """
        joined = []
        for frame in self._frames:
            records = await invoke(frame.resolve(inputs))
            for record in records:
                if any(field not in record for field in outputs):
                    continue
                extended = frame.extend(
                    {var.name: record[field] for field, var in outputs.items()}
                )
                if extended is not None:
                    joined.append(extended)
        return Frames(joined)

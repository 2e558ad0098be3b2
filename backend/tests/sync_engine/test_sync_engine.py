"""End-to-end tests for the dispatch loop."""

import logging

import pytest

from bodymap.sync_engine import (
    CascadeLimitExceeded,
    ConceptRef,
    FilterStep,
    MalformedRuleError,
    MapStep,
    Occurrence,
    OccurrenceEmitter,
    QueryStep,
    Var,
    log_occurrence,
    sync,
    variables,
)

Recorder = ConceptRef("Recorder")
owner, map_id, session, n, error, item = variables("owner", "map", "session", "n", "error", "item")

TRACK_ON_CREATE = sync(
    "TrackOnCreate",
    when=[Recorder.create({}, {"id": map_id})],
    then=[Recorder.track({"ownerId": map_id})],
)

REQUEST_THEN_CREATE = sync(
    "TrackRequestedMap",
    when=[
        Recorder.note({"path": "/p", "session": session}),
        Recorder.create({"name": session}, {"id": map_id}),
    ],
    then=[Recorder.track({"ownerId": map_id})],
)

CREATE_ON_REQUEST = sync(
    "CreateOnRequest",
    when=[Recorder.note({"path": "/p", "session": session})],
    then=[Recorder.create({"name": session})],
)


@pytest.mark.asyncio
class TestSingleClauseRules:
    async def test_create_then_track(self, build_engine, operations, recorder):
        engine = build_engine([TRACK_ON_CREATE])
        contract = operations.require("Recorder", "create")

        report = await engine.dispatch(Occurrence(contract, {"name": "x"}, {"id": "map-1"}))

        assert recorder.called("track") == [{"ownerId": "map-1"}]
        assert report.ok
        assert not report.aborted
        assert [o.operation for o in report.occurrences] == ["create", "track"]

    async def test_invoke_runs_the_trigger(self, build_engine, recorder):
        engine = build_engine([TRACK_ON_CREATE])

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        assert report.trigger.outputs["id"] == "alice-id"
        assert recorder.called("track") == [{"ownerId": "alice-id"}]
        assert report.find("Recorder", "track")[0].cause == "TrackOnCreate"
        assert report.generations == 2

    async def test_every_consequent_once(self, build_engine, recorder):
        rule = sync(
            "Fanfare",
            when=[Recorder.create({"name": owner}, {"id": map_id})],
            then=[Recorder.track({"ownerId": map_id}), Recorder.note({"owner": owner, "map": map_id})],
        )
        engine = build_engine([rule])

        await engine.invoke("Recorder", "create", {"name": "alice"})

        assert recorder.called("track") == [{"ownerId": "alice-id"}]
        assert recorder.called("note") == [{"owner": "alice", "map": "alice-id"}]

    async def test_unmatched_occurrence_is_not_an_error(self, build_engine, recorder):
        engine = build_engine([TRACK_ON_CREATE])

        report = await engine.invoke("Recorder", "track", {"ownerId": "u1"})

        assert report.ok
        assert len(report.occurrences) == 1

    async def test_no_op_rule_is_idempotent(self, build_engine, recorder):
        rule = sync(
            "Never",
            when=[Recorder.create({}, {"id": map_id})],
            where=[FilterStep(lambda f: False)],
            then=[Recorder.track({"ownerId": map_id})],
        )
        engine = build_engine([rule])

        for _ in range(3):
            report = await engine.invoke("Recorder", "create", {"name": "alice"})
            assert len(report.occurrences) == 1

        assert recorder.called("track") == []

    async def test_rules_are_frozen(self, build_engine):
        engine = build_engine([TRACK_ON_CREATE])

        assert engine.rules.frozen


@pytest.mark.asyncio
class TestConjunctions:
    """Rules with several trigger clauses only fire once all of them match."""

    async def test_first_clause_alone_fires_nothing(self, build_engine, recorder):
        engine = build_engine([REQUEST_THEN_CREATE])

        report = await engine.invoke("Recorder", "note", {"path": "/p", "session": "alice"})

        assert recorder.called("track") == []
        assert len(report.occurrences) == 1

    async def test_second_clause_in_same_cascade_fires_once(self, build_engine, recorder):
        engine = build_engine([CREATE_ON_REQUEST, REQUEST_THEN_CREATE])

        report = await engine.invoke("Recorder", "note", {"path": "/p", "session": "alice"})

        assert recorder.called("track") == [{"ownerId": "alice-id"}]
        assert [o.operation for o in report.occurrences] == ["note", "create", "track"]

    async def test_matching_does_not_span_cycles(self, build_engine, recorder):
        engine = build_engine([REQUEST_THEN_CREATE])

        await engine.invoke("Recorder", "note", {"path": "/p", "session": "alice"})
        await engine.invoke("Recorder", "create", {"name": "alice"})

        assert recorder.called("track") == []

    async def test_inconsistent_bindings_do_not_fire(self, build_engine, recorder):
        mismatched = sync(
            "CreateForSomeoneElse",
            when=[Recorder.note({"path": "/p", "session": session})],
            then=[Recorder.create({"name": "mallory"})],
        )
        engine = build_engine([mismatched, REQUEST_THEN_CREATE])

        await engine.invoke("Recorder", "note", {"path": "/p", "session": "alice"})

        assert recorder.called("create") == [{"name": "mallory"}]
        assert recorder.called("track") == []


@pytest.mark.asyncio
class TestJoins:
    async def test_join_fans_out_per_record(self, build_engine, catalog, recorder):
        catalog.items = {"alice": ["a", "b", "c"]}
        rule = sync(
            "NotePerItem",
            when=[Recorder.create({"name": owner})],
            where=[QueryStep("Catalog", "_itemsFor", {"owner": owner}, {"item": item})],
            then=[Recorder.note({"owner": owner, "item": item})],
        )
        engine = build_engine([rule])

        await engine.invoke("Recorder", "create", {"name": "alice"})

        notes = recorder.called("note")
        assert sorted(n["item"] for n in notes) == ["a", "b", "c"]
        assert all(n["owner"] == "alice" for n in notes)

    async def test_join_without_records_does_nothing(self, build_engine, recorder):
        rule = sync(
            "NotePerItem",
            when=[Recorder.create({"name": owner})],
            where=[QueryStep("Catalog", "_itemsFor", {"owner": owner}, {"item": item})],
            then=[Recorder.note({"owner": owner, "item": item})],
        )
        engine = build_engine([rule])

        report = await engine.invoke("Recorder", "create", {"name": "bob"})

        assert recorder.called("note") == []
        assert report.ok

    async def test_fan_out_guard_aborts_cycle(self, build_engine, catalog, recorder):
        catalog.items = {"alice": ["a", "b", "c"]}
        rule = sync(
            "NotePerItem",
            when=[Recorder.create({"name": owner})],
            where=[QueryStep("Catalog", "_itemsFor", {"owner": owner}, {"item": item})],
            then=[Recorder.note({"item": item})],
        )
        engine = build_engine([rule], max_fanout=2)

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        assert report.aborted
        assert report.diagnostics[0].kind == "FanOutLimitExceeded"
        assert recorder.called("note") == []


@pytest.mark.asyncio
class TestFailures:
    async def test_failure_clause_reacts_to_errors(self, build_engine, recorder):
        rule = sync(
            "ReportFailure",
            when=[Recorder.fail({}, {"error": error})],
            then=[Recorder.note({"message": error})],
        )
        engine = build_engine([rule])

        await engine.invoke("Recorder", "fail", {"reason": "nope"})

        assert recorder.called("note") == [{"message": "nope"}]

    async def test_success_clause_ignores_failures(self, build_engine, recorder):
        rule = sync(
            "OnlyOnSuccess",
            when=[Recorder.fail({"reason": owner})],
            then=[Recorder.note({"reason": owner})],
        )
        engine = build_engine([rule])

        await engine.invoke("Recorder", "fail", {"reason": "nope"})

        assert recorder.called("note") == []

    async def test_malformed_rule_is_reported_and_others_still_run(self, build_engine, recorder):
        broken = sync(
            "BrokenMap",
            when=[Recorder.create({}, {"id": map_id})],
            where=[MapStep(lambda f: {"other": 1}, ("derived",))],
            then=[Recorder.track({"ownerId": Var("derived")})],
        )
        engine = build_engine([broken, TRACK_ON_CREATE])

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        assert not report.aborted
        assert [d.kind for d in report.diagnostics] == ["MalformedRuleError"]
        assert report.diagnostics[0].rule == "BrokenMap"
        assert recorder.called("track") == [{"ownerId": "alice-id"}]

    async def test_raise_for_diagnostics(self, build_engine):
        broken = sync(
            "BrokenMap",
            when=[Recorder.create({}, {"id": map_id})],
            where=[MapStep(lambda f: {"other": 1}, ("derived",))],
            then=[Recorder.track({"ownerId": Var("derived")})],
        )
        engine = build_engine([broken])

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        with pytest.raises(MalformedRuleError, match="undeclared"):
            report.raise_for_diagnostics()

    async def test_map_reading_unbound_name_is_reported(self, build_engine, recorder):
        """A step function that reads a missing binding does not escape the cycle."""
        broken = sync(
            "BrokenLookup",
            when=[Recorder.create({}, {"id": map_id})],
            where=[MapStep(lambda f: {"derived": f["missing"]}, ("derived",))],
            then=[Recorder.track({"ownerId": Var("derived")})],
        )
        engine = build_engine([broken, TRACK_ON_CREATE])

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        assert [d.kind for d in report.diagnostics] == ["MalformedRuleError"]
        assert report.diagnostics[0].rule == "BrokenLookup"
        assert "missing" in str(report.diagnostics[0].error)
        assert recorder.called("track") == [{"ownerId": "alice-id"}]

    async def test_raising_filter_is_reported(self, build_engine, recorder):
        broken = sync(
            "BrokenFilter",
            when=[Recorder.create({}, {"id": map_id})],
            where=[FilterStep(lambda f: f["nope"])],
            then=[Recorder.note({"map": map_id})],
        )
        engine = build_engine([broken, TRACK_ON_CREATE])

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        assert not report.aborted
        assert [d.rule for d in report.diagnostics] == ["BrokenFilter"]
        assert recorder.called("note") == []
        assert recorder.called("track") == [{"ownerId": "alice-id"}]

    async def test_step_exception_is_reported(self, build_engine, recorder):
        broken = sync(
            "DividesByZero",
            when=[Recorder.create({}, {"id": map_id})],
            where=[MapStep(lambda f: {"ratio": 1 / 0}, ("ratio",), description="ratio")],
            then=[Recorder.note({"ratio": Var("ratio")})],
        )
        engine = build_engine([broken, TRACK_ON_CREATE])

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        assert "ZeroDivisionError" in str(report.diagnostics[0].error)
        assert recorder.called("track") == [{"ownerId": "alice-id"}]


@pytest.mark.asyncio
class TestCascadeGuard:
    """A self-triggering rule stops at the configured generation limit."""

    LOOP = sync(
        "PingForever",
        when=[Recorder.ping({}, {"n": n})],
        then=[Recorder.ping({"n": n})],
    )

    async def test_stops_after_limit(self, build_engine, recorder):
        engine = build_engine([self.LOOP], max_generations=3)

        report = await engine.invoke("Recorder", "ping", {"n": 0})

        assert [c["n"] for c in recorder.called("ping")] == [0, 1, 2, 3]
        assert report.aborted
        assert len(report.diagnostics) == 1
        diagnostic = report.diagnostics[0]
        assert isinstance(diagnostic.error, CascadeLimitExceeded)
        assert diagnostic.rule == "PingForever"
        assert diagnostic.generation == 3
        assert max(o.generation for o in report.occurrences) == 3

    async def test_zero_limit_is_respected(self, build_engine, recorder):
        engine = build_engine([TRACK_ON_CREATE], max_generations=0, max_fanout=0)

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        assert engine.max_generations == 0
        assert engine.pipeline.max_fanout == 0
        assert report.aborted
        assert recorder.called("track") == []

    async def test_report_serializes_diagnostics(self, build_engine):
        engine = build_engine([self.LOOP], max_generations=2)

        report = (await engine.invoke("Recorder", "ping", {"n": 0})).to_dict()

        assert report["aborted"] is True
        assert report["ok"] is False
        assert report["diagnostics"][0]["kind"] == "CascadeLimitExceeded"
        assert "PingForever" in report["diagnostics"][0]["message"]

    async def test_engine_keeps_working_after_abort(self, build_engine, recorder):
        engine = build_engine([self.LOOP], max_generations=1)

        await engine.invoke("Recorder", "ping", {"n": 0})
        report = await engine.invoke("Recorder", "ping", {"n": 10})

        assert report.aborted
        assert [c["n"] for c in recorder.called("ping")] == [0, 1, 10, 11]


@pytest.mark.asyncio
class TestEmitter:
    async def test_listeners_see_every_occurrence(self, operations, build_engine):
        seen = []
        emitter = OccurrenceEmitter()
        emitter.subscribe(seen.append)
        engine = build_engine([TRACK_ON_CREATE], emitter=emitter)

        await engine.invoke("Recorder", "create", {"name": "alice"})

        assert [(o.operation, o.generation) for o in seen] == [("create", 0), ("track", 1)]
        assert [o.id for o in seen] == [1, 2]

    async def test_faulty_listener_does_not_break_cycle(self, build_engine, recorder):
        emitter = OccurrenceEmitter()

        def explode(occurrence):
            raise RuntimeError("listener down")

        emitter.subscribe(explode)
        engine = build_engine([TRACK_ON_CREATE], emitter=emitter)

        report = await engine.invoke("Recorder", "create", {"name": "alice"})

        assert report.ok
        assert recorder.called("track") == [{"ownerId": "alice-id"}]

    async def test_passwords_are_masked(self, build_engine, caplog):
        emitter = OccurrenceEmitter()
        emitter.subscribe(log_occurrence)
        engine = build_engine([], emitter=emitter)

        with caplog.at_level(logging.DEBUG, logger="bodymap.sync_engine.event_emitter"):
            report = await engine.invoke("Recorder", "note", {"username": "alice", "password": "hunter2"})

        assert "hunter2" not in caplog.text
        assert "'password': '***'" in caplog.text
        assert report.to_dict()["trigger"]["inputs"] == {"username": "alice", "password": "***"}
        assert report.trigger.inputs["password"] == "hunter2"


class TestEmitterSubscriptions:
    def test_subscription_bookkeeping(self):
        emitter = OccurrenceEmitter()
        listener = print

        emitter.subscribe(listener)
        with pytest.raises(ValueError):
            emitter.subscribe(listener)
        emitter.unsubscribe(listener)
        with pytest.raises(ValueError):
            emitter.unsubscribe(listener)

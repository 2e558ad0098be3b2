"""Tests for the loaded synchronization catalog."""

import pytest

from bodymap.sync_engine import Var
from bodymap.syncs import ALL_SYNCS
from bodymap.syncs.session_guard import PROTECTED_PATHS


def _request_clauses():
    for rule in ALL_SYNCS:
        for clause in rule.when:
            if clause.key == ("Requesting", "request") and isinstance(clause.inputs.get("path"), str):
                yield rule, clause


class TestCatalog:
    @pytest.mark.asyncio
    async def test_every_rule_registers(self, runtime):
        assert len(runtime.rules) == len(ALL_SYNCS)
        assert runtime.rules.frozen

    def test_rule_names_are_unique(self):
        names = [rule.name for rule in ALL_SYNCS]
        assert len(names) == len(set(names))

    @pytest.mark.asyncio
    async def test_every_module_is_registered(self, runtime):
        modules = {contract.module for contract in runtime.operations.list_all()}

        assert modules == {
            "UserAuthentication",
            "BodyMapGeneration",
            "PainLocationScoring",
            "MapSummaryGeneration",
            "BreakThroughTracking",
            "Requesting",
        }

    def test_session_paths_are_guarded(self):
        """Every path that takes a session is answered when the session is bad."""
        session_paths = {
            clause.inputs["path"]
            for _, clause in _request_clauses()
            if isinstance(clause.inputs.get("session"), Var)
        }

        assert session_paths == set(PROTECTED_PATHS)

    def test_public_paths(self):
        public = {
            clause.inputs["path"]
            for _, clause in _request_clauses()
            if "session" not in clause.inputs
        } - set(PROTECTED_PATHS)

        assert public == {"/auth/register", "/auth/login"}

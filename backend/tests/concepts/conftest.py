import pytest

from bodymap.concepts import (
    BodyMapGeneration,
    BreakThroughTracking,
    MapSummaryGeneration,
    PainLocationScoring,
    UserAuthentication,
)


@pytest.fixture
def auth(session_factory):
    return UserAuthentication(session_factory)


@pytest.fixture
def maps(session_factory):
    return BodyMapGeneration(session_factory)


@pytest.fixture
def scoring(session_factory):
    return PainLocationScoring(session_factory)


@pytest.fixture
def summaries(session_factory):
    return MapSummaryGeneration(session_factory)


@pytest.fixture
def breakthroughs(session_factory):
    return BreakThroughTracking(session_factory)

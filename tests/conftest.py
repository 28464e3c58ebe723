"""
Shared fixtures for the kanonar test suite.
"""
import logging

import pytest

from kanonar.scenarios import load_scenario
from kanonar.world import AgentState, Location, WorldState


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Keep tests that call configure_logging from leaking handlers."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def breach_world():
    return load_scenario("breach")


@pytest.fixture
def duo_world():
    """Two agents with no location, so each sees the other."""
    world = WorldState()
    world.add_agent(AgentState(id="vel", traits={"power_drive": 0.8}))
    world.add_agent(AgentState(id="mara", traits={"safety_need": 0.7}))
    return world


@pytest.fixture
def yard_world():
    """A frightened agent in a yard with cover and open exits, plus one other."""
    world = WorldState()
    world.add_location(Location(
        id="yard", hazard=0.5, cover=0.7, exits=0.6, visibility=0.5,
        privacy=0.5, surveillance=0.2, crowding=0.3,
    ))
    mara = AgentState(id="mara", location_id="yard")
    mara.psych.emotions["fear"] = 0.9
    world.add_agent(mara)
    world.add_agent(AgentState(id="oskar", location_id="yard"))
    return world

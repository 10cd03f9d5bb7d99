# -*- coding: utf-8 -*-
"""
Shared pytest fixtures for all test types

Fixtures use the real data structures and the in-memory simulation;
timings come from a fast Config so scenarios finish in well under a second.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from mobot.common.config import Config
from mobot.communication.report_sink import MemoryReportSink
from mobot.core.task_maker import TaskMaker
from mobot.state.update_aggregator import UpdateAggregator
from mobot.state.world_registry import InMemoryWorldRegistry
from mobot.simulation.scene import build_demo_world


FAST_SETTINGS = {
    "execution": {
        "tick": 0.001,
        "step_gap_delay": 0.0,
        "step_timeout": 2.0,
        "pick_timeout": 1.0,
        "place_timeout": 1.0
    },
    "locomotion": {
        "arrive_threshold": 0.05,
        "agent_extra_stop": 0.0,
        "move_settle_wait": 0.0
    },
    "manipulation": {
        "pick_attach_delay": 0.01,
        "place_detach_delay": 0.01,
        "rotate_speed_deg": 36000.0
    },
    "devices": {
        "door_settle_wait": 0.0
    }
}


def make_fast_config(**overrides) -> Config:
    """Fast config; keyword overrides use dotted keys with '__' for '.'"""
    config = Config(FAST_SETTINGS)
    for key, value in overrides.items():
        config.set(key.replace("__", "."), value)
    return config


@pytest.fixture
def fast_config():
    """Config with near-zero delays"""
    return make_fast_config()


@pytest.fixture
def config_factory():
    """Build fast configs with extra overrides"""
    return make_fast_config


@pytest.fixture
def registry():
    """Demo world: lab (desk_01, laptop, cup, door_03, lamp_02), classroom (table_01, book)"""
    return build_demo_world(InMemoryWorldRegistry())


@pytest.fixture
def sink():
    return MemoryReportSink()


@pytest.fixture
def aggregator(sink):
    return UpdateAggregator(sink=sink)


@pytest.fixture
def task_maker(fast_config, registry, sink):
    """TaskMaker wired to the simulated robot in the demo world"""
    return TaskMaker.create_simulated(config=fast_config, registry=registry, sink=sink, speed=50.0)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end scenario tests"
    )

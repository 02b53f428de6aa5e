import pytest

from lprojquota import Planner, ProjidAllocator

pytest_plugins = ["lprojquota._pytest_plugin"]


@pytest.fixture
def planner(lustre) -> Planner:
    """A planner over the ``lustre`` fixture, allocator read from it once."""
    return Planner(lustre, lustre, lustre, ProjidAllocator.from_reader(lustre))

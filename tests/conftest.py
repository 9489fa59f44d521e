import pytest

from canvas_engine import InputBus, InteractionController, SceneStore


@pytest.fixture
def store():
    return SceneStore()


@pytest.fixture
def controller():
    return InteractionController()


@pytest.fixture
def bus(controller):
    bus = InputBus()
    controller.attach(bus)
    yield bus
    controller.detach()

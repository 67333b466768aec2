"""Shared pytest fixtures: a fake cv2.VideoCapture and a stepping clock."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Flat layout: make the project root importable without installing
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def pytest_addoption(parser):
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that need a real camera on /dev/video0",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-hardware"):
        return
    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


class FakeCapture:
    """Stands in for cv2.VideoCapture. ``frames=None`` means never run dry."""

    def __init__(self, index, api=None, opened=True, frames=None, frame_shape=(4, 4, 3)):
        self.index = index
        self.api = api
        self.opened = opened
        self.frames = frames
        self.frame_shape = frame_shape
        self.props = {}
        self.reads = 0
        self.released = False

    def isOpened(self):
        return self.opened and not self.released

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        return float(self.props.get(prop, 0))

    def read(self):
        if self.frames is not None and self.reads >= self.frames:
            return False, None
        self.reads += 1
        return True, np.zeros(self.frame_shape, dtype=np.uint8)

    def release(self):
        self.released = True


class FakeCaptureFactory:
    """Callable like cv2.VideoCapture(index[, api]); remembers what it built."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.created = []

    def __call__(self, index, api=None):
        cap = FakeCapture(index, api, **self.kwargs)
        self.created.append(cap)
        return cap

    @property
    def last(self):
        return self.created[-1]


class StepClock:
    """First call returns 0.0, the n-th following call n / rate.

    Integer division keeps whole-second boundaries exact (150 / 30 == 5.0).
    """

    def __init__(self, rate):
        self.rate = rate
        self.calls = 0

    def __call__(self):
        now = self.calls / self.rate
        self.calls += 1
        return now


@pytest.fixture
def fake_factory():
    return FakeCaptureFactory()


@pytest.fixture
def make_factory():
    return FakeCaptureFactory


@pytest.fixture
def clock_30fps():
    return StepClock(30)


@pytest.fixture
def make_clock():
    return StepClock

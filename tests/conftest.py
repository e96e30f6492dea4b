"""
Pytest configuration and shared fixtures.

Provides:
- Default configuration and a fresh process shape cache for every test
- Isolated ShapeCache / TraceSession fixtures
- A ``leaf`` factory for DeviceData nodes
"""

import itertools
import logging
import sys
from pathlib import Path

import pytest
import torch

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lazytrace import LazyTraceConfig, Shape, ShapeCache, TraceSession, reset_shape_cache, set_config
from lazytrace.ops import DeviceData


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "robustness: marks robustness tests (thread safety)"
    )


@pytest.fixture(autouse=True)
def default_config():
    """Run each test against default settings, ignoring LTC_* variables."""
    config = LazyTraceConfig()
    set_config(config)
    reset_shape_cache()
    yield config
    set_config(None)
    reset_shape_cache()


@pytest.fixture
def shape_cache():
    """A small private shape cache."""
    return ShapeCache(capacity=64)


@pytest.fixture
def session():
    """An active trace session with its own cache."""
    with TraceSession(ShapeCache(capacity=4096)) as s:
        yield s


@pytest.fixture
def leaf():
    """
    Factory for DeviceData leaves.

    Usage:
        a = leaf(4, 4)                       # f32[4,4], fresh handle
        b = leaf(4, 4, handle=0)             # fixed handle, hashes like any other handle-0 leaf
        c = leaf(8, dtype=torch.int64)
    """
    handles = itertools.count(1000)

    def make(*dims, dtype=torch.float32, handle=None):
        if handle is None:
            handle = next(handles)
        return DeviceData(Shape(dtype, dims), handle)

    return make

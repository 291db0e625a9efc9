from __future__ import annotations
import pytest
from pacing_core.contrib.virtual_clock import VirtualClock


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def later(clock):
    """Future settled by the virtual clock after `ms` (value, or error if given)."""

    def make(ms, value=None, error=None):
        fut = clock.create_future()

        def fire():
            if error is not None:
                fut.set_exception(error)
            else:
                fut.set_result(value)

        clock.schedule(ms, fire)
        return fut

    return make

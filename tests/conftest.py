import itertools

import pytest

from arnelify_broker.broker.core import Broker
from arnelify_broker.bus.queue import DirectTransport, LocalTransport


@pytest.fixture
def ids():
    """Deterministic correlation ids: u1, u2, ..."""
    counter = itertools.count(1)
    return lambda: f"u{next(counter)}"


@pytest.fixture
def clock():
    counter = itertools.count(1)
    return lambda: f"t{next(counter)}"


@pytest.fixture(params=["local", "direct"])
def transport(request):
    if request.param == "local":
        return LocalTransport(poll_interval=0.05)
    return DirectTransport()


@pytest.fixture
async def broker(transport):
    b = Broker(transport=transport)
    await b.start()
    yield b
    await b.stop()

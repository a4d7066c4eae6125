import asyncio

import pytest

from arnelify_broker.broker.core import Broker
from arnelify_broker.bus.events import Ctx, Res
from arnelify_broker.bus.queue import DirectTransport, LocalTransport
from arnelify_broker.codec import Base64Codec
from arnelify_broker.config.schema import BrokerConfig, Config
from arnelify_broker.demo import WELCOME_TEXT, run_welcome
from arnelify_broker.errors import (
    ActionError,
    BrokerError,
    CallTimeoutError,
    NoActionError,
    NoConsumerError,
)


async def test_call_resolves_with_action_result(broker):
    async def echo(ctx: Ctx):
        return {"got": ctx.params, "topic": ctx.topic}

    broker.subscribe("echo", echo)
    result = await broker.call("echo", {"x": 1})

    assert result == {"got": {"x": 1}, "topic": "echo"}
    assert len(broker.pending) == 0


async def test_welcome_chain_resolves_after_inner_round_trip(broker):
    result = await run_welcome(broker)

    assert result == {"code": 200, "success": WELCOME_TEXT}
    assert len(broker.pending) == 0


async def test_nested_call_delays_outer_reply(broker):
    order = []

    async def inner(ctx):
        order.append("inner")
        params = dict(ctx.params)
        params["y"] = params["x"] + 1
        return params

    async def outer(ctx):
        order.append("outer:start")
        value = await broker.call("B", ctx.params)
        order.append("outer:end")
        return value

    broker.subscribe("B", inner)
    broker.subscribe("A", outer)

    assert await broker.call("A", {"x": 1}) == {"x": 1, "y": 2}
    assert order == ["outer:start", "inner", "outer:end"]


async def test_sync_actions_are_accepted(broker):
    broker.subscribe("sum", lambda ctx: sum(ctx.params))
    assert await broker.call("sum", [1, 2, 3]) == 6


async def test_second_registration_replaces_first(broker):
    broker.subscribe("v", lambda ctx: "first")
    broker.set_action("v", lambda ctx: "second")

    assert await broker.call("v", None) == "second"
    assert broker.topics == ["v"]


async def test_action_failure_is_reported_to_caller(broker):
    def boom(ctx):
        raise ValueError("boom")

    broker.subscribe("boom", boom)

    with pytest.raises(ActionError) as info:
        await broker.call("boom", {})
    assert info.value.error_type == "ValueError"
    assert info.value.text == "boom"
    assert info.value.topic == "boom"
    assert len(broker.pending) == 0


async def test_nested_failure_keeps_original_error_type(broker):
    def inner(ctx):
        raise KeyError("missing")

    async def outer(ctx):
        return await broker.call("inner", ctx.params)

    broker.subscribe("inner", inner)
    broker.subscribe("outer", outer)

    with pytest.raises(ActionError) as info:
        await broker.call("outer", {})
    assert info.value.error_type == "KeyError"
    assert info.value.topic == "outer"


async def test_concurrent_calls_get_distinct_uuids(broker):
    seen = []

    async def record(ctx):
        seen.append(ctx.uuid)
        return ctx.params

    broker.subscribe("rec", record)
    results = await asyncio.gather(*(broker.call("rec", i) for i in range(20)))

    assert results == list(range(20))
    assert len(set(seen)) == 20


async def test_replies_are_matched_by_uuid_not_order():
    completed = []

    async def slow(ctx):
        await asyncio.sleep(ctx.params["delay"])
        return ctx.params["n"]

    async def tracked(n, delay):
        value = await broker.call("slow", {"n": n, "delay": delay})
        completed.append(value)
        return value

    async with Broker(transport=LocalTransport(poll_interval=0.05)) as broker:
        broker.subscribe("slow", slow)
        results = await asyncio.gather(tracked(1, 0.1), tracked(2, 0))

    assert results == [1, 2]
    assert completed == [2, 1]


async def test_handler_preserves_correlation_fields(clock):
    broker = Broker(transport=DirectTransport(), clock=clock)
    broker.set_action("t", lambda ctx: {"changed": True})
    ctx = Ctx(topic="t", created_at="c0", params={}, uuid="u-1")

    res = await broker.handler("t", ctx)

    assert res.created_at == "c0"
    assert res.uuid == "u-1"
    assert res.topic == "t"
    assert ctx.received_at == "t1"
    assert res.received_at == "t2"
    assert res.content == {"changed": True}


async def test_handler_preserves_fields_when_action_fails():
    broker = Broker(transport=DirectTransport())

    def fail(ctx):
        raise RuntimeError("nope")

    broker.set_action("t", fail)
    ctx = Ctx(topic="t", created_at="c0", params={}, uuid="u-1")
    res = await broker.handler("t", ctx)

    assert (res.created_at, res.uuid) == ("c0", "u-1")
    assert res.content is None
    assert res.error == {"type": "RuntimeError", "text": "nope"}


async def test_handler_without_action_is_fatal():
    broker = Broker(transport=DirectTransport())
    ctx = Ctx(topic="ghost", created_at="c0", params={}, uuid="u-1")

    with pytest.raises(NoActionError):
        await broker.handler("ghost", ctx)


async def test_receive_twice_resolves_once(ids):
    broker = Broker(transport=DirectTransport(), id_factory=ids)
    future = broker.pending.add("u1")
    res = Res(content=5, created_at="t1", received_at="t2", topic="x", uuid="u1")

    assert broker.receive(res) is True
    assert broker.receive(res) is False
    assert future.result() == 5
    assert len(broker.pending) == 0


async def test_unmatched_reply_is_dropped():
    broker = Broker(transport=DirectTransport())
    res = Res(content=1, created_at="t1", received_at="t2", topic="x", uuid="nobody")

    assert broker.receive(res) is False


async def test_timeout_removes_pending_entry(ids):
    broker = Broker(transport=LocalTransport(poll_interval=0.05), id_factory=ids)
    # no consumer on "quiet:req", the request is dropped
    broker.set_action("quiet", lambda ctx: None)

    async with broker:
        with pytest.raises(CallTimeoutError) as info:
            await broker.call("quiet", {}, timeout=0.05)
        assert info.value.uuid == "u1"
        assert len(broker.pending) == 0

        late = Res(content=1, created_at="t1", received_at="t2", topic="quiet", uuid="u1")
        assert broker.receive(late) is False


async def test_default_timeout_comes_from_broker():
    broker = Broker(transport=LocalTransport(poll_interval=0.05), call_timeout=0.05)

    async with broker:
        with pytest.raises(CallTimeoutError):
            await broker.call("nowhere", {})


async def _call_through(broker, channel, topic):
    """Send a call for ``topic`` on another topic's request channel."""

    async def produce(message):
        await broker.producer(channel, message)

    return await broker.send(topic, {}, produce)


async def test_missing_action_propagates_through_direct_transport():
    async with Broker(transport=DirectTransport()) as broker:
        broker.subscribe("served", lambda ctx: None)

        with pytest.raises(NoActionError):
            await _call_through(broker, "served:req", "gone")
        assert len(broker.pending) == 0


async def test_missing_action_stops_local_dispatcher():
    broker = Broker(transport=LocalTransport(poll_interval=0.05))
    broker.subscribe("served", lambda ctx: None)
    await broker.start()

    with pytest.raises(NoActionError):
        await _call_through(broker, "served:req", "gone")
    assert len(broker.pending) == 0
    assert not broker.transport.is_running

    with pytest.raises(NoActionError):
        await broker.stop()


async def test_unencodable_result_is_reported_to_caller(broker):
    broker.subscribe("sets", lambda ctx: {1, 2})

    with pytest.raises(ActionError) as info:
        await broker.call("sets", {})
    assert info.value.error_type == "TypeError"
    assert len(broker.pending) == 0


async def test_call_without_consumer_fails_on_direct_transport():
    async with Broker(transport=DirectTransport()) as broker:
        with pytest.raises(NoConsumerError):
            await broker.call("nobody", {})
        assert len(broker.pending) == 0


async def test_call_after_stop_fails_fast():
    broker = Broker(transport=LocalTransport(poll_interval=0.05))
    broker.subscribe("echo", lambda ctx: ctx.params)
    await broker.start()
    await broker.stop()

    with pytest.raises(BrokerError, match="not running"):
        await broker.call("echo", {})
    assert len(broker.pending) == 0


async def test_unsubscribe_removes_action_and_channels():
    async with Broker(transport=DirectTransport()) as broker:
        broker.subscribe("echo", lambda ctx: ctx.params)
        assert await broker.call("echo", 1) == 1

        broker.unsubscribe("echo")

        assert broker.topics == []
        assert broker.channels.names == []
        with pytest.raises(NoConsumerError):
            await broker.call("echo", 1)
        assert len(broker.pending) == 0


def test_unsubscribe_unknown_topic_is_silent():
    broker = Broker(transport=DirectTransport())
    broker.unsubscribe("never")
    assert broker.topics == []


async def test_stop_fails_outstanding_calls():
    broker = Broker(transport=LocalTransport(poll_interval=0.05))
    await broker.start()
    task = asyncio.create_task(broker.call("nowhere", {}))
    await asyncio.sleep(0.05)

    await broker.stop()

    with pytest.raises(BrokerError):
        await task


async def test_base64_codec_end_to_end():
    async with Broker(codec=Base64Codec(), transport=DirectTransport()) as broker:
        assert await run_welcome(broker) == {"code": 200, "success": WELCOME_TEXT}


def test_from_config_builds_named_parts():
    config = Config(broker=BrokerConfig(codec="base64", transport="direct", call_timeout=2))
    broker = Broker.from_config(config)

    assert isinstance(broker.codec, Base64Codec)
    assert isinstance(broker.transport, DirectTransport)
    assert broker.call_timeout == 2


def test_set_action_rejects_empty_topic():
    with pytest.raises(ValueError):
        Broker(transport=DirectTransport()).set_action("", lambda ctx: None)

import asyncio
import contextlib

import pytest

from order_service.stream import MemoryStream


async def _with_consumer(stream, body):
    consumer = asyncio.create_task(stream.run())
    try:
        return await body()
    finally:
        consumer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await consumer


def test_messages_are_delivered_in_order_with_sequence_numbers():
    seen = []

    async def scenario():
        stream = MemoryStream("orders")
        stream.subscribe(lambda seq, data: seen.append((seq, data)))

        async def body():
            await stream.publish(b"first")
            await stream.publish(b"second")
            return await stream.publish(b"third", wait=True)

        return await _with_consumer(stream, body)

    sequence, _ = asyncio.run(scenario())
    assert sequence == 3
    assert seen == [(1, b"first"), (2, b"second"), (3, b"third")]


def test_wait_returns_handler_result():
    async def scenario():
        stream = MemoryStream("orders")
        stream.subscribe(lambda seq, data: data.upper())
        return await _with_consumer(stream, lambda: stream.publish(b"abc", wait=True))

    assert asyncio.run(scenario()) == (1, b"ABC")


def test_handler_failure_does_not_stop_consumer():
    calls = []

    def handler(seq, data):
        calls.append(seq)
        if data == b"boom":
            raise RuntimeError("handler blew up")
        return "ok"

    async def scenario():
        stream = MemoryStream("orders")
        stream.subscribe(handler)

        async def body():
            with pytest.raises(RuntimeError):
                await stream.publish(b"boom", wait=True)
            return await stream.publish(b"fine", wait=True)

        return await _with_consumer(stream, body)

    assert asyncio.run(scenario()) == (2, "ok")
    assert calls == [1, 2]


def test_closed_subscription_drops_messages():
    seen = []

    async def scenario():
        stream = MemoryStream("orders")
        stream.subscribe(lambda seq, data: seen.append(seq)).close()
        return await _with_consumer(stream, lambda: stream.publish(b"x", wait=True))

    assert asyncio.run(scenario()) == (1, None)
    assert seen == []


def test_single_subscriber_per_subject():
    stream = MemoryStream("orders")
    stream.subscribe(lambda seq, data: None)
    with pytest.raises(RuntimeError):
        stream.subscribe(lambda seq, data: None)

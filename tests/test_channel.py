"""Tests for the reference-counted channel."""

from __future__ import annotations

import asyncio

import pytest

from gitfind.channel import Channel, ChannelClosed


async def _drain(channel: Channel[int]) -> list[int]:
    return [item async for item in channel.receiver()]


def test_receiver_ends_after_last_sender_is_released() -> None:
    async def scenario() -> list[int]:
        channel: Channel[int] = Channel("numbers")
        first = channel.sender()
        second = first.clone()
        first.send(1)
        second.send(2)
        first.close()
        assert not channel.closed
        second.send(3)
        second.close()
        assert channel.closed
        return await _drain(channel)

    assert asyncio.run(scenario()) == [1, 2, 3]


def test_receiver_waits_while_a_sender_is_held() -> None:
    async def scenario() -> tuple[bool, list[int]]:
        channel: Channel[int] = Channel("numbers")
        held = channel.sender()
        producer = held.clone()
        consumer = asyncio.create_task(_drain(channel))
        with producer:
            producer.send(7)
        await asyncio.sleep(0.01)
        still_running = not consumer.done()
        held.close()
        return still_running, await consumer

    still_running, items = asyncio.run(scenario())

    assert still_running is True
    assert items == [7]


def test_released_sender_rejects_sends_and_clones() -> None:
    async def scenario() -> None:
        channel: Channel[str] = Channel("words")
        sender = channel.sender()
        sender.close()
        sender.close()
        with pytest.raises(ChannelClosed):
            sender.send("late")
        with pytest.raises(ChannelClosed):
            sender.clone()
        with pytest.raises(ChannelClosed):
            channel.sender()
        assert await channel.receiver().recv() is None

    asyncio.run(scenario())


def test_sender_count_tracks_clones() -> None:
    async def scenario() -> None:
        channel: Channel[int] = Channel()
        sender = channel.sender()
        clones = [sender.clone() for _ in range(3)]
        assert channel.sender_count == 4
        for clone in clones:
            clone.close()
        assert channel.sender_count == 1
        assert not channel.closed
        sender.close()
        assert channel.sender_count == 0

    asyncio.run(scenario())

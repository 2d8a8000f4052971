import asyncio

import pytest

from cgplugin.client.channel import LocalFrameChannel, create_channel_pair


@pytest.mark.asyncio
async def test_delivery_is_async_copied_and_reports_origin():
    plugin_side, host_side = create_channel_pair("https://a.example", "https://b.example")
    seen = []
    host_side.add_listener(lambda data, origin: seen.append((data, origin)))

    message = {"request": "x"}
    plugin_side.post_message(message, "https://b.example")
    assert seen == []
    await asyncio.sleep(0)

    assert seen == [({"request": "x"}, "https://a.example")]
    assert seen[0][0] is not message
    assert plugin_side.parent_origin == "https://b.example"
    assert host_side.parent_origin is None


@pytest.mark.asyncio
async def test_target_origin_mismatch_drops():
    plugin_side, host_side = create_channel_pair("https://a.example", "https://b.example")
    seen = []
    host_side.add_listener(lambda data, origin: seen.append(data))
    plugin_side.post_message({"n": 1}, "https://c.example")
    plugin_side.post_message({"n": 2}, "*")
    await asyncio.sleep(0)
    assert seen == [{"n": 2}]
    assert len(plugin_side.sent) == 2


@pytest.mark.asyncio
async def test_listener_errors_do_not_stop_others():
    plugin_side, host_side = create_channel_pair()
    seen = []

    def broken(data, origin):
        raise RuntimeError("boom")

    host_side.add_listener(broken)
    host_side.add_listener(lambda data, origin: seen.append(data))
    plugin_side.post_message({"n": 1}, "*")
    await asyncio.sleep(0)
    assert seen == [{"n": 1}]


def test_remove_listener_and_unconnected_post():
    channel = LocalFrameChannel("https://a.example")
    listener = lambda data, origin: None  # noqa: E731
    channel.add_listener(listener)
    channel.remove_listener(listener)
    channel.remove_listener(listener)
    assert channel.listener_count == 0
    with pytest.raises(RuntimeError):
        channel.post_message({}, "*")


def test_hidden_parent_origin():
    plugin_side, _ = create_channel_pair(expose_parent_origin=False)
    assert plugin_side.parent_origin is None

import asyncio
import json

import pytest
import websockets.asyncio.client

import pianorain.config
import pianorain.session
import pianorain.web_bridge


def _session (**kwargs) -> pianorain.session.Session:

	return pianorain.session.Session("C", config=pianorain.config.GameConfig(bpm=60, **kwargs))


def test_event_message_has_type () -> None:

	"""Events are JSON objects tagged with their type."""

	assert json.loads(pianorain.web_bridge.event_message("miss", lane=3)) == {"type": "miss", "lane": 3}


def test_handle_message_press_and_start () -> None:

	"""Client messages drive the session."""

	session = _session()
	bridge = pianorain.web_bridge.WebBridge(session, port=0)

	bridge.handle_message(json.dumps({"type": "start"}))
	assert session.playing

	for _ in range(70):
		session.tick(1.0)

	bridge.handle_message(json.dumps({"type": "press", "lane": 7}))
	assert session.score.hits == 1

	bridge.handle_message(json.dumps({"type": "release", "lane": 7}))
	bridge.handle_message(json.dumps({"type": "wait", "enabled": False}))
	assert session.wait_mode is False

	bridge.handle_message(json.dumps({"type": "stop"}))
	assert not session.playing


def test_handle_message_ignores_garbage () -> None:

	"""Malformed messages are dropped."""

	session = _session()
	bridge = pianorain.web_bridge.WebBridge(session, port=0)

	bridge.handle_message("not json")
	bridge.handle_message(json.dumps([1, 2]))
	bridge.handle_message(json.dumps({"type": "press"}))
	bridge.handle_message(json.dumps({"type": "press", "lane": 99}))
	bridge.handle_message(json.dumps({"type": "dance"}))

	assert not session.playing


def test_state_snapshot () -> None:

	"""The snapshot lists score, flags and notes in flight."""

	session = _session()
	bridge = pianorain.web_bridge.WebBridge(session, port=0)

	session.start()
	session.tick(1.0)

	state = bridge.get_state(session)

	assert state["type"] == "state"
	assert state["playing"] is True
	assert state["notes"] == [{"p": 60, "lane": 7, "y": -96.0, "interactive": True}]


@pytest.mark.asyncio
async def test_websocket_round_trip () -> None:

	"""A browser client can start the song and receives events."""

	session = _session()
	bridge = pianorain.web_bridge.WebBridge(session, port=0, host="127.0.0.1")
	await bridge.start()

	port = next(iter(bridge._ws_server.sockets)).getsockname()[1]

	async with websockets.asyncio.client.connect(f"ws://127.0.0.1:{port}") as websocket:

		await websocket.send(json.dumps({"type": "start"}))

		for _ in range(50):
			if session.playing:
				break
			await asyncio.sleep(0.01)

		assert session.playing

		session.tick(1.0)

		message = json.loads(await asyncio.wait_for(websocket.recv(), timeout=1.0))

		while message["type"] == "state":
			message = json.loads(await asyncio.wait_for(websocket.recv(), timeout=1.0))

		assert message == {"type": "spawn", "pitch": 60, "lane": 7, "duration": 1.0, "offset": 1.0, "autoplay": False}

	await bridge.stop()

import asyncio
import json
import logging
import typing
import weakref

import websockets
import websockets.asyncio.server
import websockets.exceptions

import pianorain.constants
import pianorain.sequencer

if typing.TYPE_CHECKING:
	from pianorain.session import Session


logger = logging.getLogger(__name__)


def event_message (event_type: str, **fields: typing.Any) -> str:

	"""Encode one game event as the JSON text sent to browsers."""

	return json.dumps({"type": event_type, **fields})


class WebBridge:

	"""
	WebSocket bridge for browser front ends.

	Every game event is pushed to connected clients as a JSON object with a
	``type`` key, as it happens.  A compact state snapshot (score, flags and
	in-flight notes) is also broadcast ten times a second so a client that
	joins mid-song can draw the board.

	Clients send JSON objects back: ``{"type": "press", "lane": 3}``,
	``{"type": "release", "lane": 3}``, ``{"type": "start"}`` (optionally with
	``"demo": true``), ``{"type": "stop"}`` and ``{"type": "wait", "enabled": false}``.
	"""

	def __init__ (self, session: "Session", port: int = pianorain.constants.WEB_BRIDGE_PORT, host: str = "0.0.0.0") -> None:

		self.session_ref = weakref.ref(session)
		self.port = port
		self.host = host
		self._ws_server: typing.Optional[websockets.asyncio.server.Server] = None
		self._broadcast_task: typing.Optional[asyncio.Task] = None
		self._clients: typing.Set[websockets.asyncio.server.ServerConnection] = set()

		events = session.events
		events.on("spawn", self._on_spawn)
		events.on("hit", lambda lane, position: self.publish("hit", lane=lane, position=position))
		events.on("miss", lambda lane: self.publish("miss", lane=lane))
		events.on("sound", lambda pitch, lane, duration: self.publish("sound", pitch=pitch, lane=lane, duration=duration))
		events.on("press", lambda lane, pitch: self.publish("press", lane=lane, pitch=pitch))
		events.on("release", lambda lane, pitch: self.publish("release", lane=lane, pitch=pitch))
		events.on("finished", lambda: self.publish("finished"))

	@property
	def client_count (self) -> int:

		return len(self._clients)

	async def start (self) -> None:

		self._ws_server = await websockets.asyncio.server.serve(self._handle_client, self.host, self.port)
		self._broadcast_task = asyncio.create_task(self._broadcast_loop())

		logger.info(f"WebSocket bridge listening on ws://localhost:{self.port}")

	async def stop (self) -> None:

		if self._broadcast_task:
			self._broadcast_task.cancel()
			self._broadcast_task = None

		if self._ws_server:
			self._ws_server.close()
			await self._ws_server.wait_closed()
			self._ws_server = None
			logger.info("WebSocket bridge stopped")

	def publish (self, event_type: str, **fields: typing.Any) -> None:

		"""Send one event to every connected client."""

		if not self._clients:
			return

		websockets.broadcast(self._clients, event_message(event_type, **fields))

	def _on_spawn (self, spawn: pianorain.sequencer.SpawnInstruction) -> None:

		self.publish(
			"spawn",
			pitch = spawn.pitch,
			lane = spawn.lane,
			duration = spawn.duration,
			offset = spawn.timing_offset,
			autoplay = spawn.is_autoplay
		)

	async def _handle_client (self, websocket: websockets.asyncio.server.ServerConnection) -> None:

		self._clients.add(websocket)

		try:
			async for message in websocket:
				self.handle_message(message)
		except websockets.exceptions.ConnectionClosed:
			pass
		finally:
			self._clients.discard(websocket)

	def handle_message (self, message: typing.Union[str, bytes]) -> None:

		"""Apply one client message to the session.  Malformed input is logged and dropped."""

		session = self.session_ref()

		if session is None:
			return

		try:
			data = json.loads(message)
		except json.JSONDecodeError:
			logger.warning(f"Ignoring non-JSON WebSocket message: {message!r}")
			return

		if not isinstance(data, dict):
			logger.warning(f"Ignoring WebSocket message without a type: {message!r}")
			return

		kind = data.get("type")

		try:
			if kind == "press":
				session.press(int(data["lane"]))
			elif kind == "release":
				session.release(int(data["lane"]))
			elif kind == "start":
				session.start(demo=bool(data.get("demo", False)))
			elif kind == "stop":
				session.stop()
			elif kind == "wait":
				session.wait_mode = bool(data.get("enabled", True))
			else:
				logger.warning(f"Unknown WebSocket message type {kind!r}")

		except (KeyError, TypeError, ValueError) as e:
			logger.warning(f"Ignoring WebSocket {kind} message: {e}")

	async def _broadcast_loop (self) -> None:

		while True:
			await asyncio.sleep(0.1)

			if not self._clients:
				continue

			session = self.session_ref()

			if session is None:
				break

			websockets.broadcast(self._clients, json.dumps(self.get_state(session)))

	def get_state (self, session: "Session") -> typing.Dict[str, typing.Any]:

		return {
			"type": "state",
			"playing": session.playing,
			"finished": session.finished,
			"wait": session.wait_mode,
			"clock": session.clock,
			"score": {
				"hits": session.score.hits,
				"misses": session.score.misses,
				"autoplayed": session.score.autoplayed,
			},
			"notes": [
				{
					"p": note.pitch,
					"lane": note.lane,
					"y": note.position,
					"interactive": note.is_interactive
				}
				for note in session.active_notes
			],
		}

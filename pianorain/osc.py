"""OSC bridge between a running session and external renderers or controllers.

The bridge listens on a UDP port (default 9000) for input and mirrors every
game event to a target host/port (default 127.0.0.1:9001), so a visual
front end or a synthesizer can live in another process.

Receive Handlers
────────────────
- ``/press <lane>``: Key down on a lane
- ``/release <lane>``: Key up on a lane
- ``/start [demo]``: Start or restart the song (``1`` for demo playback)
- ``/stop``: Abandon the current play-through
- ``/wait <0|1>``: Toggle wait mode

Send Events
───────────
- ``/spawn <pitch> <lane> <offset> <autoplay>``: A note appeared
- ``/hit <lane> <position>``: A note was hit
- ``/miss <lane>``: A note fell past the line
- ``/sound <pitch> <lane> <duration>``: An autoplay note should sound
- ``/press <lane> <pitch>`` and ``/release <lane> <pitch>``: Key activity
- ``/finished``: The song ended
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import pianorain.constants
import pianorain.sequencer

if typing.TYPE_CHECKING:
	from pianorain.session import Session


logger = logging.getLogger(__name__)


class OscBridge:

	"""Async OSC server/client wired to one session."""

	def __init__ (
		self,
		session: "Session",
		receive_port: int = pianorain.constants.OSC_RECEIVE_PORT,
		send_port: int = pianorain.constants.OSC_SEND_PORT,
		send_host: str = pianorain.constants.OSC_SEND_HOST
	) -> None:

		self._session = session
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		self._dispatcher.map("/press", self._handle_press)
		self._dispatcher.map("/release", self._handle_release)
		self._dispatcher.map("/start", self._handle_start)
		self._dispatcher.map("/stop", self._handle_stop)
		self._dispatcher.map("/wait", self._handle_wait)

		events = session.events
		events.on("spawn", self._on_spawn)
		events.on("hit", lambda lane, position: self.send("/hit", lane, float(position)))
		events.on("miss", lambda lane: self.send("/miss", lane))
		events.on("sound", lambda pitch, lane, duration: self.send("/sound", pitch, lane, float(duration)))
		events.on("press", lambda lane, pitch: self.send("/press", lane, pitch))
		events.on("release", lambda lane, pitch: self.send("/release", lane, pitch))
		events.on("finished", lambda: self.send("/finished"))


	async def start (self) -> None:

		"""Open the sending client and the receiving server."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		logger.info(f"OSC listening on :{self._receive_port}, sending to {self._send_host}:{self._send_port}")


	async def stop (self) -> None:

		if self._transport:
			self._transport.close()
			self._transport = None
			logger.info("OSC bridge stopped")


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message.  Does nothing before :meth:`start`."""

		if self._client:
			try:
				self._client.send_message(address, list(args))
			except OSError as e:
				logger.warning(f"OSC send error: {e}")


	def map (self, address: str, handler: typing.Callable) -> None:

		"""Register an extra OSC handler."""

		self._dispatcher.map(address, handler)


	def _on_spawn (self, spawn: pianorain.sequencer.SpawnInstruction) -> None:

		self.send("/spawn", spawn.pitch, spawn.lane, float(spawn.timing_offset), int(spawn.is_autoplay))


	# Handlers

	def _lane_argument (self, address: str, args: typing.Tuple[typing.Any, ...]) -> typing.Optional[int]:

		if not args:
			logger.warning(f"OSC {address} needs a lane argument")
			return None

		try:
			return int(args[0])
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC lane argument: {args[0]}")
			return None

	def _handle_press (self, address: str, *args: typing.Any) -> None:

		lane = self._lane_argument(address, args)

		if lane is None:
			return

		try:
			self._session.press(lane)
		except ValueError as e:
			logger.warning(f"Ignoring OSC press: {e}")

	def _handle_release (self, address: str, *args: typing.Any) -> None:

		lane = self._lane_argument(address, args)

		if lane is None:
			return

		try:
			self._session.release(lane)
		except ValueError as e:
			logger.warning(f"Ignoring OSC release: {e}")

	def _flag_argument (self, address: str, args: typing.Tuple[typing.Any, ...]) -> typing.Optional[bool]:

		"""Read a 0/1 flag; strings such as ``"0"`` are converted as numbers."""

		try:
			return bool(int(args[0]))
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC {address} flag: {args[0]}")
			return None

	def _handle_start (self, address: str, *args: typing.Any) -> None:

		demo = self._flag_argument(address, args) if args else False

		if demo is None:
			return

		self._session.start(demo=demo)

	def _handle_stop (self, address: str, *args: typing.Any) -> None:
		self._session.stop()

	def _handle_wait (self, address: str, *args: typing.Any) -> None:
		if not args:
			return

		enabled = self._flag_argument(address, args)

		if enabled is not None:
			self._session.wait_mode = enabled

"""Real-time driver: runs a session against the wall clock with its input and output bridges.

:class:`Game` is what ``python -m pianorain play`` builds.  It owns a
:class:`~pianorain.session.Session`, the optional OSC and WebSocket
bridges, the terminal keystroke listener and a MIDI input port, and runs
the frame loop until the song finishes or the process is interrupted.
"""

import asyncio
import logging
import signal
import time
import typing

import pianorain.config
import pianorain.constants
import pianorain.keystroke
import pianorain.midi_utils
import pianorain.osc
import pianorain.session
import pianorain.web_bridge


logger = logging.getLogger(__name__)


class Game:

	"""
	Wall-clock game loop around a session.

	Example:
		```python
		config = pianorain.config.GameConfig(melody="C2E2G2c4", osc_enabled=True)
		pianorain.game.Game(config).play()
		```
	"""

	def __init__ (
		self,
		config: typing.Optional[pianorain.config.GameConfig] = None,
		session: typing.Optional[pianorain.session.Session] = None,
		keystrokes: bool = True,
		stop_when_finished: bool = True,
		demo: bool = False
	) -> None:

		"""
		Parameters:
			config: Game settings; the song is taken from ``config.melody`` and
				``config.accompaniment`` unless ``session`` is given.
			session: An already built session to drive.
			keystrokes: Read lane presses from the terminal.
			stop_when_finished: Leave the loop once the song has finished.
			demo: Start the song in demo playback.
		"""

		self.config = config or pianorain.config.GameConfig()
		self.session = session or pianorain.session.Session.from_config(self.config)
		self.stop_when_finished = stop_when_finished
		self.demo = demo

		self.key_lanes: typing.Dict[str, int] = self.session.keyboard.key_lanes(self.config.keymap)

		self.osc_bridge: typing.Optional[pianorain.osc.OscBridge] = None
		self.web_bridge: typing.Optional[pianorain.web_bridge.WebBridge] = None
		self.keystroke_listener: typing.Optional[pianorain.keystroke.KeystrokeListener] = None

		if self.config.osc_enabled:
			self.osc_bridge = pianorain.osc.OscBridge(
				self.session,
				receive_port = self.config.osc_receive_port,
				send_port = self.config.osc_send_port,
				send_host = self.config.osc_send_host
			)

		if self.config.web_enabled:
			self.web_bridge = pianorain.web_bridge.WebBridge(self.session, port=self.config.web_port)

		if keystrokes:
			self.keystroke_listener = pianorain.keystroke.KeystrokeListener(self.key_lanes)

		self.midi_in: typing.Optional[typing.Any] = None
		self._midi_input_queue: typing.Optional[asyncio.Queue] = None
		self._input_loop: typing.Optional[asyncio.AbstractEventLoop] = None

		self.running = False
		self.task: typing.Optional[asyncio.Task] = None


	def play (self) -> None:

		"""
		Run the game.  Blocks until the song ends or the process is interrupted.
		"""

		try:
			asyncio.run(self._run())

		except KeyboardInterrupt:
			pass


	async def _run (self) -> None:

		if self.osc_bridge is not None:
			await self.osc_bridge.start()

		if self.web_bridge is not None:
			await self.web_bridge.start()

		if self.keystroke_listener is not None:
			self.keystroke_listener.start()

			if self.keystroke_listener.active:
				logger.info(f"Play with the keys: {''.join(self.key_lanes)}")

		await self.start()

		stop_event = asyncio.Event()
		loop = asyncio.get_running_loop()

		for sig in (signal.SIGINT, signal.SIGTERM):
			loop.add_signal_handler(sig, stop_event.set)

		await asyncio.wait(
			[asyncio.create_task(stop_event.wait()), self.task],
			return_when = asyncio.FIRST_COMPLETED
		)

		await self.stop()

		if self.keystroke_listener is not None:
			self.keystroke_listener.stop()

		if self.web_bridge is not None:
			await self.web_bridge.stop()

		if self.osc_bridge is not None:
			await self.osc_bridge.stop()

		score = self.session.score
		logger.info(f"Final score: {score.hits} hit, {score.misses} missed ({score.accuracy:.0%})")


	async def start (self) -> None:

		"""Open MIDI input, start the song and launch the frame loop task."""

		if self.running:
			return

		if self.config.midi_input is not None:
			self._input_loop = asyncio.get_running_loop()
			self._midi_input_queue = asyncio.Queue()
			_, self.midi_in = pianorain.midi_utils.select_input_device(self.config.midi_input, self._on_midi_input)

		self.session.start(demo=self.demo)

		self.running = True
		self.task = asyncio.create_task(self._run_loop())


	async def stop (self) -> None:

		if not self.running and self.task is None:
			return

		self.running = False

		if self.task:
			await self.task
			self.task = None

		self.session.stop()

		if self.midi_in is not None:
			self.midi_in.close()
			self.midi_in = None

		self._midi_input_queue = None
		self._input_loop = None


	def _on_midi_input (self, message: typing.Any) -> None:

		"""Runs in mido's callback thread; hands the message to the event loop."""

		if self._midi_input_queue is None or self._input_loop is None:
			return

		self._input_loop.call_soon_threadsafe(self._midi_input_queue.put_nowait, message)


	def handle_key (self, key: str) -> None:

		"""Turn a typed character into a lane press.  Unmapped keys are ignored."""

		lane = pianorain.keystroke.lane_for_key(self.key_lanes, key)

		if lane is not None:
			self.session.press(lane)


	def handle_midi_message (self, message: typing.Any) -> None:

		"""Map note on/off from a MIDI keyboard onto lanes."""

		if message.type == 'note_on' and message.velocity > 0:
			self.session.press_pitch(message.note)

		elif message.type == 'note_off' or (message.type == 'note_on' and message.velocity == 0):
			self.session.release_pitch(message.note)


	def poll_inputs (self) -> None:

		"""Apply every input that arrived since the previous frame."""

		if self.keystroke_listener is not None:
			for lane in self.keystroke_listener.drain():
				self.session.press(lane)

		if self._midi_input_queue is not None:
			while not self._midi_input_queue.empty():
				self.handle_midi_message(self._midi_input_queue.get_nowait())


	async def _run_loop (self) -> None:

		"""
		Frame loop paced by :func:`time.perf_counter`.

		Each frame the elapsed wall time is converted to ticks and handed to
		the session as the raw delta, so a late frame advances the song by
		more than one tick rather than letting it drift.  A stall longer than
		:data:`~pianorain.constants.MAX_FRAME_SECONDS` is cut to that length.
		"""

		tick_rate = self.config.tick_rate
		frame_seconds = 1.0 / tick_rate
		max_delta = pianorain.constants.MAX_FRAME_SECONDS * tick_rate

		last_time = time.perf_counter()
		next_frame_time = last_time + frame_seconds

		while self.running:

			now = time.perf_counter()
			raw_delta = min((now - last_time) * tick_rate, max_delta)
			last_time = now

			self.poll_inputs()
			self.session.tick(raw_delta)

			if self.stop_when_finished and self.session.finished:
				self.running = False
				break

			sleep_time = next_frame_time - time.perf_counter()
			next_frame_time += frame_seconds

			if sleep_time > 0:
				await asyncio.sleep(sleep_time)

			else:
				# Behind schedule: yield once and resynchronise.
				next_frame_time = time.perf_counter() + frame_seconds
				await asyncio.sleep(0)

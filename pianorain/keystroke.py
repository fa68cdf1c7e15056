"""Computer-keyboard play read from the terminal.

A background thread reads single keystrokes from stdin in *cbreak* mode and
turns the mapped ones into lane presses.  A terminal reports key-down only,
so every keystroke is a press with no matching release, and keys outside the
key map are dropped before they reach the game loop.

Linux and macOS only: :mod:`tty` and :mod:`termios` are POSIX modules, and
stdin must be a real TTY.  Elsewhere the listener logs a warning and stays
inactive.  :data:`KEYSTROKES_SUPPORTED` tells you which case applies.
"""

import logging
import queue
import select
import sys
import threading
import typing

try:
	import termios
	import tty
except ImportError:
	termios = None
	tty = None


logger = logging.getLogger(__name__)


def _terminal_problem () -> typing.Optional[str]:

	if termios is None or tty is None:
		return "The 'tty' and 'termios' modules need a POSIX system (Linux or macOS)."

	try:
		if not sys.stdin.isatty():
			raise OSError("stdin is not a TTY (running in a pipe or non-interactive context)")

		fd = sys.stdin.fileno()
		termios.tcsetattr(fd, termios.TCSADRAIN, termios.tcgetattr(fd))

	except (OSError, ValueError) as e:
		return f"Keyboard play needs an interactive terminal on stdin. Reason: {e}"

	return None


KEYSTROKES_UNAVAILABLE_REASON: typing.Optional[str] = _terminal_problem()

KEYSTROKES_SUPPORTED: bool = KEYSTROKES_UNAVAILABLE_REASON is None


def lane_for_key (key_lanes: typing.Dict[str, int], key: str) -> typing.Optional[int]:

	"""Look a typed character up in the key map, ignoring Shift for letters."""

	lane = key_lanes.get(key)

	if lane is None:
		lane = key_lanes.get(key.lower())

	return lane


class KeystrokeListener:

	"""
	Daemon thread that queues lane presses typed on the terminal.

	Call :meth:`drain` from the game loop to collect the lanes pressed since
	the previous frame.  Terminal settings are restored when the thread exits.

	Example::

		listener = KeystrokeListener(keyboard.key_lanes(DEFAULT_KEYMAP))
		listener.start()

		for lane in listener.drain():
			session.press(lane)
	"""

	def __init__ (self, key_lanes: typing.Optional[typing.Dict[str, int]] = None) -> None:

		self.key_lanes: typing.Dict[str, int] = dict(key_lanes or {})

		self._lanes: "queue.Queue[int]" = queue.Queue()
		self._thread: typing.Optional[threading.Thread] = None
		self._running: bool = False

		#: True while the thread is reading.
		self.active: bool = False

	def start (self) -> None:

		"""Put stdin in cbreak mode and start reading.  A second call is a no-op."""

		if self._running:
			return

		if not KEYSTROKES_SUPPORTED:
			logger.warning(f"Keyboard play is disabled. {KEYSTROKES_UNAVAILABLE_REASON}")
			return

		self._running = True
		self.active = True
		self._thread = threading.Thread(
			target = self._listen,
			name = "pianorain-keystrokes",
			daemon = True
		)
		self._thread.start()

	def stop (self) -> None:

		"""Ask the thread to exit; it restores the terminal itself within ~0.1 s."""

		self._running = False
		self.active = False

	def push (self, key: str) -> bool:

		"""
		Handle a keystroke as if it had been typed.

		Returns:
			True when the key is mapped and its lane press was queued.
		"""

		lane = lane_for_key(self.key_lanes, key)

		if lane is None:
			return False

		self._lanes.put(lane)

		return True

	def drain (self) -> typing.List[int]:

		"""Return every lane pressed since the last call, oldest first."""

		lanes: typing.List[int] = []

		while True:
			try:
				lanes.append(self._lanes.get_nowait())
			except queue.Empty:
				break

		return lanes

	def _listen (self) -> None:

		fd = sys.stdin.fileno()
		old_settings = termios.tcgetattr(fd)

		try:
			tty.setcbreak(fd)

			while self._running:
				ready, _, _ = select.select([sys.stdin], [], [], 0.1)

				if ready:
					char = sys.stdin.read(1)

					if char and not self.push(char):
						logger.debug(f"Unmapped key {char!r}")

		except OSError:
			logger.exception("Keystroke listener stopped reading stdin")

		finally:
			termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
			self.active = False

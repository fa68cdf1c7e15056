"""The game core: one play-through of a song.

A :class:`Session` owns the sequencer, the in-flight notes and the score.
It is advanced explicitly with :meth:`Session.tick`, one call per frame, and
reports everything that happens through its :attr:`Session.events` emitter:

- ``spawn`` (:class:`~pianorain.sequencer.SpawnInstruction`)
- ``hit`` (lane, position)
- ``miss`` (lane)
- ``sound`` (pitch, lane, duration)
- ``press`` (lane, pitch) and ``release`` (lane, pitch)
- ``finished`` ()

Nothing here touches the clock, the terminal or the network, so a whole song
can be simulated in a test by calling ``tick`` in a loop.
"""

import dataclasses
import logging
import typing

import pianorain.config
import pianorain.constants
import pianorain.event_emitter
import pianorain.hit_judge
import pianorain.keyboard
import pianorain.notation
import pianorain.sequencer
import pianorain.time_dilator


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class ScoreState:

	"""Counters for the current play-through."""

	hits: int = 0
	misses: int = 0
	autoplayed: int = 0

	def reset (self) -> None:

		self.hits = 0
		self.misses = 0
		self.autoplayed = 0

	@property
	def judged (self) -> int:

		return self.hits + self.misses

	@property
	def accuracy (self) -> float:

		"""Fraction of judged notes that were hit, 0.0 before any judgement."""

		if self.judged == 0:
			return 0.0

		return self.hits / self.judged


def _as_track (value: typing.Union[str, pianorain.notation.Track, None]) -> pianorain.notation.Track:

	if value is None:
		return []

	if isinstance(value, str):
		return pianorain.notation.decode(value)

	return list(value)


class Session:

	"""
	Falling-note playback with optional wait mode.

	Each tick runs in a fixed order: the time dilator picks the effective
	delta, notes already in flight move, notes that reached the end of their
	path are resolved (autoplay notes sound, interactive notes past the miss
	margin are missed), the sequencer advances and new notes spawn, and
	finally the end-of-song grace period is checked.

	Example:
		```python
		session = pianorain.session.Session("C2E2G2c4", "C,8")
		session.events.on("sound", lambda pitch, lane, duration: synth.play(pitch))
		session.start()

		while session.playing:
			session.tick(1.0)
		```
	"""

	def __init__ (
		self,
		melody: typing.Union[str, pianorain.notation.Track, None] = None,
		accompaniment: typing.Union[str, pianorain.notation.Track, None] = None,
		config: typing.Optional[pianorain.config.GameConfig] = None,
		events: typing.Optional[pianorain.event_emitter.EventEmitter] = None
	) -> None:

		"""
		Parameters:
			melody: Melody as a notation string or a decoded track.
			accompaniment: Accompaniment as a notation string or a decoded track.
			config: Game settings; defaults when omitted.
			events: Emitter to report on; a fresh one is created when omitted.
		"""

		self.config = config or pianorain.config.GameConfig()
		self.keyboard: pianorain.keyboard.Keyboard = self.config.keyboard()
		self.events = events or pianorain.event_emitter.EventEmitter()

		self.spawn_position = pianorain.constants.SPAWN_POSITION
		self.line = pianorain.constants.JUDGMENT_LINE
		self.stop_position = self.line - pianorain.constants.NOTE_LENGTH
		self.miss_position = self.line + pianorain.constants.MISS_MARGIN
		self.finish_grace = pianorain.constants.FINISH_GRACE_SECONDS * self.config.tick_rate

		self.sequencer = pianorain.sequencer.Sequencer(
			melody = _as_track(melody),
			accompaniment = _as_track(accompaniment),
			bpm = self.config.bpm,
			tick_rate = self.config.tick_rate,
			keyboard = self.keyboard,
			interactive_role = self.config.track,
			half_speed = self.config.half_speed
		)

		self.dilator = pianorain.time_dilator.TimeDilator(
			speed = self.config.speed,
			stop_position = self.stop_position,
			enabled = self.config.wait_mode
		)

		self.judge = pianorain.hit_judge.HitJudge(line=self.line)

		self.active_notes: typing.List[pianorain.sequencer.ActiveNote] = []
		self.score = ScoreState()

		self.clock: float = 0.0
		self.playing: bool = False
		self.finished: bool = False

		self._grace_remaining: typing.Optional[float] = None
		self._held: typing.Set[int] = set()


	@classmethod
	def from_config (cls, config: pianorain.config.GameConfig, events: typing.Optional[pianorain.event_emitter.EventEmitter] = None) -> "Session":

		"""Build a session for the song named in the configuration."""

		return cls(config.melody, config.accompaniment, config=config, events=events)


	@property
	def speed (self) -> float:

		return self.dilator.speed

	@property
	def wait_mode (self) -> bool:

		return self.dilator.enabled

	@wait_mode.setter
	def wait_mode (self, enabled: bool) -> None:

		self.dilator.enabled = enabled
		logger.info(f"Wait mode {'on' if enabled else 'off'}")

	@property
	def free_play (self) -> bool:

		"""True when no song is loaded; presses still sound but nothing falls."""

		return not self.sequencer.has_notes()


	def load (
		self,
		melody: typing.Union[str, pianorain.notation.Track, None],
		accompaniment: typing.Union[str, pianorain.notation.Track, None] = None
	) -> None:

		"""Replace the song.  Any play-through in progress is abandoned."""

		self.sequencer.load(_as_track(melody), _as_track(accompaniment))
		self.active_notes.clear()
		self.playing = False
		self.finished = False
		self._grace_remaining = None


	def start (self, demo: bool = False) -> None:

		"""
		Begin (or restart) a play-through.

		All state is reset together: both playheads, the in-flight notes, the
		score, the clock and the end-of-song grace timer.  Nothing from a
		previous run leaks into the new one.

		Parameters:
			demo: Let every note of both tracks play itself.
		"""

		self.sequencer.reset()
		self.sequencer.demo = demo
		self.active_notes.clear()
		self.score.reset()
		self._held.clear()
		self._grace_remaining = None

		self.clock = 0.0
		self.finished = False
		self.playing = True

		logger.info(f"Playback started{' (demo)' if demo else ''} at {self.sequencer.bpm:g} BPM, {self.sequencer.interactive_role} interactive")


	def stop (self) -> None:

		"""Abandon the current play-through without emitting ``finished``."""

		if not self.playing:
			return

		self.playing = False
		self.active_notes.clear()
		self._grace_remaining = None

		logger.info("Playback stopped")


	def tick (self, raw_delta: float = 1.0) -> float:

		"""
		Advance the simulation by one frame.

		Parameters:
			raw_delta: Ticks elapsed on the external clock (1.0 at the nominal
				tick rate).

		Returns:
			The effective delta actually applied.  Less than ``raw_delta``
			while wait mode is holding a note at the line.
		"""

		if not self.playing:
			return 0.0

		if raw_delta < 0:
			raise ValueError("raw_delta must not be negative")

		delta = self.dilator.effective_delta(
			raw_delta,
			[note.position for note in self.active_notes if note.is_interactive]
		)

		self.clock += delta

		self._move_notes(delta)
		self._resolve_arrivals()

		for spawn in self.sequencer.advance(delta):

			note = pianorain.sequencer.ActiveNote.from_spawn(spawn, self.clock, self.spawn_position, self.speed)

			# A long frame can place a fresh note beyond the line before the dilator sees it.
			if self.dilator.enabled and note.is_interactive:
				note.position = min(note.position, self.stop_position)

			self.active_notes.append(note)
			self.events.emit("spawn", spawn)

		self._check_finished(raw_delta)

		return delta


	def _move_notes (self, delta: float) -> None:

		step = self.speed * delta

		for note in self.active_notes:

			before = note.position
			note.position += step

			# Floating point must not carry a waiting note past its stop.
			if self.dilator.enabled and note.is_interactive and before <= self.stop_position:
				note.position = min(note.position, self.stop_position)


	def _resolve_arrivals (self) -> None:

		remaining: typing.List[pianorain.sequencer.ActiveNote] = []
		sounded: typing.List[pianorain.sequencer.ActiveNote] = []
		missed: typing.List[pianorain.sequencer.ActiveNote] = []

		for note in self.active_notes:

			if not note.is_interactive and note.position >= self.stop_position:
				sounded.append(note)

			elif note.is_interactive and note.position > self.miss_position:
				missed.append(note)

			else:
				remaining.append(note)

		self.active_notes[:] = remaining

		for note in sounded:
			self.score.autoplayed += 1
			self.events.emit("sound", note.pitch, note.lane, note.duration)

		for note in missed:
			self.score.misses += 1
			logger.debug(f"Missed {note.pitch} on lane {note.lane}")
			self.events.emit("miss", note.lane)


	def _check_finished (self, raw_delta: float) -> None:

		if self.free_play or not self.sequencer.finished or self.active_notes:
			return

		if self._grace_remaining is None:
			self._grace_remaining = self.finish_grace

		else:
			self._grace_remaining -= raw_delta

		if self._grace_remaining <= 0:
			self.playing = False
			self.finished = True
			self._grace_remaining = None

			logger.info(f"Song finished: {self.score.hits} hit, {self.score.misses} missed, {self.score.autoplayed} autoplayed")

			self.events.emit("finished")


	def _check_lane (self, lane: int) -> int:

		if not 0 <= lane < self.keyboard.lane_count:
			raise ValueError(f"Lane {lane} outside keyboard of {self.keyboard.lane_count} lanes")

		return lane


	def press (self, lane: int) -> typing.Optional[pianorain.sequencer.ActiveNote]:

		"""
		Handle a key going down on ``lane``.

		Always emits ``press`` so a synthesizer can sound the key.  While
		playing, the press is judged and a matching note is removed and
		reported with ``hit``.  A press that matches nothing changes nothing.

		Returns:
			The note that was hit, or None.
		"""

		self._check_lane(lane)
		self._held.add(lane)

		self.events.emit("press", lane, self.keyboard.pitch_for_lane(lane))

		if not self.playing:
			return None

		note = self.judge.resolve(lane, self.active_notes)

		if note is None:
			return None

		self.score.hits += 1
		self.events.emit("hit", lane, note.position)

		return note


	def release (self, lane: int) -> None:

		"""Handle a key coming up on ``lane``."""

		self._check_lane(lane)
		self._held.discard(lane)

		self.events.emit("release", lane, self.keyboard.pitch_for_lane(lane))


	def press_pitch (self, pitch: int) -> typing.Optional[pianorain.sequencer.ActiveNote]:

		"""Press whichever lane a MIDI pitch folds onto."""

		return self.press(self.keyboard.lane_for_pitch(pitch))


	def release_pitch (self, pitch: int) -> None:

		self.release(self.keyboard.lane_for_pitch(pitch))


	def is_held (self, lane: int) -> bool:

		return lane in self._held

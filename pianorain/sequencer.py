"""Per-track playheads that turn decoded tracks into timed spawn instructions.

The sequencer knows nothing about wall-clock time.  Each call to
:meth:`Sequencer.advance` moves both playheads forward by a number of ticks
(frames) and returns the notes that became due.  The caller decides how many
ticks pass, which is how wait mode slows or freezes the whole song.
"""

import dataclasses
import logging
import typing

import pianorain.constants
import pianorain.keyboard
import pianorain.notation


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Playhead:

	"""
	Progress through one track.

	``elapsed`` counts ticks since the last consumed event; ``interval`` is
	how many ticks that event lasts, i.e. when the next one is due.
	"""

	index: int = 0
	elapsed: float = 0.0
	interval: float = 0.0

	def reset (self) -> None:

		self.index = 0
		self.elapsed = 0.0
		self.interval = 0.0


@dataclasses.dataclass(frozen=True)
class SpawnInstruction:

	"""
	A note that should appear now.

	``timing_offset`` is how many ticks ago the note was actually due; a
	renderer moves it that much further along so notes that fall due within
	one tick keep their spacing.
	"""

	pitch: int
	lane: int
	duration: float
	timing_offset: float
	is_autoplay: bool
	role: str


@dataclasses.dataclass(eq=False)
class ActiveNote:

	"""
	A spawned note in flight toward the judgment line.

	``position`` grows as the note falls.  Instances compare by identity so
	two notes of the same pitch in one tick stay distinct.
	"""

	pitch: int
	lane: int
	duration: float
	spawn_time: float
	is_interactive: bool
	position: float

	@classmethod
	def from_spawn (cls, spawn: SpawnInstruction, now: float, spawn_position: float, speed: float) -> "ActiveNote":

		"""Create the note for a spawn instruction, already moved by its timing offset."""

		return cls(
			pitch = spawn.pitch,
			lane = spawn.lane,
			duration = spawn.duration,
			spawn_time = now - spawn.timing_offset,
			is_interactive = not spawn.is_autoplay,
			position = spawn_position + spawn.timing_offset * speed
		)


class Sequencer:

	"""
	Two independently timed playheads: melody and accompaniment.

	One of the two tracks is *interactive* (the player must hit its notes);
	the other is *autoplay*.  Which one is a caller choice, set through
	``interactive_role``.
	"""

	def __init__ (
		self,
		melody: typing.Optional[pianorain.notation.Track] = None,
		accompaniment: typing.Optional[pianorain.notation.Track] = None,
		bpm: float = pianorain.constants.DEFAULT_BPM,
		tick_rate: float = pianorain.constants.DEFAULT_TICK_RATE,
		keyboard: typing.Optional[pianorain.keyboard.Keyboard] = None,
		interactive_role: str = pianorain.constants.MELODY,
		half_speed: bool = False
	) -> None:

		"""
		Parameters:
			melody: Decoded melody track.
			accompaniment: Decoded accompaniment track.
			bpm: Tempo in beats per minute (one beat is two duration units).
			tick_rate: Simulation ticks per second.
			keyboard: Lane layout used to place notes; defaults to F3-E5.
			interactive_role: ``"melody"`` or ``"accompaniment"``.
			half_speed: Play at half tempo.
		"""

		if tick_rate <= 0:
			raise ValueError("tick_rate must be positive")

		self.tracks: typing.Dict[str, pianorain.notation.Track] = {
			pianorain.constants.MELODY: list(melody or []),
			pianorain.constants.ACCOMPANIMENT: list(accompaniment or []),
		}
		self.playheads: typing.Dict[str, Playhead] = {role: Playhead() for role in pianorain.constants.TRACK_ROLES}

		self.keyboard = keyboard or pianorain.keyboard.Keyboard()
		self.tick_rate = tick_rate
		self.half_speed = half_speed

		# Demo playback: every note of both tracks plays itself.
		self.demo = False

		self.bpm: float = 0
		self.set_bpm(bpm)

		self._interactive_role = pianorain.constants.MELODY
		self.interactive_role = interactive_role


	@property
	def interactive_role (self) -> str:

		return self._interactive_role

	@interactive_role.setter
	def interactive_role (self, role: str) -> None:

		if role not in pianorain.constants.TRACK_ROLES:
			raise ValueError(f"Unknown track role {role!r}, expected one of {pianorain.constants.TRACK_ROLES}")

		self._interactive_role = role


	def set_bpm (self, bpm: float) -> None:

		"""
		Change the tempo.  Takes effect from the next consumed event.
		"""

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self.bpm = bpm


	@property
	def frames_per_unit (self) -> float:

		"""Ticks per eighth-note unit at the current tempo."""

		frames = (60.0 / self.bpm) * self.tick_rate / pianorain.constants.UNITS_PER_BEAT

		return frames * 2 if self.half_speed else frames


	def load (self, melody: pianorain.notation.Track, accompaniment: typing.Optional[pianorain.notation.Track] = None) -> None:

		"""Replace both tracks and rewind."""

		self.tracks[pianorain.constants.MELODY] = list(melody)
		self.tracks[pianorain.constants.ACCOMPANIMENT] = list(accompaniment or [])
		self.reset()


	def reset (self) -> None:

		"""Rewind both playheads to the start."""

		for playhead in self.playheads.values():
			playhead.reset()


	def has_notes (self) -> bool:

		return any(self.tracks.values())


	def track_finished (self, role: str) -> bool:

		return self.playheads[role].index >= len(self.tracks[role])


	@property
	def finished (self) -> bool:

		"""True once both playheads have consumed every event."""

		return all(self.track_finished(role) for role in pianorain.constants.TRACK_ROLES)


	def advance (self, delta: float) -> typing.List[SpawnInstruction]:

		"""
		Move both playheads forward by ``delta`` ticks.

		Every event whose start falls within the advanced span is consumed.
		The consumed interval is subtracted from the accumulator rather than
		resetting it, so several short events inside one tick keep their
		relative spacing through ``timing_offset``.

		Returns:
			Spawn instructions for the notes that fell due, melody first.
		"""

		spawns: typing.List[SpawnInstruction] = []

		for role in pianorain.constants.TRACK_ROLES:
			spawns.extend(self._advance_track(role, delta))

		return spawns


	def _advance_track (self, role: str, delta: float) -> typing.List[SpawnInstruction]:

		track = self.tracks[role]
		playhead = self.playheads[role]
		spawns: typing.List[SpawnInstruction] = []

		if playhead.index >= len(track):
			return spawns

		playhead.elapsed += delta

		while playhead.index < len(track) and playhead.elapsed >= playhead.interval:

			playhead.elapsed -= playhead.interval
			event = track[playhead.index]
			playhead.index += 1

			if isinstance(event, pianorain.notation.Note):
				spawns.append(SpawnInstruction(
					pitch = event.pitch,
					lane = self.keyboard.lane_for_pitch(event.pitch),
					duration = event.duration,
					timing_offset = playhead.elapsed,
					is_autoplay = self.demo or role != self._interactive_role,
					role = role
				))

				logger.debug(f"Spawn {role} {event.pitch} (offset {playhead.elapsed:.2f})")

			playhead.interval = max(event.duration * self.frames_per_unit, pianorain.constants.MIN_INTERVAL)

		return spawns

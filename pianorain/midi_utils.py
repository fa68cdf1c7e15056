import dataclasses
import logging
import typing

import mido

import pianorain.constants

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class RawNote:

	"""
	A note read from a MIDI track, timed in ticks.
	"""

	tick: int
	duration_ticks: int
	pitch: int
	velocity: int = 100


@dataclasses.dataclass
class RawTrack:

	"""
	The notes of one MIDI track, in onset order.
	"""

	name: str
	notes: typing.List[RawNote]


@dataclasses.dataclass
class Performance:

	"""
	Everything the quantizer needs from a MIDI file.
	"""

	ticks_per_beat: int
	bpm: float
	tracks: typing.List[RawTrack]

	def tracks_with_notes (self) -> typing.List[RawTrack]:

		"""Return the tracks that contain at least one note, in file order."""

		return [track for track in self.tracks if track.notes]


def read_performance (path: str) -> Performance:

	"""
	Read a standard MIDI file into a :class:`Performance`.

	Raises ``OSError`` if the file cannot be read and whatever mido raises for
	a malformed file.
	"""

	midi_file = mido.MidiFile(path)
	performance = performance_from_midi(midi_file)

	logger.info(
		f"Read {path}: {len(performance.tracks)} track(s), "
		f"{performance.ticks_per_beat} ticks per beat, {performance.bpm:.2f} BPM"
	)

	return performance


def performance_from_midi (midi_file: mido.MidiFile) -> Performance:

	"""
	Extract notes and the initial tempo from an open ``mido.MidiFile``.

	The tempo is the earliest ``set_tempo`` in any track, or
	``DEFAULT_SOURCE_BPM`` when there is none.
	"""

	tracks: typing.List[RawTrack] = []
	first_tempo: typing.Optional[typing.Tuple[int, int]] = None

	for index, midi_track in enumerate(midi_file.tracks):

		notes, tempo = _read_track(midi_track)

		if tempo is not None and (first_tempo is None or tempo[0] < first_tempo[0]):
			first_tempo = tempo

		name = midi_track.name or f"Track {index + 1}"
		tracks.append(RawTrack(name=name, notes=notes))

	if first_tempo is None:
		bpm = float(pianorain.constants.DEFAULT_SOURCE_BPM)
	else:
		bpm = mido.tempo2bpm(first_tempo[1])

	return Performance(ticks_per_beat=midi_file.ticks_per_beat, bpm=bpm, tracks=tracks)


def _read_track (midi_track: mido.MidiTrack) -> typing.Tuple[typing.List[RawNote], typing.Optional[typing.Tuple[int, int]]]:

	"""
	Pair note-on and note-off messages into notes.

	Repeated note-ons of the same key on the same channel are closed first in,
	first out.  Notes still sounding at the end of the track end there.

	Returns:
		The notes in onset order and ``(tick, tempo)`` of the first tempo
		change, if any.
	"""

	tick = 0
	tempo: typing.Optional[typing.Tuple[int, int]] = None

	# Each entry is [onset, end, pitch, velocity]; end is filled in on note-off.
	pending: typing.List[typing.List[int]] = []
	sounding: typing.Dict[typing.Tuple[int, int], typing.List[int]] = {}

	for message in midi_track:

		tick += message.time

		if message.type == "set_tempo":
			if tempo is None:
				tempo = (tick, message.tempo)

		elif message.type == "note_on" and message.velocity > 0:
			entry = [tick, -1, message.note, message.velocity]
			pending.append(entry)
			sounding.setdefault((message.channel, message.note), []).append(len(pending) - 1)

		elif message.type == "note_off" or (message.type == "note_on" and message.velocity == 0):
			open_notes = sounding.get((message.channel, message.note))

			if open_notes:
				pending[open_notes.pop(0)][1] = tick

	notes: typing.List[RawNote] = []

	for onset, end, pitch, velocity in pending:

		if end < 0:
			end = tick

		notes.append(RawNote(tick=onset, duration_ticks=end - onset, pitch=pitch, velocity=velocity))

	return notes, tempo


def select_input_device (device_name: typing.Optional[str] = None, callback: typing.Optional[typing.Callable] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Open a MIDI input device, typically a keyboard the player plays along on.

	If `device_name` is None, returns None without prompting (MIDI input is
	optional).  If the name is not found, falls back to the first available
	input and logs a warning.

	Returns:
		A tuple of (device_name, midi_in_object) or (None, None) on failure.
	"""

	if device_name is None:
		return None, None

	try:
		inputs = mido.get_input_names()
		logger.info(f"Available MIDI inputs: {inputs}")

		target = device_name

		if target not in inputs:
			logger.warning(f"MIDI input device '{target}' not found.")
			if inputs:
				target = inputs[0]
				logger.warning(f"Fallback to: {target}")
			else:
				return None, None

		midi_in = mido.open_input(target, callback=callback)
		logger.info(f"Opened MIDI input: {target}")
		return target, midi_in

	except Exception as e:
		logger.error(f"Failed to open MIDI input: {e}")
		return None, None

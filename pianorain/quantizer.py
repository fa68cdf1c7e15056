"""Reduce MIDI performance data to encoded single-voice tracks.

A MIDI track can be polyphonic and its timing is in ticks.  The game needs at
most one note at a time per track, with durations in eighth-note units that
are exact enough to write as integers.  Conversion runs in four steps:

1. **Units.** Ticks become eighth-note units: ``ticks / ticks_per_beat * 2``.
2. **Chord reduction.** Notes sharing an onset tick collapse to one: the
   highest for the melody role, the lowest for the accompaniment role.
   Equal pitches keep the earliest note in file order.
3. **Gaps.** Silence between the end of one kept note and the next onset
   becomes a rest, unless it is shorter than the noise floor (0.05 units).
   A note that overlaps the next onset is cut off there.
4. **Multiplier search.** Find the smallest ``m`` in ``{1, 2, 3, 4}`` that
   makes every ``duration * m`` an integer within 0.05, falling back to 4.
   Durations are scaled by ``m`` and the tempo is multiplied by ``m`` as
   well, so the piece plays at the same wall-clock speed while every encoded
   duration is a whole number.

Example:
	```python
	performance = pianorain.midi_utils.read_performance("song.mid")
	result = PerformanceQuantizer().convert(performance)
	print(result.bpm, result.melody, result.accompaniment)
	```
"""

import dataclasses
import logging
import typing

import pianorain.constants
import pianorain.midi_utils
import pianorain.notation


logger = logging.getLogger(__name__)


MELODY = pianorain.constants.MELODY
ACCOMPANIMENT = pianorain.constants.ACCOMPANIMENT
ROLES = pianorain.constants.TRACK_ROLES


class ConversionError (ValueError):
	pass


@dataclasses.dataclass(frozen=True)
class Conversion:

	"""
	The encoded result of converting a performance.

	``bpm`` is already multiplied by ``multiplier``; ``source_bpm`` is the
	tempo read from the file.  ``accompaniment`` is empty when the file has
	only one track with notes.
	"""

	bpm: int
	melody: str
	accompaniment: str
	multiplier: int
	source_bpm: int


def ticks_to_units (ticks: float, ticks_per_beat: int) -> float:

	"""Convert a tick count to eighth-note units."""

	return ticks / ticks_per_beat * pianorain.constants.UNITS_PER_BEAT


def reduce_chords (notes: typing.Iterable[pianorain.midi_utils.RawNote], role: str = MELODY) -> typing.List[pianorain.midi_utils.RawNote]:

	"""
	Keep one note per onset tick.

	Parameters:
		notes: Raw notes in any order.
		role: ``"melody"`` keeps the highest pitch of each chord,
			``"accompaniment"`` the lowest.

	Returns:
		The kept notes in onset order.
	"""

	if role not in ROLES:
		raise ValueError(f"Unknown track role {role!r}, expected one of {ROLES}")

	keep_highest = role == MELODY
	chosen: typing.Dict[int, pianorain.midi_utils.RawNote] = {}

	for note in sorted(notes, key=lambda n: n.tick):

		current = chosen.get(note.tick)

		if current is None:
			chosen[note.tick] = note

		elif keep_highest and note.pitch > current.pitch:
			chosen[note.tick] = note

		elif not keep_highest and note.pitch < current.pitch:
			chosen[note.tick] = note

	return [chosen[tick] for tick in sorted(chosen)]


def build_events (
	notes: typing.Sequence[pianorain.midi_utils.RawNote],
	ticks_per_beat: int,
	origin_tick: int = 0,
	noise_floor: float = pianorain.constants.GAP_NOISE_FLOOR
) -> pianorain.notation.Track:

	"""
	Turn monophonic notes into notes and rests with unscaled durations.

	Parameters:
		notes: One note per onset, in onset order (see :func:`reduce_chords`).
		ticks_per_beat: MIDI file resolution.
		origin_tick: Tick the track is measured from; silence before the first
			note becomes a leading rest.
		noise_floor: Gaps of this many units or fewer are dropped.
	"""

	events: pianorain.notation.Track = []
	cursor = origin_tick

	for index, note in enumerate(notes):

		gap = ticks_to_units(note.tick - cursor, ticks_per_beat)

		if gap > noise_floor:
			events.append(pianorain.notation.Rest(gap))

		end = note.tick + note.duration_ticks

		if index + 1 < len(notes):
			end = min(end, notes[index + 1].tick)

		duration = ticks_to_units(end - note.tick, ticks_per_beat)

		if duration > 0:
			events.append(pianorain.notation.Note(note.pitch, duration))

		cursor = max(end, note.tick)

	return events


def find_multiplier (
	durations: typing.Iterable[float],
	tolerance: float = pianorain.constants.QUANTIZE_TOLERANCE,
	candidates: typing.Sequence[int] = pianorain.constants.MULTIPLIER_CANDIDATES
) -> int:

	"""
	Return the smallest candidate that scales every duration to an integer.

	A scaled duration counts as an integer when it is within ``tolerance`` of
	one.  When no candidate works the largest is returned.

	Example:
		```python
		find_multiplier([1.5, 0.5])    # 2
		find_multiplier([1.0, 3.0])    # 1
		find_multiplier([0.2])         # 4 (nothing fits)
		```
	"""

	values = list(durations)

	for multiplier in candidates:

		if all(abs(d * multiplier - round(d * multiplier)) < tolerance for d in values):
			return multiplier

	return max(candidates)


def scale_events (events: typing.Iterable[pianorain.notation.NoteEvent], multiplier: int) -> pianorain.notation.Track:

	"""
	Multiply every duration by ``multiplier`` and round it to an integer.

	Events that round to zero are dropped.
	"""

	scaled: pianorain.notation.Track = []

	for event in events:

		duration = float(round(event.duration * multiplier))

		if duration <= 0:
			continue

		scaled.append(dataclasses.replace(event, duration=duration))

	return scaled


class PerformanceQuantizer:

	"""
	Converts MIDI performance data into encoded melody and accompaniment text.
	"""

	def __init__ (
		self,
		pitch_range: typing.Tuple[int, int] = (pianorain.constants.DEFAULT_MIN_PITCH, pianorain.constants.DEFAULT_MAX_PITCH),
		tolerance: float = pianorain.constants.QUANTIZE_TOLERANCE,
		noise_floor: float = pianorain.constants.GAP_NOISE_FLOOR,
		candidates: typing.Sequence[int] = pianorain.constants.MULTIPLIER_CANDIDATES
	) -> None:

		"""
		Parameters:
			pitch_range: Inclusive MIDI range notes are folded into when encoding.
			tolerance: How close ``duration * m`` must be to an integer.
			noise_floor: Shortest gap, in units, that becomes a rest.
			candidates: Multipliers to try, smallest first.
		"""

		low, high = pitch_range

		if high - low < 11:
			raise ValueError(f"Pitch range {low}-{high} is narrower than an octave")

		if not candidates:
			raise ValueError("At least one multiplier candidate is required")

		self.pitch_range = (low, high)
		self.tolerance = tolerance
		self.noise_floor = noise_floor
		self.candidates = tuple(sorted(candidates))


	def events_for_track (
		self,
		track: pianorain.midi_utils.RawTrack,
		ticks_per_beat: int,
		role: str,
		origin_tick: int = 0
	) -> pianorain.notation.Track:

		"""Reduce one raw track to unscaled note and rest events."""

		kept = reduce_chords(track.notes, role)

		return build_events(kept, ticks_per_beat, origin_tick=origin_tick, noise_floor=self.noise_floor)


	def quantize (
		self,
		tracks: typing.Sequence[pianorain.notation.Track],
		bpm: float
	) -> typing.Tuple[typing.List[pianorain.notation.Track], int, int]:

		"""
		Scale several tracks by one shared multiplier.

		Returns:
			``(scaled_tracks, multiplier, output_bpm)`` where ``output_bpm`` is
			the rounded input tempo times the multiplier.
		"""

		durations = [event.duration for track in tracks for event in track]
		multiplier = find_multiplier(durations, self.tolerance, self.candidates)

		scaled = [scale_events(track, multiplier) for track in tracks]

		return scaled, multiplier, int(round(bpm)) * multiplier


	def convert (self, performance: pianorain.midi_utils.Performance) -> Conversion:

		"""
		Convert a performance into encoded melody and accompaniment text.

		The melody is the first track with notes.  The accompaniment is the
		other track with the most notes.  Both are measured from the earliest
		onset of either, so they stay aligned.

		Raises:
			ConversionError: The performance has no track with notes.
		"""

		candidates = performance.tracks_with_notes()

		if not candidates:
			raise ConversionError("No tracks with notes found in MIDI file")

		melody_track = candidates[0]
		others = candidates[1:]
		accompaniment_track = max(others, key=lambda t: len(t.notes)) if others else None

		origin_tick = min(note.tick for note in melody_track.notes)

		if accompaniment_track is not None:
			origin_tick = min(origin_tick, min(note.tick for note in accompaniment_track.notes))

		tracks = [self.events_for_track(melody_track, performance.ticks_per_beat, MELODY, origin_tick)]

		if accompaniment_track is not None:
			tracks.append(self.events_for_track(accompaniment_track, performance.ticks_per_beat, ACCOMPANIMENT, origin_tick))

		scaled, multiplier, bpm = self.quantize(tracks, performance.bpm)

		melody = pianorain.notation.encode(scaled[0], self.pitch_range)
		accompaniment = pianorain.notation.encode(scaled[1], self.pitch_range) if len(scaled) > 1 else ""

		logger.info(
			f"Converted '{melody_track.name}'"
			+ (f" + '{accompaniment_track.name}'" if accompaniment_track is not None else "")
			+ f": x{multiplier} multiplier, {bpm} BPM"
		)

		return Conversion(
			bpm = bpm,
			melody = melody,
			accompaniment = accompaniment,
			multiplier = multiplier,
			source_bpm = int(round(performance.bpm))
		)


def convert_file (
	path: str,
	pitch_range: typing.Tuple[int, int] = (pianorain.constants.DEFAULT_MIN_PITCH, pianorain.constants.DEFAULT_MAX_PITCH)
) -> Conversion:

	"""Read a MIDI file and convert it with default quantizer settings."""

	performance = pianorain.midi_utils.read_performance(path)

	return PerformanceQuantizer(pitch_range=pitch_range).convert(performance)

import pytest

import pianorain.midi_utils
import pianorain.notation
import pianorain.quantizer

import conftest

Note = pianorain.notation.Note
Rest = pianorain.notation.Rest
RawNote = pianorain.midi_utils.RawNote


def test_ticks_to_units () -> None:

	"""One beat is two units."""

	assert pianorain.quantizer.ticks_to_units(480, 480) == 2.0
	assert pianorain.quantizer.ticks_to_units(240, 480) == 1.0


def test_reduce_chords_melody_keeps_highest () -> None:

	"""The melody role keeps the top note of a chord."""

	notes = [RawNote(0, 480, 60), RawNote(0, 480, 64)]

	kept = pianorain.quantizer.reduce_chords(notes, "melody")

	assert [n.pitch for n in kept] == [64]


def test_reduce_chords_accompaniment_keeps_lowest () -> None:

	"""The accompaniment role keeps the bottom note of a chord."""

	notes = [RawNote(0, 480, 60), RawNote(0, 480, 64)]

	kept = pianorain.quantizer.reduce_chords(notes, "accompaniment")

	assert [n.pitch for n in kept] == [60]


def test_reduce_chords_tie_keeps_first () -> None:

	"""Equal pitches at one onset keep the first note in file order."""

	first = RawNote(0, 480, 60, velocity=90)
	second = RawNote(0, 240, 60, velocity=30)

	assert pianorain.quantizer.reduce_chords([first, second], "melody") == [first]


def test_reduce_chords_rejects_unknown_role () -> None:

	"""Only melody and accompaniment are valid roles."""

	with pytest.raises(ValueError):
		pianorain.quantizer.reduce_chords([], "bass")


def test_build_events_inserts_rests () -> None:

	"""A gap longer than the noise floor becomes a rest."""

	notes = [RawNote(0, 240, 60), RawNote(480, 240, 62)]

	assert pianorain.quantizer.build_events(notes, 480) == [Note(60, 1.0), Rest(1.0), Note(62, 1.0)]


def test_build_events_drops_tiny_gaps () -> None:

	"""Gaps at or below the noise floor are ignored."""

	notes = [RawNote(0, 236, 60), RawNote(240, 240, 62)]
	events = pianorain.quantizer.build_events(notes, 480)

	assert [type(e) for e in events] == [Note, Note]


def test_build_events_truncates_overlap () -> None:

	"""A note sounding past the next onset is cut at that onset."""

	notes = [RawNote(0, 960, 60), RawNote(480, 480, 62)]

	assert pianorain.quantizer.build_events(notes, 480) == [Note(60, 2.0), Note(62, 2.0)]


def test_build_events_leading_rest_from_origin () -> None:

	"""Silence before the first note is kept relative to the origin."""

	notes = [RawNote(480, 240, 60)]

	assert pianorain.quantizer.build_events(notes, 480, origin_tick=0) == [Rest(2.0), Note(60, 1.0)]
	assert pianorain.quantizer.build_events(notes, 480, origin_tick=480) == [Note(60, 1.0)]


def test_find_multiplier () -> None:

	"""The smallest multiplier that makes every duration whole wins."""

	assert pianorain.quantizer.find_multiplier([1.5, 0.5]) == 2
	assert pianorain.quantizer.find_multiplier([1.0, 3.0]) == 1
	assert pianorain.quantizer.find_multiplier([1 / 3, 2 / 3]) == 3
	assert pianorain.quantizer.find_multiplier([0.25, 1.0]) == 4


def test_find_multiplier_falls_back_to_largest () -> None:

	"""When nothing fits, the largest candidate is used."""

	assert pianorain.quantizer.find_multiplier([0.2]) == 4


def test_scale_events_rounds_and_drops_zeros () -> None:

	"""Scaled durations are whole numbers; zero-length events vanish."""

	events = [Note(60, 1.5), Rest(0.1), Note(62, 0.5)]

	assert pianorain.quantizer.scale_events(events, 2) == [Note(60, 3.0), Note(62, 1.0)]


def test_quantize_multiplies_tempo () -> None:

	"""The tempo is multiplied along with the durations."""

	quantizer = pianorain.quantizer.PerformanceQuantizer()
	scaled, multiplier, bpm = quantizer.quantize([[Note(60, 1.5), Note(62, 0.5)]], 90)

	assert multiplier == 2
	assert bpm == 180
	assert scaled == [[Note(60, 3.0), Note(62, 1.0)]]


def test_quantizer_rejects_narrow_range () -> None:

	"""The encoding range must cover an octave."""

	with pytest.raises(ValueError):
		pianorain.quantizer.PerformanceQuantizer(pitch_range=(60, 65))


def test_convert_melody_and_accompaniment () -> None:

	"""A two-track file becomes a melody and an accompaniment string."""

	midi_file = conftest.build_midi_file([
		[(0, 480, 60), (0, 480, 64), (480, 480, 67)],
		[(0, 960, 48), (0, 960, 55)],
	], bpm=100)

	performance = pianorain.midi_utils.performance_from_midi(midi_file)
	result = pianorain.quantizer.PerformanceQuantizer().convert(performance)

	assert result.multiplier == 1
	assert result.bpm == 100
	assert result.source_bpm == 100
	assert result.melody == "E2G2"
	# C3 folds up to C4 in the default range.
	assert result.accompaniment == "C4"


def test_convert_dotted_rhythm_doubles_tempo () -> None:

	"""Dotted eighths and sixteenths force a multiplier of two."""

	midi_file = conftest.build_midi_file([
		[(0, 360, 60), (360, 120, 62)],
	], bpm=80)

	result = pianorain.quantizer.PerformanceQuantizer().convert(pianorain.midi_utils.performance_from_midi(midi_file))

	assert result.multiplier == 2
	assert result.bpm == 160
	assert result.melody == "C3D"
	assert result.accompaniment == ""


def test_convert_keeps_tracks_aligned () -> None:

	"""A late-entering accompaniment keeps its leading rest."""

	midi_file = conftest.build_midi_file([
		[(0, 480, 60), (480, 480, 62)],
		[(480, 480, 55)],
	])

	result = pianorain.quantizer.PerformanceQuantizer().convert(pianorain.midi_utils.performance_from_midi(midi_file))

	assert result.melody == "C2D2"
	assert result.accompaniment == "z2G.2"


def test_convert_without_notes_raises () -> None:

	"""A file with no notes cannot be converted."""

	midi_file = conftest.build_midi_file([[]])

	with pytest.raises(pianorain.quantizer.ConversionError):
		pianorain.quantizer.PerformanceQuantizer().convert(pianorain.midi_utils.performance_from_midi(midi_file))


def test_convert_file (tmp_path) -> None:

	"""Conversion reads straight from a file on disk."""

	path = tmp_path / "song.mid"
	conftest.build_midi_file([[(0, 480, 60), (480, 960, 64)]], bpm=120).save(str(path))

	result = pianorain.quantizer.convert_file(str(path))

	assert result.melody == "C2E4"
	assert result.bpm == 120

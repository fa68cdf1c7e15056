import typing

import mido
import pytest


class FakeMidiIn:

	"""Minimal MIDI input stub for tests."""

	def __init__ (self, callback: typing.Optional[typing.Callable] = None) -> None:

		self.callback = callback
		self.closed = False

	def close (self) -> None:

		self.closed = True

	def inject (self, message: mido.Message) -> None:

		"""Simulate receiving a MIDI message by calling the stored callback."""

		if self.callback is not None:
			self.callback(message)


# Module-level reference so tests can reach the most recently opened FakeMidiIn.
_current_fake_input: typing.Optional[FakeMidiIn] = None


def _fake_get_input_names () -> typing.List[str]:

	return ["Dummy MIDI"]


def _fake_open_input (name: str, callback: typing.Optional[typing.Callable] = None) -> FakeMidiIn:

	global _current_fake_input
	fake = FakeMidiIn(callback=callback)
	_current_fake_input = fake
	return fake


def current_fake_input () -> typing.Optional[FakeMidiIn]:

	return _current_fake_input


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido so MIDI input opens a fake device."""

	monkeypatch.setattr(mido, "get_input_names", _fake_get_input_names)
	monkeypatch.setattr(mido, "open_input", _fake_open_input)


NoteSpec = typing.Tuple[int, int, int]


def build_midi_file (
	tracks: typing.Sequence[typing.Sequence[NoteSpec]],
	ticks_per_beat: int = 480,
	bpm: typing.Optional[float] = 120,
	names: typing.Optional[typing.Sequence[str]] = None
) -> mido.MidiFile:

	"""
	Build a MIDI file from ``(tick, duration_ticks, pitch)`` triples per track.

	The tempo, when given, goes in a leading conductor track with no notes.
	"""

	midi_file = mido.MidiFile(ticks_per_beat=ticks_per_beat)

	if bpm is not None:
		conductor = mido.MidiTrack()
		conductor.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm), time=0))
		midi_file.tracks.append(conductor)

	for index, notes in enumerate(tracks):

		track = mido.MidiTrack()

		if names is not None:
			track.append(mido.MetaMessage("track_name", name=names[index], time=0))

		timeline: typing.List[typing.Tuple[int, int, mido.Message]] = []

		for tick, duration, pitch in notes:
			# note_off sorts before note_on at the same tick
			timeline.append((tick, 1, mido.Message("note_on", note=pitch, velocity=100)))
			timeline.append((tick + duration, 0, mido.Message("note_off", note=pitch, velocity=0)))

		timeline.sort(key=lambda item: (item[0], item[1]))

		last = 0

		for tick, _, message in timeline:
			track.append(message.copy(time=tick - last))
			last = tick

		midi_file.tracks.append(track)

	return midi_file


@pytest.fixture
def midi_builder () -> typing.Callable[..., mido.MidiFile]:

	"""Return the MIDI file builder."""

	return build_midi_file

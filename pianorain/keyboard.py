"""Lane layout of the playable keyboard and the computer-key map.

Each pitch in the playable range is one *lane*, numbered from 0 at the lowest
pitch.  The default range is F3 to E5 (24 lanes).
"""

import typing

import pianorain.constants
import pianorain.pitch_spelling


# Computer key -> note ID.  F3 to G3 have no key.
DEFAULT_KEYMAP: typing.Dict[str, str] = {
	"q": "G#3",
	"a": "A3",
	"w": "A#3",
	"s": "B3",
	"d": "C4",
	"r": "C#4",
	"f": "D4",
	"t": "D#4",
	"g": "E4",
	"h": "F4",
	"u": "F#4",
	"j": "G4",
	"i": "G#4",
	"k": "A4",
	"o": "A#4",
	"l": "B4",
	";": "C5",
	"[": "C#5",
	"'": "D5",
	"]": "D#5",
	"\\": "E5",
}


class Keyboard:

	"""
	A contiguous range of pitches, one lane per pitch.
	"""

	def __init__ (
		self,
		low: int = pianorain.constants.DEFAULT_MIN_PITCH,
		high: int = pianorain.constants.DEFAULT_MAX_PITCH
	) -> None:

		if high - low < 11:
			raise ValueError(f"Keyboard range {low}-{high} is narrower than an octave")

		self.low = low
		self.high = high


	@classmethod
	def from_note_ids (cls, low_id: str, high_id: str) -> "Keyboard":

		"""Build a keyboard from note IDs, e.g. ``Keyboard.from_note_ids("F3", "E5")``."""

		return cls(pianorain.pitch_spelling.parse_note_id(low_id), pianorain.pitch_spelling.parse_note_id(high_id))


	@property
	def pitch_range (self) -> typing.Tuple[int, int]:

		return self.low, self.high


	@property
	def lane_count (self) -> int:

		return self.high - self.low + 1


	def lane_for_pitch (self, pitch: int) -> int:

		"""Return the lane of a pitch, folding it into range by octaves first."""

		return pianorain.pitch_spelling.fold_into_range(pitch, self.low, self.high) - self.low


	def pitch_for_lane (self, lane: int) -> int:

		if not 0 <= lane < self.lane_count:
			raise ValueError(f"Lane {lane} out of range 0-{self.lane_count - 1}")

		return self.low + lane


	def note_ids (self) -> typing.List[str]:

		return [pianorain.pitch_spelling.note_id(pitch) for pitch in range(self.low, self.high + 1)]


	def is_black (self, lane: int) -> bool:

		return pianorain.pitch_spelling.spell(self.pitch_for_lane(lane)).sharp


	def key_lanes (self, keymap: typing.Optional[typing.Dict[str, str]] = None) -> typing.Dict[str, int]:

		"""
		Resolve a key -> note ID map to key -> lane, ignoring notes off the keyboard.
		"""

		if keymap is None:
			keymap = DEFAULT_KEYMAP

		lanes: typing.Dict[str, int] = {}

		for key, note in keymap.items():

			pitch = pianorain.pitch_spelling.parse_note_id(note)

			if self.low <= pitch <= self.high:
				lanes[key.lower()] = pitch - self.low

		return lanes

"""Pitch spelling tables.

Maps absolute MIDI note numbers to a letter, an accidental and an octave, and
back again.  The convention is **C4 = 60** (Middle C).

Internally every pitch has one canonical spelling: a natural or a sharp
(``C#4``, never ``Db4``).  The text encoder prefers flats instead, because the
flat marker ``_`` survives in a URL untouched, so a second flat-preferring table
is provided for it.

Module-level constants:
- `LETTER_TO_PC`: Maps the seven natural letters to pitch classes (0-11)
- `SHARP_SPELLINGS`: Canonical spelling of each pitch class as ``(letter, sharp)``
- `FLAT_SPELLINGS`: Flat-preferring spelling of each pitch class as ``(letter, flat)``
- `FLAT_TO_SHARP`: How a flatted letter is respelled canonically
"""

import dataclasses
import re
import typing


LETTERS = "CDEFGAB"

LETTER_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"D": 2,
	"E": 4,
	"F": 5,
	"G": 7,
	"A": 9,
	"B": 11,
}

SHARP_SPELLINGS: typing.List[typing.Tuple[str, bool]] = [
	("C", False),
	("C", True),
	("D", False),
	("D", True),
	("E", False),
	("F", False),
	("F", True),
	("G", False),
	("G", True),
	("A", False),
	("A", True),
	("B", False),
]

FLAT_SPELLINGS: typing.List[typing.Tuple[str, bool]] = [
	("C", False),
	("D", True),
	("D", False),
	("E", True),
	("E", False),
	("F", False),
	("G", True),
	("G", False),
	("A", True),
	("A", False),
	("B", True),
	("B", False),
]

# letter -> (letter, sharp, octave shift)
# C and F have no black key below them, so their flats land on a natural.
FLAT_TO_SHARP: typing.Dict[str, typing.Tuple[str, bool, int]] = {
	"C": ("B", False, -1),
	"D": ("C", True, 0),
	"E": ("D", True, 0),
	"F": ("E", False, 0),
	"G": ("F", True, 0),
	"A": ("G", True, 0),
	"B": ("A", True, 0),
}

FLAT = "flat"
SHARP = "sharp"
NATURAL = "natural"

_NOTE_ID_RE = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")


@dataclasses.dataclass(frozen=True)
class Spelling:

	"""
	A pitch written as a letter, an optional sharp and an octave number.
	"""

	letter: str
	sharp: bool
	octave: int

	@property
	def pitch (self) -> int:

		"""The MIDI note number this spelling denotes."""

		return pitch_of(self.letter, self.octave, SHARP if self.sharp else NATURAL)

	def __str__ (self) -> str:

		return f"{self.letter}{'#' if self.sharp else ''}{self.octave}"


def octave_of (pitch: int) -> int:

	"""Return the octave number of a MIDI pitch (C4 = 60 is octave 4)."""

	return pitch // 12 - 1


def spell (pitch: int) -> Spelling:

	"""
	Return the canonical (natural or sharp) spelling of a pitch.

	Example:
		```python
		spell(61)    # Spelling(letter="C", sharp=True, octave=4)
		```
	"""

	letter, sharp = SHARP_SPELLINGS[pitch % 12]

	return Spelling(letter, sharp, octave_of(pitch))


def spell_flat (pitch: int) -> typing.Tuple[str, bool, int]:

	"""
	Return ``(letter, flat, octave)`` for a pitch, preferring flats on black keys.

	Used by the text encoder.  Flats never cross an octave boundary here, since
	only ``B`` and ``E`` would need to (as ``Cb``/``Fb``) and both are naturals.
	"""

	letter, flat = FLAT_SPELLINGS[pitch % 12]

	return letter, flat, octave_of(pitch)


def canonicalize_flat (letter: str, octave: int) -> Spelling:

	"""
	Respell a flatted letter as its canonical sharp-or-natural equivalent.

	``Db4`` becomes ``C#4``; ``Cb4`` becomes ``B3``; ``Fb4`` becomes ``E4``.
	"""

	letter = letter.upper()

	if letter not in FLAT_TO_SHARP:
		raise ValueError(f"Unknown note letter: {letter!r}")

	new_letter, sharp, shift = FLAT_TO_SHARP[letter]

	return Spelling(new_letter, sharp, octave + shift)


def pitch_of (letter: str, octave: int, accidental: str = NATURAL) -> int:

	"""
	Return the MIDI pitch of a letter, octave and accidental.

	Parameters:
		letter: One of ``A``-``G`` (case-insensitive).
		octave: Octave number, C4 = 60.
		accidental: ``"natural"``, ``"sharp"`` or ``"flat"``.
	"""

	letter = letter.upper()

	if letter not in LETTER_TO_PC:
		raise ValueError(f"Unknown note letter: {letter!r}")

	if accidental == FLAT:
		return canonicalize_flat(letter, octave).pitch

	offset = 1 if accidental == SHARP else 0

	return (octave + 1) * 12 + LETTER_TO_PC[letter] + offset


def note_id (pitch: int) -> str:

	"""Return the game note ID of a pitch, e.g. ``"F#3"``."""

	return str(spell(pitch))


def parse_note_id (text: str) -> int:

	"""
	Parse a note ID such as ``"C4"``, ``"C#4"`` or ``"Db4"`` into a MIDI pitch.
	"""

	match = _NOTE_ID_RE.match(text.strip())

	if match is None:
		raise ValueError(f"Invalid note ID: {text!r}")

	letter, accidental_mark, octave = match.groups()
	accidental = {"#": SHARP, "b": FLAT}.get(accidental_mark, NATURAL)

	return pitch_of(letter, int(octave), accidental)


def note_range (low_id: str, high_id: str) -> typing.List[str]:

	"""
	Return the note IDs of every pitch from ``low_id`` to ``high_id`` inclusive.

	Example:
		```python
		note_range("F3", "A3")    # ["F3", "F#3", "G3", "G#3", "A3"]
		```
	"""

	low = parse_note_id(low_id)
	high = parse_note_id(high_id)

	if high < low:
		raise ValueError(f"Empty note range: {low_id} to {high_id}")

	return [note_id(pitch) for pitch in range(low, high + 1)]


def fold_into_range (pitch: int, low: int, high: int) -> int:

	"""
	Shift a pitch by whole octaves until it lies within ``[low, high]``.

	The range must cover all twelve pitch classes (``high - low >= 11``), which
	guarantees the loop converges.  Pitches outside the range are never
	rejected, only transposed.
	"""

	if high - low < 11:
		raise ValueError(f"Pitch range {low}-{high} is narrower than an octave")

	while pitch < low:
		pitch += 12

	while pitch > high:
		pitch -= 12

	return pitch

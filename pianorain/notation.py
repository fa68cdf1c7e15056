"""Compact text encoding of a single-voice note track.

The format is a small, URL-friendly subset of ABC notation.  A track is a run
of tokens with no separators::

	token := accidental? (letter | "z") octave-mark* duration?

- **accidental**: ``_`` flat.  ``^`` (sharp) and ``=`` (natural) are accepted
  on input too.  Flats are respelled as sharps straight away, so decoded
  tracks only ever contain sharp-or-natural pitches.
- **letter**: ``C D E F G A B`` start in octave 4; ``c d e f g a b`` start in
  octave 5.  ``z`` is a rest.
- **octave-mark**: ``'`` raises one octave; ``,`` or ``.`` lowers one.
- **duration**, in eighth-note units: absent means 1; ``3`` means 3; a
  fraction ``3~2`` (or ``3/2``) means 1.5.  A missing numerator is 1 and a
  missing denominator is 2, so ``~`` alone means 0.5.

The encoder never writes a duration of 1, and always writes flats with ``_``
and lowered octaves with ``.`` so the text can travel in a query string.

Characters that do not start a token (bar lines, spaces, stray punctuation)
are skipped.  :func:`parse` reports every skipped span so that leniency can be
checked; :func:`decode` with ``strict=True`` turns it into an error.

Example:
	```python
	decode("C2E2G2c4")
	# [Note(60, 2.0), Note(64, 2.0), Note(67, 2.0), Note(72, 4.0)]

	encode(decode("C2E2G2c4"))    # "C2E2G2c4"
	```
"""

import dataclasses
import fractions
import logging
import re
import typing

import pianorain.constants
import pianorain.pitch_spelling


logger = logging.getLogger(__name__)


REST_MARKER = "z"
FLAT_MARKER = "_"
SHARP_MARKER = "^"
NATURAL_MARKER = "="
RAISE_MARK = "'"
LOWER_MARKS = ",."
FRACTION_SEPARATORS = "/~"
ENCODED_LOWER_MARK = "."
ENCODED_FRACTION_SEPARATOR = "~"

_TOKEN_RE = re.compile(r"([\^_=]?)([A-Ga-gz])([,.']*)(\d*(?:[/~]\d*)?)")

_ACCIDENTALS: typing.Dict[str, str] = {
	FLAT_MARKER: pianorain.pitch_spelling.FLAT,
	SHARP_MARKER: pianorain.pitch_spelling.SHARP,
	NATURAL_MARKER: pianorain.pitch_spelling.NATURAL,
	"": pianorain.pitch_spelling.NATURAL,
}


class NotationError (ValueError):
	pass


@dataclasses.dataclass(frozen=True)
class Rest:

	"""
	A silence lasting ``duration`` eighth-note units.
	"""

	duration: float


@dataclasses.dataclass(frozen=True)
class Note:

	"""
	A pitched note lasting ``duration`` eighth-note units.
	"""

	pitch: int
	duration: float


NoteEvent = typing.Union[Note, Rest]
Track = typing.List[NoteEvent]


@dataclasses.dataclass(frozen=True)
class Token:

	"""One consumed token: where it started, its source text and its event."""

	position: int
	text: str
	event: NoteEvent


@dataclasses.dataclass(frozen=True)
class SkippedSpan:

	"""A run of characters that produced no event."""

	position: int
	text: str


@dataclasses.dataclass
class DecodeResult:

	"""
	The outcome of parsing encoded text.

	``events`` is what :func:`decode` returns; ``tokens`` ties each event back
	to its source text; ``skipped`` lists every run of characters that did not
	form a token, in order.
	"""

	events: Track
	tokens: typing.List[Token]
	skipped: typing.List[SkippedSpan]

	@property
	def clean (self) -> bool:

		"""True when every character of the input was consumed."""

		return not self.skipped


def parse (text: str) -> DecodeResult:

	"""
	Parse encoded text into events, recording every unconsumed span.

	Parameters:
		text: Encoded track text.

	Returns:
		A :class:`DecodeResult`.  A token whose fraction has a zero denominator
		is reported as skipped rather than raising.
	"""

	events: Track = []
	tokens: typing.List[Token] = []
	skipped: typing.List[SkippedSpan] = []

	skip_start: typing.Optional[int] = None
	position = 0

	while position < len(text):

		match = _TOKEN_RE.match(text, position)
		event = _token_event(match) if match else None

		if match is None or event is None:
			if skip_start is None:
				skip_start = position
			position = match.end() if match else position + 1
			continue

		if skip_start is not None:
			skipped.append(SkippedSpan(skip_start, text[skip_start:position]))
			skip_start = None

		events.append(event)
		tokens.append(Token(position, match.group(0), event))
		position = match.end()

	if skip_start is not None:
		skipped.append(SkippedSpan(skip_start, text[skip_start:]))

	return DecodeResult(events=events, tokens=tokens, skipped=skipped)


def decode (text: str, strict: bool = False) -> Track:

	"""
	Decode encoded text into a track of :class:`Note` and :class:`Rest` events.

	Unrecognised characters are skipped.  With ``strict=True`` a
	:class:`NotationError` naming the first skipped span is raised instead.
	"""

	result = parse(text)

	if result.skipped:

		if strict:
			first = result.skipped[0]
			raise NotationError(f"Unrecognised notation {first.text!r} at position {first.position}")

		logger.debug(f"Skipped {len(result.skipped)} unrecognised span(s): {[s.text for s in result.skipped]}")

	return result.events


def _token_event (match: typing.Match[str]) -> typing.Optional[NoteEvent]:

	"""Build the event for a matched token, or None if its duration is invalid."""

	accidental, letter, marks, duration_text = match.groups()

	duration = _parse_duration(duration_text)

	if duration is None:
		return None

	if letter == REST_MARKER:
		return Rest(duration)

	octave = 4 if letter.isupper() else 5
	octave += marks.count(RAISE_MARK)
	octave -= sum(marks.count(mark) for mark in LOWER_MARKS)

	pitch = pianorain.pitch_spelling.pitch_of(letter, octave, _ACCIDENTALS[accidental])

	return Note(pitch, duration)


def _parse_duration (text: str) -> typing.Optional[float]:

	"""
	Parse the duration suffix of a token.
	"""

	if not text:
		return 1.0

	for separator in FRACTION_SEPARATORS:

		if separator in text:
			numerator_text, denominator_text = text.split(separator, 1)
			numerator = int(numerator_text) if numerator_text else 1
			denominator = int(denominator_text) if denominator_text else 2

			if denominator == 0:
				return None

			return numerator / denominator

	return float(int(text))


def format_duration (duration: float) -> str:

	"""
	Format a duration as the shortest token suffix.

	Integers are written plainly, except 1 which is omitted.  Anything else is
	written as a reduced fraction ``n~d`` with ``d`` no larger than
	``MAX_FRACTION_DENOMINATOR``.

	Example:
		```python
		format_duration(1.0)    # ""
		format_duration(4.0)    # "4"
		format_duration(1.5)    # "3~2"
		```
	"""

	if duration <= 0:
		raise ValueError(f"Duration must be positive, got {duration}")

	value = fractions.Fraction(duration).limit_denominator(pianorain.constants.MAX_FRACTION_DENOMINATOR)

	if value <= 0:
		value = fractions.Fraction(1, pianorain.constants.MAX_FRACTION_DENOMINATOR)

	if value.denominator == 1:
		return "" if value.numerator == 1 else str(value.numerator)

	return f"{value.numerator}{ENCODED_FRACTION_SEPARATOR}{value.denominator}"


def format_pitch (pitch: int) -> str:

	"""
	Write a pitch as accidental, letter and octave marks.

	Example:
		```python
		format_pitch(61)    # "_D"
		format_pitch(55)    # "G."
		format_pitch(86)    # "d'"
		```
	"""

	letter, flat, octave = pianorain.pitch_spelling.spell_flat(pitch)

	text = FLAT_MARKER if flat else ""
	text += letter if octave <= 4 else letter.lower()

	if octave < 4:
		text += ENCODED_LOWER_MARK * (4 - octave)

	elif octave > 5:
		text += RAISE_MARK * (octave - 5)

	return text


def encode (
	track: typing.Iterable[NoteEvent],
	pitch_range: typing.Tuple[int, int] = (pianorain.constants.DEFAULT_MIN_PITCH, pianorain.constants.DEFAULT_MAX_PITCH)
) -> str:

	"""
	Encode a track as text.

	Every pitch is first folded into ``pitch_range`` by whole octaves, so
	encoding never fails on range.

	Parameters:
		track: Note and rest events in playing order.
		pitch_range: Inclusive ``(low, high)`` MIDI pitch range; must span at
			least an octave.
	"""

	low, high = pitch_range
	parts: typing.List[str] = []

	for event in track:

		if isinstance(event, Rest):
			parts.append(REST_MARKER + format_duration(event.duration))

		else:
			pitch = pianorain.pitch_spelling.fold_into_range(event.pitch, low, high)
			parts.append(format_pitch(pitch) + format_duration(event.duration))

	return "".join(parts)


def total_duration (track: typing.Iterable[NoteEvent]) -> float:

	"""Return the summed duration of a track in eighth-note units."""

	return sum(event.duration for event in track)

import logging
import typing

import pianorain.constants
import pianorain.sequencer


logger = logging.getLogger(__name__)


class HitJudge:

	"""
	Matches a lane press against the in-flight interactive notes.

	Matching is two-staged.  First the *wavefront* is found: the distance of
	the nearest interactive note on any lane.  If even that note is outside
	the judgment window, nothing can be hit.  Otherwise only notes in the
	pressed lane that are within the window **and** within
	``chord_tolerance`` of the wavefront qualify, and the nearest of those is
	hit.

	This lets every note of a chord be hit by its own key, while a press on a
	lane whose next note belongs to a later beat does nothing even though that
	note might be inside the window.

	A press that matches nothing is a no-op; it does not cost the player
	anything.
	"""

	def __init__ (
		self,
		line: float = pianorain.constants.JUDGMENT_LINE,
		window: float = pianorain.constants.JUDGMENT_WINDOW,
		chord_tolerance: float = pianorain.constants.CHORD_TOLERANCE
	) -> None:

		"""
		Parameters:
			line: Position of the judgment line.
			window: Largest distance from the line at which a note is hittable.
			chord_tolerance: How far behind the wavefront a note may be and
				still count as part of the same chord.
		"""

		if window <= 0:
			raise ValueError("window must be positive")

		if chord_tolerance < 0:
			raise ValueError("chord_tolerance must not be negative")

		self.line = line
		self.window = window
		self.chord_tolerance = chord_tolerance


	def distance (self, note: pianorain.sequencer.ActiveNote) -> float:

		return abs(note.position - self.line)


	def wavefront (self, notes: typing.Iterable[pianorain.sequencer.ActiveNote]) -> typing.Optional[float]:

		"""Distance of the nearest interactive note on any lane, or None."""

		return min((self.distance(n) for n in notes if n.is_interactive), default=None)


	def select (self, lane: int, notes: typing.Iterable[pianorain.sequencer.ActiveNote]) -> typing.Optional[pianorain.sequencer.ActiveNote]:

		"""
		Return the note a press on ``lane`` would hit, without removing it.
		"""

		candidates = [n for n in notes if n.is_interactive]
		front = self.wavefront(candidates)

		if front is None or front > self.window:
			return None

		best: typing.Optional[pianorain.sequencer.ActiveNote] = None
		best_distance = float("inf")

		for note in candidates:

			if note.lane != lane:
				continue

			distance = self.distance(note)

			if distance < self.window and distance <= front + self.chord_tolerance and distance < best_distance:
				best = note
				best_distance = distance

		return best


	def resolve (self, lane: int, notes: typing.List[pianorain.sequencer.ActiveNote]) -> typing.Optional[pianorain.sequencer.ActiveNote]:

		"""
		Judge a press on ``lane``; remove and return the hit note, if any.

		Parameters:
			lane: The pressed lane.
			notes: The in-flight notes.  The hit note is removed in place.
		"""

		note = self.select(lane, notes)

		if note is None:
			logger.debug(f"Press on lane {lane} matched nothing")
			return None

		notes.remove(note)

		return note

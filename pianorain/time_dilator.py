"""Wait mode: slow the simulation so no interactive note passes the line unresolved.

Each tick, the largest safe advance is the time the nearest interactive note
needs to reach its stopping point: ``distance / speed``.  Applying that one
scalar to the sequencer and to every note's motion freezes the whole song at
the exact moment a note arrives, with no separate pause state.  A hit removes
the note, the limit lifts, and play resumes on the next tick.
"""

import typing

import pianorain.constants


def max_advance (raw_delta: float, distances: typing.Iterable[float], speed: float) -> float:

	"""
	Return the largest time advance that keeps every note at or before its stop.

	Parameters:
		raw_delta: Ticks elapsed on the external clock.
		distances: Remaining distance of each interactive note to its stopping
			point.  Negative values (already past) count as zero.
		speed: Position units per tick.

	Example:
		```python
		max_advance(1.0, [10.0, 2.0], speed=4.0)    # 0.5
		max_advance(1.0, [], speed=4.0)             # 1.0
		```
	"""

	if speed <= 0:
		raise ValueError("speed must be positive")

	nearest = min((max(0.0, d) for d in distances), default=None)

	if nearest is None:
		return raw_delta

	return min(raw_delta, nearest / speed)


class TimeDilator:

	"""
	Computes the effective tick delta for wait mode.
	"""

	def __init__ (
		self,
		speed: float = pianorain.constants.DEFAULT_SPEED,
		stop_position: float = pianorain.constants.JUDGMENT_LINE - pianorain.constants.NOTE_LENGTH,
		enabled: bool = True
	) -> None:

		"""
		Parameters:
			speed: Fall speed in position units per tick.
			stop_position: Position a waiting note halts at (its leading edge on
				the judgment line).
			enabled: When False, the raw delta always passes through.
		"""

		if speed <= 0:
			raise ValueError("speed must be positive")

		self.speed = speed
		self.stop_position = stop_position
		self.enabled = enabled


	def distance (self, position: float) -> float:

		"""Remaining distance from a note position to the stop, never negative."""

		return max(0.0, self.stop_position - position)


	def effective_delta (self, raw_delta: float, positions: typing.Iterable[float]) -> float:

		"""
		Return the tick delta to apply this tick.

		Parameters:
			raw_delta: Ticks elapsed on the external clock.
			positions: Current positions of the in-flight *interactive* notes.
		"""

		if not self.enabled:
			return raw_delta

		return max_advance(raw_delta, (self.distance(p) for p in positions), self.speed)

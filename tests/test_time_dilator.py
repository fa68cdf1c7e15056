import pytest

import pianorain.time_dilator


def test_max_advance_without_notes () -> None:

	"""Nothing in flight means the raw delta passes through."""

	assert pianorain.time_dilator.max_advance(1.0, [], speed=4.0) == 1.0


def test_max_advance_limited_by_nearest () -> None:

	"""The nearest note limits how far time may move."""

	assert pianorain.time_dilator.max_advance(1.0, [10.0, 2.0], speed=4.0) == 0.5


def test_max_advance_freezes_at_stop () -> None:

	"""A note at its stop freezes time."""

	assert pianorain.time_dilator.max_advance(1.0, [0.0, 50.0], speed=4.0) == 0.0
	assert pianorain.time_dilator.max_advance(1.0, [-3.0], speed=4.0) == 0.0


def test_max_advance_rejects_bad_speed () -> None:

	"""Speed must be positive."""

	with pytest.raises(ValueError):
		pianorain.time_dilator.max_advance(1.0, [1.0], speed=0)


def test_effective_delta_never_overshoots () -> None:

	"""Moving every note by speed * delta keeps each at or before the stop."""

	dilator = pianorain.time_dilator.TimeDilator(speed=4.0, stop_position=180.0)
	positions = [170.0, 100.0, -20.0]

	delta = dilator.effective_delta(5.0, positions)

	assert delta == 2.5
	assert all(p + 4.0 * delta <= 180.0 for p in positions)


def test_disabled_dilator_passes_raw_delta () -> None:

	"""With wait mode off, notes may pass the line."""

	dilator = pianorain.time_dilator.TimeDilator(stop_position=180.0, enabled=False)

	assert dilator.effective_delta(1.0, [180.0]) == 1.0


def test_distance_clamps_at_zero () -> None:

	"""A note past its stop has no distance left."""

	dilator = pianorain.time_dilator.TimeDilator(stop_position=180.0)

	assert dilator.distance(100.0) == 80.0
	assert dilator.distance(200.0) == 0.0

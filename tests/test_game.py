import asyncio

import mido
import pytest

import pianorain.config
import pianorain.game

import conftest


def _game (**kwargs) -> pianorain.game.Game:

	config = pianorain.config.GameConfig(bpm=60, melody="C", **kwargs)

	return pianorain.game.Game(config, keystrokes=False)


def test_handle_key_presses_lane () -> None:

	"""Mapped computer keys press their lane; others are ignored."""

	game = _game()
	pressed = []
	game.session.events.on("press", lambda lane, pitch: pressed.append(lane))

	game.handle_key("d")
	game.handle_key("D")
	game.handle_key("x")

	assert pressed == [7, 7]


def test_handle_midi_message () -> None:

	"""MIDI note on/off become press/release; velocity 0 is a release."""

	game = _game()
	received = []
	game.session.events.on("press", lambda lane, pitch: received.append(("press", lane)))
	game.session.events.on("release", lambda lane, pitch: received.append(("release", lane)))

	game.handle_midi_message(mido.Message("note_on", note=60, velocity=64))
	game.handle_midi_message(mido.Message("note_on", note=60, velocity=0))
	game.handle_midi_message(mido.Message("note_on", note=36, velocity=64))
	game.handle_midi_message(mido.Message("note_off", note=36))
	game.handle_midi_message(mido.Message("control_change", control=64, value=127))

	assert received == [("press", 7), ("release", 7), ("press", 7), ("release", 7)]


def test_keystrokes_queue_into_presses () -> None:

	"""Keystrokes queued on the listener are applied on the next poll."""

	config = pianorain.config.GameConfig(bpm=60, melody="C")
	game = pianorain.game.Game(config)
	pressed = []
	game.session.events.on("press", lambda lane, pitch: pressed.append(lane))

	game.keystroke_listener.push("a")
	game.keystroke_listener.push("\\")
	game.poll_inputs()

	assert pressed == [4, 23]


@pytest.mark.asyncio
async def test_game_loop_advances_clock () -> None:

	"""The frame loop ticks the session against the wall clock."""

	game = _game()

	await game.start()
	await asyncio.sleep(0.1)

	assert game.session.playing
	assert game.session.clock > 0
	assert len(game.session.active_notes) == 1

	await game.stop()

	assert not game.session.playing
	assert game.task is None


@pytest.mark.asyncio
async def test_game_loop_stops_when_finished () -> None:

	"""The loop ends by itself once the song has finished."""

	config = pianorain.config.GameConfig(bpm=6000, speed=400, tick_rate=600, melody="C", wait_mode=False)
	game = pianorain.game.Game(config, keystrokes=False)

	await game.start()
	await asyncio.wait_for(game.task, timeout=5.0)

	assert game.session.finished
	assert game.session.score.misses == 1

	await game.stop()


@pytest.mark.asyncio
async def test_midi_input_presses (patch_midi: None) -> None:

	"""Notes from a MIDI keyboard reach the session through the loop."""

	game = _game(midi_input="Dummy MIDI")
	pressed = []
	game.session.events.on("press", lambda lane, pitch: pressed.append(lane))

	await game.start()

	fake = conftest._current_fake_input
	assert fake is not None
	fake.inject(mido.Message("note_on", note=62, velocity=90))

	await asyncio.sleep(0.1)

	assert pressed == [9]

	await game.stop()

	assert fake.closed

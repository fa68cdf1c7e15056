import pytest

import pianorain.config


def test_defaults () -> None:

	"""A default config plays the melody in wait mode at 100 BPM."""

	config = pianorain.config.GameConfig()

	assert config.bpm == 100
	assert config.wait_mode is True
	assert config.track == "melody"
	assert config.keyboard().lane_count == 24


def test_validation () -> None:

	"""Invalid values are rejected at construction."""

	with pytest.raises(ValueError):
		pianorain.config.GameConfig(bpm=0)

	with pytest.raises(ValueError):
		pianorain.config.GameConfig(track="drums")

	with pytest.raises(ValueError):
		pianorain.config.GameConfig(min_pitch=60, max_pitch=65)


def test_missing_file_uses_defaults (tmp_path) -> None:

	"""A missing config file is not an error."""

	assert pianorain.config.load_config(str(tmp_path / "absent.yaml")) == {}
	assert pianorain.config.load_game_config(str(tmp_path / "absent.yaml")) == pianorain.config.GameConfig()


def test_empty_file (tmp_path) -> None:

	"""An empty file is an empty mapping."""

	path = tmp_path / "config.yaml"
	path.write_text("")

	assert pianorain.config.load_config(str(path)) == {}


def test_non_mapping_rejected (tmp_path) -> None:

	"""The top level must be a mapping."""

	path = tmp_path / "config.yaml"
	path.write_text("- one\n- two\n")

	with pytest.raises(ValueError):
		pianorain.config.load_config(str(path))


def test_sections_loaded (tmp_path) -> None:

	"""Every section maps onto the config fields."""

	path = tmp_path / "config.yaml"
	path.write_text(
		"game:\n"
		"  bpm: 90\n"
		"  speed: 3\n"
		"  wait: false\n"
		"  track: accompaniment\n"
		"  half_speed: true\n"
		"song:\n"
		"  melody: C2E2G2c4\n"
		"  accompaniment: C,8\n"
		"keyboard:\n"
		"  low: C3\n"
		"  high: 84\n"
		"osc:\n"
		"  enabled: true\n"
		"  receive_port: 7000\n"
		"  send_port: 7001\n"
		"web:\n"
		"  enabled: true\n"
		"  port: 9999\n"
		"midi:\n"
		"  input_device: Digital Piano\n"
	)

	config = pianorain.config.load_game_config(str(path))

	assert config.bpm == 90
	assert config.speed == 3
	assert config.wait_mode is False
	assert config.track == "accompaniment"
	assert config.half_speed is True
	assert config.melody == "C2E2G2c4"
	assert config.accompaniment == "C,8"
	assert (config.min_pitch, config.max_pitch) == (48, 84)
	assert config.osc_enabled is True
	assert (config.osc_receive_port, config.osc_send_port) == (7000, 7001)
	assert config.web_enabled is True
	assert config.web_port == 9999
	assert config.midi_input == "Digital Piano"


def test_parse_pitch () -> None:

	"""Pitches may be note IDs or numbers."""

	assert pianorain.config.parse_pitch("F3") == 53
	assert pianorain.config.parse_pitch("76") == 76
	assert pianorain.config.parse_pitch(60) == 60

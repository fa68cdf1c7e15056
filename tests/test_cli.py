import pianorain.__main__

import conftest


def test_convert_prints_tracks (tmp_path, capsys) -> None:

	"""convert prints the tempo, multiplier and both tracks."""

	path = tmp_path / "song.mid"
	conftest.build_midi_file([[(0, 480, 60), (480, 480, 64)], [(0, 960, 48)]], bpm=100).save(str(path))

	assert pianorain.__main__.main(["convert", str(path)]) == 0

	lines = capsys.readouterr().out.splitlines()

	assert "bpm: 100" in lines
	assert "multiplier: 1" in lines
	assert "melody: C2E2" in lines
	assert "accompaniment: C4" in lines


def test_convert_missing_file_fails (tmp_path, capsys) -> None:

	"""A missing file is reported on stderr with exit status 1."""

	assert pianorain.__main__.main(["convert", str(tmp_path / "absent.mid")]) == 1
	assert "Conversion failed" in capsys.readouterr().err


def test_convert_pitch_range_note_ids (tmp_path, capsys) -> None:

	"""The range can be given as note IDs."""

	path = tmp_path / "song.mid"
	conftest.build_midi_file([[(0, 480, 48)]]).save(str(path))

	assert pianorain.__main__.main(["convert", str(path), "--min-pitch", "C2", "--max-pitch", "C4"]) == 0
	assert "melody: C.2" in capsys.readouterr().out.splitlines()


def test_play_config_overrides (tmp_path) -> None:

	"""Command line flags win over the config file."""

	path = tmp_path / "config.yaml"
	path.write_text("game:\n  bpm: 90\nsong:\n  melody: C2\n")

	args = pianorain.__main__.build_parser().parse_args([
		"play", "--config", str(path), "--bpm", "120", "--no-wait", "--track", "accompaniment", "--osc"
	])

	config = pianorain.__main__.play_config(args)

	assert config.bpm == 120
	assert config.melody == "C2"
	assert config.wait_mode is False
	assert config.track == "accompaniment"
	assert config.osc_enabled is True
	assert config.web_enabled is False

"""Game configuration and its YAML loader.

A configuration file is optional.  Every key has a default, and the CLI
overrides file values.  Example ``config.yaml``::

	game:
	  bpm: 100
	  speed: 4
	  wait: true
	  track: melody
	  half_speed: false
	song:
	  melody: "C2E2G2c4"
	  accompaniment: "C,8"
	keyboard:
	  low: F3
	  high: E5
	osc:
	  enabled: true
	  receive_port: 9000
	  send_port: 9001
	web:
	  enabled: false
	  port: 8765
	midi:
	  input_device: "Digital Piano"
"""

import dataclasses
import logging
import os
import typing

import yaml

import pianorain.constants
import pianorain.keyboard
import pianorain.pitch_spelling


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class GameConfig:

	"""
	Every primitive value the game core and its bridges consume.
	"""

	bpm: float = pianorain.constants.DEFAULT_BPM
	speed: float = pianorain.constants.DEFAULT_SPEED
	wait_mode: bool = True
	track: str = pianorain.constants.MELODY
	half_speed: bool = False
	tick_rate: float = pianorain.constants.DEFAULT_TICK_RATE

	melody: str = ""
	accompaniment: str = ""

	min_pitch: int = pianorain.constants.DEFAULT_MIN_PITCH
	max_pitch: int = pianorain.constants.DEFAULT_MAX_PITCH
	keymap: typing.Dict[str, str] = dataclasses.field(default_factory=lambda: dict(pianorain.keyboard.DEFAULT_KEYMAP))

	osc_enabled: bool = False
	osc_receive_port: int = pianorain.constants.OSC_RECEIVE_PORT
	osc_send_port: int = pianorain.constants.OSC_SEND_PORT
	osc_send_host: str = pianorain.constants.OSC_SEND_HOST

	web_enabled: bool = False
	web_port: int = pianorain.constants.WEB_BRIDGE_PORT

	midi_input: typing.Optional[str] = None

	def __post_init__ (self) -> None:

		if self.bpm <= 0:
			raise ValueError("bpm must be positive")

		if self.speed <= 0:
			raise ValueError("speed must be positive")

		if self.tick_rate <= 0:
			raise ValueError("tick_rate must be positive")

		if self.track not in pianorain.constants.TRACK_ROLES:
			raise ValueError(f"Unknown track {self.track!r}, expected one of {pianorain.constants.TRACK_ROLES}")

		if self.max_pitch - self.min_pitch < 11:
			raise ValueError(f"Pitch range {self.min_pitch}-{self.max_pitch} is narrower than an octave")

	def keyboard (self) -> pianorain.keyboard.Keyboard:

		return pianorain.keyboard.Keyboard(self.min_pitch, self.max_pitch)


def load_config (config_path: str = 'config.yaml') -> dict:

	"""
	Load raw configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		data = yaml.safe_load(f)

	if data is None:
		return {}

	if not isinstance(data, dict):
		raise ValueError(f"Config file {config_path} must contain a mapping at the top level")

	return data


def parse_pitch (value: typing.Any) -> int:

	"""Accept a MIDI number or a note ID like ``"F3"``."""

	if isinstance(value, str) and not value.strip().isdigit():
		return pianorain.pitch_spelling.parse_note_id(value.strip())

	return int(value)


def config_from_dict (data: typing.Dict[str, typing.Any]) -> GameConfig:

	"""
	Build a :class:`GameConfig` from the sections of a loaded YAML document.
	"""

	game = data.get('game', {}) or {}
	song = data.get('song', {}) or {}
	keyboard = data.get('keyboard', {}) or {}
	osc = data.get('osc', {}) or {}
	web = data.get('web', {}) or {}
	midi = data.get('midi', {}) or {}

	kwargs: typing.Dict[str, typing.Any] = {}

	for key, field in (('bpm', 'bpm'), ('speed', 'speed'), ('tick_rate', 'tick_rate')):
		if key in game:
			kwargs[field] = float(game[key])

	if 'wait' in game:
		kwargs['wait_mode'] = bool(game['wait'])

	if 'half_speed' in game:
		kwargs['half_speed'] = bool(game['half_speed'])

	if 'track' in game:
		kwargs['track'] = str(game['track'])

	if 'melody' in song:
		kwargs['melody'] = str(song['melody'] or "")

	if 'accompaniment' in song:
		kwargs['accompaniment'] = str(song['accompaniment'] or "")

	if 'low' in keyboard:
		kwargs['min_pitch'] = parse_pitch(keyboard['low'])

	if 'high' in keyboard:
		kwargs['max_pitch'] = parse_pitch(keyboard['high'])

	if 'keymap' in keyboard:
		kwargs['keymap'] = {str(k): str(v) for k, v in keyboard['keymap'].items()}

	if 'enabled' in osc:
		kwargs['osc_enabled'] = bool(osc['enabled'])

	for key in ('receive_port', 'send_port'):
		if key in osc:
			kwargs[f'osc_{key}'] = int(osc[key])

	if 'send_host' in osc:
		kwargs['osc_send_host'] = str(osc['send_host'])

	if 'enabled' in web:
		kwargs['web_enabled'] = bool(web['enabled'])

	if 'port' in web:
		kwargs['web_port'] = int(web['port'])

	if midi.get('input_device'):
		kwargs['midi_input'] = str(midi['input_device'])

	return GameConfig(**kwargs)


def load_game_config (config_path: str = 'config.yaml') -> GameConfig:

	"""Load a YAML file straight into a :class:`GameConfig`."""

	return config_from_dict(load_config(config_path))

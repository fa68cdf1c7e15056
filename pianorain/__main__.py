"""Command line entry point.

Convert a MIDI file into melody and accompaniment notation::

	python -m pianorain convert song.mid

Play a song with the computer keyboard, a MIDI keyboard or over OSC::

	python -m pianorain play --melody "C2E2G2c4" --accompaniment "C,8" --osc
"""

import argparse
import dataclasses
import logging
import sys
import typing

import pianorain.config
import pianorain.constants
import pianorain.game
import pianorain.quantizer


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="pianorain", description="Falling-note piano practice")
	commands = parser.add_subparsers(dest="command", required=True)

	convert = commands.add_parser("convert", help="Convert a MIDI file to melody/accompaniment notation")
	convert.add_argument("path", help="Standard MIDI file to convert")
	convert.add_argument("--min-pitch", default=str(pianorain.constants.DEFAULT_MIN_PITCH), help="Lowest pitch to keep, MIDI number or note ID (default: 53)")
	convert.add_argument("--max-pitch", default=str(pianorain.constants.DEFAULT_MAX_PITCH), help="Highest pitch to keep, MIDI number or note ID (default: 76)")

	play = commands.add_parser("play", help="Play a song")
	play.add_argument("--config", default="config.yaml", help="YAML configuration file (default: config.yaml)")
	play.add_argument("--melody", help="Melody notation")
	play.add_argument("--accompaniment", help="Accompaniment notation")
	play.add_argument("--bpm", type=float, help="Tempo in beats per minute")
	play.add_argument("--track", choices=pianorain.constants.TRACK_ROLES, help="Which track the player plays")
	play.add_argument("--no-wait", action="store_true", help="Let notes fall past the line instead of waiting")
	play.add_argument("--half-speed", action="store_true", help="Play at half tempo")
	play.add_argument("--demo", action="store_true", help="Play every note automatically")
	play.add_argument("--osc", action="store_true", help="Enable the OSC bridge")
	play.add_argument("--web", action="store_true", help="Enable the WebSocket bridge")
	play.add_argument("--midi-input", help="MIDI input device to play along on")

	return parser


def play_config (args: argparse.Namespace) -> pianorain.config.GameConfig:

	"""Load the configuration file and apply command line overrides."""

	config = pianorain.config.load_game_config(args.config)
	overrides: typing.Dict[str, typing.Any] = {}

	if args.melody is not None:
		overrides['melody'] = args.melody

	if args.accompaniment is not None:
		overrides['accompaniment'] = args.accompaniment

	if args.bpm is not None:
		overrides['bpm'] = args.bpm

	if args.track is not None:
		overrides['track'] = args.track

	if args.no_wait:
		overrides['wait_mode'] = False

	if args.half_speed:
		overrides['half_speed'] = True

	if args.osc:
		overrides['osc_enabled'] = True

	if args.web:
		overrides['web_enabled'] = True

	if args.midi_input is not None:
		overrides['midi_input'] = args.midi_input

	return dataclasses.replace(config, **overrides)


def run_convert (args: argparse.Namespace) -> int:

	try:
		pitch_range = (pianorain.config.parse_pitch(args.min_pitch), pianorain.config.parse_pitch(args.max_pitch))
		conversion = pianorain.quantizer.convert_file(args.path, pitch_range)

	except (pianorain.quantizer.ConversionError, OSError, ValueError) as e:
		print(f"Conversion failed: {e}", file=sys.stderr)
		return 1

	print(f"bpm: {conversion.bpm}")
	print(f"multiplier: {conversion.multiplier}")
	print(f"melody: {conversion.melody}")
	print(f"accompaniment: {conversion.accompaniment}")

	return 0


def run_play (args: argparse.Namespace) -> int:

	try:
		config = play_config(args)

	except ValueError as e:
		print(f"Invalid configuration: {e}", file=sys.stderr)
		return 1

	game = pianorain.game.Game(config, demo=args.demo)

	if not game.session.sequencer.has_notes():
		logger.info("No song given: free play")

	game.play()

	return 0


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the pianorain application.
	"""

	args = build_parser().parse_args(argv)

	if args.command == "convert":
		return run_convert(args)

	return run_play(args)


if __name__ == "__main__":
	sys.exit(main())

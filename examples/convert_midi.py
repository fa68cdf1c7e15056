import sys

import pianorain

# Convert a MIDI file and play the result straight away.
#   python examples/convert_midi.py song.mid

conversion = pianorain.convert_file(sys.argv[1])

print(f"bpm: {conversion.bpm} (x{conversion.multiplier})")
print(f"melody: {conversion.melody}")
print(f"accompaniment: {conversion.accompaniment}")

config = pianorain.GameConfig(
	bpm = conversion.bpm,
	melody = conversion.melody,
	accompaniment = conversion.accompaniment
)

pianorain.Game(config).play()

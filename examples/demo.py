import logging

import pianorain
import pianorain.pitch_spelling

logging.basicConfig(level=logging.INFO)

# "Twinkle Twinkle" over a sustained bass: the accompaniment plays itself,
# the melody is yours.  Keys: d f g h j k l ; (C4 up to C5).
MELODY = "C2C2G2G2A2A2G4F2F2E2E2D2D2C4"
ACCOMPANIMENT = "C,8F,4C,4F,4C,4G,,4C,4"

config = pianorain.GameConfig(
	bpm = 90,
	melody = MELODY,
	accompaniment = ACCOMPANIMENT,
	osc_enabled = True
)

game = pianorain.Game(config)


def announce_hit (lane: int, position: float) -> None:
	logging.info(f"Hit {pianorain.pitch_spelling.note_id(game.session.keyboard.pitch_for_lane(lane))}")


game.session.events.on("hit", announce_hit)

game.play()

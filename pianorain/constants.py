"""Shared default values for the codec, scheduler and judge.

Durations are measured in **eighth-note units** (1.0 = one eighth note, so one
beat is 2.0 units).  Positions are measured along the fall axis in the same
units a renderer uses for pixels; the simulation clock advances in *ticks*
(frames at ``DEFAULT_TICK_RATE``).
"""

# Tempo and timing
DEFAULT_BPM = 100
DEFAULT_SOURCE_BPM = 120
DEFAULT_TICK_RATE = 60
UNITS_PER_BEAT = 2

# Fall speed in position units per tick.
DEFAULT_SPEED = 4.0

# Smallest interval (ticks) between consecutive events of one track.
MIN_INTERVAL = 1e-3

# Playable range: F3 to E5.
DEFAULT_MIN_PITCH = 53
DEFAULT_MAX_PITCH = 76

# Quantizer
QUANTIZE_TOLERANCE = 0.05
GAP_NOISE_FLOOR = 0.05
MULTIPLIER_CANDIDATES = (1, 2, 3, 4)

# Encoder: largest denominator used when a duration is not an integer.
MAX_FRACTION_DENOMINATOR = 16

# Lane geometry
SPAWN_POSITION = -100.0
JUDGMENT_LINE = 220.0
NOTE_LENGTH = 40.0
JUDGMENT_WINDOW = 2 * NOTE_LENGTH
CHORD_TOLERANCE = 10.0
MISS_MARGIN = 20.0

# Seconds between the last note resolving and the "finished" event.
FINISH_GRACE_SECONDS = 1.5

# Longest wall-clock gap one frame may advance the song by.
MAX_FRAME_SECONDS = 0.1

# Bridges
OSC_RECEIVE_PORT = 9000
OSC_SEND_PORT = 9001
OSC_SEND_HOST = "127.0.0.1"
WEB_BRIDGE_PORT = 8765

# Track roles
MELODY = "melody"
ACCOMPANIMENT = "accompaniment"
TRACK_ROLES = (MELODY, ACCOMPANIMENT)

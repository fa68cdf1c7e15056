import pianorain

# Run a whole song without a clock: every note plays itself and each sound
# event is printed with the simulation time it happened at.

session = pianorain.Session("E2D2C2D2E2E2E4", "C,4G,,4C,8", config=pianorain.GameConfig(bpm=120))


def on_sound (pitch: int, lane: int, duration: float) -> None:
	print(f"{session.clock:7.1f}  lane {lane:2d}  pitch {pitch}  x{duration:g}")


session.events.on("sound", on_sound)
session.events.on("finished", lambda: print("finished"))

session.start(demo=True)

while session.playing:
	session.tick(1.0)

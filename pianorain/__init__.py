"""
pianorain - falling-note piano practice with wait mode.

Notes of a song fall toward a judgment line above an on-screen keyboard.
The player presses the matching key as each note arrives; the other track
of the song plays itself.  In wait mode the whole song slows and stops
until the arriving note is pressed, so a learner can take each step at
their own pace.

What is in the box:

- **Compact song notation.** A melody is one short, URL-safe string such as
  ``"C2E2G2c4"``.  :mod:`pianorain.notation` decodes it leniently (unknown
  text is skipped and reported) and encodes tracks back.
- **MIDI conversion.** :mod:`pianorain.quantizer` turns a standard MIDI file
  into a melody and an accompaniment string, keeping the top voice of
  melody chords and the bottom voice of accompaniment chords, and picking a
  tempo multiplier that makes durations whole.
- **Game core.** :class:`pianorain.session.Session` runs the sequencer,
  wait-mode time dilation and hit judging, and reports everything through an
  event emitter, so it can be driven from a test, a terminal or a network.
- **Bridges.** OSC (:mod:`pianorain.osc`) and WebSocket
  (:mod:`pianorain.web_bridge`) bridges for external renderers and
  synthesizers, terminal keystrokes, and MIDI keyboard input.

Minimal example:

    ```python
    import pianorain

    session = pianorain.Session("C2E2G2c4", "C,8")
    session.events.on("hit", lambda lane, position: print("hit", lane))
    session.start()

    while session.playing:
        session.tick(1.0)
    ```

Package-level exports: ``Session``, ``Game``, ``GameConfig``, ``decode``, ``encode``, ``convert_file``.
"""

import pianorain.config
import pianorain.game
import pianorain.notation
import pianorain.quantizer
import pianorain.session


Session = pianorain.session.Session
Game = pianorain.game.Game
GameConfig = pianorain.config.GameConfig
decode = pianorain.notation.decode
encode = pianorain.notation.encode
convert_file = pianorain.quantizer.convert_file

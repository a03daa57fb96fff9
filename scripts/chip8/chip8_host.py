import argparse
import logging
import os
import sys
import time

import numpy as np
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "no welcome message"   # this env var disable pygame's welcome message when imported
import pygame
from pygame.locals import (
    K_1, K_2, K_3, K_4,
    K_q, K_w, K_e, K_r,
    K_a, K_s, K_d, K_f,
    K_z, K_x, K_c, K_v,
)

from chip8 import (
    COSMAC, MODERN, SCREEN_HEIGHT, SCREEN_WIDTH, TIMERS_FREQUENCY,
    Chip8, Chip8Error, Pacer,
)


logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
# the 4x4 hex keypad laid onto the left side of a QWERTY keyboard
# 1 2 3 C        1 2 3 4
# 4 5 6 D   ->   Q W E R
# 7 8 9 E        A S D F
# A 0 B F        Z X C V
KEY_MAPPINGS = {
    K_1: 0x1, K_2: 0x2, K_3: 0x3, K_4: 0xC,
    K_q: 0x4, K_w: 0x5, K_e: 0x6, K_r: 0xD,
    K_a: 0x7, K_s: 0x8, K_d: 0x9, K_f: 0xE,
    K_z: 0xA, K_x: 0x0, K_c: 0xB, K_v: 0xF,
}

DEBUG = True if int(os.getenv('DEBUG', 0)) >= 1 else False
DEFAULT_CLOCK_SPEED = 600
DEFAULT_WINDOW_SIZE = (640, 320)
FRAMES_PER_SECOND = 60
MAX_CATCH_UP = 0.25     # seconds of emulation run at most in a single frame
SOUND_FREQUENCY = 44100
TONE_HZ = 440
VOLUME = 0.25
BLUE = pygame.Color(80,69,155,255)
LIGHT_BLUE = pygame.Color(136,126,203,255)


# ******************** UTILITIES SECTION
def setup_logging(debug=DEBUG):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="[%(levelname)s]:  %(message)s",
        stream=sys.stdout,
    )

def get_args(argv=None):
    parser = argparse.ArgumentParser(prog="chip8", description="CHIP-8 interpreter")
    parser.add_argument("rom", help="input rom file")
    parser.add_argument("--clock-speed", type=int, default=DEFAULT_CLOCK_SPEED,
                        help=f"instructions executed per second (default {DEFAULT_CLOCK_SPEED})")
    parser.add_argument("--window-size", type=int, nargs=2, metavar=("W", "H"), default=DEFAULT_WINDOW_SIZE,
                        help="window width and height in pixels (default %d %d)" % DEFAULT_WINDOW_SIZE)
    parser.add_argument("--no-sound", action="store_true", help="disable the beep")
    parser.add_argument("--cosmac", action="store_true",
                        help="use the original COSMAC VIP behaviour for shifts, logic ops and FX55/FX65")
    return parser.parse_args(argv)

def square_wave(frequency=TONE_HZ, sample_rate=SOUND_FREQUENCY, volume=VOLUME, channels=1):
    """one second of a 16 bit square wave, one column per channel when there is more than one"""
    period = sample_rate / frequency
    phase = np.arange(sample_rate) % period
    wave = (np.where(phase < period / 2, volume, -volume) * 32767).astype(np.int16)
    if channels > 1:
        wave = np.column_stack([wave] * channels)
    return wave


# ******************** I/O SECTION
class Screen:
    def __init__(self, w=DEFAULT_WINDOW_SIZE[0], h=DEFAULT_WINDOW_SIZE[1], bg_color=BLUE, fg_color=LIGHT_BLUE):
        # never smaller than one window pixel per CHIP-8 pixel
        w, h = max(w, SCREEN_WIDTH), max(h, SCREEN_HEIGHT)
        self.scale_x = max(1, w // SCREEN_WIDTH)
        self.scale_y = max(1, h // SCREEN_HEIGHT)
        self.background = bg_color
        self.foreground = fg_color
        self.surface = pygame.display.set_mode((w, h))
        self.surface.fill(self.background)

    def present(self, frame_buffer):
        """draw every pixel of the frame buffer and flip the display"""
        self.surface.fill(self.background)
        for y, row in enumerate(frame_buffer.rows()):
            for x, on in enumerate(row):
                if on:
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale_x, y * self.scale_y, self.scale_x, self.scale_y)
                    )
        pygame.display.flip()
        frame_buffer.dirty = False

class Beeper:
    """loops a square wave while the sound timer is active"""
    def __init__(self, enabled=True):
        self.enabled = enabled
        self.playing = False
        self.sound = None
        if not enabled:
            return
        try:
            pygame.mixer.init(SOUND_FREQUENCY, -16, 1, 1024)
            # the device may come up with another rate or channel count than asked
            sample_rate, _, channels = pygame.mixer.get_init()
            self.sound = pygame.sndarray.make_sound(square_wave(sample_rate=sample_rate, channels=channels))
        except (pygame.error, ValueError) as err:
            logger.warning("Audio unavailable, running without sound: %s", err)
            self.enabled = False

    def update(self, active):
        if not self.enabled:
            return
        if active and not self.playing:
            self.sound.play(loops=-1)
        elif not active and self.playing:
            self.sound.stop()
        self.playing = active

    def stop(self):
        self.update(False)


# ******************** EMULATION LOOP SECTION
def handle_events(chip):
    """push keypad state into the machine, return False when the user asked to quit"""
    for event in pygame.event.get():
        if event.type == pygame.QUIT:
            return False
        if event.type in (pygame.KEYDOWN, pygame.KEYUP):
            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                return False
            if event.key in KEY_MAPPINGS:
                chip.set_key(KEY_MAPPINGS[event.key], event.type == pygame.KEYDOWN)
    return True

def run(chip, screen, beeper, clock_speed=DEFAULT_CLOCK_SPEED):
    clock = pygame.time.Clock()
    cpu = Pacer(clock_speed, max_batch=max(1, int(clock_speed * MAX_CATCH_UP)))
    timers = Pacer(TIMERS_FREQUENCY, max_batch=max(1, int(TIMERS_FREQUENCY * MAX_CATCH_UP)))
    while handle_events(chip):
        now = time.perf_counter()
        for _ in range(cpu.due(now)):
            chip.step()
        for _ in range(timers.due(now)):
            chip.tick_timers()
        if chip.display.dirty:
            screen.present(chip.display)
        beeper.update(chip.sound_active)
        clock.tick(FRAMES_PER_SECOND)


# ******************** ENTRY POINT SECTION
def main(argv=None):
    args = get_args(argv)
    setup_logging()
    chip = Chip8(quirks=COSMAC if args.cosmac else MODERN)
    try:
        chip.load_rom(args.rom)
    except (OSError, Chip8Error) as err:
        sys.exit(f"Cannot load the ROM at path {args.rom}: {err}")
    # pygame initialization
    pygame.init()
    beeper = None
    try:
        pygame.display.set_caption(os.path.basename(args.rom))
        screen = Screen(*args.window_size)
        beeper = Beeper(enabled=not args.no_sound)
        run(chip, screen, beeper, args.clock_speed)
    except Chip8Error as err:
        logger.error("%s", err)
        sys.exit(f"********** THE EMULATOR CRASHED WITH THE FOLLOWING STATE\n{chip}")
    finally:
        if beeper is not None:
            beeper.stop()
        pygame.quit()


if __name__ == "__main__":
    main()

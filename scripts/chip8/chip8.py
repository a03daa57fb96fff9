# CHIP-8 INFO
# https://chip-8.github.io/extensions/#chip-8
# https://chip-8.github.io/links/
#
# COMPATIBILITY QUIRKS TABLE
# https://games.gulrak.net/cadmium/chip8-opcode-table.html#quirk6
#
# MASTERING CHIP-8
# https://github.com/mattmikolay/chip-8/wiki/Mastering-CHIP%E2%80%908
#
# TEST SUITE
# https://github.com/Timendus/chip8-test-suite


import logging
import random
from collections import namedtuple
from functools import wraps


logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
C8_FONTS = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
            0x20, 0x60, 0x20, 0x20, 0x70,  # 1
            0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
            0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
            0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
            0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
            0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
            0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
            0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
            0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
            0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
            0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
            0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
            0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
            0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
            0xF0, 0x80, 0xF0, 0x80, 0x80]  # F

FONT_START_ADDRESS = 0x000
FONT_CHAR_SIZE = 5
ROM_START_ADDRESS = 0x200
MEMORY_SIZE = 4096
STACK_SIZE = 16
REGISTERS_COUNT = 16
KEYS_COUNT = 16
SCREEN_HEIGHT = 32
SCREEN_WIDTH = 64
TIMERS_FREQUENCY = 60

# decode table: mask -> opcode patterns selected by that mask
# no opcode matches more than one (mask, pattern) couple
MASKS = {
    0xFFFF: [0x00E0, 0x00EE],
    0xF000: [0x1000, 0x2000, 0x3000, 0x4000, 0x6000, 0x7000, 0xA000, 0xB000, 0xC000, 0xD000],
    0xF00F: [0x5000, 0x8000, 0x8001, 0x8002, 0x8003, 0x8004, 0x8005, 0x8006, 0x8007, 0x800E, 0x9000],
    0xF0FF: [0xE09E, 0xE0A1, 0xF007, 0xF00A, 0xF015, 0xF018, 0xF01E, 0xF029, 0xF033, 0xF055, 0xF065],
}


# ******************** ERRORS SECTION
class Chip8Error(Exception):
    """base class of every fatal condition raised while running a ROM"""
    def __init__(self, message, pc=None, opcode=None):
        super().__init__(message)
        self.message = message
        self.pc = pc
        self.opcode = opcode

    def locate(self, pc, opcode):
        """attach the failing instruction address/opcode if they are still unknown"""
        if self.pc is None:
            self.pc = pc
        if self.opcode is None:
            self.opcode = opcode
        return self

    def __str__(self):
        where = []
        if self.pc is not None:
            where.append(f"PC=0x{self.pc:03x}")
        if self.opcode is not None:
            where.append(f"opcode=0x{self.opcode:04x}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message

class UnknownInstruction(Chip8Error):
    def __init__(self, opcode, pc=None):
        super().__init__(f"Unknown instruction 0x{opcode:04x}", pc, opcode)

class OutOfBounds(Chip8Error):
    def __init__(self, address, message=None, pc=None, opcode=None):
        super().__init__(message or f"Memory access at 0x{address:x} is outside the address space", pc, opcode)
        self.address = address

class StackOverflow(Chip8Error):
    def __init__(self, pc=None, opcode=None):
        super().__init__(f"The CHIP-8 stack can contain at most {STACK_SIZE} addresses. Limit exceeded", pc, opcode)

class StackUnderflow(Chip8Error):
    def __init__(self, pc=None, opcode=None):
        super().__init__("Return with an empty stack", pc, opcode)


# ******************** UTILITIES SECTION
def asm(msg):
    """decorator to log the ASM of the instruction being executed"""
    def decorator(fn):
        @wraps(fn)
        def wrapper_fn(*args, **kwargs):
            vals = fn(*args, **kwargs)  # use the locals() values of each decorated function in the message
            if logger.isEnabledFor(logging.DEBUG):
                vals['mem_addr'] = args[0].current_pc   # args[0] equals self of the decorated method
                logger.debug(msg.format(**vals))
        return wrapper_fn
    return decorator


class Instruction(namedtuple("Instruction", ["pattern", "opcode"])):
    """decoded opcode: the table pattern it matched plus its operand fields"""
    __slots__ = ()

    @property
    def x(self):
        return (self.opcode & 0x0F00) >> 8

    @property
    def y(self):
        return (self.opcode & 0x00F0) >> 4

    @property
    def n(self):
        return self.opcode & 0x000F

    @property
    def kk(self):
        return self.opcode & 0x00FF

    @property
    def nnn(self):
        return self.opcode & 0x0FFF


def decode(opcode):
    """decode an opcode using masks and return the matching Instruction"""
    for mask, patterns in MASKS.items():
        if (opcode & mask) in patterns:
            return Instruction(opcode & mask, opcode)
    raise UnknownInstruction(opcode)


Quirks = namedtuple("Quirks", ["shift_uses_vy", "logic_resets_vf", "load_store_increments_i"])
MODERN = Quirks(shift_uses_vy=False, logic_resets_vf=False, load_store_increments_i=False)
COSMAC = Quirks(shift_uses_vy=True, logic_resets_vf=True, load_store_increments_i=True)


# ******************** I/O SECTION
class FrameBuffer:
    """64x32 monochrome pixels, row-major, with wrap-around addressing"""
    def __init__(self, w=SCREEN_WIDTH, h=SCREEN_HEIGHT):
        self.w, self.h = w, h
        self.buffer = [False] * h * w
        self.dirty = True   # the host needs to present the buffer

    def _index(self, x, y):
        return (y % self.h) * self.w + (x % self.w)

    def pixel(self, x, y):
        return self.buffer[self._index(x, y)]

    def rows(self):
        """read-only snapshot of the buffer as a tuple of rows"""
        return tuple(tuple(self.buffer[r * self.w:(r + 1) * self.w]) for r in range(self.h))

    def clear(self):
        self.buffer = [False] * self.h * self.w
        self.dirty = True

    def draw(self, x, y, sprite):
        """
        XOR each bit of each sprite byte onto the buffer starting at (x, y)
        return True if any pixel that was ON has been turned OFF
        """
        collision = False
        for i, sprite_byte in enumerate(sprite):
            for j in range(8):
                if not sprite_byte & (0x80 >> j):
                    continue
                idx = self._index(x + j, y + i)
                # the only case when a pixel gets erased is when it was ON and is turned ON again
                if self.buffer[idx]:
                    collision = True
                self.buffer[idx] = not self.buffer[idx]
        self.dirty = True
        return collision

class Keypad:
    def __init__(self):
        self.keys = [False] * KEYS_COUNT
        self.last_press = None      # key-down transition latched for the key wait

    def _check(self, key):
        if not 0 <= key < KEYS_COUNT:
            raise ValueError(f"CHIP-8 keys go from 0x0 to 0xF, got {key!r}")

    def set_key(self, key, pressed):
        self._check(key)
        if pressed and not self.keys[key]:
            self.last_press = key
        self.keys[key] = bool(pressed)

    def is_pressed(self, key):
        self._check(key)
        return self.keys[key]

    def arm(self):
        """forget earlier presses so that only new key-down transitions are reported"""
        self.last_press = None

    def take_key_press(self):
        """return the latched key-down transition, if any, and clear it"""
        key, self.last_press = self.last_press, None
        return key

class Timers:
    """delay and sound timers, both decremented at 60Hz while non-zero"""
    def __init__(self):
        self.delay = 0
        self.sound = 0

    def tick(self):
        if self.delay > 0:
            self.delay -= 1
        if self.sound > 0:
            self.sound -= 1

    @property
    def sound_active(self):
        return self.sound > 0


# ******************** MEMORY SECTION
# ********** WRAPS A LIST TO REPRESENT A STACK WITH A LIMITED SIZE OF 16 ADDRESSES
class Stack:
    def __init__(self, size=STACK_SIZE):
        self.addr_list = []
        self.capacity = size

    def __len__(self):
        return len(self.addr_list)

    def __repr__(self):
        return "[" + ", ".join(f"0x{a:03x}" for a in self.addr_list) + "]"

    def append(self, address):
        if len(self.addr_list) >= self.capacity:
            raise StackOverflow()
        self.addr_list.append(address)

    def pop(self):
        if not self.addr_list:
            raise StackUnderflow()
        return self.addr_list.pop()

# ********** WRAPS A BYTEARRAY TO REPRESENT THE MAIN MEMORY WITH A LIMITED SIZE OF 4KB
class Memory:
    def __init__(self, size=MEMORY_SIZE):
        self.inner = bytearray(size)
        self.inner[FONT_START_ADDRESS:FONT_START_ADDRESS+len(C8_FONTS)] = bytes(C8_FONTS)

    def __len__(self):
        return len(self.inner)

    def _check(self, address, length=1):
        if address < 0 or address + length > len(self.inner):
            raise OutOfBounds(address if address < 0 else max(address, len(self.inner)))

    def __setitem__(self, address, value):
        self._check(address)
        self.inner[address] = value & 0xFF

    def __getitem__(self, address):
        self._check(address)
        return self.inner[address]

    def read(self, address, length):
        self._check(address, length)
        return bytes(self.inner[address:address+length])

    def write(self, address, data):
        self._check(address, len(data))
        self.inner[address:address+len(data)] = bytes(data)

    def load_program(self, rom):
        """
        copy the ROM bytes verbatim starting at 0x200, the interpreter area is never touched
        the program area is zeroed first so nothing of a previous ROM survives
        """
        if len(rom) > len(self.inner) - ROM_START_ADDRESS:
            raise OutOfBounds(
                ROM_START_ADDRESS + len(rom) - 1,
                f"The ROM is {len(rom)} bytes long, at most {len(self.inner) - ROM_START_ADDRESS} fit in memory",
            )
        self.inner[ROM_START_ADDRESS:] = bytes(len(self.inner) - ROM_START_ADDRESS)
        self.inner[ROM_START_ADDRESS:ROM_START_ADDRESS+len(rom)] = bytes(rom)


# ******************** CLOCK SECTION
class Pacer:
    """
    count how many events are due at a fixed rate against the wall clock
    the count returned by due() is capped to max_batch, time beyond the cap is dropped
    """
    def __init__(self, rate, max_batch):
        self.rate = rate
        self.max_batch = max_batch
        self.last = None

    def due(self, now):
        if self.last is None or self.rate <= 0:
            self.last = now
            return 0
        period = 1.0 / self.rate
        owed = int((now - self.last) / period)
        if owed > self.max_batch:
            self.last = now
            return self.max_batch
        self.last += owed * period
        return owed


# ******************** CPU SECTION
class Chip8:
    def __init__(self, quirks=MODERN, rng=None):
        self.mem = Memory()
        self.quirks = quirks
        self.rng = rng or random.Random()
        self.reset()
        self.instructions = {
            0x00E0: self._clear_screen,
            0x00EE: self._return,
            0x1000: self._jump,
            0x2000: self._call_addr,
            0x3000: self._skip_if_eq,
            0x4000: self._skip_if_not_eq,
            0x5000: self._skip_if_eq_regs,
            0x6000: self._set_vk,
            0x7000: self._add_to_vk,
            0x8000: self._set_vx_to_vy,
            0x8001: self._set_vx_or_vy,
            0x8002: self._set_vx_and_vy,
            0x8003: self._set_vx_xor_vy,
            0x8004: self._add_vx_vy,
            0x8005: self._sub_vx_vy,
            0x8006: self._shr,
            0x8007: self._subn_vx_vy,
            0x800E: self._shl,
            0x9000: self._skip_if_not_eq_regs,
            0xA000: self._set_idx,
            0xB000: self._jump_plus,
            0xC000: self._random_byte_and,
            0xD000: self._to_screen,
            0xE09E: self._skip_if_pressed,
            0xE0A1: self._skip_if_not_pressed,
            0xF007: self._set_vx_dt,
            0xF00A: self._wait_keypress,
            0xF015: self._set_dt_vx,
            0xF018: self._set_st,
            0xF01E: self._add_to_idx,
            0xF029: self._select_char,
            0xF033: self._bcd_repr,
            0xF055: self._store_vregs,
            0xF065: self._load_vregs,
        }

    def __str__(self):
        registers = (f"PC_REGISTER:0x{self.pc:03x} | IDX_REGISTER:0x{self.idx:03x} | "
                     f"VARIABLE_REGISTERS:{['0x%02x' % v for v in self.v_regs]}")
        stack = f"STACK:{self.stack!r}"
        timers = f"DT:{self.timers.delay} | ST:{self.timers.sound}"
        flags = f"AWAITING_KEY: {self.awaiting_key}"
        return f"{registers}\n{stack}\n{timers}\n{flags}"

    # ********** HOST INTERFACE
    def reset(self):
        """power-on state for everything but memory, quirks and random source"""
        self.stack = Stack()
        self.v_regs = [0] * REGISTERS_COUNT
        self.pc = ROM_START_ADDRESS
        self.current_pc = ROM_START_ADDRESS     # address of the instruction being executed
        self.idx = 0    # specify where the sprites reside in memory
        self.timers = Timers()
        self.display = FrameBuffer()
        self.keypad = Keypad()
        self.awaiting_key = None    # register waiting for a key press (FX0A), None when running

    def load(self, rom):
        """load a ROM and restart the machine on it, replacing any previous program"""
        self.mem.load_program(rom)
        self.reset()
        logger.info("Loaded a ROM of %d bytes at 0x%03x", len(rom), ROM_START_ADDRESS)

    def load_rom(self, path):
        """load ROM file from user specified path, raise an exception if it can't be read"""
        with open(path, mode='rb') as f:
            rom = f.read()
        self.load(rom)
        logger.info("The ROM at path %s has been loaded successfully", path)

    def set_key(self, key, pressed):
        self.keypad.set_key(key, pressed)

    def tick_timers(self):
        self.timers.tick()

    @property
    def sound_active(self):
        return self.timers.sound_active

    def fetch(self):
        """read the two bytes at PC (each instruction is two bytes long, big-endian)"""
        if self.pc < 0 or self.pc + 1 >= len(self.mem):
            raise OutOfBounds(self.pc, f"Cannot fetch an instruction at 0x{self.pc:x}")
        return self.mem[self.pc] << 8 | self.mem[self.pc + 1]

    def step(self):
        """emulate one machine cycle (fetch opcode, decode opcode, execute opcode)"""
        if self.awaiting_key is not None:
            self._resolve_keypress()
            return
        self.current_pc, opcode = self.pc, None
        try:
            opcode = self.fetch()
            instruction = decode(opcode)
            self._goto_next_instruction()
            self.instructions[instruction.pattern](instruction)
        except Chip8Error as err:
            raise err.locate(self.current_pc, opcode)

    def _goto_next_instruction(self):
        self.pc += 0x2

    def _resolve_keypress(self):
        key = self.keypad.take_key_press()
        if key is None:
            return      # stay on the FX0A instruction until a key goes down
        self.v_regs[self.awaiting_key] = key
        logger.debug("Key 0x%x pressed, stored in V%x", key, self.awaiting_key)
        self.awaiting_key = None
        self._goto_next_instruction()

    # ********** INSTRUCTIONS
    @asm("mem_addr: 0x{mem_addr:04x}    instruction: CLS")
    def _clear_screen(self, ins):
        self.display.clear()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: RET")
    def _return(self, ins):
        """return from a subroutine"""
        self.pc = self.stack.pop()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: JP 0x{address:04x}")
    def _jump(self, ins):
        address = ins.nnn
        self.pc = address
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: CALL 0x{address:04x}")
    def _call_addr(self, ins):
        address = ins.nnn
        self.stack.append(self.pc)
        self.pc = address
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SE V{x:X}, {comparison_value}")
    def _skip_if_eq(self, ins):
        x, comparison_value = ins.x, ins.kk
        if self.v_regs[x] == comparison_value:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SNE V{x:X}, {comparison_value}")
    def _skip_if_not_eq(self, ins):
        x, comparison_value = ins.x, ins.kk
        if self.v_regs[x] != comparison_value:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SE V{x:X}, V{y:X}")
    def _skip_if_eq_regs(self, ins):
        x, y = ins.x, ins.y
        if self.v_regs[x] == self.v_regs[y]:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SNE V{x:X}, V{y:X}")
    def _skip_if_not_eq_regs(self, ins):
        x, y = ins.x, ins.y
        if self.v_regs[x] != self.v_regs[y]:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, {value}")
    def _set_vk(self, ins):
        """set the value of one of the 16 variable registers, Vx"""
        x, value = ins.x, ins.kk
        self.v_regs[x] = value
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD V{x:X}, {value}")
    def _add_to_vk(self, ins):
        """add to the value already present in one of the variable registers, VF is untouched"""
        x, value = ins.x, ins.kk
        self.v_regs[x] = (self.v_regs[x] + value) & 0xFF
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, V{y:X}")
    def _set_vx_to_vy(self, ins):
        """set the value of Vx equal to that of Vy"""
        x, y = ins.x, ins.y
        self.v_regs[x] = self.v_regs[y]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: OR V{x:X}, V{y:X}")
    def _set_vx_or_vy(self, ins):
        """set the value of Vx to Vx OR Vy"""
        x, y = ins.x, ins.y
        self.v_regs[x] |= self.v_regs[y]
        if self.quirks.logic_resets_vf:
            self.v_regs[0xF] = 0            # compatibility quirk 1
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: AND V{x:X}, V{y:X}")
    def _set_vx_and_vy(self, ins):
        """set the value of Vx to Vx AND Vy"""
        x, y = ins.x, ins.y
        self.v_regs[x] &= self.v_regs[y]
        if self.quirks.logic_resets_vf:
            self.v_regs[0xF] = 0            # compatibility quirk 1
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: XOR V{x:X}, V{y:X}")
    def _set_vx_xor_vy(self, ins):
        """set the value of Vx to Vx XOR Vy"""
        x, y = ins.x, ins.y
        self.v_regs[x] ^= self.v_regs[y]
        if self.quirks.logic_resets_vf:
            self.v_regs[0xF] = 0            # compatibility quirk 1
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD V{x:X}, V{y:X}")
    def _add_vx_vy(self, ins):
        """set the value of Vx to Vx + Vy, VF = carry"""
        x, y = ins.x, ins.y
        total = self.v_regs[x] + self.v_regs[y]
        self.v_regs[x] = total & 0xFF     # keep only the lowest 8 bits from the result and store them in Vx
        self.v_regs[0xF] = 1 if total > 0xFF else 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SUB V{x:X}, V{y:X}")
    def _sub_vx_vy(self, ins):
        """set the value of Vx to Vx - Vy, VF = NOT borrow"""
        x, y = ins.x, ins.y
        not_borrow = 1 if self.v_regs[x] >= self.v_regs[y] else 0
        self.v_regs[x] = (self.v_regs[x] - self.v_regs[y]) & 0xFF
        self.v_regs[0xF] = not_borrow
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SHR V{x:X} 1")
    def _shr(self, ins):
        """set Vx equal to Vx SHR 1"""
        x, y = ins.x, ins.y
        src = self.v_regs[y] if self.quirks.shift_uses_vy else self.v_regs[x]     # compatibility quirk 2
        LSB = src & 0x1
        self.v_regs[x] = src >> 1
        self.v_regs[0xF] = LSB
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SUBN V{x:X}, V{y:X}")
    def _subn_vx_vy(self, ins):
        """set the value of Vx to Vy - Vx, VF = NOT borrow"""
        x, y = ins.x, ins.y
        not_borrow = 1 if self.v_regs[y] >= self.v_regs[x] else 0
        self.v_regs[x] = (self.v_regs[y] - self.v_regs[x]) & 0xFF
        self.v_regs[0xF] = not_borrow
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SHL V{x:X} 1")
    def _shl(self, ins):
        """set Vx equal to Vx SHL 1"""
        x, y = ins.x, ins.y
        src = self.v_regs[y] if self.quirks.shift_uses_vy else self.v_regs[x]     # compatibility quirk 2
        MSB = (src & 0x80) >> 7
        self.v_regs[x] = (src << 1) & 0xFF   # multiply by 2 and keep only the lowest 8 bits from the result
        self.v_regs[0xF] = MSB
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD I, 0x{value:03x}")
    def _set_idx(self, ins):
        """set the value of the I register"""
        value = ins.nnn
        self.idx = value
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: JP V0, 0x{address:04x}")
    def _jump_plus(self, ins):
        address = ins.nnn
        v0 = self.v_regs[0x0]
        self.pc = address + v0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: RND V{x:X}, 0x{kk:02x}")
    def _random_byte_and(self, ins):
        x, kk = ins.x, ins.kk
        rnd = self.rng.randint(0, 255)
        self.v_regs[x] = rnd & kk
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: DRW V{x:X}, V{y:X}, {n_bytes}")
    def _to_screen(self, ins):
        """display n-byte sprite starting at memory location I at (Vx, Vy), set VF = collision"""
        x, y, n_bytes = ins.x, ins.y, ins.n
        sprite = self.mem.read(self.idx, n_bytes)
        collision = self.display.draw(self.v_regs[x], self.v_regs[y], sprite)
        self.v_regs[0xF] = 1 if collision else 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SKP V{x:X}")
    def _skip_if_pressed(self, ins):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is pressed"""
        x = ins.x
        key = self.v_regs[x] & 0xF
        if self.keypad.is_pressed(key):
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SKNP V{x:X}")
    def _skip_if_not_pressed(self, ins):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is NOT pressed"""
        x = ins.x
        key = self.v_regs[x] & 0xF
        if not self.keypad.is_pressed(key):
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, DT")
    def _set_vx_dt(self, ins):
        """set Vx = DT (delay timer) value"""
        x = ins.x
        self.v_regs[x] = self.timers.delay
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, K")
    def _wait_keypress(self, ins):
        """wait for a key press and store its value in Vx"""
        x = ins.x
        self.keypad.arm()
        self.awaiting_key = x
        self.pc -= 0x2      # stay on the same instruction until a key is pressed
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD DT, V{x:X}")
    def _set_dt_vx(self, ins):
        """set DT (delay timer) = Vx"""
        x = ins.x
        self.timers.delay = self.v_regs[x]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD ST, V{register:X}")
    def _set_st(self, ins):
        """set ST = Vx"""
        register = ins.x
        self.timers.sound = self.v_regs[register]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD I, V{register:X}")
    def _add_to_idx(self, ins):
        """set I = I + Vx"""
        register = ins.x
        self.idx = (self.idx + self.v_regs[register]) & 0xFFFF
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD F, V{register:X}")
    def _select_char(self, ins):
        """set I to location of sprite for digit Vx"""
        register = ins.x
        self.idx = FONT_START_ADDRESS + (self.v_regs[register] & 0xF) * FONT_CHAR_SIZE
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD B, V{x:X}")
    def _bcd_repr(self, ins):
        """store the hundreds digit of Vx in memory at I, the tens digit at I+1, the ones digit at I+2"""
        x = ins.x
        value = self.v_regs[x]
        self.mem.write(self.idx, [value // 100, (value // 10) % 10, value % 10])
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD [I], V{x:X}")
    def _store_vregs(self, ins):
        """store registers V0 through Vx (included) in memory starting at location I"""
        x = ins.x
        self.mem.write(self.idx, self.v_regs[:x+1])
        if self.quirks.load_store_increments_i:
            self.idx = (self.idx + x + 1) & 0xFFFF      # compatibility quirk 6
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x:X}, [I]")
    def _load_vregs(self, ins):
        """read registers V0 through Vx (included) from memory starting at location I"""
        x = ins.x
        self.v_regs[:x+1] = list(self.mem.read(self.idx, x + 1))
        if self.quirks.load_store_increments_i:
            self.idx = (self.idx + x + 1) & 0xFFFF      # compatibility quirk 6
        return locals()

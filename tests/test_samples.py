"""Integration tests for small hand-assembled programs."""

from lc3 import Image, RunOptions, run_image

HALT = 0xF025


def _run(words, input_text=""):
    return run_image(Image(0x3000, words), input_text=input_text, options=RunOptions())


def test_sample_hello_world():
    """LEA + PUTS over a zero-terminated string."""
    text = "Hello, World!"
    words = [0xE002, 0xF022, HALT] + [ord(c) for c in text] + [0]
    result = _run(words)
    assert result.status == "ok"
    assert result.output_text == "Hello, World!HALT\n"
    assert result.steps_executed == 3


def test_sample_packed_string():
    """PUTSP over a packed string with an odd length."""
    # "LC-3!" packed two per word
    words = [0xE002, 0xF024, HALT, 0x434C, 0x332D, 0x0021, 0x0000]
    result = _run(words)
    assert result.output_text == "LC-3!HALT\n"


def test_sample_stars():
    """Print '*' three times with a counted loop."""
    words = [
        0x2005,  # LD R0, STAR
        0x1263,  # ADD R1,R1,#3
        0xF021,  # loop: OUT
        0x127F,  # ADD R1,R1,#-1
        0x03FD,  # BRp loop
        HALT,
        0x002A,  # STAR .FILL '*'
    ]
    result = _run(words)
    assert result.status == "ok"
    assert result.output_text == "***HALT\n"
    assert result.steps_executed == 12


def test_sample_keyboard_echo():
    """Poll the keyboard status register, then read and echo the data."""
    words = [
        0xA204,  # poll: LDI R1, KBSR_PTR
        0x07FE,  # BRzp poll
        0xA003,  # LDI R0, KBDR_PTR
        0xF021,  # OUT
        HALT,
        0xFE00,  # KBSR_PTR
        0xFE02,  # KBDR_PTR
    ]
    result = _run(words, input_text="Q")
    assert result.status == "ok"
    assert result.output_text == "QHALT\n"
    assert result.final_state["r1"] == 0x8000


def test_sample_double_poll_drops_character():
    """Each status read consumes input, even without a data read."""
    words = [
        0xA204,  # LDI R1, KBSR_PTR
        0xA203,  # LDI R1, KBSR_PTR
        0xA003,  # LDI R0, KBDR_PTR
        0xF021,  # OUT
        HALT,
        0xFE00,
        0xFE02,
    ]
    result = _run(words, input_text="ab")
    assert result.output_text == "bHALT\n"


def test_sample_keyboard_not_ready():
    # LDI R1, KBSR_PTR ; HALT ; .FILL xFE00
    result = _run([0xA201, HALT, 0xFE00])
    assert result.final_state["r1"] == 0
    assert result.final_state["cond"] == "Z"


def test_sample_uppercase():
    """Read two characters, subtract 32 from each and print them."""
    words = [
        0x2A07,  # LD R5, NEG32
        0xF020,  # GETC
        0x1005,  # ADD R0,R0,R5
        0xF021,  # OUT
        0xF020,  # GETC
        0x1005,  # ADD R0,R0,R5
        0xF021,  # OUT
        HALT,
        0xFFE0,  # NEG32 .FILL #-32
    ]
    result = _run(words, input_text="ok")
    assert result.status == "ok"
    assert result.output_text == "OKHALT\n"


def test_sample_multiply_subroutine():
    """R2 := R0 * R1 through a JSR/RET subroutine."""
    words = [
        0x1026,  # ADD R0,R0,#6
        0x1267,  # ADD R1,R1,#7
        0x4801,  # JSR MUL
        HALT,
        0x54A0,  # MUL: AND R2,R2,#0
        0x1480,  # loop: ADD R2,R2,R0
        0x127F,  # ADD R1,R1,#-1
        0x03FD,  # BRp loop
        0xC1C0,  # RET
    ]
    result = _run(words)
    assert result.status == "ok"
    assert result.final_state["r2"] == 42
    assert result.final_state["r7"] == 0x3003

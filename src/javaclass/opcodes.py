# Operand widths for the JVM instruction set.
# See: https://docs.oracle.com/javase/specs/jvms/se17/html/jvms-6.html
from __future__ import annotations

TABLESWITCH = 0xAA
LOOKUPSWITCH = 0xAB
WIDE = 0xC4
IINC = 0x84

# Largest defined opcode (jsr_w); 0xca, 0xfe and 0xff are reserved but legal.
LAST_OPCODE = 0xC9
RESERVED = frozenset({0xCA, 0xFE, 0xFF})

# Opcodes `wide` may modify: the local-variable loads and stores, ret and iinc
WIDENABLE = frozenset(list(range(0x15, 0x1A)) + list(range(0x36, 0x3B)) + [0xA9, IINC])

_ONE_BYTE = (
    [0x10, 0x12, 0xA9, 0xBC]      # bipush, ldc, ret, newarray
    + list(range(0x15, 0x1A))     # iload .. aload
    + list(range(0x36, 0x3B))     # istore .. astore
)

_TWO_BYTES = (
    [0x11, 0x13, 0x14, IINC]      # sipush, ldc_w, ldc2_w, iinc
    + list(range(0x99, 0xA9))     # if<cond>, if_icmp<cond>, if_acmp<cond>, goto, jsr
    + list(range(0xB2, 0xB9))     # getstatic .. invokestatic
    + [0xBB, 0xBD, 0xC0, 0xC1]    # new, anewarray, checkcast, instanceof
    + [0xC6, 0xC7]                # ifnull, ifnonnull
)

_FOUR_BYTES = [0xB9, 0xBA, 0xC8, 0xC9]  # invokeinterface, invokedynamic, goto_w, jsr_w


def _build_table() -> tuple[int, ...]:
    widths = [0] * 256
    for op in _ONE_BYTE:
        widths[op] = 1
    for op in _TWO_BYTES:
        widths[op] = 2
    for op in _FOUR_BYTES:
        widths[op] = 4
    widths[0xC5] = 3  # multianewarray
    return tuple(widths)


OPERAND_WIDTHS = _build_table()


def is_defined(opcode: int) -> bool:
    return opcode <= LAST_OPCODE or opcode in RESERVED

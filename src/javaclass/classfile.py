"""
Minimal Java class-file decoder.

Only what the fingerprinting needs is modelled: the constant pool is walked so
attribute names can be resolved, and for each method the instruction stream
of its Code attribute is recovered. Everything else (fields, annotations,
stack maps, exception tables) is skipped over.

See the class-file format reference at:
    https://docs.oracle.com/javase/specs/jvms/se17/html/jvms-4.html
"""
from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from .errors import DecodeError
from .opcodes import (
    LOOKUPSWITCH,
    OPERAND_WIDTHS,
    TABLESWITCH,
    WIDE,
    WIDENABLE,
    IINC,
    is_defined,
)

MAGIC = 0xCAFEBABE

_CONSTANT_UTF8 = 1

# Payload sizes, not counting the tag byte. Utf8 is variable sized.
_CONSTANT_SIZES = {
    3: 4,   # Integer
    4: 4,   # Float
    5: 8,   # Long
    6: 8,   # Double
    7: 2,   # Class
    8: 2,   # String
    9: 4,   # Fieldref
    10: 4,  # Methodref
    11: 4,  # InterfaceMethodref
    12: 4,  # NameAndType
    15: 3,  # MethodHandle
    16: 2,  # MethodType
    17: 4,  # Dynamic
    18: 4,  # InvokeDynamic
    19: 2,  # Module
    20: 2,  # Package
}

# Long and Double take up two constant pool slots.
_WIDE_CONSTANTS = (5, 6)


class _Reader:
    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        end = self.pos + n
        if n < 0 or end > len(self.data):
            raise DecodeError(None, f"truncated class file at offset {self.pos} (wanted {n} bytes)")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def u1(self) -> int:
        return self.take(1)[0]

    def u2(self) -> int:
        return struct.unpack(">H", self.take(2))[0]

    def u4(self) -> int:
        return struct.unpack(">I", self.take(4))[0]


@dataclass(slots=True)
class MethodInfo:
    access_flags: int
    name: str
    descriptor: str
    code: Optional[bytes] = None

    @property
    def has_code(self) -> bool:
        return self.code is not None


@dataclass(slots=True)
class ClassFile:
    minor_version: int
    major_version: int
    access_flags: int
    methods: list[MethodInfo] = field(default_factory=list)


def _read_constant_pool(r: _Reader) -> dict[int, bytes]:
    """Walk the constant pool, keeping only the Utf8 entries (by index)."""
    count = r.u2()
    logger.debug(f"{count} constants in constant pool")
    utf8: dict[int, bytes] = {}
    # The pool is 1-indexed
    idx = 1
    while idx < count:
        tag = r.u1()
        if tag == _CONSTANT_UTF8:
            utf8[idx] = r.take(r.u2())
        elif tag in _CONSTANT_SIZES:
            r.take(_CONSTANT_SIZES[tag])
        else:
            raise DecodeError(None, f"unknown constant pool tag {tag} at index {idx}")
        idx += 2 if tag in _WIDE_CONSTANTS else 1
    return utf8


def _utf8(pool: dict[int, bytes], idx: int) -> str:
    try:
        raw = pool[idx]
    except KeyError:
        raise DecodeError(None, f"constant pool index {idx} is not a Utf8 entry") from None
    # Modified UTF-8 differs from UTF-8 only for NUL and supplementary chars
    return raw.decode("utf-8", errors="replace")


def _skip_attributes(r: _Reader) -> None:
    for _ in range(r.u2()):
        r.u2()
        r.take(r.u4())


def _read_code_attribute(body: bytes) -> bytes:
    # u2 max_stack; u2 max_locals; u4 code_length; u1 code[code_length]; ...
    r = _Reader(body)
    r.u2()
    r.u2()
    return r.take(r.u4())


def _read_method(r: _Reader, pool: dict[int, bytes]) -> MethodInfo:
    method = MethodInfo(
        access_flags=r.u2(),
        name=_utf8(pool, r.u2()),
        descriptor=_utf8(pool, r.u2()),
    )
    for _ in range(r.u2()):
        name_idx = r.u2()
        body = r.take(r.u4())
        if pool.get(name_idx) == b"Code":
            method.code = _read_code_attribute(body)
    return method


def parse_class(data: bytes) -> ClassFile:
    """Parse ``data`` as a class file. Raises DecodeError if it is not one."""
    r = _Reader(data)
    magic = r.u4()
    if magic != MAGIC:
        raise DecodeError(None, f"bad magic {magic:#010x}")
    minor, major = r.u2(), r.u2()
    logger.debug(f"class file version {major}.{minor}")

    pool = _read_constant_pool(r)
    cls = ClassFile(minor_version=minor, major_version=major, access_flags=r.u2())

    r.u2()  # this_class
    r.u2()  # super_class
    r.take(2 * r.u2())  # interfaces

    for _ in range(r.u2()):  # fields
        r.take(6)
        _skip_attributes(r)

    for _ in range(r.u2()):
        cls.methods.append(_read_method(r, pool))
    _skip_attributes(r)
    return cls


def opcode_stream(code: bytes) -> bytes:
    """
    Reduce a Code attribute's instruction array to its opcodes.

    Operands are dropped: they are constant pool indexes, local slots and
    branch offsets, which change between compilations of the same source.
    """
    out = bytearray()
    pc = 0
    n = len(code)
    while pc < n:
        op = code[pc]
        if not is_defined(op):
            raise DecodeError(None, f"undefined opcode {op:#04x} at pc {pc}")
        out.append(op)
        if op == TABLESWITCH or op == LOOKUPSWITCH:
            # Padding aligns the operands to a multiple of 4 from the start of the code
            at = pc + 1 + (-(pc + 1) % 4)
            if at + (12 if op == TABLESWITCH else 8) > n:
                raise DecodeError(None, f"truncated switch at pc {pc}")
            if op == TABLESWITCH:
                low, high = struct.unpack(">ii", code[at + 4:at + 12])
                if high < low:
                    raise DecodeError(None, f"tableswitch with high < low at pc {pc}")
                nxt = at + 12 + 4 * (high - low + 1)
            else:
                npairs = struct.unpack(">i", code[at + 4:at + 8])[0]
                if npairs < 0:
                    raise DecodeError(None, f"negative lookupswitch pair count at pc {pc}")
                nxt = at + 8 + 8 * npairs
        elif op == WIDE:
            if pc + 1 >= n:
                raise DecodeError(None, f"truncated wide at pc {pc}")
            widened = code[pc + 1]
            if widened not in WIDENABLE:
                raise DecodeError(None, f"wide cannot modify opcode {widened:#04x} at pc {pc}")
            out.append(widened)
            nxt = pc + (6 if widened == IINC else 4)
        else:
            nxt = pc + 1 + OPERAND_WIDTHS[op]
        if nxt > n:
            raise DecodeError(None, f"instruction at pc {pc} runs past end of code")
        pc = nxt
    return bytes(out)


def method_bytecode(data: bytes) -> list[bytes]:
    """Opcode streams of every method with a Code attribute, in declaration order."""
    cls = parse_class(data)
    streams = [opcode_stream(m.code) for m in cls.methods if m.has_code]
    logger.debug(f"decoded {len(streams)} of {len(cls.methods)} methods with code")
    return streams

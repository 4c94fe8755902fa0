"""
Bytecode signatures of JndiManager across Log4j 2 releases.

Patterns are opcode streams (operands stripped). An exact rule must equal a
whole method; a partial rule only pins a method's first and last opcodes,
leaving the middle free for code that varies with the compiler.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class ExactMatchRule:
    versions: tuple[str, ...]
    pattern: bytes

    def matches(self, method: bytes) -> bool:
        return method == self.pattern


@dataclass(frozen=True, slots=True)
class PartialMatchRule:
    prefix: bytes
    suffix: bytes

    def matches(self, method: bytes) -> bool:
        # The prefix and suffix may not overlap
        if len(method) < len(self.prefix) + len(self.suffix):
            return False
        return method.startswith(self.prefix) and method.endswith(self.suffix)


@dataclass(frozen=True, slots=True)
class VersionSignature:
    version: str
    partial_matches: tuple[PartialMatchRule, ...]


def _exact(versions, *pattern) -> ExactMatchRule:
    return ExactMatchRule(tuple(versions), bytes(pattern))


def _partial(prefix, suffix) -> PartialMatchRule:
    return PartialMatchRule(bytes(prefix), bytes(suffix))


EXACT_MATCHES: tuple[ExactMatchRule, ...] = (
    _exact(["2.16.0", "2.15.0"],
           0x2a, 0x01, 0x2b, 0xb7, 0x2a, 0x2c, 0xb5, 0x2a, 0x2d, 0xb5, 0x2a, 0x19, 0xb5, 0x2a, 0x19, 0xb5, 0xb1),
    _exact(["2.16.0"],
           0x2a, 0x01, 0x2b, 0xb7, 0x2a, 0x01, 0xb5, 0x2a, 0x01, 0xb5, 0x2a, 0x01, 0xb5, 0x2a, 0x01, 0xb5, 0xb1),
    _exact(["2.16.0"],
           0x2a, 0xb4, 0xc6, 0x2a, 0xb4, 0xb8, 0xac, 0x04, 0xac),
    _exact(["2.16.0", "2.15.0"],
           0x2a, 0x2b, 0x2c, 0x2d, 0x19, 0x19, 0xb7, 0xb1),
    _exact(["2.9.0-2.14.1", "2.17.0", "2.12.2", "2.8.2"],
           0x2a, 0x01, 0x2b, 0xb7, 0x2a, 0x2c, 0xb5, 0xb1),
    _exact(["2.9.0-2.14.1", "2.16.0", "2.15.0", "2.17.0", "2.8.2"],
           0x12, 0xb6, 0xb2, 0x01, 0xb8, 0xc0, 0xb0),
    _exact(["2.1-2.8.1"],
           0x2a, 0x2b, 0xb7, 0x2a, 0x2c, 0xb5, 0xb1),
    _exact(["2.9.0-2.14.1", "2.8.2", "2.1-2.8.1"],
           0x2a, 0xb4, 0x2b, 0xb9, 0xb0),
    _exact(["2.9.0-2.14.1", "2.17.0", "2.12.2", "2.8.2", "2.1-2.8.1"],
           0x2a, 0x2b, 0x2c, 0xb7, 0xb1),
    _exact(["2.16.0", "2.12.2"],
           0xb8, 0x12, 0x03, 0xb6, 0xac),
    _exact(["2.9.0-2.14.1", "2.15.0", "2.17.0", "2.12.2", "2.8.2"],
           0x2a, 0xb4, 0xb8, 0xac),
    _exact(["2.16.0"],
           0x2a, 0x2b, 0xb7, 0xb1),
    _exact(["2.17.0"],
           0x12, 0xb8, 0xac),
)

# Rules shared by several releases
_TO_STRING = _partial(
    [0xbb, 0x59],
    [0x2a, 0xb4, 0xb6, 0x12, 0xb6, 0x2a, 0xb4, 0xb6, 0x12, 0xb6, 0xb6, 0xb0],
)
_CLINIT = _partial([0xbb, 0x59], [0xb7, 0xb3, 0xb1])
_STATIC_ARRAY = _partial(
    [0xbb, 0x59],
    [0x53, 0x59, 0x04, 0x12, 0x53, 0x59, 0x05, 0x12, 0x53, 0xb8, 0xb3, 0xb1],
)
_CONTEXT_TAIL = [0xb9, 0x19, 0xc6, 0x19, 0x19, 0xb6, 0x19, 0xb2, 0x19, 0xb8, 0xc0, 0xb0]


def _signature(version: str, *partials: PartialMatchRule) -> tuple[str, VersionSignature]:
    return version, VersionSignature(version, tuple(partials))


# Declaration order is the tie-break order of DeclaredPriority.
PARTIAL_SIGNATURES = MappingProxyType(dict([
    _signature(
        "2.9.0-2.14.1",
        _TO_STRING,
        _CLINIT,
    ),
    _signature(
        "2.16.0",
        _partial([0x2a, 0xb4, 0xc7, 0x01, 0xb0, 0xbb, 0x59, 0x2b, 0xb7],
                 [0xb2, 0x12, 0x2b, 0xb9, 0x01, 0xb0, 0x2a, 0xb4, 0x2b, 0xb9, 0xb0]),
        _STATIC_ARRAY,
        _TO_STRING,
    ),
    _signature(
        "2.15.0",
        _partial([0xbb, 0x59, 0x2b, 0xb7],
                 [0xb2, 0x12, 0x2b, 0xb9, 0x01, 0xb0, 0x2a, 0xb4, 0x2b, 0xb9, 0xb0]),
        _STATIC_ARRAY,
        _TO_STRING,
    ),
    _signature(
        "2.17.0",
        _partial([0x2a, 0xb4, 0xc7, 0x01, 0xb0, 0xbb, 0x59, 0x2b, 0xb7],
                 [0xb2, 0x12, 0x2b, 0xb9, 0x01, 0xb0]),
        _TO_STRING,
        _partial([0xb8, 0xbb, 0x59], [0x2a, 0xb6, 0xb6, 0x03, 0xb6, 0xac]),
        _CLINIT,
    ),
    _signature(
        "2.12.2",
        _TO_STRING,
        _CLINIT,
    ),
    _signature(
        "2.8.2",
        _partial([0xbb, 0x59, 0xb7, 0x12, 0xb6, 0xb6, 0x10, 0xb6, 0x12, 0xb6, 0xb6, 0xb6], _CONTEXT_TAIL),
        _CLINIT,
    ),
    _signature(
        "2.1-2.8.1",
        _partial([0xbb, 0x59, 0xb7], _CONTEXT_TAIL),
        _CLINIT,
        _partial([0x2a, 0xb4], [0xb1]),
    ),
]))

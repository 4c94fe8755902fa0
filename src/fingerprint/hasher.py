from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, Optional

from javaclass.archive import PathLike, extract_class

# Bumped whenever the bytes fed to the instruction digest change, so stale
# table entries stop matching instead of matching the wrong thing.
INSTRUCTION_HASH_VERSION = "v0"


@dataclass(frozen=True, slots=True)
class ClassHash:
    size: int
    content_digest: str
    # None when the class was identified without decoding its methods
    instruction_digest: Optional[str]


def hash_class(raw: bytes) -> str:
    """MD5 of the complete class file, as lowercase hex."""
    return hashlib.md5(raw).hexdigest()


def hash_instructions(methods: Iterable[bytes]) -> str:
    """
    MD5 of every method's opcode stream, concatenated in declaration order,
    suffixed with the serialization version.
    """
    h = hashlib.md5()
    for method in methods:
        h.update(method)
    return f"{h.hexdigest()}-{INSTRUCTION_HASH_VERSION}"


def hash_class_entry(jar_path: PathLike, class_name: str) -> ClassHash:
    """Digests of one class in a JAR, in the form the known-hash tables use."""
    data, methods = extract_class(jar_path, class_name)
    return ClassHash(
        size=len(data),
        content_digest=hash_class(data),
        instruction_digest=hash_instructions(methods),
    )

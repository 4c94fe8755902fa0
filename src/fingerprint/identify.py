from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from javaclass.archive import PathLike, class_entry_name, decode_methods, read_class_bytes

from .config import IdentifyConfig
from .hasher import ClassHash, hash_class, hash_instructions
from .matcher import match_signatures
from .strategy import get_strategy
from .tables import UNKNOWN_VERSION, lookup_by_content_hash, lookup_by_instruction_hash

SOURCE_CLASS_HASH = "class-hash"
SOURCE_BYTECODE_HASH = "bytecode-hash"
SOURCE_SIGNATURE = "signature"


@dataclass(frozen=True, slots=True)
class Identification:
    version: str
    matched: bool
    # Which tier produced the answer; None when nothing matched
    source: Optional[str] = None
    class_hash: Optional[ClassHash] = None
    candidates: tuple[str, ...] = ()


class Identifier:
    """
    Runs the identification tiers in order of cost: whole-class digest,
    instruction digest, then signature matching.
    """

    def __init__(self, config: Optional[IdentifyConfig] = None):
        self.config = config or IdentifyConfig()
        self.priority = get_strategy(self.config.priority)

    def identify(self, jar_path: PathLike, class_name: Optional[str] = None) -> Identification:
        class_name = class_name or self.config.class_name
        raw = read_class_bytes(jar_path, class_name)
        return self.identify_class_bytes(raw, origin=f"{jar_path}!{class_entry_name(class_name)}")

    def identify_class_bytes(self, raw: bytes, origin: str = "") -> Identification:
        content_digest = hash_class(raw)
        if self.config.use_content_hash:
            version, found = lookup_by_content_hash(content_digest)
            if found:
                logger.info(f"{origin or 'class'}: class digest matches {version}")
                return Identification(
                    version, True, SOURCE_CLASS_HASH,
                    ClassHash(len(raw), content_digest, None),
                )

        methods = decode_methods(raw, origin)
        class_hash = ClassHash(len(raw), content_digest, hash_instructions(methods))

        if self.config.use_instruction_hash:
            version, found = lookup_by_instruction_hash(class_hash.instruction_digest)
            if found:
                logger.info(f"{origin or 'class'}: bytecode digest matches {version}")
                return Identification(version, True, SOURCE_BYTECODE_HASH, class_hash)

        if self.config.use_signatures:
            result = match_signatures(methods, priority=self.priority)
            if result.matched:
                return Identification(
                    result.version, True, SOURCE_SIGNATURE, class_hash, result.candidates
                )

        logger.debug(f"{origin or 'class'}: no known version ({len(methods)} methods)")
        return Identification(UNKNOWN_VERSION, False, None, class_hash)

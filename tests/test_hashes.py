import hashlib

import pytest

from builders import build_class, write_jar
from fingerprint import tables
from fingerprint.hasher import ClassHash, hash_class, hash_class_entry, hash_instructions
from fingerprint.tables import (
    UNKNOWN_VERSION,
    lookup_by_content_hash,
    lookup_by_instruction_hash,
)

EMPTY_MD5 = "d41d8cd98f00b204e9800998ecf8427e"


def test_hash_class_is_md5_of_raw_bytes():
    assert hash_class(b"") == EMPTY_MD5
    assert hash_class(b"\xca\xfe\xba\xbe") == hashlib.md5(b"\xca\xfe\xba\xbe").hexdigest()


def test_hash_instructions_concatenates_methods_in_order():
    methods = [bytes([0x2a, 0xb7, 0xb1]), bytes([0xb1])]
    expected = hashlib.md5(bytes([0x2a, 0xb7, 0xb1, 0xb1])).hexdigest() + "-v0"
    assert hash_instructions(methods) == expected
    assert hash_instructions([]) == EMPTY_MD5 + "-v0"


def test_hash_instructions_is_order_sensitive():
    a, b = bytes([0x2a, 0xb0]), bytes([0x03, 0xac])
    assert hash_instructions([a, b]) != hash_instructions([b, a])


def test_hash_class_entry(tmp_path):
    data = build_class(bytes([0x2a, 0xb7, 0xb1]), None, bytes([0x12, 0xb0]))
    jar = write_jar(tmp_path / "x.jar", {"a/B.class": data})
    assert hash_class_entry(jar, "a.B") == ClassHash(
        size=len(data),
        content_digest=hashlib.md5(data).hexdigest(),
        instruction_digest=hashlib.md5(bytes([0x2a, 0xb7, 0xb1, 0x12, 0xb0])).hexdigest() + "-v0",
    )


@pytest.mark.parametrize("digest,version", [
    ("3dc5cf97546007be53b2f3d44028fa58", "2.17.0"),
    ("6b15f42c333ac39abacfeeeb18852a44", "2.1-2.3"),
    ("04fdd701809d17465c17c7e603b1b202", "2.9.0-2.11.2"),
])
def test_lookup_by_content_hash(digest, version):
    assert lookup_by_content_hash(digest) == (version, True)


def test_lookup_by_instruction_hash():
    assert lookup_by_instruction_hash("79cd7e06b1a00b375f221414f06bbdd6-v0") == ("2.17.0", True)
    # The bare digest without the serialization version is not a key
    assert lookup_by_instruction_hash("79cd7e06b1a00b375f221414f06bbdd6") == (UNKNOWN_VERSION, False)


def test_lookup_misses():
    assert lookup_by_content_hash(EMPTY_MD5) == (UNKNOWN_VERSION, False)
    assert lookup_by_instruction_hash(EMPTY_MD5 + "-v0") == (UNKNOWN_VERSION, False)


def test_tables_are_read_only():
    with pytest.raises(TypeError):
        tables.CLASS_MD5S["00"] = "1.0"
    with pytest.raises(TypeError):
        tables.BYTECODE_MD5S["00"] = "1.0"

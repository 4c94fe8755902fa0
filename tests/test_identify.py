import json
import sys
from types import MappingProxyType

import pytest
from loguru import logger

from builders import CLASS_2_1, build_class, write_jar
from fingerprint import cli, identify, tables
from fingerprint.config import IdentifyConfig
from fingerprint.hasher import hash_class, hash_instructions
from fingerprint.identify import (
    SOURCE_BYTECODE_HASH,
    SOURCE_CLASS_HASH,
    SOURCE_SIGNATURE,
    Identifier,
)
from fingerprint.tables import JNDI_MANAGER_CLASS, UNKNOWN_VERSION
from javaclass.errors import DecodeError, NotFoundError

ENTRY = "org/apache/logging/log4j/core/net/JndiManager.class"
SHADED = "com.acme.shaded.log4j.core.net.JndiManager"


@pytest.fixture(autouse=True)
def restore_logging():
    # cli.main swaps the loguru sink for one bound to the captured stderr
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def jndi_2_1():
    # An abstract method in the middle must not disturb the order
    methods = CLASS_2_1[:3] + [None] + CLASS_2_1[3:]
    return build_class(*methods, name=ENTRY[:-len(".class")])


@pytest.fixture
def jar(tmp_path, jndi_2_1):
    return write_jar(tmp_path / "log4j-core.jar", {
        ENTRY: jndi_2_1,
        "com/acme/shaded/log4j/core/net/JndiManager.class": jndi_2_1,
        "org/example/Plain.class": build_class(bytes([0x2a, 0xb7, 0xb1])),
    })


def test_identify_by_signature(jar, jndi_2_1):
    result = Identifier().identify(jar)
    assert (result.version, result.matched, result.source) == ("2.1-2.8.1", True, SOURCE_SIGNATURE)
    assert result.candidates == ("2.1-2.8.1",)
    assert result.class_hash.size == len(jndi_2_1)
    assert result.class_hash.content_digest == hash_class(jndi_2_1)
    assert result.class_hash.instruction_digest == hash_instructions(CLASS_2_1)


def test_identify_shaded_class(jar):
    result = Identifier().identify(jar, SHADED)
    assert result.version == "2.1-2.8.1"


def test_content_hash_short_circuits_matching(monkeypatch, jar, jndi_2_1):
    monkeypatch.setattr(tables, "CLASS_MD5S", MappingProxyType({hash_class(jndi_2_1): "2.17.0"}))

    def fail(*args, **kwargs):
        raise AssertionError("signature matcher should not run")

    monkeypatch.setattr(identify, "match_signatures", fail)
    result = Identifier().identify(jar)
    assert (result.version, result.matched, result.source) == ("2.17.0", True, SOURCE_CLASS_HASH)
    assert result.class_hash.content_digest == hash_class(jndi_2_1)
    assert result.class_hash.instruction_digest is None


def test_content_hash_hit_does_not_need_a_decodable_class(monkeypatch):
    raw = b"\xca\xfe\xba\xbe truncated"
    monkeypatch.setattr(tables, "CLASS_MD5S", MappingProxyType({hash_class(raw): "2.15.0"}))
    result = Identifier().identify_class_bytes(raw)
    assert result.version == "2.15.0"
    assert result.class_hash.size == len(raw)
    assert result.class_hash.instruction_digest is None


def test_instruction_hash_tier(monkeypatch, jar):
    monkeypatch.setattr(tables, "BYTECODE_MD5S", MappingProxyType({hash_instructions(CLASS_2_1): "2.6-2.8.1"}))
    result = Identifier().identify(jar)
    assert (result.version, result.source) == ("2.6-2.8.1", SOURCE_BYTECODE_HASH)


def test_tiers_can_be_disabled(monkeypatch, jar, jndi_2_1):
    monkeypatch.setattr(tables, "CLASS_MD5S", MappingProxyType({hash_class(jndi_2_1): "2.17.0"}))
    config = IdentifyConfig(use_content_hash=False, use_instruction_hash=False)
    result = Identifier(config).identify(jar)
    assert (result.version, result.source) == ("2.1-2.8.1", SOURCE_SIGNATURE)

    config = IdentifyConfig(use_content_hash=False, use_signatures=False)
    result = Identifier(config).identify(jar)
    assert (result.version, result.matched, result.source) == (UNKNOWN_VERSION, False, None)


def test_unknown_class_is_a_result_not_an_error(jar):
    result = Identifier().identify(jar, "org.example.Plain")
    assert (result.version, result.matched) == (UNKNOWN_VERSION, False)
    assert result.class_hash is not None


def test_missing_class_is_an_error(jar):
    with pytest.raises(NotFoundError):
        Identifier().identify(jar, "org.example.Missing")


def test_undecodable_class_is_an_error(tmp_path):
    path = write_jar(tmp_path / "bad.jar", {ENTRY: b"\xca\xfe\xba\xbe\x00"})
    with pytest.raises(DecodeError):
        Identifier().identify(path)


def test_unknown_priority_is_rejected():
    with pytest.raises(ValueError):
        Identifier(IdentifyConfig(priority="newest"))


def test_config_from_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"priority": "declared", "use_content_hash": False}))
    config = IdentifyConfig.from_json(path)
    assert config.priority == "declared"
    assert not config.use_content_hash
    assert config.class_name == JNDI_MANAGER_CLASS

    path.write_text(json.dumps({"prioirty": "declared"}))
    with pytest.raises(ValueError, match="prioirty"):
        IdentifyConfig.from_json(path)


def test_config_from_json_rejects_non_objects(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(["priority"]))
    with pytest.raises(ValueError, match="JSON object"):
        IdentifyConfig.from_json(path)


def test_config_from_json_missing_file(tmp_path):
    with pytest.raises(ValueError, match="cannot read config"):
        IdentifyConfig.from_json(tmp_path / "nope.json")


@pytest.mark.parametrize("content", [None, "[\"priority\"]", "{not json"])
def test_cli_reports_bad_config(jar, tmp_path, content):
    path = tmp_path / "config.json"
    if content is not None:
        path.write_text(content)
    assert cli.main(["identify", str(jar), "--config", str(path)]) == 2


def test_cli_identify(jar, capsys):
    assert cli.main(["identify", str(jar)]) == 0
    assert f"{jar};2.1-2.8.1;signature" in capsys.readouterr().out


def test_cli_identify_unknown_exits_1(jar, capsys):
    assert cli.main(["identify", str(jar), "--class", "org.example.Plain"]) == 1
    assert f"{jar};unknown;-" in capsys.readouterr().out


def test_cli_hash(jar, jndi_2_1, capsys):
    assert cli.main(["hash", str(jar)]) == 0
    out = capsys.readouterr().out
    assert f"{len(jndi_2_1)};{hash_class(jndi_2_1)};{hash_instructions(CLASS_2_1)}" in out


def test_cli_names(jar, capsys):
    assert cli.main(["names", str(jar)]) == 0
    assert str(jar) in capsys.readouterr().out


def test_cli_reports_jar_errors(tmp_path):
    assert cli.main(["identify", str(tmp_path / "missing.jar")]) == 2


def test_cli_info(capsys):
    assert cli.main(["--info"]) == 0
    out = capsys.readouterr().out
    assert "log4j-fingerprint" in out
    assert cli.__version__ in out

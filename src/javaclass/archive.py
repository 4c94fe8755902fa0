from __future__ import annotations

import zipfile
import zlib
from pathlib import Path
from typing import Union

from loguru import logger

from .classfile import method_bytecode
from .errors import ArchiveError, DecodeError, NotFoundError

PathLike = Union[str, Path]


def class_entry_name(class_name: str) -> str:
    """org.example.Foo -> org/example/Foo.class (zip entries always use /)"""
    return class_name.replace(".", "/") + ".class"


def open_jar(jar_path: PathLike) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(jar_path)
    except (OSError, zipfile.BadZipFile) as e:
        raise ArchiveError(str(jar_path), f"cannot open archive: {e}") from e


def _read_entry(jar: zipfile.ZipFile, jar_path: PathLike, entry: str) -> bytes:
    try:
        info = jar.getinfo(entry)
    except KeyError:
        raise NotFoundError(str(jar_path), f"no entry {entry}") from None
    try:
        with jar.open(info) as f:
            return f.read()
    except (OSError, zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError) as e:
        raise ArchiveError(str(jar_path), f"cannot read {entry}: {e}") from e


def read_class_bytes(jar_path: PathLike, class_name: str) -> bytes:
    entry = class_entry_name(class_name)
    with open_jar(jar_path) as jar:
        data = _read_entry(jar, jar_path, entry)
    logger.debug(f"read {len(data)} bytes from {jar_path}!{entry}")
    return data


def decode_methods(data: bytes, origin: str = "") -> list[bytes]:
    """Decode ``data`` into per-method opcode streams, tagging errors with ``origin``."""
    try:
        return method_bytecode(data)
    except DecodeError as e:
        raise DecodeError(origin or e.path, e.msg) from e


def extract_class(jar_path: PathLike, class_name: str) -> tuple[bytes, list[bytes]]:
    """
    Read a class out of a JAR and decode its methods.

    Returns the raw class bytes and the opcode stream of every method that has
    code, in declaration order.

    Raises:
      ArchiveError: the archive cannot be opened or the entry cannot be read
      NotFoundError: the archive has no entry for ``class_name``
      DecodeError: the entry is not a valid class file
    """
    data = read_class_bytes(jar_path, class_name)
    return data, decode_methods(data, f"{jar_path}!{class_entry_name(class_name)}")

from __future__ import annotations

import zipfile
from dataclasses import dataclass
from typing import Iterable, Union

from .archive import PathLike, open_jar

# Accumulators saturate here rather than growing without bound
MAX_ACCUMULATOR = 2**31 - 1

_CLASS_SUFFIX = ".class"


@dataclass(frozen=True, slots=True)
class AverageNameLengths:
    package_name: float
    class_name: float


def _add_saturating(left: int, right: int) -> int:
    if left > MAX_ACCUMULATOR - right:
        return MAX_ACCUMULATOR
    return left + right


def _average(total: int, count: int) -> float:
    if count == 0:
        return 0.0
    return float(total) / float(count)


def average_name_lengths(entries: Iterable[Union[str, zipfile.ZipInfo]]) -> AverageNameLengths:
    """
    Average package segment and class name lengths over the .class entries.

    Shaded or obfuscated copies of a library tend to have unusually short
    names, so this is a hint for flagging renaming. It is not evidence of a
    version.

    Packages are counted once per unique path segment; classes once per entry.
    Counts and length sums saturate at MAX_ACCUMULATOR. On an archive big
    enough to hit that, a saturated count biases the average high and a
    saturated sum biases it low.
    """
    package_names: set[str] = set()
    classes_found = total_class_name_size = 0
    for entry in entries:
        name = entry.filename if isinstance(entry, zipfile.ZipInfo) else entry
        if not name.endswith(_CLASS_SUFFIX):
            continue
        *packages, class_file = name.split("/")
        package_names.update(p for p in packages if p)
        classes_found = _add_saturating(classes_found, 1)
        total_class_name_size = _add_saturating(
            total_class_name_size, len(class_file) - len(_CLASS_SUFFIX)
        )

    packages_found = total_package_name_size = 0
    for package in package_names:
        packages_found = _add_saturating(packages_found, 1)
        total_package_name_size = _add_saturating(total_package_name_size, len(package))

    return AverageNameLengths(
        package_name=_average(total_package_name_size, packages_found),
        class_name=_average(total_class_name_size, classes_found),
    )


def average_name_lengths_for_jar(jar_path: PathLike) -> AverageNameLengths:
    with open_jar(jar_path) as jar:
        return average_name_lengths(jar.infolist())

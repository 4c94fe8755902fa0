from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Union

from .tables import JNDI_MANAGER_CLASS


@dataclass(slots=True)
class IdentifyConfig:
    """
    Options for Identifier. Each tier can be switched off, mostly useful for
    checking that the signature tables still recognise a release whose
    digests are already catalogued.
    """
    use_content_hash: bool = True
    use_instruction_hash: bool = True
    use_signatures: bool = True
    priority: str = "specificity"  # "specificity" or "declared" (see strategy.py)
    class_name: str = JNDI_MANAGER_CLASS
    debug: bool = False

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "IdentifyConfig":
        """
        Load overrides from a JSON object; unknown keys are rejected. Every
        failure, unreadable file included, is a ValueError naming the file.
        """
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except OSError as e:
            raise ValueError(f"{path}: cannot read config: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{path}: config must be a JSON object, not {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"{path}: unknown config keys {sorted(unknown)}")
        return cls(**data)

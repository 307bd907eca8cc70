"""Worlds file loader.

Parses the plain-text target list used by the checker:

    # identifier  label
    5     UK
    42    US
    oldschool1  OSRS

Each non-blank line is split on whitespace; the first token is the world
identifier and the second the label. Extra tokens are ignored and a missing
label becomes an empty string. Lines starting with '#' are comments.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List


@dataclass(frozen=True)
class Target:
    identifier: str
    label: str = ""

    def hostname(self, suffix: str = "") -> str:
        return resolve_host(self.identifier, suffix)


def resolve_host(identifier: str, suffix: str = "") -> str:
    """Map a world identifier to a host name: '5' -> 'world5<suffix>'."""
    identifier = identifier.strip()
    if identifier.isdigit():
        return f"world{identifier}{suffix}"
    return f"{identifier}{suffix}"


def parse_worlds(text: str) -> List[Target]:
    targets: List[Target] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        parts = stripped.split()
        label = parts[1] if len(parts) > 1 else ""
        targets.append(Target(identifier=parts[0], label=label))
    return targets


def load_worlds(path: str | Path) -> List[Target]:
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    targets = parse_worlds(text)
    if not targets:
        raise ValueError(f"No worlds defined in {path}")
    return targets

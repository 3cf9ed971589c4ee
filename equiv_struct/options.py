# options.py: runtime switches for the structural sweep

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional

# classic pass flags -> option field
FLAGS = {
    "-fwd": "forward_only",
    "-icells": "include_internal",
}


@dataclass(frozen=True)
class SweepOptions:
    forward_only: bool = False       # never run the backward phase
    include_internal: bool = False   # also bucket `$`-prefixed cell types
    max_iterations: Optional[int] = None

    def __post_init__(self):
        if self.max_iterations is not None and self.max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}")

    @classmethod
    def from_flags(cls, flags: Iterable[str], **overrides) -> "SweepOptions":
        """Build options from pass-style flags such as ``["-fwd", "-icells"]``."""
        values = {}
        for flag in flags:
            if flag not in FLAGS:
                raise ValueError(f"unknown flag: {flag}")
            values[FLAGS[flag]] = True
        values.update(overrides)
        return cls(**values)

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class InputValidationResult:
    """
    Outcome of checking an uploaded file before processing.

    errors stop the pipeline; warnings are surfaced but processing continues.
    """
    is_valid: bool
    file_size: int
    needs_scaling: bool = False
    width: int = 0
    height: int = 0
    format: str = ""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

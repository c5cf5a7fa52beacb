from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    validation_failed_message: Optional[str] = None

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def failed(cls, message: str) -> "ValidationResult":
        return cls(is_valid=False, validation_failed_message=message)

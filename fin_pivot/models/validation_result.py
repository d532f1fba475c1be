from __future__ import annotations

from dataclasses import dataclass, field

"""ValidationResult model shared by every validator in the pipeline.

Merging is associative: ``is_valid`` is the AND of both sides, ``errors`` and
``warnings`` are concatenated in call order. Sheet-level aggregation prefixes
every message with the sheet name (``"CONTABIL: Row 3: seg - ..."``).
"""

__all__ = [
    "ValidationResult",
]


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one validation pass.

    Attributes:
        is_valid: False when at least one error was recorded
        errors: Human-readable error messages (order preserved)
        warnings: Human-readable warnings; never affect ``is_valid``
    """
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def from_messages(cls, errors: list[str], warnings: list[str]) -> ValidationResult:
        return cls(is_valid=not errors, errors=list(errors), warnings=list(warnings))

    @classmethod
    def failure(cls, message: str) -> ValidationResult:
        return cls(is_valid=False, errors=[message], warnings=[])

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Return a new result combining ``self`` followed by ``other``."""
        return ValidationResult(
            is_valid=self.is_valid and other.is_valid,
            errors=[*self.errors, *other.errors],
            warnings=[*self.warnings, *other.warnings],
        )

    def prefixed(self, prefix: str) -> ValidationResult:
        """Return a copy whose messages are prefixed with ``"<prefix>: "``."""
        return ValidationResult(
            is_valid=self.is_valid,
            errors=[f"{prefix}: {e}" for e in self.errors],
            warnings=[f"{prefix}: {w}" for w in self.warnings],
        )

    def with_warning(self, message: str) -> ValidationResult:
        return ValidationResult(
            is_valid=self.is_valid,
            errors=list(self.errors),
            warnings=[*self.warnings, message],
        )

    @classmethod
    def combine(cls, *results: ValidationResult) -> ValidationResult:
        merged = cls()
        for r in results:
            merged = merged.merge(r)
        return merged

    def to_dict(self) -> dict[str, object]:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }

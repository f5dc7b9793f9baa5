"""
Shape validation for capability right definitions.

Everything here is pure: no database access, no exceptions for bad input.
Results are returned as ``ValidationResult`` objects carrying field-level
errors and non-fatal warnings so that callers can decide whether to reject.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .constants import (
    ALLOWED_ACTIONS,
    MIN_CATEGORY_LENGTH,
    RIGHT_CODE_PATTERN,
    ROLE_KEY_PATTERN,
)
from .exceptions import ValidationError

_RIGHT_CODE_RE = re.compile(RIGHT_CODE_PATTERN)
_ROLE_KEY_RE = re.compile(ROLE_KEY_PATTERN)


@dataclass(frozen=True)
class FieldError:
    field: str
    code: str
    message: str
    value: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"field": self.field, "code": self.code, "message": self.message}
        if self.value is not None:
            data["value"] = self.value
        return data


@dataclass
class ValidationResult:
    errors: List[FieldError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [error.to_dict() for error in self.errors],
            "warnings": list(self.warnings),
        }

    def raise_for_errors(self, message="Validation failed"):
        if not self.valid:
            raise ValidationError(message, errors=[error.to_dict() for error in self.errors])


class CapabilityDefinitionValidator:
    """Validators for right codes, role keys and right sets"""

    @staticmethod
    def validate_right_code(code: Any, field_name: str = "right_code") -> ValidationResult:
        """Check ``{category}:{action}`` format, the action allow-list and category length"""
        result = ValidationResult()

        if not isinstance(code, str):
            result.errors.append(
                FieldError(field_name, "invalid_type", "Right code must be a string")
            )
            return result

        if not _RIGHT_CODE_RE.fullmatch(code):
            result.errors.append(
                FieldError(
                    field_name,
                    "invalid_format",
                    "Right code must match '{category}:{action}' using lowercase letters and underscores",
                    code,
                )
            )
            return result

        category, action = code.split(":", 1)
        if action not in ALLOWED_ACTIONS:
            result.errors.append(
                FieldError(
                    field_name,
                    "invalid_action",
                    f"Action '{action}' is not one of: {', '.join(sorted(ALLOWED_ACTIONS))}",
                    code,
                )
            )
        if len(category) < MIN_CATEGORY_LENGTH:
            result.errors.append(
                FieldError(
                    field_name,
                    "category_too_short",
                    f"Category '{category}' must be at least {MIN_CATEGORY_LENGTH} characters",
                    code,
                )
            )

        return result

    @staticmethod
    def validate_role_key(key: Any, field_name: str = "role_key") -> ValidationResult:
        result = ValidationResult()
        if not isinstance(key, str) or not _ROLE_KEY_RE.fullmatch(key):
            result.errors.append(
                FieldError(
                    field_name,
                    "invalid_format",
                    "Role key must start with a lowercase letter and contain only lowercase letters, digits and underscores",
                    key if isinstance(key, str) else None,
                )
            )
        return result

    @staticmethod
    def validate_role_key_batch(keys: Iterable[Any], field_name: str = "role_key") -> ValidationResult:
        """Validate several role keys at once and flag duplicates"""
        result = ValidationResult()
        seen = set()
        for key in keys:
            result.merge(CapabilityDefinitionValidator.validate_role_key(key, field_name))
            if isinstance(key, str):
                if key in seen:
                    result.errors.append(
                        FieldError(field_name, "duplicate", f"Role key '{key}' is listed more than once", key)
                    )
                seen.add(key)
        return result

    @staticmethod
    def validate_capability_right_set(rights: Iterable[Any]) -> ValidationResult:
        """
        Validate the full set of right codes declared for one capability.

        Accepts plain codes or mappings with a ``right_code`` key. Fails on an
        empty set and on duplicates; warns when no right grants read access.
        """
        result = ValidationResult()
        codes = [
            right.get("right_code") if isinstance(right, dict) else right
            for right in (rights or [])
        ]

        if not codes:
            result.errors.append(
                FieldError("rights", "empty", "A capability must declare at least one right")
            )
            return result

        seen = set()
        for index, code in enumerate(codes):
            result.merge(
                CapabilityDefinitionValidator.validate_right_code(code, f"rights[{index}].right_code")
            )
            if isinstance(code, str):
                if code in seen:
                    result.errors.append(
                        FieldError(
                            f"rights[{index}].right_code",
                            "duplicate",
                            f"Right code '{code}' is declared more than once",
                            code,
                        )
                    )
                seen.add(code)

        if not any(isinstance(code, str) and code.endswith(":view") for code in codes):
            result.warnings.append(
                "No right ends in ':view'; most capabilities should expose at least read access"
            )

        return result

    @staticmethod
    def parse_right_code(code: str) -> Tuple[str, str]:
        category, action = code.split(":", 1)
        return category, action

    @staticmethod
    def suggest_right_code(surface_id: str, action: str) -> str:
        """
        Build a right code from a UI surface identifier.

        ``admin/community/members`` + ``view`` -> ``members:view``.
        """
        segment = re.split(r"[/.]", surface_id.strip().strip("/"))[-1]
        category = re.sub(r"[^a-z_]+", "_", segment.lower()).strip("_")
        if len(category) < MIN_CATEGORY_LENGTH:
            category = "feature"
        return f"{category}:{action}"

"""
Uniform instruction result.

Every instruction answers with one of these. Callers branch on
`success` and read only the documented extra fields.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Optional

from .domain import ErrorKind, TokenRelError

# Python attribute -> wire key
_WIRE_KEYS = {
    "require_confirmation": "requireConfirmation",
    "token_count": "tokenCount",
    "token_a": "tokenA",
    "token_b": "tokenB",
    "file_path": "filePath",
}


@dataclass
class InstructionResult:
    """
    Result of one dispatched instruction.

    `result` holds whatever a relation predicate returned; it is never
    coerced. `error` is set on failures only.
    """
    success: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None

    warning: Optional[bool] = None
    require_confirmation: Optional[bool] = None
    token_count: Optional[int] = None
    relation: Any = None
    result: Any = None
    token_a: Optional[str] = None
    token_b: Optional[str] = None
    file_path: Optional[str] = None

    # Dialog instructions
    confirmed: Optional[bool] = None
    value: Optional[str] = None
    cancelled: Optional[bool] = None

    @classmethod
    def ok(cls, message: Optional[str] = None, **extras: Any) -> InstructionResult:
        return cls(success=True, message=message, **extras)

    @classmethod
    def from_error(cls, error: TokenRelError) -> InstructionResult:
        """Convert a raised engine error into a failure result."""
        return cls(
            success=False,
            message=error.message,
            error=error.kind,
            **error.extras,
        )

    def to_dict(self) -> dict:
        """
        Wire form: camelCase keys, unset extras omitted.

        `result` is always present on a successful comparison, even
        when the predicate returned None.
        """
        payload: dict[str, Any] = {"success": self.success}
        for f in fields(self):
            if f.name == "success":
                continue
            value = getattr(self, f.name)
            if value is None and not (f.name == "result" and self.token_a is not None):
                continue
            if isinstance(value, ErrorKind):
                value = value.value
            elif hasattr(value, "to_dict"):
                value = value.to_dict()
            payload[_WIRE_KEYS.get(f.name, f.name)] = value
        return payload

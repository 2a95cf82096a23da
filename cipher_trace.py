#!/usr/bin/env python3
"""
Shared building blocks for the step-by-step cipher engines.

This module includes:
- Error kinds reported by every engine (InvalidParameter, EmptyInput, InvalidKey)
- The trace step and result structures consumed by the presentation layer
- The CipherEngine base class with structured error reporting
- Input coercion and bit helpers used by the stream ciphers
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

MASK_32 = 0xFFFFFFFF

TextOrBytes = Union[str, bytes, bytearray]


# ===== Errors =====

class CipherError(ValueError):
    """Base class for errors reported by a cipher engine."""

    kind = "CipherError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_issue(self) -> "CipherIssue":
        return CipherIssue(kind=self.kind, message=self.message)


class InvalidParameter(CipherError):
    """A numeric or enumerated option is missing, malformed or out of range."""

    kind = "InvalidParameter"


class EmptyInput(CipherError):
    """Plaintext or key is empty."""

    kind = "EmptyInput"


class InvalidKey(CipherError):
    """The key has nothing usable in it (e.g. no letters for Vigenère)."""

    kind = "InvalidKey"


@dataclass(frozen=True)
class CipherIssue:
    """Structured form of an error: what went wrong and why."""

    kind: str
    message: str


# ===== Trace and results =====

@dataclass
class TraceStep:
    """
    One named intermediate snapshot of a run.

    Args:
        phase: Algorithm phase the step belongs to (e.g. 'ksa', 'prga', 'round')
        label: Short human readable title for the step
        values: Plain Python values captured at this step
    """

    phase: str
    label: str
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CipherResult:
    """Outcome of a run: trace of intermediate values plus an optional error."""

    name: str
    trace: List[TraceStep] = field(default_factory=list)
    error: Optional[CipherIssue] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def steps(self, phase: str) -> List[TraceStep]:
        """Return the trace steps of a single phase, in order."""
        return [step for step in self.trace if step.phase == phase]


@dataclass
class CipherRequest:
    """Plaintext, key and engine-specific options for a single run."""

    plaintext: bytes
    key: bytes
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_text(cls, plaintext: str, key: str, **options) -> "CipherRequest":
        return cls(plaintext.encode("utf-8"), key.encode("utf-8"), dict(options))

    def validate(self) -> None:
        require_input(self.plaintext, self.key)


class CipherEngine(ABC):
    """Base class of the three visualized ciphers."""

    name = ""

    @abstractmethod
    def run(self, plaintext: TextOrBytes, key: TextOrBytes, **options) -> CipherResult:
        """
        Run the cipher and capture every intermediate value.

        Raises:
            CipherError: if the input or an option is invalid
        """

    def execute(self, request: CipherRequest) -> CipherResult:
        """
        Validate a request and run it, reporting failures as a result.

        Args:
            request: Plaintext, key and options to run with

        Returns:
            The engine's result, or a bare CipherResult carrying the error
        """
        try:
            request.validate()
            return self.run(request.plaintext, request.key, **request.options)
        except CipherError as e:
            logger.warning("%s rejected input: %s: %s", self.name, e.kind, e.message)
            return CipherResult(name=self.name, error=e.as_issue())


# ===== Input helpers =====

def as_bytes(value: TextOrBytes) -> bytes:
    """Encode text as UTF-8; pass byte strings through."""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def as_text(value: TextOrBytes) -> str:
    """Decode UTF-8 byte strings; pass text through."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def require_input(plaintext: TextOrBytes, key: TextOrBytes) -> None:
    """Reject empty plaintext or key before any engine work starts."""
    if plaintext is None or len(plaintext) == 0:
        raise EmptyInput("Plaintext cannot be empty")
    if key is None or len(key) == 0:
        raise EmptyInput("Key cannot be empty")


def _parse_int(value: Any, name: str, expected: str) -> int:
    if value is None or isinstance(value, bool):
        raise InvalidParameter(f"{name} is required and must be {expected}")
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 10)
        except ValueError:
            raise InvalidParameter(f"{name} must be {expected}, got {text!r}") from None
    if not isinstance(value, int):
        raise InvalidParameter(f"{name} must be {expected}, got {value!r}")
    return value


def parse_positive_int(value: Any, name: str) -> int:
    """
    Parse a strictly positive integer option.

    Args:
        value: Integer or decimal string supplied by the caller
        name: Option name used in the error message

    Returns:
        The parsed integer

    Raises:
        InvalidParameter: if the value is missing, non-numeric or <= 0
    """
    number = _parse_int(value, name, "a positive number")
    if number <= 0:
        raise InvalidParameter(f"{name} must be a positive number, got {number}")
    return number


def parse_word32(value: Any, name: str) -> int:
    """
    Parse an unsigned 32-bit integer option (0 to 2^32 - 1).

    Raises:
        InvalidParameter: if the value is missing, non-numeric or out of range
    """
    expected = f"an integer from 0 to {MASK_32}"
    number = _parse_int(value, name, expected)
    if not 0 <= number <= MASK_32:
        raise InvalidParameter(f"{name} must be {expected}, got {number}")
    return number


def fit_length(data: bytes, size: int) -> bytes:
    """Zero-pad or truncate data to exactly size bytes."""
    return data[:size].ljust(size, b"\x00")


# ===== Bit helpers =====

def rotate_left32(word: int, n: int) -> int:
    """Rotate a 32-bit word left by n bits."""
    n &= 31
    return ((word << n) | (word >> (32 - n))) & MASK_32


def to_binary(value: int, width: int = 8) -> str:
    """Binary string of value, zero-padded to width digits."""
    return format(value, f"0{width}b")


def xor_bits(left: int, right: int, width: int = 8) -> List[Dict[str, Any]]:
    """
    Bit-by-bit XOR of two values, most significant bit first.

    Returns:
        One dict per bit position with the input bits and the result bit
    """
    rows = []
    for pos in range(width - 1, -1, -1):
        a = (left >> pos) & 1
        b = (right >> pos) & 1
        rows.append({"bit": pos, "left": a, "right": b, "result": a ^ b})
    return rows

"""Error records and the tagged result type.

Errors cross the public API as data, never as exceptions. The two
exception classes here are raised inside a single conversion and turned
into records at the boundary (``parse``, ``generate``, ``convert``).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ParseError:
    """Malformed input. Positions are 1-based."""

    message: str
    line: int
    column: int
    file_path: str = "<memory>"

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}:{self.column}: {self.message}"


class ValidationErrorKind(str, Enum):
    STRUCTURAL = "structural"  # fatal
    UNKNOWN_WIDGET = "unknownWidget"
    UNRESOLVED_PROP = "unresolvedProp"


@dataclass
class ValidationError:
    """A structural problem or a coverage warning found in an IR tree."""

    kind: ValidationErrorKind
    path: str
    message: str
    file_path: str = "<memory>"

    @property
    def fatal(self) -> bool:
        return self.kind is ValidationErrorKind.STRUCTURAL

    def __str__(self) -> str:
        return f"{self.file_path}: {self.path}: [{self.kind.value}] {self.message}"


@dataclass
class GenerationError:
    """IR shape that cannot be expressed in the target."""

    message: str
    node_path: str
    file_path: str = "<memory>"

    def __str__(self) -> str:
        return f"{self.file_path}: {self.node_path}: {self.message}"


class ResultStatus(str, Enum):
    SUCCESS = "success"
    SUCCESS_WITH_WARNINGS = "success_with_warnings"
    FAILURE = "failure"


@dataclass
class Result(Generic[T]):
    """Tagged outcome of a public operation.

    ``errors`` non-empty means failure and ``value`` is ``None``;
    ``warnings`` may accompany a successful value.
    """

    value: Optional[T] = None
    errors: List[object] = field(default_factory=list)
    warnings: List[object] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def status(self) -> ResultStatus:
        if self.errors:
            return ResultStatus.FAILURE
        if self.warnings:
            return ResultStatus.SUCCESS_WITH_WARNINGS
        return ResultStatus.SUCCESS

    def unwrap(self) -> T:
        if self.errors:
            raise ValueError("; ".join(str(e) for e in self.errors))
        return self.value

    @classmethod
    def success(cls, value: T, warnings: Optional[List[object]] = None) -> "Result[T]":
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def failure(cls, *errors: object, warnings: Optional[List[object]] = None) -> "Result[T]":
        return cls(value=None, errors=list(errors), warnings=list(warnings or []))


class SourceSyntaxError(Exception):
    """Raised by the lexers and parsers on malformed input."""

    def __init__(self, message: str, line: int, column: int):
        super().__init__(f"{line}:{column}: {message}")
        self.message = message
        self.line = line
        self.column = column

    def to_error(self, file_path: str) -> ParseError:
        return ParseError(self.message, self.line, self.column, file_path)


class GenerationFailure(Exception):
    """Raised by a generator when an IR node cannot be emitted."""

    def __init__(self, message: str, node_path: str):
        super().__init__(f"{node_path}: {message}")
        self.message = message
        self.node_path = node_path

    def to_error(self, file_path: str) -> GenerationError:
        return GenerationError(self.message, self.node_path, file_path)

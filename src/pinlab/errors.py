from __future__ import annotations
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    EMPTY_SOURCE = "EmptySource"
    SYNTAX = "SyntaxError"
    MISSING_LIBRARY = "MissingLibraryDeclaration"
    MISSING_ENTRY_POINTS = "MissingEntryPoints"
    UNDECLARED_PIN = "UndeclaredPinUsage"
    INVALID_PIN = "InvalidPinNumber"
    INVALID_VALUE = "InvalidDirectionOrValue"
    LEGACY_STATEMENT = "UnsupportedLegacyStatement"
    UNINITIALIZED_TIMER = "UninitializedTimer"
    UNRECOGNIZED = "UnrecognizedStatement"


class ProgramError(Exception):
    """
    Base for everything a learner's program can get wrong.
    Carries a machine-readable kind, the 1-based source line (0 when the
    problem is not tied to a line) and a corrective suggestion.
    """
    kind: ErrorKind = ErrorKind.UNRECOGNIZED

    def __init__(self, message: str, line_number: int = 0, suggestion: Optional[str] = None):
        self.line_number = line_number
        self.suggestion = suggestion
        self.detail = message
        text = f"Line {line_number}: {message}" if line_number else message
        if suggestion:
            text = f"{text} {suggestion}"
        self.message = text
        super().__init__(text)

    def as_dict(self) -> dict:
        return {"kind": self.kind.value, "line_number": self.line_number,
                "message": self.message, "suggestion": self.suggestion}


class EmptySourceError(ProgramError): kind = ErrorKind.EMPTY_SOURCE


class BracketSyntaxError(ProgramError):
    kind = ErrorKind.SYNTAX

    def __init__(self, message: str, line_number: int, column: int):
        self.column = column
        super().__init__(f"Syntax error: {message} at line {line_number}, column {column}", 0)
        self.line_number = line_number


class MissingLibraryDeclaration(ProgramError): kind = ErrorKind.MISSING_LIBRARY
class MissingEntryPoints(ProgramError): kind = ErrorKind.MISSING_ENTRY_POINTS
class UndeclaredPinUsage(ProgramError): kind = ErrorKind.UNDECLARED_PIN
class InvalidPinNumber(ProgramError): kind = ErrorKind.INVALID_PIN
class InvalidDirectionOrValue(ProgramError): kind = ErrorKind.INVALID_VALUE
class UnsupportedLegacyStatement(ProgramError): kind = ErrorKind.LEGACY_STATEMENT
class UninitializedTimer(ProgramError): kind = ErrorKind.UNINITIALIZED_TIMER
class UnrecognizedStatement(ProgramError): kind = ErrorKind.UNRECOGNIZED

#!/usr/bin/env python3

"""
Custom exceptions for the gene model converter.

Provides specific exception types for better error handling and debugging.
"""

class ConverterError(Exception):
    """Base exception for all converter-related errors."""
    pass


class ConfigurationError(ConverterError):
    """Error in converter configuration."""
    pass


class ParseError(ConverterError):
    """Error occurred while reading an input file."""

    def __init__(self, message: str, filename: str = "", line_number: int = 0):
        super().__init__(message)
        self.filename = filename
        self.line_number = line_number

    def __str__(self):
        if self.filename and self.line_number:
            return f"Parse error in {self.filename} at line {self.line_number}: {super().__str__()}"
        elif self.filename:
            return f"Parse error in {self.filename}: {super().__str__()}"
        return super().__str__()


class RecordError(ConverterError):
    """A single annotation line could not be turned into a feature record."""

    def __init__(self, message: str, line_number: int = 0):
        super().__init__(message)
        self.line_number = line_number

    def __str__(self):
        if self.line_number:
            return f"Line {self.line_number}: {super().__str__()}"
        return super().__str__()


class OutputError(ConverterError):
    """The output destination could not be written."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path

    def __str__(self):
        if self.path:
            return f"Output error for {self.path}: {super().__str__()}"
        return super().__str__()


class MemoryLimitError(ConverterError):
    """Memory usage exceeded limits."""

    def __init__(self, message: str, current_usage: float, limit: float):
        super().__init__(message)
        self.current_usage = current_usage
        self.limit = limit

    def __str__(self):
        return f"Memory error: {super().__str__()} (current: {self.current_usage:.1f}MB, limit: {self.limit:.1f}MB)"

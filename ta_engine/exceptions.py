"""
Custom exceptions for the ta_engine package.

This module defines all custom exceptions raised by the classifier,
the loader and the indicator engine.
"""

from typing import Optional


class IndicatorError(Exception):
    """Base exception for all indicator-related errors."""

    pass


class LoaderError(IndicatorError):
    """Exception raised when loading tabular data fails."""

    pass


class ValidationError(IndicatorError):
    """Exception raised when input validation fails."""

    pass


class MissingColumnError(ValidationError):
    """Exception raised when a column required by an indicator is missing."""

    def __init__(self, column: str, indicator: str = "") -> None:
        self.column = column
        self.indicator = indicator
        message = f"Missing required column '{column}'"
        if indicator:
            message += f" for {indicator}"
        super().__init__(message)


class InsufficientDataError(ValidationError):
    """Exception raised when a table has fewer rows than a window needs."""

    def __init__(self, required: int, actual: int, indicator: str = "") -> None:
        self.required = required
        self.actual = actual
        self.indicator = indicator
        label = indicator or "indicator"
        message = (
            f"Not enough data points ({actual}) for {label} window "
            f"(requires at least {required})"
        )
        super().__init__(message)


class InvalidParameterError(ValidationError):
    """Exception raised when a numeric parameter is out of range."""

    def __init__(self, detail: str, indicator: str = "") -> None:
        self.detail = detail
        self.indicator = indicator
        message = f"Invalid parameter: {detail}"
        if indicator:
            message = f"Invalid parameter for {indicator}: {detail}"
        super().__init__(message)


class InvalidDataTypeError(ValidationError):
    """Exception raised when column values cannot be converted."""

    def __init__(self, column: str, details: str = "") -> None:
        self.column = column
        message = f"Invalid data type in column '{column}'"
        if details:
            message += f": {details}"
        super().__init__(message)


class FileNotFoundError(LoaderError):
    """Exception raised when the input file is not found."""

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        super().__init__(f"File not found: {file_path}")


class EmptyFileError(LoaderError):
    """Exception raised when the input file is empty."""

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        super().__init__(f"File is empty: {file_path}")


class UnsupportedFileTypeError(LoaderError):
    """Exception raised for file types the loader cannot read."""

    def __init__(self, file_type: str) -> None:
        self.file_type = file_type
        super().__init__(f"Unsupported file type: '{file_type}' (expected csv or parquet)")


class ConfigError(IndicatorError):
    """Exception raised when an indicator configuration cannot be loaded."""

    def __init__(self, detail: str, path: Optional[str] = None) -> None:
        self.detail = detail
        self.path = path
        message = f"Invalid configuration: {detail}"
        if path:
            message = f"Invalid configuration in {path}: {detail}"
        super().__init__(message)

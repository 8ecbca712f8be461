"""Exception hierarchy for md2docx."""

from __future__ import annotations


class Md2DocxError(Exception):
    """Base class for all md2docx errors."""


class ConversionError(Md2DocxError):
    """Serializing or reading a document failed."""


class UnsupportedInputError(Md2DocxError):
    """The input file type cannot be converted."""

"""
Typed pipeline errors.

Every stage fails loud with one of these instead of returning partial or
coerced data.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline stage failures"""


class RetrievalError(PipelineError, IOError):
    """Remote fetch failed or the body is not parseable CSV"""


class SchemaError(PipelineError, ValueError):
    """Expected column missing or of unexpected shape"""


class ParseError(PipelineError, ValueError):
    """A value cannot be converted to its declared type"""


class ModelFitError(PipelineError, ValueError):
    """Insufficient or degenerate data for regression/forecast"""

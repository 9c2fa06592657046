"""
tracefold - readable reports for errors raised through asynchronous continuations.

Reformats an error and its causes into a deterministic text report: resume
frames of compiler-generated continuation carriers become ``async`` calls with
their original method names and parameters, and async machinery frames are
removed.

Example:
    >>> from tracefold import format_exception, StaticMetadata
    >>> metadata = StaticMetadata({"App.Worker": {"RunAsync": [[("String", "arg")]]}})
    >>> print(format_exception(error, metadata=metadata))
"""

from tracefold.classify import ClassifiedFrame, Disposition, classify_frame, classify_trace
from tracefold.config import FormatterConfig
from tracefold.conventions import (
    CLR_CONVENTIONS,
    DEFAULT_CONVENTIONS,
    PYTHON_CONVENTIONS,
    CarrierMatch,
    FrameConventions,
)
from tracefold.errors import MalformedFrameError, MetadataLookupError, TraceFormatError
from tracefold.formatter import ExceptionFormatter, format_exception
from tracefold.frames import ParsedFrame, parse_frame
from tracefold.metadata import (
    ImportMetadata,
    MetadataChain,
    MetadataSource,
    MethodSignature,
    Parameter,
    StaticMetadata,
)
from tracefold.nodes import ErrorNode, coerce_error_node
from tracefold.resolver import UNRESOLVED_PARAMETERS, ResolvedCall, resolve_carrier

__version__ = "0.1.0"

__all__ = [
    "CLR_CONVENTIONS",
    "CarrierMatch",
    "ClassifiedFrame",
    "DEFAULT_CONVENTIONS",
    "Disposition",
    "ErrorNode",
    "ExceptionFormatter",
    "FormatterConfig",
    "FrameConventions",
    "ImportMetadata",
    "MalformedFrameError",
    "MetadataChain",
    "MetadataLookupError",
    "MetadataSource",
    "MethodSignature",
    "PYTHON_CONVENTIONS",
    "Parameter",
    "ParsedFrame",
    "ResolvedCall",
    "StaticMetadata",
    "TraceFormatError",
    "UNRESOLVED_PARAMETERS",
    "classify_frame",
    "classify_trace",
    "coerce_error_node",
    "format_exception",
    "parse_frame",
    "resolve_carrier",
]

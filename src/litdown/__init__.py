"""Primary public API for litdown."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from litdown.api import (
    CONVERTERS,
    OutputFormat,
    RenderRequest,
    available_formats,
    create_converter,
    create_output_format,
    materialize_supporting_files,
    register_format,
    render,
    render_one,
)
from litdown.core.diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from litdown.core.exceptions import (
    CompatibilityError,
    ConfigurationError,
    ConversionError,
    EmbeddedWarning,
    LitdownError,
    MetadataNameCollisionWarning,
    NameCollisionError,
    WeavingError,
)
from litdown.core.hooks import (
    FunctionPostProcessor,
    FunctionPreProcessor,
    PostProcessor,
    PreProcessor,
)
from litdown.core.inputs import EnvironmentFacts
from litdown.core.metadata import Metadata
from litdown.core.weaving import DependencyMetadata, HtmlDependency, WeaveState
from litdown.version import get_version


try:
    __version__ = _pkg_version("litdown")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    "CONVERTERS",
    "CompatibilityError",
    "ConfigurationError",
    "ConversionError",
    "DependencyMetadata",
    "DiagnosticEmitter",
    "EmbeddedWarning",
    "EnvironmentFacts",
    "FunctionPostProcessor",
    "FunctionPreProcessor",
    "HtmlDependency",
    "LitdownError",
    "LoggingEmitter",
    "Metadata",
    "MetadataNameCollisionWarning",
    "NameCollisionError",
    "NullEmitter",
    "OutputFormat",
    "PostProcessor",
    "PreProcessor",
    "RenderRequest",
    "WeaveState",
    "WeavingError",
    "__version__",
    "available_formats",
    "create_converter",
    "create_output_format",
    "get_version",
    "materialize_supporting_files",
    "register_format",
    "render",
    "render_one",
]

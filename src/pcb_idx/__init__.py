"""pcb-idx: Export PCB designs as IDX (EDMD) baseline files."""

__version__ = "0.1.0"

from .builder import IdxBuilder, build_document, validate_design
from .config import BuildConfig, ExportConfig, GlobalUnit, WriteConfig
from .errors import (
    ConfigurationError,
    GeometryError,
    IdxError,
    IdxReferenceError,
    InternalSerializationError,
    UnsupportedFeatureError,
)
from .exporter import IdxExporter
from .models import EcadDesign
from .serializer import IdxSerializer

__all__ = [
    "BuildConfig",
    "ConfigurationError",
    "EcadDesign",
    "ExportConfig",
    "GeometryError",
    "GlobalUnit",
    "IdxBuilder",
    "IdxError",
    "IdxExporter",
    "IdxReferenceError",
    "IdxSerializer",
    "InternalSerializationError",
    "UnsupportedFeatureError",
    "WriteConfig",
    "build_document",
    "validate_design",
]

"""Shadow Type Detector - find duplicate type declarations in Python code bases."""

__version__ = "0.1.0"

from .config import EngineConfig, load_config
from .core.issues import Severity, Violation
from .core.reporting import ViolationReport
from .pipeline import ShadowTypeDetector, scan

__all__ = [
    "EngineConfig",
    "load_config",
    "Severity",
    "Violation",
    "ViolationReport",
    "ShadowTypeDetector",
    "scan",
    "__version__",
]

from utils.ids import generate_ksuid, now_micros, format_timestamp
from core.errors import BaseInspectorError, ClassFormatError, DexFormatError, HealthCheckError

__all__ = [
    "generate_ksuid",
    "now_micros",
    "format_timestamp",
    "BaseInspectorError",
    "ClassFormatError",
    "DexFormatError",
    "HealthCheckError",
]

from enum import Enum


class HealthStatus(str, Enum):
    UNKNOWN = "unknown"
    OK = "ok"
    WARN = "warn"
    ERROR = "error"

from .handle import ValidationResult, validate_handle

__all__ = [
    "ValidationResult",
    "validate_handle",
]

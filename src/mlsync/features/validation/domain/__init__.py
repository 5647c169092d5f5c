"""Pure validation rules for raw tags."""

from .validator import Accepted, Rejected, RejectionReason, TagValidator, ValidationResult

__all__ = ["Accepted", "Rejected", "RejectionReason", "TagValidator", "ValidationResult"]

"""Entry validation package."""

from smartwealth.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]

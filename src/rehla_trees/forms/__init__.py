"""
Tree data-entry forms.
"""

from .binder import FormValidationError, TreeEntryBinder

__all__ = ['FormValidationError', 'TreeEntryBinder']

"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Mutation-triggered invalidation.
"""

from .derived_keys import DERIVED_KEYS, derived_keys_for, known_tables
from .invalidator import MUTATION_OPERATIONS, MutationInvalidator, MutationOperation

__all__ = [
    "DERIVED_KEYS",
    "derived_keys_for",
    "known_tables",
    "MutationInvalidator",
    "MutationOperation",
    "MUTATION_OPERATIONS",
]

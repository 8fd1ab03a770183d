"""
kalvian_roots.normalization package

- name_variants: built-in given-name clusters
- name_equivalence: the equivalence engine

This __init__ intentionally exports NOTHING to avoid circular imports.
"""

__all__ = []

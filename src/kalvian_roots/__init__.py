"""
kalvian_roots: family-network resolver and citation synthesizer for the
Juuret Kälviällä genealogy.
"""

__version__ = "0.1.0"

"""
Promotion Catalog
Denormalized promotion metadata over a wide-column style store.
"""

__version__ = "1.0.0"

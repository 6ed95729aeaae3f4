"""Boolean matrices stored as k2-trees, with Boolean set operations."""

__version__ = "0.1.0"
__all__ = ["bitvector", "k2tree", "matrix", "setops"]
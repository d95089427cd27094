"""Tree Mirror - index mirror of a paginated, append-only resource log."""

__version__ = "1.0.0"
__author__ = "Tree Mirror Contributors"

from tree_mirror.config import Settings

__all__ = ["Settings", "__version__"]

"""Utility modules for Tree Mirror."""

from tree_mirror.utils.logger import setup_from_config, setup_logging

__all__ = ["setup_logging", "setup_from_config"]

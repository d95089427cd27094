"""
Locator Translator - mapping between source pages and mirror fragments.

A source page is a container under the source prefix, a mirror
fragment is a resource under the mirror prefix with the same name:

    https://example.org/announcements/1636985640000/
        <-> https://example.org/datasets/synced/1636985640000
"""

from __future__ import annotations

from tree_mirror.config import Settings
from tree_mirror.errors import ConfigurationError


class LocatorTranslator:
    """
    Validated bijection between source and mirror locators.

    Prefixes are checked once on construction; the two mapping functions
    are exact inverses for every locator they accept and reject anything
    outside their prefix.

    Example:
        translator = LocatorTranslator(
            "https://example.org/announcements/",
            "https://example.org/datasets/synced/",
        )
        translator.to_mirror("https://example.org/announcements/42/")
        # -> "https://example.org/datasets/synced/42"
    """

    def __init__(self, source_prefix: str, mirror_prefix: str) -> None:
        for name, prefix in (("source", source_prefix), ("mirror", mirror_prefix)):
            if not prefix:
                raise ConfigurationError(f"{name} prefix is empty")
            if not prefix.endswith("/"):
                raise ConfigurationError(f"{name} prefix must end with '/': {prefix}")
        if source_prefix.startswith(mirror_prefix) or mirror_prefix.startswith(
            source_prefix
        ):
            raise ConfigurationError(
                f"Prefixes must be distinct and not nested: "
                f"{source_prefix} / {mirror_prefix}"
            )
        self.source_prefix = source_prefix
        self.mirror_prefix = mirror_prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocatorTranslator":
        return cls(settings.source_prefix, settings.mirror_prefix)

    def to_mirror(self, source_locator: str) -> str:
        """Rewrite the source prefix and drop the trailing slash."""
        name = self._name(source_locator, self.source_prefix)
        if not source_locator.endswith("/"):
            raise ConfigurationError(
                f"Source page locator must end with '/': {source_locator}"
            )
        name = name[:-1]
        if not name or name.endswith("/"):
            raise ConfigurationError(f"No page name in {source_locator}")
        return f"{self.mirror_prefix}{name}"

    def to_source(self, mirror_locator: str) -> str:
        """Inverse of to_mirror."""
        name = self._name(mirror_locator, self.mirror_prefix)
        if not name or name.endswith("/"):
            raise ConfigurationError(f"No fragment name in {mirror_locator}")
        return f"{self.source_prefix}{name}/"

    def source_root(self, root_name: str) -> str:
        return f"{self.source_prefix}{root_name}"

    def mirror_root(self, root_name: str) -> str:
        return f"{self.mirror_prefix}{root_name}"

    @staticmethod
    def _name(locator: str, prefix: str) -> str:
        if not locator.startswith(prefix):
            raise ConfigurationError(f"{locator} is not under {prefix}")
        return locator[len(prefix):]

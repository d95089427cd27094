"""Tests for locator translation."""

import pytest

from tree_mirror.config import Settings
from tree_mirror.core.translator import LocatorTranslator
from tree_mirror.errors import ConfigurationError

SOURCE = "https://tree.example/announcements/"
MIRROR = "https://tree.example/datasets/synced/"


@pytest.fixture
def translator() -> LocatorTranslator:
    return LocatorTranslator(SOURCE, MIRROR)


class TestLocatorTranslator:
    """Tests for LocatorTranslator."""

    def test_to_mirror(self, translator: LocatorTranslator) -> None:
        assert translator.to_mirror(f"{SOURCE}1636985640000/") == f"{MIRROR}1636985640000"

    def test_to_source(self, translator: LocatorTranslator) -> None:
        assert translator.to_source(f"{MIRROR}1636985640000") == f"{SOURCE}1636985640000/"

    @pytest.mark.parametrize("name", ["1636985640000", "a/b", "page-1"])
    def test_inverse(self, translator: LocatorTranslator, name: str) -> None:
        source = f"{SOURCE}{name}/"
        assert translator.to_source(translator.to_mirror(source)) == source
        mirror = f"{MIRROR}{name}"
        assert translator.to_mirror(translator.to_source(mirror)) == mirror

    @pytest.mark.parametrize(
        "locator",
        [
            "https://other.example/announcements/1/",  # foreign prefix
            f"{SOURCE}1",  # no trailing slash
            f"{SOURCE}/",  # no name
            f"{SOURCE}1//",  # name ends with slash
        ],
    )
    def test_to_mirror_rejects(self, translator: LocatorTranslator, locator: str) -> None:
        with pytest.raises(ConfigurationError):
            translator.to_mirror(locator)

    @pytest.mark.parametrize("locator", [f"{SOURCE}1", MIRROR, f"{MIRROR}1/"])
    def test_to_source_rejects(self, translator: LocatorTranslator, locator: str) -> None:
        with pytest.raises(ConfigurationError):
            translator.to_source(locator)

    @pytest.mark.parametrize(
        "source,mirror",
        [
            ("", MIRROR),
            (SOURCE, ""),
            ("https://tree.example/announcements", MIRROR),
            (SOURCE, SOURCE),
            ("https://tree.example/", MIRROR),
        ],
    )
    def test_invalid_prefixes(self, source: str, mirror: str) -> None:
        with pytest.raises(ConfigurationError):
            LocatorTranslator(source, mirror)

    def test_roots(self, translator: LocatorTranslator) -> None:
        assert translator.source_root("root.ttl") == f"{SOURCE}root.ttl"
        assert translator.mirror_root("root.ttl") == f"{MIRROR}root.ttl"

    def test_from_settings(self) -> None:
        settings = Settings(source_prefix=SOURCE, mirror_prefix=MIRROR)
        translator = LocatorTranslator.from_settings(settings)
        assert translator.source_prefix == SOURCE
        assert translator.mirror_prefix == MIRROR

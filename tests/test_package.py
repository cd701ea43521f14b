"""Tests for burrow package exports and metadata."""

import burrow


class TestPackageMetadata:
    """Package-level exports and metadata."""

    def test_version_string(self) -> None:
        assert isinstance(burrow.__version__, str)
        assert "0.1.0" in burrow.__version__

    def test_all_exports_resolvable(self) -> None:
        for name in burrow.__all__:
            getattr(burrow, name)

    def test_lazy_exports_are_the_real_objects(self) -> None:
        from burrow.dispatch import HandlerStack
        from burrow.modules.registry import HotModuleRegistry

        assert burrow.HandlerStack is HandlerStack
        assert burrow.HotModuleRegistry is HotModuleRegistry

    def test_invalid_attribute_raises(self) -> None:
        import pytest

        with pytest.raises(AttributeError, match="no attribute"):
            burrow.nonexistent_thing  # type: ignore[attr-defined]  # noqa: B018

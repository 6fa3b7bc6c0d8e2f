"""Tests for package exports."""

import freightsync


def test_public_exports_available() -> None:
    """Test that the client surface is importable from the package root."""
    from freightsync import (
        CacheStore,
        ClientConfig,
        FilteredListQuery,
        FreightClient,
        QueryEngine,
        SessionGate,
        SessionStore,
        TagIndex,
    )

    assert FreightClient is not None
    assert ClientConfig is not None
    assert CacheStore is not None
    assert TagIndex is not None
    assert QueryEngine is not None
    assert FilteredListQuery is not None
    assert SessionGate is not None
    assert SessionStore is not None


def test_all_names_resolve() -> None:
    """Test that every name in __all__ exists."""
    for name in freightsync.__all__:
        assert hasattr(freightsync, name), name


def test_version() -> None:
    """Test that the package carries a version."""
    assert freightsync.__version__ == "0.1.0"

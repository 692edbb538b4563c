"""Tests for the llmsweep version information."""

from datetime import datetime

from llmsweep.version.llmsweep_version import Version


def test_version_methods():
    """Test Version class methods."""
    v = Version(
        major=1,
        minor=2,
        patch=3,
        hash="abcdef123456",
        date=datetime(2023, 1, 1),
    )

    assert str(v) == "1.2.3"
    assert v.semver() == (1, 2, 3)
    assert v.hash_short(4) == "abcd"
    assert v.date_string("%Y") == "2023"
    assert "1.2.3" in v.full_version()
    assert "abcd" in v.full_version()


def test_llmsweep_version_instance():
    """Test the global LLMSWEEP_VERSION instance."""
    from llmsweep import __version__
    from llmsweep.version.llmsweep_version import LLMSWEEP_VERSION

    assert isinstance(LLMSWEEP_VERSION, Version)
    assert LLMSWEEP_VERSION.major >= 0
    assert len(LLMSWEEP_VERSION.hash) == 64
    assert __version__ == str(LLMSWEEP_VERSION)

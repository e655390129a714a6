"""Tests for the package version."""

import re
import tomllib
from pathlib import Path

import folder_sync


class TestVersionAttribute:
    """Test __version__ is properly set."""

    def test_version_format(self):
        """__version__ matches semver pattern (X.Y.Z)."""
        assert re.match(r"^\d+\.\d+\.\d+$", folder_sync.__version__)

    def test_matches_pyproject(self):
        pyproject = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject, "rb") as fh:
            data = tomllib.load(fh)
        assert data["project"]["version"] == folder_sync.__version__

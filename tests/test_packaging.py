"""
Tests for project metadata
"""

from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent


class TestProjectMetadata:
    """Test suite for pyproject.toml"""

    def test_declared_files_exist(self):
        """Every file the project table points at ships with the source tree"""
        tomllib = pytest.importorskip("tomllib")
        project = tomllib.loads((ROOT / "pyproject.toml").read_text())["project"]

        readme = project.get("readme")
        if readme is not None:
            assert (ROOT / readme).is_file()
        assert project["name"] == "stockledger"

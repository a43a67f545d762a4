"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path (for 'sharedir.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))

from sharedir.core.config import Settings, canonical_root  # noqa: E402
from sharedir.core.events import get_event_bus  # noqa: E402
from sharedir.core.logging import VerbosityLevel, set_json_output, set_verbosity  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Logging switches and the event bus are process-wide; reset around each test."""
    set_verbosity(VerbosityLevel.NORMAL)
    set_json_output(False)
    get_event_bus().clear()
    yield
    set_verbosity(VerbosityLevel.NORMAL)
    set_json_output(False)
    get_event_bus().clear()


@pytest.fixture
def share_root(tmp_path):
    """Create a small shared tree.

    Layout:
        top.txt                              "hello world"
        hols/photo.jpg                       b"\\xff\\xd8jpeg"
        hols/2020/notes.txt                  "beach"
        hols/.cache                          "x"
        fancy-path/a                         "fancy!"
        subdir with space/file with space.html
        .hidden                              "secret"
        .hiddendir/inner.txt                 "inner"

    Returns:
        Canonical path of the shared root
    """
    root = tmp_path / "share"
    root.mkdir()
    (root / "top.txt").write_text("hello world")

    hols = root / "hols"
    (hols / "2020").mkdir(parents=True)
    (hols / "photo.jpg").write_bytes(b"\xff\xd8jpeg")
    (hols / "2020" / "notes.txt").write_text("beach")
    (hols / ".cache").write_text("x")

    (root / "fancy-path").mkdir()
    (root / "fancy-path" / "a").write_text("fancy!")

    spaced = root / "subdir with space"
    spaced.mkdir()
    (spaced / "file with space.html").write_text("<p>spaced</p>")

    (root / ".hidden").write_text("secret")
    (root / ".hiddendir").mkdir()
    (root / ".hiddendir" / "inner.txt").write_text("inner")

    return Path(canonical_root(root))


@pytest.fixture
def make_settings(share_root):
    """Factory for Settings over ``share_root`` with keyword overrides."""

    def _make(**overrides) -> Settings:
        overrides.setdefault("root", str(share_root))
        return Settings(**overrides)

    return _make

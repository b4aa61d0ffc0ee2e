"""Unit tests for shared types"""

import pytest

from screen2screen.common.types import (
    PanOffset,
    Size,
    ViewportState,
    modifiers_canonicalize,
    zoom_clamp,
)


class TestModifiers:
    """Test modifier name canonicalization"""

    def test_aliases(self):
        assert modifiers_canonicalize(["Command", "control", "option", "SHIFT"]) == frozenset(
            {"cmd", "ctrl", "alt", "shift"}
        )

    def test_unknown_names_dropped(self):
        assert modifiers_canonicalize(["fn", "hyper"]) == frozenset()

    def test_duplicates_collapse(self):
        assert modifiers_canonicalize(["cmd", "command"]) == frozenset({"cmd"})


class TestZoomClamp:
    """Test zoom bounds"""

    @pytest.mark.parametrize("zoom, expected", [(0.2, 1.0), (1.0, 1.0), (3.3, 3.3), (9.0, 5.0)])
    def test_clamp(self, zoom, expected):
        assert zoom_clamp(zoom) == expected


class TestViewportState:
    """Test viewport state helpers"""

    def test_with_pan_offset_replace(self):
        state = ViewportState(2.0, PanOffset(), Size(800, 600), Size(1920, 1080))
        moved = state.withPanOffset_replace(PanOffset(10.0, -5.0))
        assert moved.pan_offset == PanOffset(10.0, -5.0)
        assert moved.zoom == 2.0
        assert state.pan_offset == PanOffset()

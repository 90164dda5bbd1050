"""Tests for template geometry."""

import pytest

from postcompose.common import BLACK, WHITE
from postcompose.layout import AspectRatio, Rect, Template, compute_layout


class TestTemplate:
    def test_slot_counts(self):
        assert Template.FOUR_GRID.slot_count == 4
        assert Template.HEADER_SINGLE.slot_count == 1
        assert Template.HEADER_4_IMAGES.slot_count == 4

    def test_header_flags(self):
        assert not Template.FOUR_GRID.has_header
        assert Template.HEADER_SINGLE.has_header
        assert Template.HEADER_4_IMAGES.has_header

    def test_backgrounds(self):
        assert Template.FOUR_GRID.background == WHITE
        assert Template.HEADER_SINGLE.background == BLACK
        assert Template.HEADER_4_IMAGES.background == BLACK

    def test_values(self):
        assert Template("4-grid") is Template.FOUR_GRID
        assert Template("header-single") is Template.HEADER_SINGLE
        assert Template("header-4-images") is Template.HEADER_4_IMAGES


class TestAspectRatio:
    def test_sizes(self):
        assert AspectRatio("1:1").size == (1080, 1080)
        assert AspectRatio("4:5").size == (1080, 1350)


class TestRect:
    def test_edges(self):
        r = Rect(10, 20, 100, 50)
        assert r.right == 110
        assert r.bottom == 70
        assert r.center == (60, 45)

    def test_contains_is_half_open(self):
        r = Rect(0, 0, 10, 10)
        assert r.contains(0, 0)
        assert r.contains(9.99, 9.99)
        assert not r.contains(10, 5)
        assert not r.contains(5, 10)

    def test_box_rounds(self):
        assert Rect(0.4, 0.6, 10.2, 10.0).box() == (0, 1, 11, 11)


class TestComputeLayout:
    def test_four_grid_square(self):
        layout = compute_layout(Template.FOUR_GRID, 1080, 1080)
        assert layout.header is None
        assert layout.cells == (
            Rect(0, 0, 540, 540),
            Rect(540, 0, 540, 540),
            Rect(0, 540, 540, 540),
            Rect(540, 540, 540, 540),
        )

    def test_four_grid_ignores_header_height(self):
        layout = compute_layout(Template.FOUR_GRID, 1080, 1080, header_h=300)
        assert layout.header is None
        assert layout.cells[0] == Rect(0, 0, 540, 540)

    def test_header_single(self):
        layout = compute_layout(Template.HEADER_SINGLE, 1080, 1080, header_h=150)
        assert layout.header == Rect(0, 0, 1080, 150)
        assert layout.cells == (Rect(0, 150, 1080, 930),)
        assert layout.media_top == 150

    def test_header_4_images_portrait(self):
        layout = compute_layout(Template.HEADER_4_IMAGES, 1080, 1350, header_h=276)
        assert len(layout.cells) == 4
        cell_h = (1350 - 276) / 2
        assert layout.cells[0] == Rect(0, 276, 540, cell_h)
        assert layout.cells[3] == Rect(540, 276 + cell_h, 540, cell_h)

    def test_cells_row_major(self):
        layout = compute_layout(Template.HEADER_4_IMAGES, 1080, 1080, header_h=150)
        xs = [c.x for c in layout.cells]
        ys = [c.y for c in layout.cells]
        assert xs == [0, 540, 0, 540]
        assert ys[0] == ys[1] < ys[2] == ys[3]

    @pytest.mark.parametrize("header_h", [150, 151.5, 276, 333.3])
    def test_pixel_boxes_tile_without_gaps(self, header_h):
        layout = compute_layout(Template.HEADER_4_IMAGES, 1080, 1350, header_h=header_h)
        b = [c.box() for c in layout.cells]
        header_box = layout.header.box()
        assert b[0][1] == header_box[3]
        assert b[0][2] == b[1][0]
        assert b[0][3] == b[2][1]
        assert b[3][2] == 1080
        assert b[3][3] == 1350

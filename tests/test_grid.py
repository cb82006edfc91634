import itertools

import pytest

from mtg_grid_scanner.errors import InvalidGridConfig
from mtg_grid_scanner.grid import plan_regions, fit_aspect, plan_card_regions
from mtg_grid_scanner.models import Region


GRID_CASES = [
    (800, 600, 3, 3),
    (600, 800, 4, 3),
    (1920, 1080, 3, 3),
    (4032, 3024, 4, 3),
    (101, 57, 2, 5),
    (10, 10, 1, 1),
    (5, 5, 3, 3),
]


@pytest.mark.parametrize("w,h,rows,cols", GRID_CASES)
def test_plan_count_bounds_and_order(w, h, rows, cols):
    padding = 0.05
    regions = plan_regions(w, h, rows, cols, padding)
    assert len(regions) == rows * cols

    pad_x, pad_y = int(w * padding), int(h * padding)
    for r in regions:
        assert r.left >= pad_x and r.top >= pad_y
        assert r.right <= w - pad_x and r.bottom <= h - pad_y
        assert r.width > 0 and r.height > 0

    # row-major: same row shares top, columns step left to right
    for i, r in enumerate(regions):
        row, col = divmod(i, cols)
        assert r.top == regions[row * cols].top
        if col:
            assert r.left > regions[i - 1].left
        if row:
            assert r.top > regions[i - cols].top


@pytest.mark.parametrize("w,h,rows,cols", GRID_CASES)
def test_plan_regions_do_not_overlap(w, h, rows, cols):
    regions = plan_regions(w, h, rows, cols)
    for a, b in itertools.combinations(regions, 2):
        assert not a.intersects(b)


def test_plan_3x3_exact_cells():
    regions = plan_regions(800, 600, 3, 3)
    # padding 40/30 px, usable 720x540, cells 240x180
    assert regions[0] == Region(40, 30, 280, 210)
    assert regions[4] == Region(280, 210, 520, 390)
    assert regions[8] == Region(520, 390, 760, 570)


def test_plan_without_padding_covers_image():
    regions = plan_regions(300, 300, 3, 3, padding=0.0)
    assert regions[0].as_tuple() == (0, 0, 100, 100)
    assert regions[-1].as_tuple() == (200, 200, 300, 300)


@pytest.mark.parametrize("args", [
    (0, 600, 3, 3),
    (800, -1, 3, 3),
    (800, 600, 0, 3),
    (800, 600, 3, -2),
    (800.0, 600, 3, 3),
])
def test_plan_rejects_non_positive_input(args):
    with pytest.raises(InvalidGridConfig):
        plan_regions(*args)


@pytest.mark.parametrize("padding", [-0.1, 0.5, 0.9])
def test_plan_rejects_bad_padding(padding):
    with pytest.raises(InvalidGridConfig):
        plan_regions(800, 600, 3, 3, padding)


def test_plan_degenerate_grid_is_empty():
    assert plan_regions(2, 2, 3, 3) == []
    assert plan_regions(100, 2, 3, 1) == []


@pytest.mark.parametrize("w,h,rows,cols", GRID_CASES[:5])
def test_fit_aspect_keeps_center_and_ratio(w, h, rows, cols):
    target = 0.715
    regions = plan_regions(w, h, rows, cols)
    fitted = fit_aspect(regions, target)
    assert len(fitted) == len(regions)
    for before, after in zip(regions, fitted):
        bx, by = before.center
        ax, ay = after.center
        assert abs(ax - bx) <= 0.5 and abs(ay - by) <= 0.5
        # only the longer side (relative to target) shrinks
        assert after.width <= before.width and after.height <= before.height
        assert after.width == before.width or after.height == before.height
        assert after.width / after.height == pytest.approx(target, abs=1.0 / min(after.height, after.width) + 1e-6)
        # still inside the original cell
        assert after.left >= before.left and after.right <= before.right
        assert after.top >= before.top and after.bottom <= before.bottom


def test_fit_aspect_wide_cell_narrows():
    fitted = fit_aspect([Region(0, 0, 300, 200)], 0.715)[0]
    assert fitted.height == 200
    assert fitted.width == 143
    assert fitted.left == 78


def test_fit_aspect_tall_cell_shortens():
    fitted = fit_aspect([Region(0, 0, 100, 400)], 0.715)[0]
    assert fitted.width == 100
    assert fitted.height == 140
    assert fitted.top == 130


def test_fit_aspect_never_degenerates():
    fitted = fit_aspect([Region(0, 0, 1, 1), Region(5, 5, 6, 50)])
    assert all(r.width >= 1 and r.height >= 1 for r in fitted)


def test_plan_card_regions_combines_both_steps():
    regions = plan_card_regions(800, 600, 3, 3)
    assert regions == fit_aspect(plan_regions(800, 600, 3, 3))


def test_region_rejects_degenerate():
    with pytest.raises(ValueError):
        Region(10, 10, 10, 20)

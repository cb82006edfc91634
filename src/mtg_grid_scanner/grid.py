# =========================
# GRID REGIONS
# =========================
from .config import GRID_PADDING, CARD_ASPECT
from .errors import InvalidGridConfig
from .models import Region


def _check_positive(**values):
    for k, v in values.items():
        if not isinstance(v, int) or isinstance(v, bool) or v <= 0:
            raise InvalidGridConfig(f"{k} must be a positive integer, got {v!r}")


def plan_regions(image_width, image_height, rows, cols, padding=GRID_PADDING):
    """
    Split the padded image into rows*cols equal cells, row-major.

    padding is a fraction of each side, truncated to whole pixels. Remainder
    pixels after integer division stay unused at the right/bottom edge.
    Returns [] when the image is too small to give every cell at least one
    pixel.
    """
    _check_positive(image_width=image_width, image_height=image_height, rows=rows, cols=cols)
    if not (0.0 <= float(padding) < 0.5):
        raise InvalidGridConfig(f"padding must be in [0, 0.5), got {padding!r}")

    pad_x = int(image_width * padding)
    pad_y = int(image_height * padding)
    usable_w = image_width - 2 * pad_x
    usable_h = image_height - 2 * pad_y
    cell_w = usable_w // cols
    cell_h = usable_h // rows
    if cell_w <= 0 or cell_h <= 0:
        return []

    regions = []
    for row in range(rows):
        for col in range(cols):
            left = pad_x + col * cell_w
            top = pad_y + row * cell_h
            regions.append(Region(left, top, left + cell_w, top + cell_h))
    return regions


def fit_aspect(regions, target_ratio=CARD_ASPECT):
    """Shrink each region's too-long side (centered) so width/height ~= target_ratio."""
    if target_ratio <= 0:
        raise InvalidGridConfig(f"target_ratio must be positive, got {target_ratio!r}")
    out = []
    for r in regions:
        w, h = r.width, r.height
        if w / float(h) > target_ratio:
            # too wide
            new_w = max(1, int(round(h * target_ratio)))
            left = r.left + (w - new_w) // 2
            out.append(Region(left, r.top, left + new_w, r.bottom))
        else:
            # too tall (or exact)
            new_h = max(1, int(round(w / target_ratio)))
            top = r.top + (h - new_h) // 2
            out.append(Region(r.left, top, r.right, top + new_h))
    return out


def plan_card_regions(image_width, image_height, rows, cols, padding=GRID_PADDING, target_ratio=CARD_ASPECT):
    return fit_aspect(plan_regions(image_width, image_height, rows, cols, padding), target_ratio)

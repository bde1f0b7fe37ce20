"""Tests for the sprite compositor: grid mapping, depth scale, blending order."""

from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from seasonscape.engine.compositor import CanvasSizeError, SpriteCompositor
from seasonscape.engine.config import CompositorConfig, snap_to_multiple
from seasonscape.engine.sprites import AssetNotFoundError, FileSpriteStore, MemorySpriteStore
from seasonscape.models.plants import PlantPosition
from tests.conftest import BLUE, RED, SMALL_CANVAS, make_sprite_png


def decode(png: bytes) -> np.ndarray:
    with Image.open(io.BytesIO(png)) as img:
        return np.asarray(img.convert("RGBA"))


def pos(ref: str, x: float, y: float, scale: float = 1.0) -> PlantPosition:
    return PlantPosition(sprite_asset_ref=ref, grid_x=x, grid_y=y, scale=scale, label=ref)


def test_default_canvas_is_multiple_of_64():
    cfg = CompositorConfig()
    assert (cfg.canvas_width, cfg.canvas_height) == (1920, 1408)
    assert cfg.canvas_width % 64 == 0 and cfg.canvas_height % 64 == 0


@pytest.mark.parametrize("value,expected", [(1440, 1408), (1920, 1920), (1000, 1024), (10, 64), (1471, 1472)])
def test_snap_to_multiple(value, expected):
    assert snap_to_multiple(value) == expected


def test_grid_to_pixels_is_linear(compositor):
    assert compositor.grid_to_pixels(0, 0) == (0, 0)
    assert compositor.grid_to_pixels(10, 15) == (100, 150)
    assert compositor.grid_to_pixels(40, 30) == (400, 300)
    x1, y1 = compositor.grid_to_pixels(3, 4)
    x2, y2 = compositor.grid_to_pixels(6, 8)
    assert (x2, y2) == (2 * x1, 2 * y1)


def test_grid_to_pixels_default_canvas():
    c = SpriteCompositor(MemorySpriteStore())
    assert c.grid_to_pixels(40, 30) == (1920, 1408)
    assert c.grid_to_pixels(1, 0) == (48, 0)


def test_depth_scale(compositor):
    assert compositor.depth_scale(0) == pytest.approx(1.0)
    assert compositor.depth_scale(15) == pytest.approx(0.85)
    assert compositor.depth_scale(30) == pytest.approx(0.7)


def test_base_canvas_is_deterministic_and_textured(sprite_store):
    a = np.asarray(SpriteCompositor(sprite_store, SMALL_CANVAS).create_base_canvas())
    b = np.asarray(SpriteCompositor(sprite_store, SMALL_CANVAS).create_base_canvas())
    assert a.shape == (300, 400, 4)
    assert np.array_equal(a, b)
    assert a[:, :, :3].std() > 0
    # lawn is green-dominant and opaque
    assert a[150, 200, 1] > a[150, 200, 0]
    assert (a[:, :, 3] == 255).all()


def test_empty_positions_returns_base_canvas(compositor):
    result = compositor.composite_garden([])
    assert (result.width, result.height) == (400, 300)
    assert result.placements == []
    assert result.skipped == []
    assert np.array_equal(decode(result.png), np.asarray(compositor.create_base_canvas()))


def test_sprite_placement_with_depth_scale(compositor):
    result = compositor.composite_garden([pos("red.png", 20, 15)])
    placement = result.placements[0]

    # 40x60 at depth 0.85 -> 34x51; centred on x=200, 80% of height above y=150
    assert placement.anchor == (200, 150)
    assert placement.rect == (183, 109, 34, 51)
    assert placement.scale == pytest.approx(0.85)

    px = decode(result.png)
    assert tuple(px[130, 200]) == RED
    assert tuple(px[155, 200]) == RED
    assert tuple(px[100, 200]) != RED


def test_explicit_scale_multiplies_depth(compositor):
    result = compositor.composite_garden([pos("red.png", 20, 0, scale=2.0)])
    assert result.placements[0].rect[2:] == (80, 120)


def test_later_positions_draw_over_earlier(compositor):
    px = decode(compositor.composite_garden([pos("red.png", 20, 15), pos("blue.png", 20, 15)]).png)
    assert tuple(px[130, 200]) == BLUE

    px = decode(compositor.composite_garden([pos("blue.png", 20, 15), pos("red.png", 20, 15)]).png)
    assert tuple(px[130, 200]) == RED


def test_transparent_sprite_areas_keep_lawn(sprite_store):
    sprite = Image.new("RGBA", (20, 20), (0, 0, 0, 0))
    sprite.paste(Image.new("RGBA", (10, 20), RED), (0, 0))
    buf = io.BytesIO()
    sprite.save(buf, format="PNG")
    sprite_store.assets["half.png"] = buf.getvalue()

    c = SpriteCompositor(sprite_store, SMALL_CANVAS)
    result = c.composite_garden([pos("half.png", 20, 0)])
    left, top, _, _ = result.placements[0].rect
    base = np.asarray(c.create_base_canvas())
    px = decode(result.png)
    assert tuple(px[top + 5, left + 2]) == RED
    assert np.array_equal(px[top + 5, left + 15], base[top + 5, left + 15])


def test_missing_sprite_is_skipped(compositor):
    result = compositor.composite_garden([pos("nope.png", 5, 5), pos("red.png", 20, 15)])
    assert result.skipped == ["nope.png"]
    assert [p.asset_ref for p in result.placements] == ["red.png"]


def test_undecodable_sprite_is_skipped(sprite_store):
    sprite_store.assets["broken.png"] = b"not an image"
    result = SpriteCompositor(sprite_store, SMALL_CANVAS).composite_garden([pos("broken.png", 5, 5)])
    assert result.skipped == ["broken.png"]
    assert result.placements == []


def test_degenerate_sprite_size_raises(sprite_store):
    sprite_store.assets["dot.png"] = make_sprite_png(1, 1)
    c = SpriteCompositor(sprite_store, SMALL_CANVAS)
    with pytest.raises(CanvasSizeError):
        c.composite_garden([pos("dot.png", 5, 0, scale=0.1)])


def test_degenerate_canvas_raises(sprite_store):
    with pytest.raises(CanvasSizeError):
        SpriteCompositor(sprite_store, CompositorConfig(canvas_width=0, canvas_height=300))


def test_sprite_at_edge_is_clipped(compositor):
    result = compositor.composite_garden([pos("red.png", 40, 30)])
    placement = result.placements[0]
    # reported rect is unclipped; pixels inside the canvas are still drawn
    assert placement.rect[0] + placement.rect[2] > 400
    assert tuple(decode(result.png)[299, 399]) == RED


def test_file_sprite_store(tmp_path):
    (tmp_path / "sprites").mkdir()
    (tmp_path / "sprites" / "rose.png").write_bytes(make_sprite_png())
    (tmp_path / "secret.txt").write_text("nope")
    store = FileSpriteStore(tmp_path / "sprites")

    assert store.load("/rose.png") == store.load("rose.png")
    with pytest.raises(AssetNotFoundError):
        store.load("missing.png")
    with pytest.raises(AssetNotFoundError):
        store.load("../secret.txt")

import tracemalloc

import numpy as np

from escapetime import buddhabrot
from escapetime.buddhabrot import BuddhabrotRenderer, DensityMap
from escapetime.graphics import DataBox
from escapetime.math.complex import Complex


def _box(width, height, up_left, down_right, max_iterations=100) -> DataBox:
    return DataBox.create(width, height, max_iterations=max_iterations, up_left=up_left, down_right=down_right)


def test_density_map():
    density = DensityMap(3, 4)
    assert density.get_max() == 0
    density.add_hits(np.array([1, 0, 1, 0, 0, 0, 0], dtype=np.int32), np.array([2, 0, 2, 0, 0, 0, 0], dtype=np.int32))
    density.add_hits(np.array([1], dtype=np.int32), np.array([2], dtype=np.int32))
    density.add_hits(np.array([], dtype=np.int32), np.array([], dtype=np.int32))
    assert density.get(1, 2) == 3
    assert density.get(0, 0) == 5
    assert density.get(2, 3) == 0
    assert density.get_max() == 5
    assert (density.rows, density.columns) == (3, 4)


def test_single_pixel_escaping_at_once():
    box = _box(1, 1, Complex(2, 3), Complex(3, 2))
    renderer = BuddhabrotRenderer(box, supersampling=0, color_zero="black", color_max="white")
    assert renderer.render()
    assert renderer.density.get(0, 0) == 1
    assert renderer.density.get_max() == 1
    np.testing.assert_equal(box.image[0, 0], [255, 255, 255])


def test_supersamples_land_in_their_pixel():
    box = _box(1, 1, Complex(2, 3), Complex(3, 2))
    renderer = BuddhabrotRenderer(box, supersampling=1)
    assert renderer.render()
    assert renderer.density.get(0, 0) == 4
    assert renderer.density.get_max() == 4


def test_every_pixel_counts_itself():
    box = _box(3, 3, Complex(10, 10), Complex(13, 7))
    renderer = BuddhabrotRenderer(box, supersampling=0, color_zero="#000000", color_max="#ff8000", max_workers=2)
    assert renderer.render()
    np.testing.assert_equal(renderer.density.counts, np.ones((3, 3)))
    assert renderer.density.get_max() == 1
    assert np.all(box.image == [255, 128, 0])


def test_empty_density_paints_color_zero():
    box = _box(2, 2, Complex(-0.1, 0.1), Complex(0.1, -0.1))
    renderer = BuddhabrotRenderer(box, supersampling=2, color_zero="#102030", color_max="white")
    assert renderer.render()
    assert renderer.density.get_max() == 0
    assert np.all(box.image == [16, 32, 48])


def test_parallel_matches_inline():
    box1 = _box(30, 20, Complex(-2, 1.5), Complex(1, -1.5), max_iterations=50)
    box2 = box1.with_image()
    r1 = BuddhabrotRenderer(box1, supersampling=1, max_workers=1)
    r2 = BuddhabrotRenderer(box2, supersampling=1, max_workers=4)
    assert r1.render()
    assert r2.render()
    np.testing.assert_equal(r1.density.counts, r2.density.counts)
    np.testing.assert_equal(box1.image, box2.image)
    assert r1.density.get_max() > 0


def test_abort():
    box = _box(10, 10, Complex(-2, 2), Complex(2, -2))
    finished = []
    renderer = BuddhabrotRenderer(box, is_aborted=lambda: True, on_finish=lambda: finished.append(True))
    assert not renderer.render()
    assert finished == []
    assert renderer.density.get_max() == 0


def test_progress():
    box = _box(10, 8, Complex(-2, 2), Complex(2, -2), max_iterations=20)
    progress = []
    finished = []
    renderer = BuddhabrotRenderer(box, supersampling=0, on_progress=progress.append,
                                  on_finish=lambda: finished.append(True))
    assert renderer.render()
    assert len(progress) == 8
    assert max(progress) == 1.0
    assert finished == [True]


def test_row_task_memory_does_not_grow_with_canvas():
    box = _box(2000, 2000, Complex(-2, 2), Complex(2, -2), max_iterations=1)
    renderer = BuddhabrotRenderer(box, supersampling=0)
    renderer._trace_row(1000)  # Warm up before measuring.
    tracemalloc.start()
    try:
        renderer._trace_row(1000)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()
    # The whole density map takes 16 MB.
    assert peak < 2_000_000


def test_chunked_rows_match_single_chunk(monkeypatch):
    box1 = _box(30, 20, Complex(-2, 1.5), Complex(1, -1.5), max_iterations=50)
    box2 = box1.with_image()
    r1 = BuddhabrotRenderer(box1, supersampling=1, max_workers=1)
    assert r1.render()
    # 200 samples per pixel, so rows are traced one pixel at a time.
    monkeypatch.setattr(buddhabrot, "HIT_BUFFER_SIZE", 1)
    r2 = BuddhabrotRenderer(box2, supersampling=1, max_workers=3)
    assert r2.render()
    np.testing.assert_equal(r1.density.counts, r2.density.counts)
    assert r1.density.get_max() > 0

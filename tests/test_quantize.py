"""Unit tests for the 16-colour k-means quantizer."""

import numpy as np
import pytest

from frame_palette import InvalidArgument, apply_palette, quantize
from frame_palette.kmeans import (
    cluster_centroids,
    darkest_palette_index,
    force_darkest_to_index0,
    nearest_centroid_labels,
    random_labels,
    run_kmeans,
)


def _rgba_from_colours(colours, alpha=255):
    """Flat RGBA bytes, one pixel per colour."""
    arr = np.empty((len(colours), 4), dtype=np.uint8)
    arr[:, :3] = np.asarray(colours, dtype=np.uint8)
    arr[:, 3] = alpha
    return arr.tobytes()


def _random_rgba(num_pixels, seed):
    gen = np.random.default_rng(seed)
    return gen.integers(0, 256, size=num_pixels * 4, dtype=np.uint8)


class TestQuantizeContract:
    """Output shapes, invariants and argument checking."""

    def test_output_sizes(self):
        result = quantize(_random_rgba(64, 1), seed=1)
        assert len(result.image4bit) == 32
        assert len(result.palette) == 48
        assert result.num_pixels == 64
        assert result.palette_rgb.shape == (16, 3)

    def test_unpacks_as_image_and_palette(self):
        image4bit, palette = quantize(_random_rgba(8, 2), seed=2)
        assert isinstance(image4bit, bytes)
        assert isinstance(palette, bytes)

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
    def test_palette_slot0_is_black(self, seed):
        result = quantize(_random_rgba(256, seed), seed=seed)
        assert result.palette[:3] == b"\x00\x00\x00"

    @pytest.mark.parametrize("seed", [0, 7, 11])
    def test_rendered_colours_are_palette_entries(self, seed):
        result = quantize(_random_rgba(200, seed), seed=seed)
        rgba = np.frombuffer(apply_palette(*result), dtype=np.uint8).reshape(-1, 4)
        palette_rows = {tuple(row) for row in result.palette_rgb.tolist()}
        assert all(tuple(px) in palette_rows for px in rgba[:, :3].tolist())
        assert np.all(rgba[:, 3] == 255)

    def test_indices_in_range(self):
        result = quantize(_random_rgba(128, 5), seed=5)
        indices = result.indices()
        assert indices.size == 128
        assert int(indices.max()) <= 15

    def test_same_seed_same_result(self):
        rgba = _random_rgba(300, 9)
        a = quantize(rgba, seed=42)
        b = quantize(rgba, seed=42)
        assert a == b

    def test_rng_and_seed_are_equivalent(self):
        rgba = _random_rgba(120, 3)
        a = quantize(rgba, seed=123)
        b = quantize(rgba, rng=np.random.default_rng(123))
        assert a == b

    def test_rng_and_seed_together_rejected(self):
        with pytest.raises(InvalidArgument):
            quantize(_random_rgba(8, 0), rng=np.random.default_rng(1), seed=1)

    def test_input_not_mutated(self):
        arr = _random_rgba(64, 4)
        before = arr.copy()
        buf = bytearray(arr.tobytes())
        quantize(arr, seed=4)
        quantize(buf, seed=4)
        np.testing.assert_array_equal(arr, before)
        assert bytes(buf) == before.tobytes()

    def test_alpha_is_ignored(self):
        colours = np.random.default_rng(6).integers(0, 256, size=(50, 3))
        opaque = quantize(_rgba_from_colours(colours, alpha=255), seed=6)
        clear = quantize(_rgba_from_colours(colours, alpha=0), seed=6)
        assert opaque == clear

    def test_accepts_shaped_arrays(self):
        flat = _random_rgba(16, 8)
        a = quantize(flat, seed=8)
        b = quantize(flat.reshape(16, 4), seed=8)
        c = quantize(flat.reshape(4, 4, 4), seed=8)
        assert a == b == c

    @pytest.mark.parametrize(
        "bad",
        [
            b"",  # empty image
            bytes(12),  # 3 pixels, odd count
            bytes(10),  # not whole pixels
        ],
    )
    def test_rejects_bad_buffers(self, bad):
        with pytest.raises(InvalidArgument):
            quantize(bad, seed=0)

    def test_rejects_wrong_shape_and_dtype(self):
        with pytest.raises(InvalidArgument):
            quantize(np.zeros((2, 3), dtype=np.uint8), seed=0)
        with pytest.raises(InvalidArgument):
            quantize(np.zeros(8, dtype=np.float32), seed=0)

    def test_rejects_non_positive_iterations(self):
        with pytest.raises(InvalidArgument):
            quantize(_random_rgba(8, 0), seed=0, max_iterations=0)

    def test_iteration_cap(self):
        result = quantize(_random_rgba(500, 10), seed=10, max_iterations=1)
        assert result.iterations == 1

    def test_kmeans_module_not_shadowed_by_reexport(self):
        import frame_palette
        import frame_palette.kmeans as kmeans_module

        assert callable(kmeans_module.run_kmeans)
        assert kmeans_module.quantize is frame_palette.quantize

    def test_debug_logs_progress(self, capsys):
        quantize(_random_rgba(32, 1), seed=1, debug=True)
        out = capsys.readouterr().out
        assert "[debug] k-means round: 1" in out
        assert "Darkest index" in out


class TestQuantizeBehaviour:
    """End-to-end behaviour on small synthetic images."""

    def test_solid_colour_converges_to_one_index(self):
        rgba = _rgba_from_colours([(200, 100, 50)] * 100)
        result = quantize(rgba, seed=3)
        assert result.iterations <= 24
        assert result.converged
        indices = result.indices()
        assert np.all(indices == indices[0])

    def test_two_colour_image_renders_back_exactly(self):
        colours = [(20, 30, 40), (240, 220, 200)]
        for seed in range(10):
            result = quantize(_rgba_from_colours(colours), seed=seed)
            assert result.palette_rgb[0].tolist() == [0, 0, 0]
            rgba = np.frombuffer(apply_palette(*result), dtype=np.uint8).reshape(-1, 4)
            assert rgba[:, :3].tolist() == [list(c) for c in colours]

    def test_index0_pixels_render_black(self):
        result = quantize(_random_rgba(400, 12), seed=12)
        indices = result.indices()
        rgba = np.frombuffer(apply_palette(*result), dtype=np.uint8).reshape(-1, 4)
        assert np.all(rgba[indices == 0, :3] == 0)


class TestKMeansSteps:
    """Building blocks of the k-means loop."""

    def test_random_labels_range_and_type(self):
        labels = random_labels(1000, np.random.default_rng(0))
        assert labels.dtype == np.uint8
        assert labels.shape == (1000,)
        assert int(labels.min()) >= 0 and int(labels.max()) <= 15

    def test_centroids_use_integer_mean(self):
        rgb = np.array([[0, 0, 0], [1, 3, 255]], dtype=np.int64)
        labels = np.array([4, 4], dtype=np.uint8)
        centroids, counts = cluster_centroids(rgb, labels, np.zeros((16, 3), np.int64))
        assert centroids[4].tolist() == [0, 1, 127]
        assert counts[4] == 2
        assert int(counts.sum()) == 2

    def test_empty_cluster_keeps_previous_centroid(self):
        rgb = np.array([[10, 20, 30], [30, 40, 50]], dtype=np.int64)
        labels = np.array([0, 0], dtype=np.uint8)
        previous = np.zeros((16, 3), dtype=np.int64)
        previous[7] = (1, 2, 3)
        centroids, _ = cluster_centroids(rgb, labels, previous)
        assert centroids[0].tolist() == [20, 30, 40]
        assert centroids[7].tolist() == [1, 2, 3]
        assert previous[0].tolist() == [0, 0, 0]

    def test_nearest_prefers_lowest_index_on_ties(self):
        centroids = np.zeros((16, 3), dtype=np.int64)
        centroids[3] = (100, 100, 100)
        centroids[7] = (100, 100, 100)
        rgb = np.array([[100, 100, 100], [1, 1, 1]], dtype=np.int64)
        assert nearest_centroid_labels(rgb, centroids).tolist() == [3, 0]

    def test_batched_assignment_matches_single_pass(self):
        gen = np.random.default_rng(21)
        rgb = gen.integers(0, 256, size=(1000, 3))
        centroids = gen.integers(0, 256, size=(16, 3))
        np.testing.assert_array_equal(
            nearest_centroid_labels(rgb, centroids, batch_pixels=7),
            nearest_centroid_labels(rgb, centroids, batch_pixels=10_000),
        )

    def test_run_kmeans_separated_groups_converge_in_one_round(self):
        rgb = np.array([(10, 20, 30)] * 8 + [(240, 230, 220)] * 8, dtype=np.uint8)
        labels = np.array([2] * 8 + [9] * 8, dtype=np.uint8)
        state = run_kmeans(rgb, labels)
        assert state.iterations == 1
        assert state.converged
        assert state.centroids[2].tolist() == [10, 20, 30]
        assert state.centroids[9].tolist() == [240, 230, 220]
        np.testing.assert_array_equal(state.labels, labels)

    def test_run_kmeans_respects_cap(self):
        rgb = np.random.default_rng(5).integers(0, 256, size=(400, 3))
        labels = random_labels(400, np.random.default_rng(5))
        state = run_kmeans(rgb, labels, max_iterations=2)
        assert state.iterations <= 2


class TestDarkestToIndex0:
    """Post-processing that blackens the darkest entry and moves it to slot 0."""

    def _palette(self):
        pal = np.full((16, 3), 128, dtype=np.uint8)
        pal[0] = (200, 200, 200)
        pal[5] = (30, 30, 30)
        return pal

    def test_darkest_index_uses_bt601(self):
        pal = np.full((16, 3), 200, dtype=np.uint8)
        pal[3] = (0, 0, 255)  # 0.114
        pal[9] = (255, 0, 0)  # 0.299
        assert darkest_palette_index(pal) == 3

    def test_two_pixel_swap(self):
        palette, packed, darkest = force_darkest_to_index0(self._palette(), b"\x05")
        assert darkest == 5
        assert palette[0].tolist() == [0, 0, 0]
        assert palette[5].tolist() == [200, 200, 200]
        assert packed.tolist() == [0x50]

    def test_other_indices_untouched(self):
        image = bytes([0x05, 0x37, 0x55])
        _, packed, _ = force_darkest_to_index0(self._palette(), image)
        assert packed.tolist() == [0x50, 0x37, 0x00]

    def test_darkest_already_slot0(self):
        pal = self._palette()
        pal[0] = (5, 5, 5)
        palette, packed, darkest = force_darkest_to_index0(pal, b"\x05")
        assert darkest == 0
        assert palette[0].tolist() == [0, 0, 0]
        assert palette[5].tolist() == [30, 30, 30]
        assert packed.tolist() == [0x05]

    def test_inputs_not_mutated(self):
        pal = self._palette()
        image = np.array([0x05], dtype=np.uint8)
        force_darkest_to_index0(pal, image)
        assert pal[5].tolist() == [30, 30, 30]
        assert image.tolist() == [0x05]

"""感知哈希测试。"""

import numpy as np
import pytest

from folioscan.dedup import hamming_distance, perceptual_hash
from folioscan.dedup.phash import FINGERPRINT_BITS, GRID_SIZE, dct2, resample_nearest


def _texture(seed: int, size=(120, 160)) -> np.ndarray:
    return np.random.default_rng(seed).integers(0, 256, size=size).astype(np.float32)


def test_resample_nearest_is_column_major() -> None:
    ys, xs = np.mgrid[0:64, 0:64]
    luma = (xs + 1000 * ys).astype(np.float32)

    cell = resample_nearest(luma)

    assert cell.shape == (GRID_SIZE, GRID_SIZE)
    assert cell[3, 5] == 6 + 1000 * 10


def test_dct_of_constant_has_only_dc() -> None:
    coeffs = dct2(np.full((GRID_SIZE, GRID_SIZE), 7.0))

    assert coeffs[0, 0] == pytest.approx(7.0 * GRID_SIZE)
    rest = coeffs.copy()
    rest[0, 0] = 0.0
    assert np.allclose(rest, 0.0, atol=1e-9)


def test_fingerprint_fits_in_63_bits() -> None:
    fingerprint = perceptual_hash(_texture(5))

    assert 0 <= fingerprint < 2**FINGERPRINT_BITS
    # 63 个互不相同的系数中恰有 31 个严格大于中位数
    assert bin(fingerprint).count("1") == 31


def test_hash_is_deterministic() -> None:
    luma = _texture(9)

    assert perceptual_hash(luma) == perceptual_hash(luma.copy())


def test_small_brightness_shift_keeps_hash_close() -> None:
    luma = _texture(4)
    shifted = luma + 3

    assert hamming_distance(perceptual_hash(luma), perceptual_hash(shifted)) <= 6


def test_different_pages_are_far_apart() -> None:
    assert hamming_distance(perceptual_hash(_texture(1)), perceptual_hash(_texture(2))) > 6


def test_hamming_distance_metric() -> None:
    rng = np.random.default_rng(0)
    for _ in range(50):
        a, b = (int(v) for v in rng.integers(0, 2**62, size=2))
        assert hamming_distance(a, b) == hamming_distance(b, a)
        assert hamming_distance(a, a) == 0
    assert hamming_distance(0b1011, 0b0001) == 2


def test_dct_matches_orthonormal_basis() -> None:
    n = np.arange(GRID_SIZE)
    basis = np.sqrt(2.0 / GRID_SIZE) * np.cos((2 * n[None, :] + 1) * n[:, None] * np.pi / (2 * GRID_SIZE))
    basis[0, :] *= np.sqrt(0.5)
    matrix = np.random.default_rng(12).random((GRID_SIZE, GRID_SIZE)) * 255

    assert np.allclose(dct2(matrix), basis @ matrix @ basis.T, atol=1e-8)

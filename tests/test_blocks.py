import numpy as np
import pytest

from samscodec.blocks import (
    CHROMA_QUANT,
    LUMINANCE_QUANT,
    Padding,
    bgr_to_ycbcr,
    crop,
    dct_matrix,
    decode_channel,
    dequantize,
    downsample_chroma,
    encode_block,
    encode_channel,
    forward_dct,
    inverse_dct,
    pad_to_blocks,
    quant_table,
    quantize,
    upscale,
    ycbcr_to_bgr,
)
from samscodec.bmp import create_bmp24
from samscodec.sams import RLEPair, SamsError


def _image(rows):
    bmp = create_bmp24(len(rows[0]), len(rows))
    for y, row in enumerate(rows):
        for x, bgr in enumerate(row):
            bmp.set_pixel(y, x, bgr)
    return bmp


def test_grey_pixels_have_neutral_chroma():
    y, cb, cr = bgr_to_ycbcr(_image([[(100, 100, 100), (200, 200, 200)]]))
    assert y.shape == (1, 2)
    np.testing.assert_allclose(y, [[100, 200]], atol=1e-3)
    np.testing.assert_allclose(cb, 128, atol=1e-3)
    np.testing.assert_allclose(cr, 128, atol=1e-3)


def test_conversion_keeps_top_row_first():
    y, _, _ = bgr_to_ycbcr(_image([[(255, 255, 255)], [(0, 0, 0)]]))
    assert y[0, 0] == pytest.approx(255, abs=1e-3)
    assert y[1, 0] == pytest.approx(0, abs=1e-3)


def test_blue_pixel_raises_blue_chroma():
    _, cb, cr = bgr_to_ycbcr(_image([[(255, 0, 0)]]))
    assert cb[0, 0] > 128
    assert cr[0, 0] < 128


def test_colour_conversion_round_trip():
    rng = np.random.default_rng(1)
    colours = rng.integers(0, 256, size=(5, 7, 3))
    source = _image([[tuple(int(c) for c in pixel) for pixel in row] for row in colours])
    target = create_bmp24(7, 5)
    ycbcr_to_bgr(*bgr_to_ycbcr(source), target)
    restored = np.array(
        [[list(target.pixel(y, x)) for x in range(7)] for y in range(5)]
    )
    assert restored.shape == (5, 7, 3)
    np.testing.assert_allclose(restored, colours, atol=2)


def test_ycbcr_to_bgr_clamps():
    bmp = create_bmp24(2, 1)
    ycbcr_to_bgr(np.array([[300.0, -50.0]]), np.full((1, 2), 128.0), np.full((1, 2), 128.0), bmp)
    assert bmp.pixel(0, 0) == b"\xff\xff\xff"
    assert bmp.pixel(0, 1) == b"\x00\x00\x00"


def test_ycbcr_to_bgr_rejects_wrong_shape():
    bmp = create_bmp24(2, 2)
    plane = np.zeros((3, 3))
    with pytest.raises(ValueError):
        ycbcr_to_bgr(plane, plane, plane, bmp)


def test_downsample_averages_present_pixels():
    channel = np.arange(9, dtype=np.float32).reshape(3, 3)
    result = downsample_chroma(channel)
    assert result.shape == (2, 2)
    assert result[0, 0] == pytest.approx(channel[:2, :2].mean())
    assert result[0, 1] == pytest.approx(channel[:2, 2].mean())
    assert result[1, 0] == pytest.approx(channel[2, :2].mean())
    assert result[1, 1] == pytest.approx(channel[2, 2])


def test_pad_replicate_repeats_edges():
    channel = np.arange(15, dtype=np.float32).reshape(3, 5)
    padded = pad_to_blocks(channel, Padding.REPLICATE)
    assert padded.shape == (8, 8)
    np.testing.assert_array_equal(padded[:3, :5], channel)
    np.testing.assert_array_equal(padded[1, 5:], np.full(3, channel[1, 4]))
    np.testing.assert_array_equal(padded[7], padded[2])


def test_pad_neutral_fills_with_128():
    channel = np.zeros((3, 5), dtype=np.float32)
    padded = pad_to_blocks(channel, Padding.NEUTRAL)
    assert padded.shape == (8, 8)
    assert np.all(padded[:3, 5:] == 128)
    assert np.all(padded[3:] == 128)
    assert np.all(padded[:3, :5] == 0)


def test_pad_aligned_plane_is_unchanged():
    channel = np.arange(128, dtype=np.float32).reshape(8, 16)
    np.testing.assert_array_equal(pad_to_blocks(channel, Padding.REPLICATE), channel)


def test_dct_matrix_rows_are_orthogonal():
    dct = dct_matrix()
    assert dct.shape == (8, 8)
    np.testing.assert_allclose(dct[0], np.ones(8), atol=1e-6)
    gram = dct.astype(np.float64) @ dct.T.astype(np.float64)
    off_diagonal = gram - np.diag(np.diag(gram))
    assert np.max(np.abs(off_diagonal)) < 1e-4


def test_neutral_block_transforms_to_zero():
    coefficients = forward_dct(np.full((8, 8), 128.0), dct_matrix())
    np.testing.assert_allclose(coefficients, 0, atol=1e-4)


def test_constant_block_has_only_dc():
    coefficients = forward_dct(np.full((8, 8), 200.0), dct_matrix())
    assert coefficients[0, 0] > 0
    rest = coefficients.reshape(-1)[1:]
    assert np.max(np.abs(rest)) < 1e-3


def test_dct_round_trip():
    rng = np.random.default_rng(2)
    block = rng.integers(0, 256, size=(8, 8)).astype(np.float32)
    dct = dct_matrix()
    np.testing.assert_allclose(inverse_dct(forward_dct(block, dct), dct), block, atol=1e-2)


def test_inverse_dct_clamps():
    block = np.zeros((8, 8), dtype=np.float32)
    block[0, 0] = 10000
    result = inverse_dct(block, dct_matrix())
    assert result.shape == (8, 8)
    np.testing.assert_array_equal(result, np.full((8, 8), 255.0))


def test_quant_table_bounds_and_clamping():
    for quality in (1, 30, 60, 100):
        table = quant_table(LUMINANCE_QUANT, quality)
        assert len(table) == 64
        assert all(1 <= value <= 255 for value in table)
    assert quant_table(CHROMA_QUANT, 0) == quant_table(CHROMA_QUANT, 1)
    assert quant_table(CHROMA_QUANT, 150) == quant_table(CHROMA_QUANT, 100)


def test_quant_table_lowest_quality_is_coarsest():
    assert set(quant_table(LUMINANCE_QUANT, 1)) == {255}


def test_quant_table_is_monotonic_in_quality():
    low = quant_table(LUMINANCE_QUANT, 20)
    high = quant_table(LUMINANCE_QUANT, 90)
    assert all(a >= b for a, b in zip(low, high))
    assert sum(low) > sum(high)


def test_quant_table_rejects_wrong_length():
    with pytest.raises(ValueError):
        quant_table([1, 2, 3], 50)


def test_quantize_rounds_half_away_from_zero():
    table = np.array(LUMINANCE_QUANT, dtype=np.float32).reshape(8, 8)
    positive = quantize(table * 2.5, LUMINANCE_QUANT)
    negative = quantize(table * -2.5, LUMINANCE_QUANT)
    np.testing.assert_array_equal(positive, np.full((8, 8), 3))
    np.testing.assert_array_equal(negative, np.full((8, 8), -3))


def test_dequantize_inverts_exact_quantize():
    table = np.array(CHROMA_QUANT, dtype=np.float32).reshape(8, 8)
    block = table * np.arange(-32, 32, dtype=np.float32).reshape(8, 8)
    np.testing.assert_array_equal(dequantize(quantize(block, CHROMA_QUANT), CHROMA_QUANT), block)


def test_encode_zero_block():
    pairs, dc = encode_block(np.zeros((8, 8), dtype=np.int32), 0)
    assert pairs == [RLEPair(0, 0), RLEPair(63, 0)]
    assert dc == 0


def test_encode_block_clamps_values():
    block = np.zeros((8, 8), dtype=np.int32)
    block[0, 1] = 200
    block[1, 0] = -300
    pairs, _ = encode_block(block, 0)
    assert pairs[1:3] == [RLEPair(0, 127), RLEPair(0, -128)]


def test_encode_block_codes_dc_difference():
    block = np.zeros((8, 8), dtype=np.int32)
    block[0, 0] = 10
    pairs, dc = encode_block(block, 10)
    assert pairs[0] == RLEPair(0, 0)
    assert dc == 10


def test_channel_round_trip():
    rng = np.random.default_rng(3)
    channel = rng.integers(-128, 128, size=(16, 24))
    channel[::8, ::8] = rng.integers(-1000, 1000, size=(2, 3))
    decoded = decode_channel(encode_channel(channel), 16, 24)
    np.testing.assert_array_equal(decoded, channel)


def test_decode_channel_pads_small_sizes():
    channel = np.zeros((16, 16), dtype=np.int32)
    channel[9, 9] = 5
    decoded = decode_channel(encode_channel(channel), 10, 12)
    np.testing.assert_array_equal(decoded, channel)


def test_decode_channel_without_pairs_fails():
    with pytest.raises(SamsError):
        decode_channel([], 8, 8)


def test_encode_channel_rejects_unaligned_plane():
    with pytest.raises(ValueError):
        encode_channel(np.zeros((7, 8), dtype=np.int32))


def test_crop_keeps_top_left():
    channel = np.arange(64, dtype=np.float32).reshape(8, 8)
    np.testing.assert_array_equal(crop(channel, 3, 5), channel[:3, :5])
    with pytest.raises(ValueError):
        crop(channel, 9, 5)


def test_upscale_repeats_pixels():
    channel = np.array([[1.0, 2.0], [3.0, 4.0]])
    result = upscale(channel, 3, 3)
    np.testing.assert_array_equal(result, [[1, 1, 2], [1, 1, 2], [3, 3, 4]])
    with pytest.raises(ValueError):
        upscale(channel, 5, 3)


def test_downsample_then_upscale_restores_constant_plane():
    channel = np.full((5, 7), 42.0, dtype=np.float32)
    np.testing.assert_array_equal(upscale(downsample_chroma(channel), 5, 7), channel)
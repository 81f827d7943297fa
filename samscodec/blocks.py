"""Block-level stages of the SAMS codec: colour conversion, padding, DCT,
quantisation and run-length coding of 8x8 blocks."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence

import numpy as np

from .bmp import Bitmap, BmpError
from .sams import RLEPair, SamsError

BLOCK = 8
NEUTRAL = 128.0
ONE_OVER_SQRT_TWO = np.float32(0.70710678)

LUMINANCE_QUANT = (
    16, 11, 10, 16, 24, 40, 51, 61,
    12, 12, 14, 19, 26, 58, 60, 55,
    14, 13, 16, 24, 40, 57, 69, 56,
    14, 17, 22, 29, 51, 87, 80, 62,
    18, 22, 37, 56, 68, 109, 103, 77,
    24, 35, 55, 64, 81, 104, 113, 92,
    49, 64, 78, 87, 103, 121, 120, 101,
    72, 92, 95, 98, 112, 100, 103, 99,
)

CHROMA_QUANT = (
    17, 18, 24, 47, 70, 80, 90, 95,
    18, 21, 26, 66, 74, 84, 93, 95,
    24, 26, 56, 78, 85, 93, 95, 98,
    47, 66, 80, 86, 92, 95, 98, 99,
    70, 74, 85, 92, 95, 97, 99, 99,
    80, 84, 93, 95, 97, 99, 99, 99,
    90, 93, 95, 98, 99, 99, 99, 99,
    95, 95, 98, 99, 99, 99, 99, 99,
)

# Position inside a row-major 8x8 block of each coefficient in zigzag order.
ZIGZAG = (
    0, 1, 8, 16, 9, 2, 3, 10,
    17, 24, 32, 25, 18, 11, 4, 5,
    12, 19, 26, 33, 40, 48, 41, 34,
    27, 20, 13, 6, 7, 14, 21, 28,
    35, 42, 49, 56, 57, 50, 43, 36,
    29, 22, 15, 23, 30, 37, 44, 51,
    58, 59, 52, 45, 38, 31, 39, 46,
    53, 60, 61, 54, 47, 55, 62, 63,
)

_ZIGZAG_INDEX = np.array(ZIGZAG)
_SCALE = np.array([ONE_OVER_SQRT_TWO] + [1.0] * (BLOCK - 1), dtype=np.float32)


class Padding(Enum):
    """How a plane is extended to a whole number of blocks."""

    REPLICATE = "replicate"
    NEUTRAL = "neutral"


def _padded(size: int) -> int:
    return (size + BLOCK - 1) // BLOCK * BLOCK


def _plane(channel, dtype=np.float32) -> np.ndarray:
    plane = np.asarray(channel, dtype=dtype)
    if plane.ndim != 2:
        raise ValueError(f"a channel must be two-dimensional, got {plane.ndim} dimensions")
    return plane


def _block(block, dtype=np.float32) -> np.ndarray:
    values = np.asarray(block, dtype=dtype)
    if values.shape != (BLOCK, BLOCK):
        raise ValueError(f"a block must be {BLOCK}x{BLOCK}, got {values.shape}")
    return values


def _table(table: Sequence[int]) -> np.ndarray:
    values = np.asarray(list(table), dtype=np.float32)
    if values.size != BLOCK * BLOCK:
        raise ValueError(f"a quantisation table needs {BLOCK * BLOCK} entries, got {values.size}")
    return values.reshape(BLOCK, BLOCK)


def _direct_depth(bmp: Bitmap) -> int:
    if bmp.table is not None or bmp.bits not in (24, 32):
        raise BmpError(f"only 24- and 32-bit direct-colour images are supported here, got {bmp.bits} bits")
    if len(bmp.data) < bmp.image_size:
        raise BmpError("pixel data is shorter than the image")
    return bmp.bits // 8


def _bgr_pixels(bmp: Bitmap) -> np.ndarray:
    height, width = bmp.height, bmp.width
    if height == 0 or width == 0:
        return np.zeros((height, width, 3), dtype=np.uint8)
    if bmp.table is not None:
        return np.array(
            [[tuple(bmp.pixel(y, x)[:3]) for x in range(width)] for y in range(height)],
            dtype=np.uint8,
        )
    depth = _direct_depth(bmp)
    rows = np.frombuffer(bytes(bmp.data[:bmp.image_size]), dtype=np.uint8)
    rows = rows.reshape(height, bmp.row_size)[::-1, :width * depth]
    return rows.reshape(height, width, depth)[..., :3]


def bgr_to_ycbcr(bmp: Bitmap) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split an image into luminance and two chroma planes (BT.601), top row first."""
    pixels = _bgr_pixels(bmp).astype(np.float64)
    blue, green, red = pixels[..., 0], pixels[..., 1], pixels[..., 2]
    y = 0.299 * red + 0.587 * green + 0.114 * blue
    cb = -0.169 * red - 0.331 * green + 0.500 * blue + 128
    cr = 0.500 * red - 0.419 * green - 0.081 * blue + 128
    return y.astype(np.float32), cb.astype(np.float32), cr.astype(np.float32)


def downsample_chroma(channel) -> np.ndarray:
    """Average 2x2 blocks; odd edges average only the pixels present."""
    plane = _plane(channel)
    height, width = plane.shape
    new_shape = ((height + 1) // 2, (width + 1) // 2)
    sums = np.zeros(new_shape, dtype=np.float32)
    counts = np.zeros(new_shape, dtype=np.float32)
    for dy, dx in ((0, 0), (1, 0), (0, 1), (1, 1)):
        part = plane[dy::2, dx::2]
        rows, cols = part.shape
        sums[:rows, :cols] += part
        counts[:rows, :cols] += 1
    result = np.full(new_shape, NEUTRAL, dtype=np.float32)
    np.divide(sums, counts, out=result, where=counts > 0)
    return result


def pad_to_blocks(channel, strategy) -> np.ndarray:
    """Extend a plane to multiples of 8 by repeating its edge or with the neutral value 128."""
    plane = _plane(channel)
    strategy = Padding(strategy)
    height, width = plane.shape
    padding = ((0, _padded(height) - height), (0, _padded(width) - width))
    if strategy is Padding.REPLICATE:
        if plane.size == 0:
            return np.zeros((_padded(height), _padded(width)), dtype=np.float32)
        return np.pad(plane, padding, mode="edge")
    return np.pad(plane, padding, mode="constant", constant_values=NEUTRAL)


def dct_matrix() -> np.ndarray:
    """The 8x8 cosine basis: entry [i, j] is cos((2j + 1) i pi / 16)."""
    i = np.arange(BLOCK, dtype=np.float32)[:, None]
    j = np.arange(BLOCK, dtype=np.float32)[None, :]
    return np.cos((2 * j + 1) * i * np.float32(np.pi) / np.float32(16)).astype(np.float32)


def forward_dct(block, dct) -> np.ndarray:
    """Level-shift a block by 128 and apply the 2-D DCT."""
    basis = _block(dct)
    shifted = _block(block) - np.float32(NEUTRAL)
    rows = (shifted @ basis.T) * _SCALE[None, :]
    return ((basis @ rows) * _SCALE[:, None] * np.float32(0.25)).astype(np.float32)


def quant_table(base: Sequence[int], quality: int) -> tuple[int, ...]:
    """Scale a base quantisation table for a quality of 1 to 100."""
    values = _table(base).reshape(-1)
    quality = min(max(int(quality), 1), 100)
    scaled = max(int(np.float32(quality) * np.float32(0.85)), 1)
    if scaled < 50:
        factor = np.float32(50) / np.float32(scaled)
    else:
        factor = np.float32(2) - np.float32(scaled) * np.float32(2) / np.float32(100)
    return tuple(
        min(max(int(value * factor + np.float32(0.5)), 1), 255) for value in values
    )


def quantize(block, table: Sequence[int]) -> np.ndarray:
    """Divide DCT coefficients by the table and round half away from zero."""
    ratio = (_block(block) / _table(table)).astype(np.float64)
    return np.trunc(ratio + np.copysign(0.5, ratio)).astype(np.int32)


def encode_block(block, previous_dc: int) -> tuple[list[RLEPair], int]:
    """Zigzag and run-length code a quantised block.

    The first pair carries the DC difference from the previous block as a
    16-bit value: low byte in the zero count, high byte in the value.
    Returns the pairs and this block's DC coefficient.
    """
    coefficients = _block(block, dtype=np.int64).reshape(-1)[_ZIGZAG_INDEX]
    dc = int(coefficients[0])
    difference = (dc - int(previous_dc) + 0x8000) % 0x10000 - 0x8000
    pairs = [RLEPair(difference & 0xFF, difference >> 8)]

    zeros = 0
    for coefficient in coefficients[1:]:
        value = int(coefficient)
        if value == 0 and zeros < 255:
            zeros += 1
            continue
        pairs.append(RLEPair(zeros, min(max(value, -128), 127)))
        zeros = 0
    if zeros:
        pairs.append(RLEPair(zeros, 0))
    return pairs, dc


def encode_channel(channel) -> list[RLEPair]:
    """Code every block of a quantised plane, left to right, top to bottom."""
    plane = _plane(channel, dtype=np.int64)
    height, width = plane.shape
    if height % BLOCK or width % BLOCK:
        raise ValueError(f"channel size {height}x{width} is not a multiple of {BLOCK}")
    pairs: list[RLEPair] = []
    previous_dc = 0
    for top in range(0, height, BLOCK):
        for left in range(0, width, BLOCK):
            block_pairs, previous_dc = encode_block(
                plane[top:top + BLOCK, left:left + BLOCK], previous_dc
            )
            pairs.extend(block_pairs)
    return pairs


def decode_channel(pairs: Iterable[RLEPair], height: int, width: int) -> np.ndarray:
    """Rebuild the padded plane of quantised coefficients for an image of the given size."""
    if height < 0 or width < 0:
        raise ValueError(f"invalid channel size {height}x{width}")
    pairs = list(pairs)
    padded_height, padded_width = _padded(height), _padded(width)
    decoded = np.zeros((padded_height, padded_width), dtype=np.int64)

    position = 0
    previous_dc = 0
    for top in range(0, padded_height, BLOCK):
        for left in range(0, padded_width, BLOCK):
            if position >= len(pairs):
                raise SamsError("coded channel ends before its last block")
            head = pairs[position]
            position += 1
            previous_dc += head.value * 256 + head.zeros

            zigzagged = np.zeros(BLOCK * BLOCK, dtype=np.int64)
            zigzagged[0] = previous_dc
            index = 1
            while index < BLOCK * BLOCK and position < len(pairs):
                pair = pairs[position]
                position += 1
                index += pair.zeros
                if index < BLOCK * BLOCK:
                    zigzagged[index] = pair.value
                    index += 1

            flat = np.zeros(BLOCK * BLOCK, dtype=np.int64)
            flat[_ZIGZAG_INDEX] = zigzagged
            decoded[top:top + BLOCK, left:left + BLOCK] = flat.reshape(BLOCK, BLOCK)
    return decoded


def dequantize(block, table: Sequence[int]) -> np.ndarray:
    """Multiply quantised coefficients back by the table."""
    return (_block(block) * _table(table)).astype(np.float32)


def inverse_dct(block, dct) -> np.ndarray:
    """Apply the inverse 2-D DCT, undo the level shift and clamp to 0..255."""
    scaled_basis = _block(dct) * _SCALE[:, None]
    columns = scaled_basis.T @ _block(block)
    pixels = (columns @ scaled_basis) * np.float32(0.25) + np.float32(NEUTRAL)
    return np.clip(pixels, 0.0, 255.0).astype(np.float32)


def crop(channel, height: int, width: int) -> np.ndarray:
    """Drop block padding, keeping the top-left height x width region."""
    plane = _plane(channel)
    if height < 0 or width < 0 or height > plane.shape[0] or width > plane.shape[1]:
        raise ValueError(f"cannot crop a {plane.shape} plane to {height}x{width}")
    return plane[:height, :width].copy()


def upscale(channel, height: int, width: int) -> np.ndarray:
    """Double a plane in both directions by repetition and trim it to height x width."""
    plane = _plane(channel)
    enlarged = np.repeat(np.repeat(plane, 2, axis=0), 2, axis=1)[:height, :width]
    if height < 0 or width < 0 or enlarged.shape != (height, width):
        raise ValueError(f"a {plane.shape} plane cannot cover {height}x{width}")
    return enlarged


def ycbcr_to_bgr(y, cb, cr, bmp: Bitmap) -> None:
    """Convert three full-size planes back to colour and store them in the bitmap."""
    height, width = bmp.height, bmp.width
    planes = [_plane(plane) for plane in (y, cb, cr)]
    for plane in planes:
        if plane.shape != (height, width):
            raise ValueError(f"plane of shape {plane.shape} does not match a {height}x{width} image")
    if height == 0 or width == 0:
        return
    depth = _direct_depth(bmp)

    luma = planes[0].astype(np.float64)
    blue_diff = (planes[1] - np.float32(NEUTRAL)).astype(np.float64)
    red_diff = (planes[2] - np.float32(NEUTRAL)).astype(np.float64)
    red = luma + 1.40200 * red_diff
    green = luma - 0.34414 * blue_diff - 0.71414 * red_diff
    blue = luma + 1.77200 * blue_diff
    bgr = np.clip(np.trunc(np.stack([blue, green, red], axis=-1)), 0, 255).astype(np.uint8)

    rows = np.frombuffer(bmp.data, dtype=np.uint8, count=bmp.image_size).reshape(height, bmp.row_size)
    for row, values in zip(rows[::-1], bgr):
        row[:width * depth].reshape(width, depth)[:, :3] = values
"""Whole-image compression and decompression for the SAMS format."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Iterable, Iterator, Sequence

import numpy as np

from .blocks import (
    BLOCK,
    CHROMA_QUANT,
    LUMINANCE_QUANT,
    Padding,
    bgr_to_ycbcr,
    crop,
    dct_matrix,
    decode_channel,
    dequantize,
    downsample_chroma,
    encode_channel,
    forward_dct,
    inverse_dct,
    pad_to_blocks,
    quant_table,
    quantize,
    upscale,
    ycbcr_to_bgr,
)
from .bmp import Bitmap, create_bmp24
from .sams import RLEPair, SamsImage, create_sams


class ChannelType(Enum):
    """Which kind of plane is being coded."""

    LUMINANCE = "luminance"
    CHROMA = "chroma"


def _block_slices(height: int, width: int) -> Iterator[tuple[slice, slice]]:
    for top in range(0, height, BLOCK):
        for left in range(0, width, BLOCK):
            yield slice(top, top + BLOCK), slice(left, left + BLOCK)


def encode_plane(channel, kind, quality: int) -> tuple[list[RLEPair], tuple[int, ...]]:
    """Code one full-size plane.

    Chroma planes are halved in both directions and padded with the neutral
    value; luminance planes are padded by repeating their edges. Returns the
    run-length pairs and the quantisation table that was used.
    """
    kind = ChannelType(kind)
    plane = np.asarray(channel, dtype=np.float32)
    if kind is ChannelType.CHROMA:
        plane = pad_to_blocks(downsample_chroma(plane), Padding.NEUTRAL)
        base = CHROMA_QUANT
    else:
        plane = pad_to_blocks(plane, Padding.REPLICATE)
        base = LUMINANCE_QUANT

    table = quant_table(base, quality)
    dct = dct_matrix()
    coefficients = np.zeros(plane.shape, dtype=np.int32)
    for rows, cols in _block_slices(*plane.shape):
        coefficients[rows, cols] = quantize(forward_dct(plane[rows, cols], dct), table)
    return encode_channel(coefficients), table


def decode_plane(
    pairs: Iterable[RLEPair],
    height: int,
    width: int,
    table: Sequence[int],
    kind,
) -> np.ndarray:
    """Rebuild a full-size plane of an image of height x width from its pairs."""
    kind = ChannelType(kind)
    if height < 0 or width < 0:
        raise ValueError(f"invalid image size {width}x{height}")
    if kind is ChannelType.CHROMA:
        coded_height, coded_width = (height + 1) // 2, (width + 1) // 2
    else:
        coded_height, coded_width = height, width

    coefficients = decode_channel(pairs, coded_height, coded_width)
    dct = dct_matrix()
    plane = np.empty(coefficients.shape, dtype=np.float32)
    for rows, cols in _block_slices(*coefficients.shape):
        plane[rows, cols] = inverse_dct(dequantize(coefficients[rows, cols], table), dct)

    plane = crop(plane, coded_height, coded_width)
    if kind is ChannelType.CHROMA:
        plane = upscale(plane, height, width)
    return plane


def compress(bmp: Bitmap, quality: int) -> SamsImage:
    """Compress a bitmap at a quality of 1 to 100."""
    y, cb, cr = bgr_to_ycbcr(bmp)
    jobs = (
        (y, ChannelType.LUMINANCE),
        (cb, ChannelType.CHROMA),
        (cr, ChannelType.CHROMA),
    )
    with ThreadPoolExecutor(max_workers=3) as pool:
        futures = [pool.submit(encode_plane, plane, kind, quality) for plane, kind in jobs]
        (y_pairs, luminance_table), (cb_pairs, chroma_table), (cr_pairs, _) = (
            future.result() for future in futures
        )
    return create_sams(
        y_pairs, cb_pairs, cr_pairs, bmp.height, bmp.width, luminance_table, chroma_table
    )


def decompress(image: SamsImage) -> Bitmap:
    """Decode a SAMS image into a 24-bit bitmap."""
    height, width = image.height, image.width
    with ThreadPoolExecutor(max_workers=3) as pool:
        planes = list(
            pool.map(
                decode_plane,
                (image.y, image.cb, image.cr),
                (height,) * 3,
                (width,) * 3,
                (image.luminance_quant, image.chroma_quant, image.chroma_quant),
                (ChannelType.LUMINANCE, ChannelType.CHROMA, ChannelType.CHROMA),
            )
        )
    bmp = create_bmp24(width, height)
    ycbcr_to_bgr(*planes, bmp)
    return bmp
# samscodec

A small lossy image codec. It reads an uncompressed BMP image and stores it
as a SAMS file. On the way it converts the colours to YCbCr (BT.601), halves
the resolution of both chroma planes, pads every plane to whole 8x8 blocks,
applies an 8x8 DCT, quantizes the coefficients with tables scaled by a
quality setting, orders each block in zig-zag order and run-length codes it.
Decompression reverses these steps and produces a 24-bit BMP.

The three planes are coded in parallel threads. The package depends on
NumPy.

## Installation

```
pip install .
```

## Command line

Compress a BMP with a quality from 1 (smallest file) to 100 (best image):

```
samscodec -c input.bmp output.sams 75
samscodec --compress input.bmp output.sams 75
```

Decompress a SAMS file back to a BMP:

```
samscodec -d output.sams restored.bmp
samscodec --decompress output.sams restored.bmp
```

Each successful run prints the CPU time it used and exits with status 0.
If the arguments are wrong (too few, an unknown flag, an empty path, or a
quality that is not a whole number from 1 to 100) the command prints a usage
summary and exits with status 1. If a file cannot be read or written, or is
not a valid BMP or SAMS file, it prints the error to standard error and exits
with status 1.

## Library

```python
from samscodec.bmp import read_bmp, write_bmp
from samscodec.coder import compress, decompress
from samscodec.sams import read_sams, write_sams

bitmap = read_bmp("input.bmp")
image = compress(bitmap, 75)
write_sams("output.sams", image)

restored = decompress(read_sams("output.sams"))
write_bmp("restored.bmp", restored)
```

The modules:

- `samscodec.bmp` – `read_bmp`, `write_bmp` and `create_bmp24`, and the
  `Bitmap` class with `pixel(y, x)` and `set_pixel(y, x, bgr)`, where row 0
  is the top of the image. Malformed files raise `BmpError`.
- `samscodec.sams` – `read_sams`, `write_sams`, `create_sams`, the
  `SamsImage` and `RLEPair` classes, and `pack_pairs` / `unpack_pairs` for
  the two-byte pair encoding. Malformed files raise `SamsError`.
- `samscodec.blocks` – the individual stages: `bgr_to_ycbcr`,
  `downsample_chroma`, `pad_to_blocks` (with `Padding.REPLICATE` or
  `Padding.NEUTRAL`), `dct_matrix`, `forward_dct`, `quant_table`,
  `quantize`, `encode_block`, `encode_channel`, `decode_channel`,
  `dequantize`, `inverse_dct`, `crop`, `upscale` and `ycbcr_to_bgr`.
- `samscodec.coder` – `compress`, `decompress`, and `encode_plane` /
  `decode_plane` for a single plane of kind `ChannelType.LUMINANCE` or
  `ChannelType.CHROMA`.
- `samscodec.cli` – `main(argv=None)`, plus `compress_file(src, dst,
  quality)` and `decompress_file(src, dst)`, which do the same work as the
  command and return the CPU time used.

## Supported images and limits

- Bitmaps with 1, 2, 4 or 8 bits per pixel are read through their colour
  table; direct-colour bitmaps must have 24 or 32 bits per pixel. Other
  depths, and compressed BMPs, cannot be compressed.
- Decompressed images are always 24-bit, bottom-up BMPs.
- Quality is clamped to 1..100 and then scaled by 0.85 before the
  quantization tables are derived from it.
- Each AC coefficient is stored in a signed byte, so values outside
  -128..127 are clamped; the DC difference between neighbouring blocks is
  stored as a 16-bit value.

## File format

A SAMS file starts with a packed little-endian file header: a 2-byte
signature `0xF15A`, the total size, a reserved word and the offset of the
channel data. An image header follows with the width, the height, the byte
length of each of the three channel streams, and the 64-entry luminance and
chroma quantization tables as signed 32-bit integers. After that come the
Y, Cb and Cr streams. Each stream is a run of two-byte pairs: an unsigned
count of zeros and a signed 8-bit value. The first pair of every block holds
the difference from the previous block's DC coefficient, its low byte in the
zero count and its high byte in the value.
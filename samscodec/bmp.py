"""Reading, writing and pixel access for uncompressed BMP images."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from os import PathLike
from typing import BinaryIO, Iterable, Union

PathType = Union[str, PathLike]

BMP_SIGNATURE = 0x4D42
DEFAULT_PELS_PER_METER = 2835

_FILE_HEADER = struct.Struct("<HIII")
_INFO_HEADER = struct.Struct("<IiiHHIIiiII")
_PIXEL_OFFSET = _FILE_HEADER.size + _INFO_HEADER.size


class BmpError(Exception):
    """Raised when a BMP file is malformed or cannot be handled."""


@dataclass
class BmpFileHeader:
    """The 14-byte file header that opens every BMP file."""

    size: int = 0
    offset: int = _PIXEL_OFFSET
    signature: int = BMP_SIGNATURE
    reserved: int = 0

    def pack(self) -> bytes:
        return _FILE_HEADER.pack(self.signature, self.size, self.reserved, self.offset)

    @classmethod
    def unpack(cls, raw: bytes) -> "BmpFileHeader":
        signature, size, reserved, offset = _FILE_HEADER.unpack(raw)
        return cls(size=size, offset=offset, signature=signature, reserved=reserved)


@dataclass
class BmpInfoHeader:
    """The 40-byte bitmap information header."""

    width: int
    height: int
    bits: int
    size: int = _INFO_HEADER.size
    planes: int = 1
    compression: int = 0
    size_image: int = 0
    x_pels_per_meter: int = 0
    y_pels_per_meter: int = 0
    clr_used: int = 0
    clr_important: int = 0

    def pack(self) -> bytes:
        return _INFO_HEADER.pack(
            self.size,
            self.width,
            self.height,
            self.planes,
            self.bits,
            self.compression,
            self.size_image,
            self.x_pels_per_meter,
            self.y_pels_per_meter,
            self.clr_used,
            self.clr_important,
        )

    @classmethod
    def unpack(cls, raw: bytes) -> "BmpInfoHeader":
        (
            size,
            width,
            height,
            planes,
            bits,
            compression,
            size_image,
            x_pels,
            y_pels,
            clr_used,
            clr_important,
        ) = _INFO_HEADER.unpack(raw)
        return cls(
            width=width,
            height=height,
            bits=bits,
            size=size,
            planes=planes,
            compression=compression,
            size_image=size_image,
            x_pels_per_meter=x_pels,
            y_pels_per_meter=y_pels,
            clr_used=clr_used,
            clr_important=clr_important,
        )


def _row_size(width: int, bits: int) -> int:
    if width < 0:
        raise BmpError(f"invalid image width {width}")
    return ((width * bits + 31) // 32) * 4


@dataclass
class Bitmap:
    """A BMP image: headers, raw bottom-up pixel rows and an optional palette."""

    file_header: BmpFileHeader
    info_header: BmpInfoHeader
    data: bytearray
    row_size: int
    table: bytearray | None = None

    @property
    def width(self) -> int:
        return abs(self.info_header.width)

    @property
    def height(self) -> int:
        return abs(self.info_header.height)

    @property
    def bits(self) -> int:
        return self.info_header.bits

    @property
    def has_table(self) -> bool:
        return self.table is not None

    @property
    def image_size(self) -> int:
        return self.row_size * self.height

    def _row_start(self, y: int, x: int) -> int:
        if not (0 <= y < self.height and 0 <= x < self.width):
            raise IndexError(f"pixel ({y}, {x}) is outside a {self.height}x{self.width} image")
        return (self.height - 1 - y) * self.row_size

    def pixel(self, y: int, x: int) -> bytes:
        """Return the colour bytes at row y (from the top) and column x.

        Direct-colour images give the stored pixel bytes; indexed images
        give the 4-byte palette entry the pixel refers to.
        """
        start = self._row_start(y, x)
        bits = self.bits
        if self.table is None:
            width = bits // 8
            offset = start + x * width
            return bytes(self.data[offset:offset + width])

        if bits == 8:
            index = self.data[start + x]
        elif bits in (1, 2, 4):
            byte = self.data[start + (x * bits) // 8]
            shift = 8 - bits - (x * bits) % 8
            index = (byte >> shift) & ((1 << bits) - 1)
        else:
            raise BmpError(f"unsupported palette depth of {bits} bits")

        entry = self.table[index * 4:index * 4 + 4]
        if len(entry) < 4:
            raise BmpError(f"palette index {index} is out of range")
        return bytes(entry)

    def set_pixel(self, y: int, x: int, bgr: Iterable[int]) -> None:
        """Store colour bytes at row y (from the top) and column x."""
        if self.table is not None:
            raise BmpError("pixels of indexed images cannot be set directly")
        start = self._row_start(y, x)
        values = bytes(bgr)
        width = self.bits // 8
        if len(values) > width:
            raise ValueError(f"a pixel holds at most {width} bytes, got {len(values)}")
        offset = start + x * width
        self.data[offset:offset + len(values)] = values


def _read_exact(stream: BinaryIO, count: int, what: str) -> bytes:
    raw = stream.read(count)
    if len(raw) != count:
        raise BmpError(f"file ends inside the {what}")
    return raw


def read_bmp(path: PathType) -> Bitmap:
    """Load a BMP file."""
    with open(path, "rb") as stream:
        file_header = BmpFileHeader.unpack(_read_exact(stream, _FILE_HEADER.size, "file header"))
        if file_header.signature != BMP_SIGNATURE:
            raise BmpError("incorrect BMP signature")

        info_header = BmpInfoHeader.unpack(_read_exact(stream, _INFO_HEADER.size, "bitmap header"))

        table = None
        if info_header.bits <= 8:
            colours = info_header.clr_used or (1 << info_header.bits)
            table = bytearray(_read_exact(stream, colours * 4, "colour table"))

        stream.seek(file_header.offset)
        row_size = _row_size(info_header.width, info_header.bits)
        image_size = row_size * abs(info_header.height)
        data = bytearray(_read_exact(stream, image_size, "pixel data"))

    return Bitmap(
        file_header=file_header,
        info_header=info_header,
        data=data,
        row_size=row_size,
        table=table,
    )


def write_bmp(path: PathType, bmp: Bitmap) -> None:
    """Save a bitmap as a BMP file."""
    image_size = bmp.image_size
    if len(bmp.data) < image_size:
        raise BmpError("pixel data is shorter than the image")
    try:
        headers = bmp.file_header.pack() + bmp.info_header.pack()
    except struct.error as exc:
        raise BmpError(f"header field out of range: {exc}") from exc

    with open(path, "wb") as stream:
        stream.write(headers)
        if bmp.table is not None:
            stream.write(bmp.table)
        stream.seek(bmp.file_header.offset)
        stream.write(bmp.data[:image_size])


def create_bmp24(width: int, height: int) -> Bitmap:
    """Create a black 24-bit bitmap of the given size."""
    if width < 0 or height < 0:
        raise ValueError(f"invalid image size {width}x{height}")
    row_size = _row_size(width, 24)
    image_size = row_size * height
    file_header = BmpFileHeader(size=image_size + _PIXEL_OFFSET, offset=_PIXEL_OFFSET)
    info_header = BmpInfoHeader(
        width=width,
        height=height,
        bits=24,
        size_image=image_size,
        x_pels_per_meter=DEFAULT_PELS_PER_METER,
        y_pels_per_meter=DEFAULT_PELS_PER_METER,
    )
    return Bitmap(
        file_header=file_header,
        info_header=info_header,
        data=bytearray(image_size),
        row_size=row_size,
    )
"""The SAMS container: headers, quantisation tables and run-length coded channels."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from os import PathLike
from typing import BinaryIO, Iterable, Sequence, Union

PathType = Union[str, PathLike]

SAMS_SIGNATURE = 0xF15A
QUANT_SIZE = 64

_FILE_HEADER = struct.Struct("<HIII")
_HEADER = struct.Struct(f"<5I{QUANT_SIZE}i{QUANT_SIZE}i")
_PAIR = struct.Struct("<Bb")
HEADER_END = _FILE_HEADER.size + _HEADER.size


class SamsError(Exception):
    """Raised when a SAMS file is malformed or cannot be written."""


@dataclass(frozen=True)
class RLEPair:
    """A run of zeros followed by one signed coefficient."""

    zeros: int
    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.zeros <= 255:
            raise ValueError(f"zero run {self.zeros} does not fit in a byte")
        if not -128 <= self.value <= 127:
            raise ValueError(f"value {self.value} does not fit in a signed byte")


def pack_pairs(pairs: Iterable[RLEPair]) -> bytes:
    """Serialise pairs as two bytes each: zero count, then signed value."""
    return b"".join(_PAIR.pack(pair.zeros, pair.value) for pair in pairs)


def unpack_pairs(data: bytes) -> list[RLEPair]:
    """Parse bytes produced by pack_pairs."""
    if len(data) % _PAIR.size:
        raise SamsError(f"channel length {len(data)} is not a whole number of pairs")
    return [RLEPair(zeros, value) for zeros, value in _PAIR.iter_unpack(data)]


def _quant(table: Sequence[int], name: str) -> tuple[int, ...]:
    values = tuple(int(v) for v in table)
    if len(values) != QUANT_SIZE:
        raise ValueError(f"{name} needs {QUANT_SIZE} entries, got {len(values)}")
    return values


@dataclass
class SamsImage:
    """A compressed image with its three coded channels."""

    width: int
    height: int
    y: list[RLEPair]
    cb: list[RLEPair]
    cr: list[RLEPair]
    luminance_quant: tuple[int, ...]
    chroma_quant: tuple[int, ...]
    offset: int = field(default=HEADER_END)
    reserved: int = 0

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"invalid image size {self.width}x{self.height}")
        self.y = list(self.y)
        self.cb = list(self.cb)
        self.cr = list(self.cr)
        self.luminance_quant = _quant(self.luminance_quant, "luminance table")
        self.chroma_quant = _quant(self.chroma_quant, "chroma table")

    @property
    def lum_len(self) -> int:
        return len(self.y) * _PAIR.size

    @property
    def cb_size(self) -> int:
        return len(self.cb) * _PAIR.size

    @property
    def cr_size(self) -> int:
        return len(self.cr) * _PAIR.size

    @property
    def file_size(self) -> int:
        return HEADER_END + self.lum_len + self.cb_size + self.cr_size


def create_sams(y, cb, cr, height, width, luminance_quant, chroma_quant) -> SamsImage:
    """Assemble a SAMS image from coded channels and quantisation tables."""
    return SamsImage(
        width=width,
        height=height,
        y=y,
        cb=cb,
        cr=cr,
        luminance_quant=luminance_quant,
        chroma_quant=chroma_quant,
    )


def _read_exact(stream: BinaryIO, count: int, what: str) -> bytes:
    raw = stream.read(count)
    if len(raw) != count:
        raise SamsError(f"file ends inside the {what}")
    return raw


def read_sams(path: PathType) -> SamsImage:
    """Load a SAMS file."""
    with open(path, "rb") as stream:
        signature, _size, reserved, offset = _FILE_HEADER.unpack(
            _read_exact(stream, _FILE_HEADER.size, "file header")
        )
        if signature != SAMS_SIGNATURE:
            raise SamsError("file does not contain the SAMS signature")

        fields = _HEADER.unpack(_read_exact(stream, _HEADER.size, "image header"))
        width, height, lum_len, cb_size, cr_size = fields[:5]
        luminance_quant = fields[5:5 + QUANT_SIZE]
        chroma_quant = fields[5 + QUANT_SIZE:]

        y = unpack_pairs(_read_exact(stream, lum_len, "luminance channel"))
        cb = unpack_pairs(_read_exact(stream, cb_size, "blue chroma channel"))
        cr = unpack_pairs(_read_exact(stream, cr_size, "red chroma channel"))

    return SamsImage(
        width=width,
        height=height,
        y=y,
        cb=cb,
        cr=cr,
        luminance_quant=luminance_quant,
        chroma_quant=chroma_quant,
        offset=offset,
        reserved=reserved,
    )


def write_sams(path: PathType, image: SamsImage) -> None:
    """Save a SAMS image."""
    try:
        file_header = _FILE_HEADER.pack(
            SAMS_SIGNATURE, image.file_size, image.reserved, image.offset
        )
        header = _HEADER.pack(
            image.width,
            image.height,
            image.lum_len,
            image.cb_size,
            image.cr_size,
            *image.luminance_quant,
            *image.chroma_quant,
        )
    except struct.error as exc:
        raise SamsError(f"header field out of range: {exc}") from exc

    with open(path, "wb") as stream:
        stream.write(file_header)
        stream.write(header)
        stream.seek(image.offset)
        stream.write(pack_pairs(image.y))
        stream.write(pack_pairs(image.cb))
        stream.write(pack_pairs(image.cr))
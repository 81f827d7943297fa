"""Command-line entry point: compress BMP files to SAMS and back."""

from __future__ import annotations

import re
import sys
import time

from .bmp import BmpError, read_bmp, write_bmp
from .coder import compress, decompress
from .sams import SamsError, read_sams, write_sams

PROGRAM = "samscodec"
_INTEGER = re.compile(r"\s*[+-]?\d+")


def _print_usage() -> None:
    print("Usage:")
    print(f"    {PROGRAM} -c|--compress <source> <destination> <quality>")
    print(f"    {PROGRAM} -d|--decompress <source> <destination>")
    print("\noptions:")
    print("    -c, --compress  Compress the source BMP file")
    print("    -d, --decompress  Decompress the source SAMS file")
    print("    <quality>   Quality setting for compression (1-100)")


def compress_file(src, dst, quality: int) -> float:
    """Compress a BMP file into a SAMS file; returns the CPU time used."""
    start = time.process_time()
    write_sams(dst, compress(read_bmp(src), quality))
    elapsed = time.process_time() - start
    print(f"CPU time used = {elapsed:f} seconds ")
    return elapsed


def decompress_file(src, dst) -> float:
    """Decompress a SAMS file into a BMP file; returns the CPU time used."""
    start = time.process_time()
    write_bmp(dst, decompress(read_sams(src)))
    elapsed = time.process_time() - start
    print(f"CPU time used = {elapsed:f} seconds")
    return elapsed


def _parse_quality(text: str) -> int | None:
    if not _INTEGER.fullmatch(text):
        return None
    quality = int(text)
    return quality if 1 <= quality <= 100 else None


def main(argv=None) -> int:
    """Run the command line; returns the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 3:
        _print_usage()
        return 1

    flag, src, dst = args[0], args[1], args[2]
    if flag.startswith("-c") or flag.startswith("--compress"):
        is_compress = True
    elif flag.startswith("-d") or flag.startswith("--decompre"):
        is_compress = False
    else:
        _print_usage()
        return 1

    if not src or not dst:
        _print_usage()
        return 1

    try:
        if is_compress:
            quality = _parse_quality(args[3]) if len(args) >= 4 else None
            if quality is None:
                _print_usage()
                return 1
            compress_file(src, dst, quality)
        else:
            decompress_file(src, dst)
    except (OSError, BmpError, SamsError, ValueError) as exc:
        print(f"{PROGRAM}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
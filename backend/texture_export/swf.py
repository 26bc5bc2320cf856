"""
SWF container decoding.

Reads the file header, decompresses the body (zlib or LZMA) and splits it into
an ordered list of typed tags. Only the tags needed to locate texture classes
are decoded structurally; everything else is kept as raw payload.
"""

import logging
import lzma
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple, Union

from texture_export.errors import SwfFormatError, TextureIOError
from texture_export.stream import BitReader, ByteReader

logger = logging.getLogger(__name__)

TWIPS_PER_PIXEL = 20

TAG_END = 0
TAG_FILE_ATTRIBUTES = 69
TAG_DO_ABC_LEGACY = 72
TAG_SYMBOL_CLASS = 76
TAG_DO_ABC = 82

FILE_ATTRIBUTE_AS3 = 0x08


@dataclass(frozen=True)
class SwfHeader:
    compression: str
    version: int
    file_length: int
    width: float
    height: float
    frame_rate: float
    frame_count: int


@dataclass(frozen=True)
class SymbolLink:
    symbol_id: int
    class_name: str


@dataclass(frozen=True)
class EndTag:
    code: int = TAG_END


@dataclass(frozen=True)
class FileAttributesTag:
    flags: int
    code: int = TAG_FILE_ATTRIBUTES

    @property
    def is_action_script_3(self) -> bool:
        return bool(self.flags & FILE_ATTRIBUTE_AS3)


@dataclass(frozen=True)
class SymbolClassTag:
    links: Tuple[SymbolLink, ...]
    code: int = TAG_SYMBOL_CLASS


@dataclass(frozen=True)
class DoAbcTag:
    flags: int
    name: str
    data: bytes = field(repr=False)
    code: int = TAG_DO_ABC


@dataclass(frozen=True)
class LegacyDoAbcTag:
    """First-generation DoABC record. Detected, never parsed."""
    data: bytes = field(repr=False)
    code: int = TAG_DO_ABC_LEGACY


@dataclass(frozen=True)
class UnknownTag:
    code: int
    data: bytes = field(repr=False)


Tag = Union[EndTag, FileAttributesTag, SymbolClassTag, DoAbcTag, LegacyDoAbcTag, UnknownTag]


@dataclass(frozen=True)
class SwfDocument:
    """A decoded SWF movie."""
    header: SwfHeader
    tags: Tuple[Tag, ...]
    data: bytes = field(repr=False)
    warnings: Tuple[str, ...] = ()

    @property
    def is_action_script_3(self) -> bool:
        for tag in self.tags:
            if isinstance(tag, FileAttributesTag):
                return tag.is_action_script_3
        return False

    @property
    def abc_tags(self) -> List[DoAbcTag]:
        return [tag for tag in self.tags if isinstance(tag, DoAbcTag)]

    @property
    def symbol_class_tags(self) -> List[SymbolClassTag]:
        return [tag for tag in self.tags if isinstance(tag, SymbolClassTag)]


def string_encoding(version: int) -> str:
    """SWF 6 and later store strings as UTF-8; earlier versions use a Windows codepage."""
    return "utf-8" if version >= 6 else "cp1252"


def decompress(data: bytes) -> Tuple[str, int, int, bytes]:
    """
    Split the 8-byte file header from the body and decompress the body.

    Returns:
        (signature, version, file_length, body) with body excluding the header
    """
    if len(data) < 8:
        raise SwfFormatError("File is too short to contain an SWF header")

    signature = data[:3].decode("latin-1")
    version = data[3]
    file_length = ByteReader(data[4:8]).read_u32()

    if signature == "FWS":
        body = data[8:]
    elif signature == "CWS":
        try:
            body = zlib.decompressobj().decompress(data[8:])
        except zlib.error as e:
            raise SwfFormatError(f"zlib decompression failed: {e}") from e
    elif signature == "ZWS":
        # 4-byte compressed length, 5 bytes of LZMA properties, then the stream.
        if len(data) < 17:
            raise SwfFormatError("LZMA header is truncated")
        properties = data[12:17]
        alone = properties + b"\xff" * 8 + data[17:]
        try:
            body = lzma.LZMADecompressor(format=lzma.FORMAT_ALONE).decompress(alone)
        except lzma.LZMAError as e:
            raise SwfFormatError(f"LZMA decompression failed: {e}") from e
    else:
        raise SwfFormatError(f"Invalid SWF signature {data[:3]!r}")

    expected = file_length - 8
    if len(body) < expected:
        logger.warning(
            f"SWF body is shorter than declared ({len(body)} < {expected} bytes)"
        )
    return signature, version, file_length, body


def _read_stage(reader: ByteReader) -> Tuple[float, float, float, int]:
    bits = BitReader(reader)
    nbits = bits.read_ubits(5)
    x_min = bits.read_sbits(nbits)
    x_max = bits.read_sbits(nbits)
    y_min = bits.read_sbits(nbits)
    y_max = bits.read_sbits(nbits)
    bits.align()

    frame_rate = reader.read_u16() / 256.0
    frame_count = reader.read_u16()
    width = (x_max - x_min) / TWIPS_PER_PIXEL
    height = (y_max - y_min) / TWIPS_PER_PIXEL
    return width, height, frame_rate, frame_count


def _read_symbol_class(payload: bytes, encoding: str) -> SymbolClassTag:
    reader = ByteReader(payload)
    count = reader.read_u16()
    links = []
    for _ in range(count):
        symbol_id = reader.read_u16()
        class_name = reader.read_cstring(encoding)
        links.append(SymbolLink(symbol_id, class_name))
    return SymbolClassTag(tuple(links))


def _read_do_abc(payload: bytes, encoding: str) -> DoAbcTag:
    reader = ByteReader(payload)
    flags = reader.read_u32()
    name = reader.read_cstring(encoding)
    return DoAbcTag(flags, name, payload[reader.pos:])


def _read_tag(code: int, payload: bytes, encoding: str) -> Tag:
    if code == TAG_END:
        return EndTag()
    if code == TAG_FILE_ATTRIBUTES:
        return FileAttributesTag(ByteReader(payload).read_u32())
    if code == TAG_SYMBOL_CLASS:
        return _read_symbol_class(payload, encoding)
    if code == TAG_DO_ABC:
        return _read_do_abc(payload, encoding)
    if code == TAG_DO_ABC_LEGACY:
        return LegacyDoAbcTag(payload)
    return UnknownTag(code, payload)


def read_tags(reader: ByteReader, encoding: str) -> List[Tag]:
    """Read tag records until an End tag or the end of data."""
    tags: List[Tag] = []
    while not reader.at_end():
        code_and_length = reader.read_u16()
        code = code_and_length >> 6
        length = code_and_length & 0x3F
        if length == 0x3F:
            length = reader.read_u32()

        if length > reader.remaining:
            raise SwfFormatError(
                f"Tag {code} at offset {reader.pos} declares {length} bytes, "
                f"only {reader.remaining} remain"
            )
        tag = _read_tag(code, reader.read_bytes(length), encoding)
        tags.append(tag)
        if isinstance(tag, EndTag):
            break
    return tags


def decode_swf(data: bytes) -> SwfDocument:
    """
    Decode a complete SWF file.

    Args:
        data: Raw file contents

    Returns:
        The decoded document

    Raises:
        SwfFormatError: If the header, compression or any tag record is malformed
    """
    signature, version, file_length, body = decompress(data)
    reader = ByteReader(body)
    width, height, frame_rate, frame_count = _read_stage(reader)

    header = SwfHeader(
        compression=signature,
        version=version,
        file_length=file_length,
        width=width,
        height=height,
        frame_rate=frame_rate,
        frame_count=frame_count,
    )
    tags = read_tags(reader, string_encoding(version))

    warnings = []
    legacy = sum(1 for tag in tags if isinstance(tag, LegacyDoAbcTag))
    if legacy:
        message = f"Skipping {legacy} DoABC (v1) tag(s): format not supported"
        logger.warning(message)
        warnings.append(message)

    return SwfDocument(header=header, tags=tuple(tags), data=data, warnings=tuple(warnings))


def load_swf(path: Union[str, Path]) -> SwfDocument:
    """Read and decode an SWF file from disk."""
    path = Path(path)
    if not path.is_file():
        raise TextureIOError(f"Swf argument is not a file or does not exist: {path}")
    try:
        data = path.read_bytes()
    except OSError as e:
        raise TextureIOError(f"Unable to read {path}: {e}") from e
    return decode_swf(data)

"""
Tests for SWF container decoding.
"""

import struct

import pytest

from texture_export.errors import SwfFormatError, TextureIOError
from texture_export.stream import BitReader, ByteReader
from texture_export.swf import (
    DoAbcTag,
    EndTag,
    FileAttributesTag,
    LegacyDoAbcTag,
    SymbolClassTag,
    SymbolLink,
    UnknownTag,
    decode_swf,
    load_swf,
)

from swf_builder import (
    build_swf,
    do_abc,
    end,
    file_attributes,
    legacy_do_abc,
    symbol_class,
    tag,
    texture_abc,
    texture_swf,
)


class TestByteReader:
    """Test cases for the low-level readers."""

    def test_u30_multi_byte(self):
        """Test that continuation bits are honoured."""
        reader = ByteReader(bytes([0xE5, 0x8E, 0x26]))
        assert reader.read_u30() == 624485
        assert reader.at_end()

    def test_u30_too_wide(self):
        """Test that a sixth continuation byte is rejected."""
        reader = ByteReader(b"\xff" * 6)
        with pytest.raises(SwfFormatError):
            reader.read_u30()

    def test_s32_negative(self):
        """Test that a five-byte s32 is reinterpreted as signed."""
        reader = ByteReader(bytes([0xFF, 0xFF, 0xFF, 0xFF, 0x0F]))
        assert reader.read_s32() == -1

    def test_truncated_read(self):
        """Test that reading past the end raises a format error."""
        reader = ByteReader(b"\x01")
        with pytest.raises(SwfFormatError) as exc_info:
            reader.read_u16()
        assert "Unexpected end of data" in str(exc_info.value)

    def test_unterminated_string(self):
        reader = ByteReader(b"abc")
        with pytest.raises(SwfFormatError):
            reader.read_cstring()

    def test_signed_bits(self):
        """Test reading signed bit fields across byte boundaries."""
        # 5 bits: 0b11110 (-2), 5 bits: 0b00011 (3)
        reader = ByteReader(bytes([0b11110000, 0b11000000]))
        bits = BitReader(reader)
        assert bits.read_sbits(5) == -2
        assert bits.read_sbits(5) == 3


class TestHeader:
    """Test cases for header parsing and decompression."""

    @pytest.mark.parametrize("compression", ["FWS", "CWS", "ZWS"])
    def test_compression_variants(self, compression):
        """Test that all three containers decode to the same tags."""
        document = decode_swf(texture_swf(compression=compression))

        assert document.header.compression == compression
        assert document.header.version == 10
        assert document.header.width == 400
        assert document.header.height == 300
        assert document.header.frame_rate == 24.0
        assert document.header.frame_count == 1
        assert [type(t) for t in document.tags] == [FileAttributesTag, DoAbcTag, SymbolClassTag, EndTag]

    def test_invalid_signature(self):
        data = b"XYZ" + texture_swf()[3:]
        with pytest.raises(SwfFormatError) as exc_info:
            decode_swf(data)
        assert "Invalid SWF signature" in str(exc_info.value)

    def test_too_short(self):
        with pytest.raises(SwfFormatError):
            decode_swf(b"FWS\x0a")

    def test_corrupt_zlib(self):
        data = b"CWS\x0a" + struct.pack("<I", 100) + b"not zlib at all"
        with pytest.raises(SwfFormatError) as exc_info:
            decode_swf(data)
        assert "zlib" in str(exc_info.value)

    def test_missing_stage_rect(self):
        """Test that a body too short for the stage header is rejected."""
        with pytest.raises(SwfFormatError):
            decode_swf(b"FWS\x0a" + struct.pack("<I", 9) + b"\x78")


class TestTags:
    """Test cases for tag record parsing."""

    def test_symbol_class_links(self):
        data = build_swf([symbol_class([(1, "a.B"), (7, "c.D")]), end()])
        document = decode_swf(data)

        assert document.symbol_class_tags[0].links == (SymbolLink(1, "a.B"), SymbolLink(7, "c.D"))

    def test_do_abc_fields(self):
        abc = texture_abc([("pkg", "Cls")])
        document = decode_swf(build_swf([do_abc(abc, name="main", flags=1), end()]))

        abc_tag = document.abc_tags[0]
        assert abc_tag.name == "main"
        assert abc_tag.flags == 1
        assert abc_tag.data == abc

    def test_long_tag_length(self):
        """Test that payloads of 63 bytes or more use the long length form."""
        payload = bytes(range(100))
        document = decode_swf(build_swf([tag(2, payload), end()]))

        assert document.tags[0] == UnknownTag(2, payload)

    def test_truncated_tag(self):
        """Test that a tag declaring more bytes than remain is rejected."""
        data = build_swf([struct.pack("<H", (2 << 6) | 10) + b"abc"])
        with pytest.raises(SwfFormatError) as exc_info:
            decode_swf(data)
        assert "declares 10 bytes" in str(exc_info.value)

    def test_stops_at_end_tag(self):
        document = decode_swf(build_swf([end(), tag(2, b"ignored")]))
        assert document.tags == (EndTag(),)

    def test_legacy_abc_is_flagged(self):
        """Test that v1 DoABC tags are kept unparsed and reported as a warning."""
        abc = texture_abc([("pkg", "Cls")])
        document = decode_swf(build_swf([legacy_do_abc(abc), end()]))

        assert isinstance(document.tags[0], LegacyDoAbcTag)
        assert document.abc_tags == []
        assert len(document.warnings) == 1
        assert "DoABC (v1)" in document.warnings[0]

    def test_action_script_3_flag(self):
        assert decode_swf(build_swf([file_attributes(True), end()])).is_action_script_3
        assert not decode_swf(build_swf([file_attributes(False), end()])).is_action_script_3
        assert not decode_swf(build_swf([end()])).is_action_script_3

    def test_legacy_string_encoding(self):
        """Test that documents older than version 6 use a Windows codepage."""
        data = build_swf([symbol_class([(3, "café")], encoding="cp1252"), end()], version=5)
        document = decode_swf(data)
        assert document.symbol_class_tags[0].links[0].class_name == "café"


class TestLoadSwf:
    """Test cases for reading documents from disk."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(TextureIOError):
            load_swf(tmp_path / "missing.swf")

    def test_directory_is_rejected(self, tmp_path):
        with pytest.raises(TextureIOError):
            load_swf(tmp_path)

    def test_load(self, tmp_path):
        path = tmp_path / "movie.swf"
        path.write_bytes(texture_swf())
        document = load_swf(path)
        assert document.data == path.read_bytes()
        assert len(document.abc_tags) == 1

"""Unit tests for DEX parsing."""

import struct

import pytest

import dex
from classfile.access_flags import AccessFlag, AccessFlags
from classfile.reader import LittleEndianReader
from core.errors import ClassFormatError, DexFormatError, TruncatedInputError
from dex.ids import StringData
from dex.leb128 import read_uleb128


def _patch_u4(data, offset, value):
    patched = bytearray(data)
    patched[offset:offset + 4] = struct.pack("<I", value)
    return bytes(patched)


class TestLittleEndianReader:
    """Tests for LittleEndianReader."""

    def test_reads_little_endian(self):
        reader = LittleEndianReader(b"\x34\x12\x78\x56\x34\x12")
        assert reader.u2() == 0x1234
        assert reader.u4() == 0x12345678

    def test_at_returns_independent_reader(self):
        reader = LittleEndianReader(b"\x01\x02\x03\x04")
        other = reader.at(2)
        assert other.u2() == 0x0403
        assert reader.offset == 0

    def test_at_past_end(self):
        with pytest.raises(ClassFormatError, match="outside input"):
            LittleEndianReader(b"\x00").at(5)


class TestLeb128:
    """Tests for ULEB128 decoding."""

    @pytest.mark.parametrize("raw, value", [
        (b"\x00", 0),
        (b"\x7f", 127),
        (b"\x80\x7f", 16256),
        (b"\xe5\x8e\x26", 624485),
        (b"\xff\xff\xff\xff\x0f", 0xFFFFFFFF),
    ])
    def test_values(self, raw, value):
        reader = LittleEndianReader(raw + b"\xaa")
        assert read_uleb128(reader) == value
        assert reader.remaining == 1

    def test_too_long(self):
        with pytest.raises(DexFormatError, match="longer than 5 bytes"):
            read_uleb128(LittleEndianReader(b"\x80" * 5 + b"\x01"))

    def test_truncated(self):
        with pytest.raises(TruncatedInputError):
            read_uleb128(LittleEndianReader(b"\x80"))


class TestStringData:
    """Tests for string_data_item decoding."""

    def test_modified_utf8(self):
        string = StringData.read(LittleEndianReader(b"\x03a\xc0\x80b\x00"))
        assert string.value == "a\x00b"
        assert string.utf16_size == 3

    def test_surrogate_pair_counts_two_units(self):
        string = StringData.read(LittleEndianReader(b"\x02\xed\xa0\xbd\xed\xb8\x80\x00"))
        assert string.value == "\U0001F600"

    def test_length_mismatch(self):
        with pytest.raises(DexFormatError, match="declares 5 UTF-16 units"):
            StringData.read(LittleEndianReader(b"\x05abc\x00"))

    def test_unterminated(self):
        with pytest.raises(DexFormatError, match="unterminated"):
            StringData.read(LittleEndianReader(b"\x03abc"))


class TestDexAccessFlags:
    """Tests for the DEX-only access flag tables."""

    def test_constructor_flag(self):
        flags = AccessFlags.for_dex_method(0x10001)
        assert AccessFlag.CONSTRUCTOR in flags
        assert str(flags) == "0x10001 (ACC_PUBLIC,ACC_CONSTRUCTOR)"

    def test_inner_class_visibility(self):
        flags = AccessFlags.for_dex_class(0x001A)
        assert flags.flags == (AccessFlag.PRIVATE, AccessFlag.STATIC, AccessFlag.FINAL)


class TestDexFile:
    """Tests for dex.parse and dex.load."""

    def test_rectangle_header(self, rectangle_dex_bytes):
        dex_file = dex.parse(rectangle_dex_bytes)
        header = dex_file.header
        assert dex_file.version == "035"
        assert header.file_size == len(rectangle_dex_bytes)
        assert header.header_size == 0x70
        assert header.checksum_ok and header.signature_ok
        assert header.size("string_ids") == len(dex_file.strings) == 10
        assert header.offset("string_ids") == 0x70

    def test_rectangle_id_tables(self, rectangle_dex_bytes):
        dex_file = dex.parse(rectangle_dex_bytes)
        assert dex_file.types == ["LRectangle;", "D", "Ljava/lang/Object;", "V"]
        assert [proto.descriptor for proto in dex_file.protos] == ["()V", "(DD)V", "()D"]
        assert dex_file.protos[1].shorty == "VDD"
        assert [str(field) for field in dex_file.fields] == ["LRectangle;.width:D", "LRectangle;.length:D"]
        assert str(dex_file.methods[0]) == "Ljava/lang/Object;.<init>:()V"

    def test_rectangle_class_def(self, rectangle_dex_bytes):
        class_def = dex.parse(rectangle_dex_bytes).find_class("LRectangle;")
        assert class_def.superclass == "Ljava/lang/Object;"
        assert class_def.source_file == "Rectangle.java"
        assert class_def.interfaces == []
        data = class_def.class_data
        assert data.static_fields == []
        assert [field.field.name for field in data.instance_fields] == ["width", "length"]
        assert AccessFlag.FINAL in data.instance_fields[1].access_flags

    def test_rectangle_code(self, rectangle_dex_bytes):
        class_def = dex.parse(rectangle_dex_bytes).find_class("LRectangle;")
        init = class_def.method("<init>")
        assert AccessFlag.CONSTRUCTOR in init.access_flags
        assert init.code.registers_size == 5
        assert init.code.ins_size == 5
        assert init.code.outs_size == 1
        assert len(init.code.insns) == 8
        get_width = class_def.method("get_width")
        assert get_width.code.insns == [0x2053, 0, 0x0010]

    def test_map_list(self, rectangle_dex_bytes):
        dex_file = dex.parse(rectangle_dex_bytes)
        assert dex_file.map_list.find("header_item").offset == 0
        assert dex_file.map_list.find("string_data_item").size == 10
        assert dex_file.map_list.find("code_item").size == 2
        assert dex_file.map_list.find("map_list").offset == dex_file.header.map_off

    def test_render(self, rectangle_dex_bytes):
        text = dex.parse(rectangle_dex_bytes).render()
        assert text.startswith("header:\n\tmagic: dex 035\n")
        assert "\tclass descriptor: LRectangle;" in text
        assert "\t\t#0: <init>(DD)V 0x10001 (ACC_PUBLIC,ACC_CONSTRUCTOR)" in text
        assert "\tsource file: Rectangle.java" in text
        assert "\tstring_data_item: 10 @ 0x" in text

    def test_to_dict(self, rectangle_dex_bytes):
        data = dex.parse(rectangle_dex_bytes).to_dict()
        assert data["header"]["version"] == "035"
        assert data["class_defs"][0]["class"] == "LRectangle;"
        assert data["class_defs"][0]["virtual_methods"][0]["descriptor"] == "()D"

    def test_interfaces_and_static_fields(self, dex_builder):
        b = dex_builder()
        sides = b.field("LShape;", "SIDES", "I")
        b.add_class("LShape;", access=0x0601, interfaces=["Ljava/io/Serializable;"],
                    static_fields=[(sides, 0x0019)])
        class_def = dex.parse(b.build()).class_defs[0]
        assert class_def.interfaces == ["Ljava/io/Serializable;"]
        assert class_def.class_data.static_fields[0].field.name == "SIDES"
        assert class_def.source_file is None
        assert class_def.class_data.direct_methods == []

    def test_abstract_method_has_no_code(self, dex_builder):
        b = dex_builder()
        area = b.method("LShape;", "area", "D")
        b.add_class("LShape;", access=0x0401, virtual_methods=[(area, 0x0401, None)])
        method = dex.parse(b.build()).class_defs[0].method("area")
        assert method.code is None
        assert "code: (none)" in dex.parse(b.build()).render()

    def test_object_has_no_superclass(self, dex_builder):
        b = dex_builder()
        b.add_class("Ljava/lang/Object;", superclass=None)
        assert dex.parse(b.build()).class_defs[0].superclass is None

    def test_integrity_mismatch_still_parses(self, rectangle_dex_bytes):
        corrupted = bytearray(rectangle_dex_bytes)
        corrupted[12] ^= 0xFF
        header = dex.parse(bytes(corrupted)).header
        assert not header.signature_ok
        assert not header.checksum_ok

    def test_bad_magic(self, rectangle_class_bytes):
        with pytest.raises(DexFormatError, match="bad magic"):
            dex.parse(rectangle_class_bytes)

    def test_big_endian_rejected(self, rectangle_dex_bytes):
        with pytest.raises(DexFormatError, match="big-endian"):
            dex.parse(_patch_u4(rectangle_dex_bytes, 40, 0x78563412))

    def test_truncated_file(self, rectangle_dex_bytes):
        with pytest.raises(DexFormatError, match="header declares"):
            dex.parse(rectangle_dex_bytes[:-4])

    def test_dangling_type_index(self, dex_builder):
        b = dex_builder()
        b.add_class("LBroken;")
        b.fields.append((0, 99, 0))
        with pytest.raises(DexFormatError, match="type index 99 out of range") as info:
            dex.parse(b.build())
        assert info.value.index == 99

    def test_map_disagrees_with_header(self, rectangle_dex_bytes):
        with pytest.raises(DexFormatError, match="disagrees with header"):
            dex.parse(_patch_u4(rectangle_dex_bytes, 52, 0))

    def test_load(self, rectangle_dex_file):
        assert dex.load(rectangle_dex_file).find_class("LRectangle;") is not None

    def test_load_rejected_file(self, tmp_path):
        path = tmp_path / "broken.dex"
        path.write_bytes(b"dex\n035")
        with pytest.raises(ClassFormatError):
            dex.load(path)

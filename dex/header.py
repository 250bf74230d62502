"""The fixed 0x70-byte header at the start of every DEX file."""

import hashlib
import zlib

from core.errors import DexFormatError

MAGIC_PREFIX = b"dex\n"
HEADER_SIZE = 0x70
ENDIAN_CONSTANT = 0x12345678
REVERSE_ENDIAN_CONSTANT = 0x78563412

# Size and offset pairs that follow map_off, in file order.
SECTIONS = (
    "string_ids",
    "type_ids",
    "proto_ids",
    "field_ids",
    "method_ids",
    "class_defs",
    "data",
)


class DexHeader:
    """Header fields plus the result of checking checksum and signature."""

    def __init__(self, version, checksum, signature, file_size, header_size, endian_tag,
                 link_size, link_off, map_off, sections, checksum_ok=True, signature_ok=True):
        self.version = version
        self.checksum = checksum
        self.signature = signature
        self.file_size = file_size
        self.header_size = header_size
        self.endian_tag = endian_tag
        self.link_size = link_size
        self.link_off = link_off
        self.map_off = map_off
        # name -> (size, offset)
        self.sections = sections
        self.checksum_ok = checksum_ok
        self.signature_ok = signature_ok

    @classmethod
    def read(cls, reader):
        data = reader.data
        magic = reader.take(8)
        if magic[:4] != MAGIC_PREFIX or magic[7:] != b"\x00" or not magic[4:7].isdigit():
            raise DexFormatError(f"bad magic {magic!r}, expected b'dex\\n0NN\\x00'", offset=0)
        version = magic[4:7].decode("ascii")
        checksum = reader.u4()
        signature = reader.take(20)
        file_size = reader.u4()
        header_size = reader.u4()
        endian_tag = reader.u4()
        if endian_tag == REVERSE_ENDIAN_CONSTANT:
            raise DexFormatError("big-endian DEX files are not supported", offset=reader.position - 4)
        if endian_tag != ENDIAN_CONSTANT:
            raise DexFormatError(f"bad endian tag 0x{endian_tag:08x}", offset=reader.position - 4)
        if header_size < HEADER_SIZE:
            raise DexFormatError(f"header size 0x{header_size:x} below 0x{HEADER_SIZE:x}", offset=reader.position - 8)
        if file_size != len(data):
            raise DexFormatError(f"header declares {file_size} bytes, input has {len(data)}", offset=32)
        link_size = reader.u4()
        link_off = reader.u4()
        map_off = reader.u4()
        sections = {}
        for name in SECTIONS:
            size = reader.u4()
            sections[name] = (size, reader.u4())
        return cls(
            version, checksum, signature, file_size, header_size, endian_tag,
            link_size, link_off, map_off, sections,
            checksum_ok=zlib.adler32(data[12:]) == checksum,
            signature_ok=hashlib.sha1(data[32:]).digest() == signature,
        )

    def size(self, name):
        return self.sections[name][0]

    def offset(self, name):
        return self.sections[name][1]

    def render(self):
        lines = [
            f"magic: dex {self.version}",
            f"checksum: {self.checksum:08x} ({'ok' if self.checksum_ok else 'MISMATCH'})",
            f"signature: {self.signature.hex()} ({'ok' if self.signature_ok else 'MISMATCH'})",
            f"file_size: {self.file_size}",
            f"header_size: 0x{self.header_size:x}",
            f"endian_tag: 0x{self.endian_tag:08x}",
            f"link: {self.link_size} @ 0x{self.link_off:x}",
            f"map_off: 0x{self.map_off:x}",
        ]
        lines.extend(f"{name}: {size} @ 0x{offset:x}" for name, (size, offset) in self.sections.items())
        return lines

    def to_dict(self):
        return {
            "version": self.version,
            "checksum": f"{self.checksum:08x}",
            "checksum_ok": self.checksum_ok,
            "signature": self.signature.hex(),
            "signature_ok": self.signature_ok,
            "file_size": self.file_size,
            "header_size": self.header_size,
            "map_off": self.map_off,
            "sections": {name: {"size": size, "offset": offset} for name, (size, offset) in self.sections.items()},
        }

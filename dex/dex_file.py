"""DexFile ties the header, id tables, class definitions and map list together."""

from pathlib import Path

from classfile.constant_pool import escape_surrogates
from classfile.reader import LittleEndianReader
from core.errors import ClassFormatError, DexFormatError
from internal.logging import get_logger
from dex.class_def import ClassDef
from dex.header import DexHeader
from dex.ids import FieldId, MethodId, ProtoId, read_strings, read_types
from dex.map_list import MapList

# Header section -> (map_list item type, bytes per entry)
_ID_SECTIONS = {
    "string_ids": ("string_id_item", 4),
    "type_ids": ("type_id_item", 4),
    "proto_ids": ("proto_id_item", 12),
    "field_ids": ("field_id_item", 8),
    "method_ids": ("method_id_item", 8),
    "class_defs": ("class_def_item", 32),
}


class DexFile:
    """Parsed DEX file. Build with ``parse(data)`` or ``load(path)``."""

    def __init__(self, header, strings, types, protos, fields, methods, class_defs, map_list):
        self.header = header
        self.strings = strings
        self.types = types
        self.protos = protos
        self.fields = fields
        self.methods = methods
        self.class_defs = class_defs
        self.map_list = map_list

    @property
    def version(self):
        return self.header.version

    def find_class(self, descriptor):
        return next((class_def for class_def in self.class_defs if class_def.class_name == descriptor), None)

    def render(self):
        lines = ["header:"]
        lines.extend("\t" + line for line in self.header.render())
        for title, entries in (
            ("strings", self.strings),
            ("types", self.types),
            ("protos", self.protos),
            ("fields", self.fields),
            ("methods", self.methods),
        ):
            lines.append(f"{title}({len(entries)}):")
            lines.extend(f"\t#{i}: {entry}" for i, entry in enumerate(entries))
        lines.append(f"map({len(self.map_list)}):")
        lines.extend(f"\t{item}" for item in self.map_list)
        lines.append(f"class defs({len(self.class_defs)}):")
        for i, class_def in enumerate(self.class_defs):
            lines.extend("\t" + line for line in class_def.render(i))
        return escape_surrogates("\n".join(lines) + "\n")

    def to_dict(self):
        return {
            "header": self.header.to_dict(),
            "strings": [string.value for string in self.strings],
            "types": self.types,
            "protos": [proto.descriptor for proto in self.protos],
            "fields": [str(field) for field in self.fields],
            "methods": [str(method) for method in self.methods],
            "map": [item.to_dict() for item in self.map_list],
            "class_defs": [class_def.to_dict() for class_def in self.class_defs],
        }


def _table(reader, header, name):
    """Reader at the start of an id table, checked to lie inside the file."""
    size, offset = header.sections[name]
    _, entry_size = _ID_SECTIONS[name]
    if size and offset + size * entry_size > len(reader.data):
        raise DexFormatError(f"{name} table of {size} entries runs past the end of the file", offset=offset)
    return reader.at(offset) if size else reader.at(0)


def _check_map(header, map_list):
    for name, (item_type, _) in _ID_SECTIONS.items():
        size, offset = header.sections[name]
        item = map_list.find(item_type)
        found = (item.size, item.offset) if item else (0, 0)
        if size and found != (size, offset):
            raise DexFormatError(
                f"map_list {item_type} {found} disagrees with header {name} {(size, offset)}",
                offset=header.map_off,
            )


def parse(data):
    """Parse DEX bytes. Raises DexFormatError (a ClassFormatError) on malformed input."""
    reader = LittleEndianReader(data)
    header = DexHeader.read(reader)
    if not header.checksum_ok or not header.signature_ok:
        get_logger("dex").warn(
            "DEX integrity check failed", checksum_ok=header.checksum_ok, signature_ok=header.signature_ok
        )

    strings = read_strings(_table(reader, header, "string_ids"), header.size("string_ids"))
    types = read_types(_table(reader, header, "type_ids"), header.size("type_ids"), strings)
    table = _table(reader, header, "proto_ids")
    protos = [ProtoId.read(table, strings, types) for _ in range(header.size("proto_ids"))]
    table = _table(reader, header, "field_ids")
    fields = [FieldId.read(table, strings, types) for _ in range(header.size("field_ids"))]
    table = _table(reader, header, "method_ids")
    methods = [MethodId.read(table, strings, types, protos) for _ in range(header.size("method_ids"))]
    get_logger("dex").debug("Id tables parsed", strings=len(strings), types=len(types), methods=len(methods))

    table = _table(reader, header, "class_defs")
    class_defs = [ClassDef.read(table, strings, types, fields, methods) for _ in range(header.size("class_defs"))]
    map_list = MapList.read(reader.at(header.map_off)) if header.map_off else MapList([])
    _check_map(header, map_list)
    get_logger("dex").debug("DEX parsed", version=header.version, classes=len(class_defs), map_items=len(map_list))
    return DexFile(header, strings, types, protos, fields, methods, class_defs, map_list)


def load(path):
    """Read and parse a DEX file from disk."""
    path = Path(path)
    data = path.read_bytes()
    try:
        dex_file = parse(data)
    except ClassFormatError as exc:
        get_logger("dex").error("DEX file rejected", error=exc, path=str(path), size=len(data))
        raise
    get_logger("dex").info("DEX file loaded", path=str(path), version=dex_file.version, classes=len(dex_file.class_defs))
    return dex_file

"""The map_list: every section of the file with its item count and offset."""

from core.errors import DexFormatError

TYPE_NAMES = {
    0x0000: "header_item",
    0x0001: "string_id_item",
    0x0002: "type_id_item",
    0x0003: "proto_id_item",
    0x0004: "field_id_item",
    0x0005: "method_id_item",
    0x0006: "class_def_item",
    0x0007: "call_site_id_item",
    0x0008: "method_handle_item",
    0x1000: "map_list",
    0x1001: "type_list",
    0x1002: "annotation_set_ref_list",
    0x1003: "annotation_set_item",
    0x2000: "class_data_item",
    0x2001: "code_item",
    0x2002: "string_data_item",
    0x2003: "debug_info_item",
    0x2004: "annotation_item",
    0x2005: "encoded_array_item",
    0x2006: "annotations_directory_item",
    0xF000: "hiddenapi_class_data_item",
}


class MapItem:
    __slots__ = ("type", "size", "offset")

    def __init__(self, type, size, offset):
        self.type = type
        self.size = size
        self.offset = offset

    @property
    def type_name(self):
        return TYPE_NAMES.get(self.type, f"unknown(0x{self.type:04x})")

    def __str__(self):
        return f"{self.type_name}: {self.size} @ 0x{self.offset:x}"

    def to_dict(self):
        return {"type": self.type_name, "size": self.size, "offset": self.offset}


class MapList:
    def __init__(self, items):
        self.items = items

    @classmethod
    def read(cls, reader):
        items = []
        for _ in range(reader.u4()):
            item_type = reader.u2()
            reader.skip(2)  # unused
            size = reader.u4()
            offset = reader.u4()
            if offset > len(reader.data):
                raise DexFormatError(
                    f"map item {TYPE_NAMES.get(item_type, hex(item_type))} points past the end of the file",
                    offset=reader.position - 4,
                )
            items.append(MapItem(item_type, size, offset))
        return cls(items)

    def find(self, type_name):
        return next((item for item in self.items if item.type_name == type_name), None)

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

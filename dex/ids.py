"""String, type, prototype, field and method id tables."""

from classfile.constant_pool import decode_modified_utf8
from core.errors import DexFormatError
from dex.leb128 import read_uleb128

NO_INDEX = 0xFFFFFFFF


def lookup(table, index, what):
    """``table[index]``, raising DexFormatError for a dangling index."""
    if not 0 <= index < len(table):
        raise DexFormatError(f"{what} index {index} out of range ({len(table)} entries)", index=index)
    return table[index]


class StringData:
    __slots__ = ("offset", "utf16_size", "value")

    def __init__(self, offset, utf16_size, value):
        self.offset = offset
        self.utf16_size = utf16_size
        self.value = value

    @classmethod
    def read(cls, reader):
        """Read the string_data_item at the reader's position."""
        offset = reader.position
        utf16_size = read_uleb128(reader)
        end = reader.data.find(b"\x00", reader.offset)
        if end < 0:
            raise DexFormatError(f"unterminated string data at 0x{offset:x}", offset=offset)
        raw = reader.take(end - reader.offset)
        value = decode_modified_utf8(raw, offset=offset)
        if len(value.encode("utf-16-le", "surrogatepass")) // 2 != utf16_size:
            raise DexFormatError(
                f"string at 0x{offset:x} declares {utf16_size} UTF-16 units, decodes to {value!r}", offset=offset
            )
        return cls(offset, utf16_size, value)

    def __str__(self):
        return repr(self.value)


class TypeList:
    """Ordered type descriptors (parameters or interfaces)."""

    @staticmethod
    def read(reader, types):
        return [lookup(types, reader.u2(), "type") for _ in range(reader.u4())]


class ProtoId:
    __slots__ = ("shorty", "return_type", "parameters")

    def __init__(self, shorty, return_type, parameters):
        self.shorty = shorty
        self.return_type = return_type
        self.parameters = parameters

    @classmethod
    def read(cls, reader, strings, types):
        shorty = lookup(strings, reader.u4(), "string").value
        return_type = lookup(types, reader.u4(), "type")
        parameters_off = reader.u4()
        parameters = TypeList.read(reader.at(parameters_off), types) if parameters_off else []
        return cls(shorty, return_type, parameters)

    @property
    def descriptor(self):
        return f"({''.join(self.parameters)}){self.return_type}"

    def __str__(self):
        return f"{self.descriptor} shorty {self.shorty}"


class FieldId:
    __slots__ = ("class_name", "type", "name")

    def __init__(self, class_name, type, name):
        self.class_name = class_name
        self.type = type
        self.name = name

    @classmethod
    def read(cls, reader, strings, types):
        class_name = lookup(types, reader.u2(), "type")
        type_ = lookup(types, reader.u2(), "type")
        name = lookup(strings, reader.u4(), "string").value
        return cls(class_name, type_, name)

    def __str__(self):
        return f"{self.class_name}.{self.name}:{self.type}"


class MethodId:
    __slots__ = ("class_name", "proto", "name")

    def __init__(self, class_name, proto, name):
        self.class_name = class_name
        self.proto = proto
        self.name = name

    @classmethod
    def read(cls, reader, strings, types, protos):
        class_name = lookup(types, reader.u2(), "type")
        proto = lookup(protos, reader.u2(), "proto")
        name = lookup(strings, reader.u4(), "string").value
        return cls(class_name, proto, name)

    @property
    def descriptor(self):
        return self.proto.descriptor

    def __str__(self):
        return f"{self.class_name}.{self.name}:{self.descriptor}"


def read_strings(reader, count):
    return [StringData.read(reader.at(reader.u4())) for _ in range(count)]


def read_types(reader, count, strings):
    return [lookup(strings, reader.u4(), "string").value for _ in range(count)]

"""Constant pool entries and 1-based lookups."""

from core.errors import ClassFormatError, ConstantPoolError

UTF8 = 1
INTEGER = 3
FLOAT = 4
LONG = 5
DOUBLE = 6
CLASS = 7
STRING = 8
FIELDREF = 9
METHODREF = 10
INTERFACE_METHODREF = 11
NAME_AND_TYPE = 12
METHOD_HANDLE = 15
METHOD_TYPE = 16
DYNAMIC = 17
INVOKE_DYNAMIC = 18
MODULE = 19
PACKAGE = 20

TAG_NAMES = {
    UTF8: "Utf8",
    INTEGER: "Integer",
    FLOAT: "Float",
    LONG: "Long",
    DOUBLE: "Double",
    CLASS: "Class",
    STRING: "String",
    FIELDREF: "Fieldref",
    METHODREF: "Methodref",
    INTERFACE_METHODREF: "InterfaceMethodref",
    NAME_AND_TYPE: "NameAndType",
    METHOD_HANDLE: "MethodHandle",
    METHOD_TYPE: "MethodType",
    DYNAMIC: "Dynamic",
    INVOKE_DYNAMIC: "InvokeDynamic",
    MODULE: "Module",
    PACKAGE: "Package",
}

# Field labels for entries that hold more than one index.
_PAIR_LABELS = {
    FIELDREF: ("class", "name_and_type"),
    METHODREF: ("class", "name_and_type"),
    INTERFACE_METHODREF: ("class", "name_and_type"),
    NAME_AND_TYPE: ("name", "descriptor"),
    METHOD_HANDLE: ("reference_kind", "reference_index"),
    DYNAMIC: ("bootstrap_method_attr", "name_and_type"),
    INVOKE_DYNAMIC: ("bootstrap_method_attr", "name_and_type"),
}


def decode_modified_utf8(raw, offset=None):
    """Decode the JVM's modified UTF-8 (encoded NUL, surrogate pairs as two 3-byte sequences)."""
    try:
        text = raw.replace(b"\xc0\x80", b"\x00").decode("utf-8", "surrogatepass")
        return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")
    except UnicodeError as exc:
        raise ClassFormatError("malformed modified UTF-8 string", offset=offset, cause=exc) from exc


def escape_surrogates(text):
    """Replace unpaired surrogates with \\uXXXX escapes so the text encodes as UTF-8."""
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


class Constant:
    """A single constant pool entry; ``value`` is a scalar or an index tuple."""

    __slots__ = ("tag", "value")

    def __init__(self, tag, value):
        self.tag = tag
        self.value = value

    @property
    def kind(self):
        return TAG_NAMES.get(self.tag, "__placeholder__")

    @property
    def is_wide(self):
        return self.tag in (LONG, DOUBLE)

    def __str__(self):
        labels = _PAIR_LABELS.get(self.tag)
        if labels:
            body = ", ".join(f"{label}: {index}" for label, index in zip(labels, self.value))
        else:
            body = self.value
        return f"{self.kind}: {body}"

    def __repr__(self):
        return f"Constant({self.kind}, {self.value!r})"

    @classmethod
    def read(cls, reader):
        start = reader.position
        tag = reader.u1()
        if tag == UTF8:
            length = reader.u2()
            return cls(tag, decode_modified_utf8(reader.take(length), start))
        if tag == INTEGER:
            return cls(tag, reader.s4())
        if tag == FLOAT:
            return cls(tag, reader.f4())
        if tag == LONG:
            return cls(tag, reader.s8())
        if tag == DOUBLE:
            return cls(tag, reader.f8())
        if tag in (CLASS, STRING, METHOD_TYPE, MODULE, PACKAGE):
            return cls(tag, reader.u2())
        if tag == METHOD_HANDLE:
            return cls(tag, (reader.u1(), reader.u2()))
        if tag in _PAIR_LABELS:
            return cls(tag, (reader.u2(), reader.u2()))
        raise ClassFormatError(f"unknown constant pool tag {tag}", offset=start)


class ConstantPool:
    """Pool with the class-file numbering: index 0 is unused, wide entries take two slots."""

    PLACEHOLDER = None

    def __init__(self, entries=None):
        self._entries = [self.PLACEHOLDER] + list(entries or [])

    @classmethod
    def read(cls, reader):
        count = reader.u2()
        entries = []
        while len(entries) < count - 1:
            constant = Constant.read(reader)
            entries.append(constant)
            if constant.is_wide:
                entries.append(cls.PLACEHOLDER)
        if len(entries) != max(count - 1, 0):
            raise ClassFormatError(f"wide constant overruns pool of size {count}", offset=reader.position)
        return cls(entries)

    @property
    def count(self):
        """The constant_pool_count as stored in the file."""
        return len(self._entries)

    def __len__(self):
        return len(self._entries) - 1

    def __iter__(self):
        """Yield ``(index, constant)`` for every usable slot."""
        for index, constant in enumerate(self._entries):
            if constant is not None:
                yield index, constant

    def get(self, index):
        if not 0 < index < len(self._entries):
            raise ConstantPoolError(f"constant pool index {index} out of range", index=index)
        constant = self._entries[index]
        if constant is None:
            raise ConstantPoolError(f"constant pool index {index} is an unusable slot", index=index)
        return constant

    def expect(self, index, tag):
        constant = self.get(index)
        if constant.tag != tag:
            raise ConstantPoolError(
                f"constant pool index {index} is {constant.kind}, expected {TAG_NAMES[tag]}", index=index
            )
        return constant

    def utf8(self, index):
        return self.expect(index, UTF8).value

    def class_name(self, index):
        return self.utf8(self.expect(index, CLASS).value)

    def name_and_type(self, index):
        name_index, descriptor_index = self.expect(index, NAME_AND_TYPE).value
        return self.utf8(name_index), self.utf8(descriptor_index)

    def describe(self, index):
        """Human-readable target of a reference, used in disassembly comments."""
        constant = self.get(index)
        if constant.tag == UTF8:
            return constant.value
        if constant.tag == CLASS:
            return self.class_name(index)
        if constant.tag == STRING:
            return repr(self.utf8(constant.value))
        if constant.tag in (FIELDREF, METHODREF, INTERFACE_METHODREF):
            owner = self.class_name(constant.value[0])
            name, descriptor = self.name_and_type(constant.value[1])
            return f"{owner}.{name}:{descriptor}"
        if constant.tag == NAME_AND_TYPE:
            return "{}:{}".format(*self.name_and_type(index))
        if constant.tag in (INTEGER, FLOAT, LONG, DOUBLE):
            return str(constant.value)
        return str(constant)

    def render(self):
        return [f"#{index}: {constant}" for index, constant in self]

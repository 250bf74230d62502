"""class_def_item and the class_data_item members it points to."""

from classfile.access_flags import AccessFlags
from dex.ids import NO_INDEX, TypeList, lookup
from dex.leb128 import read_uleb128


class CodeItem:
    """Register counts and the raw 16-bit instruction units of a method."""

    __slots__ = ("registers_size", "ins_size", "outs_size", "tries_size", "debug_info_off", "insns")

    def __init__(self, registers_size, ins_size, outs_size, tries_size, debug_info_off, insns):
        self.registers_size = registers_size
        self.ins_size = ins_size
        self.outs_size = outs_size
        self.tries_size = tries_size
        self.debug_info_off = debug_info_off
        self.insns = insns

    @classmethod
    def read(cls, reader):
        registers_size = reader.u2()
        ins_size = reader.u2()
        outs_size = reader.u2()
        tries_size = reader.u2()
        debug_info_off = reader.u4()
        insns = [reader.u2() for _ in range(reader.u4())]
        return cls(registers_size, ins_size, outs_size, tries_size, debug_info_off, insns)

    def render(self):
        lines = [f"{{registers: {self.registers_size}, ins: {self.ins_size}, outs: {self.outs_size}, "
                 f"tries: {self.tries_size}, insns_size: {len(self.insns)}}}"]
        lines.extend(f"{pc:04x}: {unit:04x}" for pc, unit in enumerate(self.insns))
        return lines

    def to_dict(self):
        return {
            "registers": self.registers_size,
            "ins": self.ins_size,
            "outs": self.outs_size,
            "tries": self.tries_size,
            "insns": [f"{unit:04x}" for unit in self.insns],
        }


class EncodedField:
    __slots__ = ("field", "access_flags")

    def __init__(self, field, access_flags):
        self.field = field
        self.access_flags = access_flags

    def __str__(self):
        return f"{self.field.name}:{self.field.type} {self.access_flags}"

    def to_dict(self):
        return {"name": self.field.name, "type": self.field.type, "access_flags": self.access_flags.to_dict()}


class EncodedMethod:
    __slots__ = ("method", "access_flags", "code")

    def __init__(self, method, access_flags, code=None):
        self.method = method
        self.access_flags = access_flags
        self.code = code

    def render(self):
        lines = [f"{self.method.name}{self.method.descriptor} {self.access_flags}"]
        if self.code is None:
            lines.append("\tcode: (none)")
        else:
            lines.extend("\t" + line for line in self.code.render())
        return lines

    def to_dict(self):
        return {
            "name": self.method.name,
            "descriptor": self.method.descriptor,
            "access_flags": self.access_flags.to_dict(),
            "code": self.code.to_dict() if self.code else None,
        }


def _read_fields(reader, count, fields):
    # Indices are stored as differences from the previous entry of the same list.
    members = []
    index = 0
    for _ in range(count):
        index += read_uleb128(reader)
        field = lookup(fields, index, "field")
        members.append(EncodedField(field, AccessFlags.for_field(read_uleb128(reader))))
    return members


def _read_methods(reader, count, methods):
    members = []
    index = 0
    for _ in range(count):
        index += read_uleb128(reader)
        method = lookup(methods, index, "method")
        access_flags = AccessFlags.for_dex_method(read_uleb128(reader))
        code_off = read_uleb128(reader)
        code = CodeItem.read(reader.at(code_off)) if code_off else None
        members.append(EncodedMethod(method, access_flags, code))
    return members


class ClassData:
    __slots__ = ("static_fields", "instance_fields", "direct_methods", "virtual_methods")

    def __init__(self, static_fields=(), instance_fields=(), direct_methods=(), virtual_methods=()):
        self.static_fields = list(static_fields)
        self.instance_fields = list(instance_fields)
        self.direct_methods = list(direct_methods)
        self.virtual_methods = list(virtual_methods)

    @classmethod
    def read(cls, reader, fields, methods):
        sizes = [read_uleb128(reader) for _ in range(4)]
        static_fields = _read_fields(reader, sizes[0], fields)
        instance_fields = _read_fields(reader, sizes[1], fields)
        direct_methods = _read_methods(reader, sizes[2], methods)
        virtual_methods = _read_methods(reader, sizes[3], methods)
        return cls(static_fields, instance_fields, direct_methods, virtual_methods)


class ClassDef:
    def __init__(self, class_name, access_flags, superclass, interfaces, source_file,
                 annotations_off, static_values_off, class_data):
        self.class_name = class_name
        self.access_flags = access_flags
        self.superclass = superclass
        self.interfaces = interfaces
        self.source_file = source_file
        self.annotations_off = annotations_off
        self.static_values_off = static_values_off
        self.class_data = class_data

    @classmethod
    def read(cls, reader, strings, types, fields, methods):
        class_name = lookup(types, reader.u4(), "type")
        access_flags = AccessFlags.for_dex_class(reader.u4())
        superclass_idx = reader.u4()
        interfaces_off = reader.u4()
        source_file_idx = reader.u4()
        annotations_off = reader.u4()
        class_data_off = reader.u4()
        static_values_off = reader.u4()

        # Only java.lang.Object has no superclass.
        superclass = None if superclass_idx == NO_INDEX else lookup(types, superclass_idx, "type")
        interfaces = TypeList.read(reader.at(interfaces_off), types) if interfaces_off else []
        source_file = None if source_file_idx == NO_INDEX else lookup(strings, source_file_idx, "string").value
        if class_data_off:
            class_data = ClassData.read(reader.at(class_data_off), fields, methods)
        else:
            class_data = ClassData()
        return cls(class_name, access_flags, superclass, interfaces, source_file,
                   annotations_off, static_values_off, class_data)

    def method(self, name):
        data = self.class_data
        return next((m for m in data.direct_methods + data.virtual_methods if m.method.name == name), None)

    def render(self, index):
        data = self.class_data
        lines = [
            f"Class #{index}:",
            f"\tclass descriptor: {self.class_name}",
            f"\taccess flags: {self.access_flags}",
            f"\tsuperclass: {self.superclass or '-'}",
            f"\tinterfaces({len(self.interfaces)}):",
        ]
        lines.extend(f"\t\t#{i}: {name}" for i, name in enumerate(self.interfaces))
        for title, members in (("static fields", data.static_fields), ("instance fields", data.instance_fields)):
            lines.append(f"\t{title}({len(members)}):")
            lines.extend(f"\t\t#{i}: {member}" for i, member in enumerate(members))
        for title, members in (("direct methods", data.direct_methods), ("virtual methods", data.virtual_methods)):
            lines.append(f"\t{title}({len(members)}):")
            for i, member in enumerate(members):
                first, *rest = member.render()
                lines.append(f"\t\t#{i}: {first}")
                lines.extend("\t\t" + line for line in rest)
        lines.append(f"\tsource file: {self.source_file or 'Unknown'}")
        lines.append(f"\tannotations_off: 0x{self.annotations_off:x}, static_values_off: 0x{self.static_values_off:x}")
        return lines

    def to_dict(self):
        data = self.class_data
        return {
            "class": self.class_name,
            "access_flags": self.access_flags.to_dict(),
            "superclass": self.superclass,
            "interfaces": self.interfaces,
            "source_file": self.source_file,
            "static_fields": [field.to_dict() for field in data.static_fields],
            "instance_fields": [field.to_dict() for field in data.instance_fields],
            "direct_methods": [method.to_dict() for method in data.direct_methods],
            "virtual_methods": [method.to_dict() for method in data.virtual_methods],
        }

"""ClassFile ties the tables of a compiled class together."""

from pathlib import Path

from core.errors import ClassFormatError
from internal.logging import get_logger
from classfile.access_flags import AccessFlags
from classfile.attributes import SOURCE_FILE, find_attribute, read_attributes
from classfile.constant_pool import ConstantPool, escape_surrogates
from classfile.members import FieldInfo, MethodInfo, read_members
from classfile.reader import ByteReader

MAGIC = 0xCAFEBABE


class ClassFile:
    """Parsed class file. Build with ``parse(data)`` or ``load(path)``."""

    def __init__(self, minor_version, major_version, constant_pool, access_flags, this_class_index,
                 super_class_index, interface_indices, fields, methods, attributes, magic=MAGIC):
        self.magic = magic
        self.minor_version = minor_version
        self.major_version = major_version
        self.constant_pool = constant_pool
        self.access_flags = access_flags
        self.this_class_index = this_class_index
        self.super_class_index = super_class_index
        self.interface_indices = interface_indices
        self.fields = fields
        self.methods = methods
        self.attributes = attributes

    @property
    def this_class(self):
        return self.constant_pool.class_name(self.this_class_index)

    @property
    def super_class(self):
        # Only java/lang/Object has no superclass (index 0).
        if self.super_class_index == 0:
            return None
        return self.constant_pool.class_name(self.super_class_index)

    @property
    def interfaces(self):
        return [self.constant_pool.class_name(index) for index in self.interface_indices]

    @property
    def source_file(self):
        body = find_attribute(self.attributes, SOURCE_FILE)
        return body.name if body else "Unknown"

    @property
    def version(self):
        return f"{self.major_version}.{self.minor_version}"

    def field(self, name):
        return next((field for field in self.fields if field.name == name), None)

    def method(self, name, descriptor=None):
        for method in self.methods:
            if method.name == name and (descriptor is None or method.descriptor == descriptor):
                return method
        return None

    def render(self):
        pool = self.constant_pool
        lines = [
            f"magic: 0x{self.magic:08x}",
            f"version: {self.version}",
            f"source file: {self.source_file}",
            f"access_flags: {self.access_flags}",
            f"const pool({pool.count}):",
        ]
        lines.extend("\t" + line for line in pool.render())
        lines.append(f"this class: {self.this_class}")
        lines.append(f"super class: {self.super_class or '-'}")
        lines.append(f"interfaces({len(self.interface_indices)}):")
        lines.extend(f"\t{name}" for name in self.interfaces)
        lines.append(f"fields({len(self.fields)}):")
        lines.extend(f"\t{field}" for field in self.fields)
        lines.append(f"methods({len(self.methods)}):")
        for method in self.methods:
            lines.extend("\t" + line for line in method.render(pool))
        lines.append(f"attributes({len(self.attributes)}):")
        lines.extend(f"\t{attribute}" for attribute in self.attributes)
        return escape_surrogates("\n".join(lines) + "\n")

    def to_dict(self):
        return {
            "magic": f"0x{self.magic:08x}",
            "version": self.version,
            "source_file": self.source_file,
            "access_flags": self.access_flags.to_dict(),
            "this_class": self.this_class,
            "super_class": self.super_class,
            "interfaces": self.interfaces,
            "constant_pool": self.constant_pool.render(),
            "fields": [field.to_dict() for field in self.fields],
            "methods": [method.to_dict(self.constant_pool) for method in self.methods],
            "attributes": [attribute.name for attribute in self.attributes],
        }


def parse(data):
    """Parse class file bytes. Raises ClassFormatError on malformed input."""
    reader = ByteReader(data)
    magic = reader.u4()
    if magic != MAGIC:
        raise ClassFormatError(f"bad magic 0x{magic:08x}, expected 0x{MAGIC:08x}", offset=0)
    minor_version = reader.u2()
    major_version = reader.u2()
    pool = ConstantPool.read(reader)
    get_logger("classfile").debug("Constant pool parsed", entries=len(pool), offset=reader.position)

    access_flags = AccessFlags.for_class(reader.u2())
    this_class_index = reader.u2()
    super_class_index = reader.u2()
    interface_indices = [reader.u2() for _ in range(reader.u2())]
    fields = read_members(reader, pool, FieldInfo)
    methods = read_members(reader, pool, MethodInfo)
    attributes = read_attributes(reader, pool)
    if reader.remaining:
        raise ClassFormatError(f"{reader.remaining} trailing byte(s) after class attributes", offset=reader.position)

    class_file = ClassFile(minor_version, major_version, pool, access_flags, this_class_index,
                           super_class_index, interface_indices, fields, methods, attributes, magic)
    # Resolving the names here makes a dangling this/super/interface index fail the parse.
    get_logger("classfile").debug(
        "Class parsed",
        this_class=class_file.this_class,
        super_class=class_file.super_class,
        interfaces=class_file.interfaces,
        fields=len(fields),
        methods=len(methods),
    )
    return class_file


def load(path):
    """Read and parse a class file from disk."""
    path = Path(path)
    data = path.read_bytes()
    try:
        class_file = parse(data)
    except ClassFormatError as exc:
        get_logger("classfile").error("Class file rejected", error=exc, path=str(path), size=len(data))
        raise
    get_logger("classfile").info("Class file loaded", path=str(path), this_class=class_file.this_class, version=class_file.version)
    return class_file

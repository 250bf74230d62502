"""Access flag masks for classes, fields and methods, in class files and DEX."""

from enum import Enum


class AccessFlag(Enum):
    PUBLIC = "ACC_PUBLIC"
    PRIVATE = "ACC_PRIVATE"
    PROTECTED = "ACC_PROTECTED"
    STATIC = "ACC_STATIC"
    FINAL = "ACC_FINAL"
    SUPER = "ACC_SUPER"
    SYNCHRONIZED = "ACC_SYNCHRONIZED"
    VOLATILE = "ACC_VOLATILE"
    BRIDGE = "ACC_BRIDGE"
    TRANSIENT = "ACC_TRANSIENT"
    VARARGS = "ACC_VARARGS"
    NATIVE = "ACC_NATIVE"
    INTERFACE = "ACC_INTERFACE"
    ABSTRACT = "ACC_ABSTRACT"
    STRICT = "ACC_STRICT"
    SYNTHETIC = "ACC_SYNTHETIC"
    ANNOTATION = "ACC_ANNOTATION"
    ENUM = "ACC_ENUM"
    CONSTRUCTOR = "ACC_CONSTRUCTOR"
    DECLARED_SYNCHRONIZED = "ACC_DECLARED_SYNCHRONIZED"

    def __str__(self):
        return self.value


# Bits 0x0020, 0x0040 and 0x0080 mean different things per context.
CLASS_FLAGS = (
    (0x0001, AccessFlag.PUBLIC),
    (0x0010, AccessFlag.FINAL),
    (0x0020, AccessFlag.SUPER),
    (0x0200, AccessFlag.INTERFACE),
    (0x0400, AccessFlag.ABSTRACT),
    (0x1000, AccessFlag.SYNTHETIC),
    (0x2000, AccessFlag.ANNOTATION),
    (0x4000, AccessFlag.ENUM),
)

FIELD_FLAGS = (
    (0x0001, AccessFlag.PUBLIC),
    (0x0002, AccessFlag.PRIVATE),
    (0x0004, AccessFlag.PROTECTED),
    (0x0008, AccessFlag.STATIC),
    (0x0010, AccessFlag.FINAL),
    (0x0040, AccessFlag.VOLATILE),
    (0x0080, AccessFlag.TRANSIENT),
    (0x1000, AccessFlag.SYNTHETIC),
    (0x4000, AccessFlag.ENUM),
)

METHOD_FLAGS = (
    (0x0001, AccessFlag.PUBLIC),
    (0x0002, AccessFlag.PRIVATE),
    (0x0004, AccessFlag.PROTECTED),
    (0x0008, AccessFlag.STATIC),
    (0x0010, AccessFlag.FINAL),
    (0x0020, AccessFlag.SYNCHRONIZED),
    (0x0040, AccessFlag.BRIDGE),
    (0x0080, AccessFlag.VARARGS),
    (0x0100, AccessFlag.NATIVE),
    (0x0400, AccessFlag.ABSTRACT),
    (0x0800, AccessFlag.STRICT),
    (0x1000, AccessFlag.SYNTHETIC),
)

# DEX reuses the JVM bits; classes gain inner-class visibility and methods
# gain two flags above 16 bits.
DEX_CLASS_FLAGS = (
    (0x0001, AccessFlag.PUBLIC),
    (0x0002, AccessFlag.PRIVATE),
    (0x0004, AccessFlag.PROTECTED),
    (0x0008, AccessFlag.STATIC),
    (0x0010, AccessFlag.FINAL),
    (0x0200, AccessFlag.INTERFACE),
    (0x0400, AccessFlag.ABSTRACT),
    (0x1000, AccessFlag.SYNTHETIC),
    (0x2000, AccessFlag.ANNOTATION),
    (0x4000, AccessFlag.ENUM),
)

DEX_METHOD_FLAGS = METHOD_FLAGS + (
    (0x10000, AccessFlag.CONSTRUCTOR),
    (0x20000, AccessFlag.DECLARED_SYNCHRONIZED),
)


class AccessFlags:
    __slots__ = ("mask", "flags")

    def __init__(self, mask, table):
        self.mask = mask
        self.flags = tuple(flag for bit, flag in table if mask & bit == bit)

    @classmethod
    def for_class(cls, mask):
        return cls(mask, CLASS_FLAGS)

    @classmethod
    def for_field(cls, mask):
        return cls(mask, FIELD_FLAGS)

    @classmethod
    def for_method(cls, mask):
        return cls(mask, METHOD_FLAGS)

    @classmethod
    def for_dex_class(cls, mask):
        return cls(mask, DEX_CLASS_FLAGS)

    @classmethod
    def for_dex_method(cls, mask):
        return cls(mask, DEX_METHOD_FLAGS)

    def __contains__(self, flag):
        return flag in self.flags

    def __str__(self):
        return f"0x{self.mask:04x} ({','.join(str(flag) for flag in self.flags)})"

    def to_dict(self):
        return {"mask": self.mask, "flags": [str(flag) for flag in self.flags]}

from classfile.class_file import ClassFile, load, parse

__all__ = [
    "ClassFile",
    "load",
    "parse",
]

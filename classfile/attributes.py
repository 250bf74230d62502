"""Attribute tables for classes, fields, methods and Code."""

from core.errors import ClassFormatError
from classfile import opcodes

CODE = "Code"
CONSTANT_VALUE = "ConstantValue"
STACK_MAP_TABLE = "StackMapTable"
LINE_NUMBER_TABLE = "LineNumberTable"
SOURCE_FILE = "SourceFile"
DEPRECATED = "Deprecated"


class ExceptionHandler:
    __slots__ = ("start_pc", "end_pc", "handler_pc", "catch_type")

    def __init__(self, start_pc, end_pc, handler_pc, catch_type):
        self.start_pc = start_pc
        self.end_pc = end_pc
        self.handler_pc = handler_pc
        self.catch_type = catch_type

    def __str__(self):
        return (f"{{start_pc: {self.start_pc}, end_pc: {self.end_pc}, "
                f"handler_pc: {self.handler_pc}, catch_type: {self.catch_type}}}")


class CodeAttribute:
    __slots__ = ("max_stack", "max_locals", "code", "instructions", "exception_table", "attributes")

    def __init__(self, max_stack, max_locals, code, instructions, exception_table, attributes):
        self.max_stack = max_stack
        self.max_locals = max_locals
        self.code = code
        self.instructions = instructions
        self.exception_table = exception_table
        self.attributes = attributes

    @classmethod
    def read(cls, reader, pool):
        max_stack = reader.u2()
        max_locals = reader.u2()
        code_length = reader.u4()
        code_start = reader.position
        code = reader.take(code_length)
        instructions = opcodes.decode(code, base=code_start)
        for instruction in instructions:
            for index in instruction.pool_indices():
                pool.get(index)
        handlers = [ExceptionHandler(reader.u2(), reader.u2(), reader.u2(), reader.u2())
                    for _ in range(reader.u2())]
        attributes = read_attributes(reader, pool)
        return cls(max_stack, max_locals, code, instructions, handlers, attributes)

    def find(self, name):
        return find_attribute(self.attributes, name)

    def render(self, pool=None):
        lines = [f"{{max_stack: {self.max_stack}, max_locals: {self.max_locals}, code_length: {len(self.code)}}}"]
        lines.extend(instruction.render(pool) for instruction in self.instructions)
        lines.extend(f"exception: {handler}" for handler in self.exception_table)
        lines.extend(f"{attribute}" for attribute in self.attributes)
        return lines

    def __str__(self):
        return "\n".join(self.render())


class ConstantValue:
    __slots__ = ("index",)

    def __init__(self, index):
        self.index = index

    @classmethod
    def read(cls, reader, pool):
        return cls(reader.u2())

    def __str__(self):
        return f"{{constantvalue_index: {self.index}}}"


class LineNumberTable:
    __slots__ = ("entries",)

    def __init__(self, entries):
        # (start_pc, line_number) pairs
        self.entries = entries

    @classmethod
    def read(cls, reader, pool):
        return cls([(reader.u2(), reader.u2()) for _ in range(reader.u2())])

    def line_for(self, pc):
        """Source line of the instruction at ``pc``, or None."""
        best = None
        for start_pc, line in self.entries:
            if start_pc <= pc and (best is None or start_pc >= best[0]):
                best = (start_pc, line)
        return best[1] if best else None

    def __str__(self):
        pairs = " ".join(f"{{start_pc: {pc}, line_number: {line}}}" for pc, line in self.entries)
        return f"line_number_table({len(self.entries)}): {pairs}"


class VerificationType:
    NAMES = ("Top", "Integer", "Float", "Long", "Double", "Null", "UninitializedThis", "Object", "Uninitialized")

    __slots__ = ("tag", "value")

    def __init__(self, tag, value=None):
        self.tag = tag
        self.value = value

    @property
    def name(self):
        return self.NAMES[self.tag]

    @classmethod
    def read(cls, reader):
        tag = reader.u1()
        if tag >= len(cls.NAMES):
            raise ClassFormatError(f"unknown verification type tag {tag}", offset=reader.position - 1)
        # Object carries a pool index, Uninitialized a code offset.
        return cls(tag, reader.u2() if tag >= 7 else None)

    def __str__(self):
        return self.name if self.value is None else f"{self.name}({self.value})"


class StackMapFrame:
    __slots__ = ("kind", "frame_type", "offset_delta", "locals", "stack")

    def __init__(self, kind, frame_type, offset_delta, locals=(), stack=()):
        self.kind = kind
        self.frame_type = frame_type
        self.offset_delta = offset_delta
        self.locals = tuple(locals)
        self.stack = tuple(stack)

    @classmethod
    def read(cls, reader):
        frame_type = reader.u1()
        if frame_type <= 63:
            return cls("same", frame_type, frame_type)
        if frame_type <= 127:
            return cls("same_locals_1_stack_item", frame_type, frame_type - 64,
                       stack=[VerificationType.read(reader)])
        if frame_type <= 246:
            raise ClassFormatError(f"reserved stack map frame type {frame_type}", offset=reader.position - 1)
        offset_delta = reader.u2()
        if frame_type == 247:
            return cls("same_locals_1_stack_item_extended", frame_type, offset_delta,
                       stack=[VerificationType.read(reader)])
        if frame_type <= 250:
            return cls("chop", frame_type, offset_delta)
        if frame_type == 251:
            return cls("same_frame_extended", frame_type, offset_delta)
        if frame_type <= 254:
            return cls("append", frame_type, offset_delta,
                       locals=[VerificationType.read(reader) for _ in range(frame_type - 251)])
        locals = [VerificationType.read(reader) for _ in range(reader.u2())]
        stack = [VerificationType.read(reader) for _ in range(reader.u2())]
        return cls("full", frame_type, offset_delta, locals, stack)

    def __str__(self):
        parts = [f"{self.kind}(offset_delta={self.offset_delta}"]
        if self.locals:
            parts.append(f"locals=[{', '.join(map(str, self.locals))}]")
        if self.stack:
            parts.append(f"stack=[{', '.join(map(str, self.stack))}]")
        return ", ".join(parts) + ")"


class StackMapTable:
    __slots__ = ("frames",)

    def __init__(self, frames):
        self.frames = frames

    @classmethod
    def read(cls, reader, pool):
        return cls([StackMapFrame.read(reader) for _ in range(reader.u2())])

    def __str__(self):
        return f"StackMapTable({len(self.frames)}): " + " ".join(map(str, self.frames))


class SourceFile:
    __slots__ = ("index", "name")

    def __init__(self, index, name):
        self.index = index
        self.name = name

    @classmethod
    def read(cls, reader, pool):
        index = reader.u2()
        return cls(index, pool.utf8(index))

    def __str__(self):
        return f"{{sourcefile: {self.name}}}"


class Deprecated:
    __slots__ = ()

    @classmethod
    def read(cls, reader, pool):
        return cls()

    def __str__(self):
        return "Deprecated"


PARSERS = {
    CODE: CodeAttribute,
    CONSTANT_VALUE: ConstantValue,
    STACK_MAP_TABLE: StackMapTable,
    LINE_NUMBER_TABLE: LineNumberTable,
    SOURCE_FILE: SourceFile,
    DEPRECATED: Deprecated,
}


class AttributeInfo:
    """A named attribute; ``body`` is decoded for known names and raw bytes otherwise."""

    __slots__ = ("name_index", "name", "length", "body")

    def __init__(self, name_index, name, length, body):
        self.name_index = name_index
        self.name = name
        self.length = length
        self.body = body

    @classmethod
    def read(cls, reader, pool):
        name_index = reader.u2()
        name = pool.utf8(name_index)
        length = reader.u4()
        body_reader = reader.sub_reader(length)
        parser = PARSERS.get(name)
        if parser is None:
            return cls(name_index, name, length, body_reader.data)
        body = parser.read(body_reader, pool)
        if body_reader.remaining:
            raise ClassFormatError(
                f"{name} attribute declares {length} bytes but only {length - body_reader.remaining} were used",
                offset=body_reader.position,
            )
        return cls(name_index, name, length, body)

    @property
    def is_raw(self):
        return isinstance(self.body, bytes)

    def __str__(self):
        if self.is_raw:
            return f"{self.name}: <{self.length} bytes>"
        if isinstance(self.body, CodeAttribute):
            return f"{self.name}: {self.body.render()[0]}"
        return f"{self.name}: {self.body}"


def read_attributes(reader, pool):
    return [AttributeInfo.read(reader, pool) for _ in range(reader.u2())]


def find_attribute(attributes, name):
    for attribute in attributes:
        if attribute.name == name:
            return attribute.body
    return None

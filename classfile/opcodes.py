"""
Bytecode decoding for Code attributes.

Each opcode maps to a mnemonic and an operand layout. Layout characters:

    c  u1 constant pool index      C  u2 constant pool index
    l  u1 local variable index     u  u1 unsigned immediate
    b  s1 immediate                s  s2 immediate
    j  s2 branch offset            J  s4 branch offset
    z  u1 reserved zero byte

``tableswitch``, ``lookupswitch`` and ``wide`` are decoded specially.
"""

from core.errors import ClassFormatError
from classfile.reader import ByteReader

TABLESWITCH = 0xAA
LOOKUPSWITCH = 0xAB
WIDE = 0xC4
IINC = 0x84


def _build_table():
    table = {}

    def add(opcode, mnemonic, layout=""):
        table[opcode] = (mnemonic, layout)

    simple = [
        "nop", "aconst_null", "iconst_m1", "iconst_0", "iconst_1", "iconst_2", "iconst_3",
        "iconst_4", "iconst_5", "lconst_0", "lconst_1", "fconst_0", "fconst_1", "fconst_2",
        "dconst_0", "dconst_1",
    ]
    for opcode, mnemonic in enumerate(simple):
        add(opcode, mnemonic)
    add(0x10, "bipush", "b")
    add(0x11, "sipush", "s")
    add(0x12, "ldc", "c")
    add(0x13, "ldc_w", "C")
    add(0x14, "ldc2_w", "C")

    prefixes = "ilfda"
    for i, p in enumerate(prefixes):
        add(0x15 + i, f"{p}load", "l")
        add(0x36 + i, f"{p}store", "l")
        for n in range(4):
            add(0x1A + i * 4 + n, f"{p}load_{n}")
            add(0x3B + i * 4 + n, f"{p}store_{n}")
    for i, p in enumerate("ilfdabcs"):
        add(0x2E + i, f"{p}aload")
        add(0x4F + i, f"{p}astore")

    stack_ops = ["pop", "pop2", "dup", "dup_x1", "dup_x2", "dup2", "dup2_x1", "dup2_x2", "swap"]
    for i, mnemonic in enumerate(stack_ops):
        add(0x57 + i, mnemonic)
    for i, op in enumerate(["add", "sub", "mul", "div", "rem", "neg"]):
        for j, p in enumerate("ilfd"):
            add(0x60 + i * 4 + j, f"{p}{op}")
    for i, op in enumerate(["shl", "shr", "ushr", "and", "or", "xor"]):
        for j, p in enumerate("il"):
            add(0x78 + i * 2 + j, f"{p}{op}")
    add(IINC, "iinc", "lb")
    conversions = ["i2l", "i2f", "i2d", "l2i", "l2f", "l2d", "f2i", "f2l", "f2d", "d2i", "d2l", "d2f", "i2b", "i2c", "i2s"]
    for i, mnemonic in enumerate(conversions):
        add(0x85 + i, mnemonic)
    for i, mnemonic in enumerate(["lcmp", "fcmpl", "fcmpg", "dcmpl", "dcmpg"]):
        add(0x94 + i, mnemonic)
    branches = [
        "ifeq", "ifne", "iflt", "ifge", "ifgt", "ifle", "if_icmpeq", "if_icmpne", "if_icmplt",
        "if_icmpge", "if_icmpgt", "if_icmple", "if_acmpeq", "if_acmpne", "goto", "jsr",
    ]
    for i, mnemonic in enumerate(branches):
        add(0x99 + i, mnemonic, "j")
    add(0xA9, "ret", "l")
    add(TABLESWITCH, "tableswitch")
    add(LOOKUPSWITCH, "lookupswitch")
    for i, p in enumerate(["i", "l", "f", "d", "a", ""]):
        add(0xAC + i, f"{p}return")
    for i, mnemonic in enumerate(["getstatic", "putstatic", "getfield", "putfield",
                                  "invokevirtual", "invokespecial", "invokestatic"]):
        add(0xB2 + i, mnemonic, "C")
    add(0xB9, "invokeinterface", "Cuz")
    add(0xBA, "invokedynamic", "Czz")
    add(0xBB, "new", "C")
    add(0xBC, "newarray", "u")
    add(0xBD, "anewarray", "C")
    add(0xBE, "arraylength")
    add(0xBF, "athrow")
    add(0xC0, "checkcast", "C")
    add(0xC1, "instanceof", "C")
    add(0xC2, "monitorenter")
    add(0xC3, "monitorexit")
    add(WIDE, "wide")
    add(0xC5, "multianewarray", "Cu")
    add(0xC6, "ifnull", "j")
    add(0xC7, "ifnonnull", "j")
    add(0xC8, "goto_w", "J")
    add(0xC9, "jsr_w", "J")
    return table


OPCODES = _build_table()

_READERS = {
    "c": ByteReader.u1,
    "C": ByteReader.u2,
    "l": ByteReader.u1,
    "u": ByteReader.u1,
    "b": ByteReader.s1,
    "s": ByteReader.s2,
    "j": ByteReader.s2,
    "J": ByteReader.s4,
    "z": ByteReader.u1,
}

_NEWARRAY_TYPES = {4: "boolean", 5: "char", 6: "float", 7: "double", 8: "byte", 9: "short", 10: "int", 11: "long"}


class Instruction:
    """One decoded instruction; branch operands are stored as absolute targets."""

    __slots__ = ("offset", "opcode", "mnemonic", "layout", "operands", "wide")

    def __init__(self, offset, opcode, mnemonic, layout="", operands=(), wide=False):
        self.offset = offset
        self.opcode = opcode
        self.mnemonic = mnemonic
        self.layout = layout
        self.operands = tuple(operands)
        self.wide = wide

    def _format_operand(self, kind, value, pool):
        if kind in "cC":
            if pool is not None:
                return f"#{value} // {pool.describe(value)}"
            return f"#{value}"
        if kind == "u" and self.mnemonic == "newarray":
            return _NEWARRAY_TYPES.get(value, str(value))
        return str(value)

    def pool_indices(self):
        return [value for kind, value in zip(self.layout, self.operands) if kind in "cC"]

    def render(self, pool=None):
        mnemonic = f"wide {self.mnemonic}" if self.wide else self.mnemonic
        if self.opcode in (TABLESWITCH, LOOKUPSWITCH):
            default, pairs = self.operands
            cases = ", ".join(f"{key}: {target}" for key, target in pairs)
            return f"{self.offset}: {mnemonic} {{{cases}{', ' if cases else ''}default: {default}}}"
        shown = [self._format_operand(kind, value, pool)
                 for kind, value in zip(self.layout, self.operands) if kind != "z"]
        if not shown:
            return f"{self.offset}: {mnemonic}"
        return f"{self.offset}: {mnemonic} {', '.join(shown)}"

    def __str__(self):
        return self.render()

    def to_dict(self):
        return {"offset": self.offset, "mnemonic": self.mnemonic, "text": self.render()}


def _read_switch(reader, offset, opcode):
    # Operands start at the next multiple of 4 from the start of the code array.
    reader.skip((4 - reader.offset % 4) % 4)
    default = offset + reader.s4()
    if opcode == TABLESWITCH:
        low = reader.s4()
        high = reader.s4()
        if high < low:
            raise ClassFormatError(f"tableswitch high {high} below low {low}", offset=reader.position)
        pairs = [(key, offset + reader.s4()) for key in range(low, high + 1)]
    else:
        npairs = reader.s4()
        if npairs < 0:
            raise ClassFormatError(f"lookupswitch with negative npairs {npairs}", offset=reader.position)
        pairs = [(reader.s4(), offset + reader.s4()) for _ in range(npairs)]
    return (default, tuple(pairs))


def _read_wide(reader, offset):
    opcode = reader.u1()
    entry = OPCODES.get(opcode)
    if entry is None or (opcode != IINC and entry[1] != "l"):
        raise ClassFormatError(f"opcode 0x{opcode:02x} cannot follow wide", offset=reader.position - 1)
    mnemonic, _ = entry
    if opcode == IINC:
        return Instruction(offset, opcode, mnemonic, "ls", (reader.u2(), reader.s2()), wide=True)
    return Instruction(offset, opcode, mnemonic, "l", (reader.u2(),), wide=True)


def decode(code, base=0):
    """Decode a code array into a list of instructions."""
    reader = ByteReader(code, base=base)
    instructions = []
    while reader.remaining:
        offset = reader.offset
        opcode = reader.u1()
        entry = OPCODES.get(opcode)
        if entry is None:
            raise ClassFormatError(f"undefined opcode 0x{opcode:02x} at pc {offset}", offset=reader.position - 1)
        mnemonic, layout = entry
        if opcode == WIDE:
            instructions.append(_read_wide(reader, offset))
            continue
        if opcode in (TABLESWITCH, LOOKUPSWITCH):
            instructions.append(Instruction(offset, opcode, mnemonic, "", _read_switch(reader, offset, opcode)))
            continue
        operands = []
        for kind in layout:
            value = _READERS[kind](reader)
            if kind in "jJ":
                value += offset
            operands.append(value)
        instructions.append(Instruction(offset, opcode, mnemonic, layout, operands))
    return instructions

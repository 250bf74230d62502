"""Pytest fixtures for all tests."""

import hashlib
import struct
import zlib

import pytest
from httpx import AsyncClient, ASGITransport

from config import Config, InspectorConfig
from shapes.rectangle import Rectangle
from ui.app import create_app


def u2(value):
    return struct.pack(">H", value)


def u4(value):
    return struct.pack(">I", value)


class ClassBuilder:
    """Assembles class file bytes; pool helpers return the entry index."""

    def __init__(self, major=52, minor=0):
        self.major = major
        self.minor = minor
        self.pool = []
        self._index = {}
        self._next = 1
        self.access = 0x0021
        self.this_class = 0
        self.super_class = 0
        self.interfaces = []
        self.fields = []
        self.methods = []
        self.attributes = []

    def _add(self, key, raw, slots=1):
        if key in self._index:
            return self._index[key]
        index = self._next
        self.pool.append(raw)
        self._index[key] = index
        self._next += slots
        return index

    def utf8_raw(self, raw):
        return self._add(("utf8", raw), b"\x01" + u2(len(raw)) + raw)

    def utf8(self, text):
        return self.utf8_raw(text.encode("utf-8"))

    def integer(self, value):
        return self._add(("int", value), b"\x03" + struct.pack(">i", value))

    def float(self, value):
        return self._add(("float", value), b"\x04" + struct.pack(">f", value))

    def long(self, value):
        return self._add(("long", value), b"\x05" + struct.pack(">q", value), slots=2)

    def double(self, value):
        return self._add(("double", value), b"\x06" + struct.pack(">d", value), slots=2)

    def cls(self, name):
        return self._add(("class", name), b"\x07" + u2(self.utf8(name)))

    def string(self, text):
        return self._add(("string", text), b"\x08" + u2(self.utf8(text)))

    def name_and_type(self, name, descriptor):
        return self._add(("nat", name, descriptor),
                         b"\x0c" + u2(self.utf8(name)) + u2(self.utf8(descriptor)))

    def fieldref(self, owner, name, descriptor):
        return self._add(("field", owner, name, descriptor),
                         b"\x09" + u2(self.cls(owner)) + u2(self.name_and_type(name, descriptor)))

    def methodref(self, owner, name, descriptor):
        return self._add(("method", owner, name, descriptor),
                         b"\x0a" + u2(self.cls(owner)) + u2(self.name_and_type(name, descriptor)))

    def attribute(self, name, body):
        return u2(self.utf8(name)) + u4(len(body)) + body

    def code(self, code, max_stack, max_locals, lines=(), handlers=(), attributes=()):
        body = u2(max_stack) + u2(max_locals) + u4(len(code)) + code
        body += u2(len(handlers)) + b"".join(u2(a) + u2(b) + u2(c) + u2(d) for a, b, c, d in handlers)
        nested = list(attributes)
        if lines:
            table = u2(len(lines)) + b"".join(u2(pc) + u2(line) for pc, line in lines)
            nested.append(self.attribute("LineNumberTable", table))
        body += u2(len(nested)) + b"".join(nested)
        return self.attribute("Code", body)

    def member(self, access, name, descriptor, attributes=()):
        return u2(access) + u2(self.utf8(name)) + u2(self.utf8(descriptor)) + u2(len(attributes)) + b"".join(attributes)

    def add_field(self, access, name, descriptor, attributes=()):
        self.fields.append(self.member(access, name, descriptor, attributes))

    def add_method(self, access, name, descriptor, attributes=()):
        self.methods.append(self.member(access, name, descriptor, attributes))

    def source_file(self, name):
        self.attributes.append(self.attribute("SourceFile", u2(self.utf8(name))))

    def build(self):
        # Members and attributes must be added first: they register pool entries.
        out = u4(0xCAFEBABE) + u2(self.minor) + u2(self.major)
        out += u2(self._next) + b"".join(self.pool)
        out += u2(self.access) + u2(self.this_class) + u2(self.super_class)
        out += u2(len(self.interfaces)) + b"".join(u2(i) for i in self.interfaces)
        out += u2(len(self.fields)) + b"".join(self.fields)
        out += u2(len(self.methods)) + b"".join(self.methods)
        out += u2(len(self.attributes)) + b"".join(self.attributes)
        return out


def build_rectangle_class():
    """What javac 8 emits for the bundled Rectangle.java."""
    b = ClassBuilder()
    b.this_class = b.cls("Rectangle")
    b.super_class = b.cls("java/lang/Object")
    object_init = b.methodref("java/lang/Object", "<init>", "()V")
    width = b.fieldref("Rectangle", "width", "D")
    length = b.fieldref("Rectangle", "length", "D")
    default_width = b.double(2.9)

    init = (
        b"\x2a" + b"\xb7" + u2(object_init)       # 0 aload_0; 1 invokespecial
        + b"\x2a" + b"\x14" + u2(default_width)   # 4 aload_0; 5 ldc2_w
        + b"\xb5" + u2(width)                     # 8 putfield
        + b"\x2a" + b"\x27" + b"\xb5" + u2(width)   # 11 aload_0; 12 dload_1; 13 putfield
        + b"\x2a" + b"\x29" + b"\xb5" + u2(length)  # 16 aload_0; 17 dload_3; 18 putfield
        + b"\xb1"                                 # 21 return
    )
    get_width = b"\x2a" + b"\xb4" + u2(width) + b"\xaf"

    b.add_field(0x0002, "width", "D")
    b.add_field(0x0012, "length", "D")
    b.add_method(0x0001, "<init>", "(DD)V", [
        b.code(init, 3, 5, lines=[(0, 6), (4, 3), (11, 7), (16, 8), (21, 9)]),
    ])
    b.add_method(0x0001, "get_width", "()D", [
        b.code(get_width, 2, 1, lines=[(0, 11)]),
    ])
    b.source_file("Rectangle.java")
    return b.build()


def build_dangling_ref_class():
    """A class whose accessor reads field #999, past the end of the pool."""
    b = ClassBuilder()
    b.this_class = b.cls("Broken")
    b.super_class = b.cls("java/lang/Object")
    code = b"\x2a" + b"\xb4" + u2(999) + b"\xaf"  # aload_0; getfield #999; dreturn
    b.add_method(0x0001, "get_width", "()D", [b.code(code, 2, 1)])
    return b.build()


NO_INDEX = 0xFFFFFFFF


def uleb128(value):
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if not value:
            out.append(byte)
            return bytes(out)
        out.append(byte | 0x80)


class DexBuilder:
    """Assembles little-endian DEX bytes; id helpers return the table index."""

    def __init__(self, version=b"035"):
        self.version = version
        self.strings = []
        self.types = []
        self.protos = []
        self.fields = []
        self.methods = []
        self.classes = []

    @staticmethod
    def _intern(table, key):
        if key not in table:
            table.append(key)
        return table.index(key)

    def string(self, text):
        return self._intern(self.strings, text)

    def type(self, descriptor):
        return self._intern(self.types, self.string(descriptor))

    def proto(self, return_type, *parameters):
        shorty = "".join("L" if t[0] in "L[" else t for t in (return_type,) + parameters)
        params = tuple(self.type(p) for p in parameters)
        return self._intern(self.protos, (self.string(shorty), self.type(return_type), params))

    def field(self, owner, name, type_):
        return self._intern(self.fields, (self.type(owner), self.type(type_), self.string(name)))

    def method(self, owner, name, return_type, *parameters):
        return self._intern(self.methods, (self.type(owner), self.proto(return_type, *parameters), self.string(name)))

    def add_class(self, descriptor, access=0x0001, superclass="Ljava/lang/Object;", interfaces=(),
                  source_file=None, static_fields=(), instance_fields=(), direct_methods=(), virtual_methods=()):
        """Fields are (index, access); methods are (index, access, code) with
        code None or (registers, ins, outs, insns)."""
        self.classes.append({
            "class": self.type(descriptor),
            "access": access,
            "superclass": self.type(superclass) if superclass else NO_INDEX,
            "interfaces": [self.type(name) for name in interfaces],
            "source_file": self.string(source_file) if source_file else NO_INDEX,
            "members": (list(static_fields), list(instance_fields), list(direct_methods), list(virtual_methods)),
        })

    def build(self):
        counts = [len(self.strings), len(self.types), len(self.protos),
                  len(self.fields), len(self.methods), len(self.classes)]
        offsets = []
        end = 0x70
        for count, entry_size in zip(counts, (4, 4, 12, 8, 8, 32)):
            offsets.append(end if count else 0)
            end += count * entry_size
        data_off = end
        data = bytearray()
        sections = {}  # map item type -> [count, first offset]

        def place(item_type, chunk, align=1):
            while (data_off + len(data)) % align:
                data.append(0)
            at = data_off + len(data)
            data.extend(chunk)
            sections.setdefault(item_type, [0, at])[0] += 1
            return at

        def type_list(indices):
            if not indices:
                return 0
            return place(0x1001, struct.pack("<I", len(indices)) + b"".join(struct.pack("<H", i) for i in indices), 4)

        def code_item(code):
            registers, ins, outs, insns = code
            body = struct.pack("<HHHHII", registers, ins, outs, 0, 0, len(insns))
            return place(0x2001, body + b"".join(struct.pack("<H", unit) for unit in insns), 4)

        string_offs = [
            place(0x2002, uleb128(len(text.encode("utf-16-le")) // 2)
                  + text.encode("utf-8").replace(b"\x00", b"\xc0\x80") + b"\x00")
            for text in self.strings
        ]
        param_offs = [type_list(params) for _, _, params in self.protos]
        interface_offs = [type_list(c["interfaces"]) for c in self.classes]
        class_data_offs = []
        for c in self.classes:
            if not any(c["members"]):
                class_data_offs.append(0)
                continue
            body = b"".join(uleb128(len(group)) for group in c["members"])
            for group in c["members"][:2]:
                previous = 0
                for index, access in sorted(group):
                    body += uleb128(index - previous) + uleb128(access)
                    previous = index
            for group in c["members"][2:]:
                previous = 0
                for index, access, code in sorted(group, key=lambda m: m[0]):
                    code_off = code_item(code) if code else 0
                    body += uleb128(index - previous) + uleb128(access) + uleb128(code_off)
                    previous = index
            class_data_offs.append(place(0x2000, body))

        while (data_off + len(data)) % 4:
            data.append(0)
        map_off = data_off + len(data)
        items = [(0x0000, 1, 0)]
        items += [(item_type, count, offset)
                  for item_type, count, offset in zip(range(1, 7), counts, offsets) if count]
        items += [(item_type, count, offset) for item_type, (count, offset) in sections.items()]
        items.append((0x1000, 1, map_off))
        data += struct.pack("<I", len(items))
        data += b"".join(struct.pack("<HHII", item_type, 0, count, offset) for item_type, count, offset in items)

        file_size = data_off + len(data)
        header = b"dex\n" + self.version + b"\x00" + bytes(24)
        header += struct.pack("<IIIIII", file_size, 0x70, 0x12345678, 0, 0, map_off)
        header += b"".join(struct.pack("<II", count, offset) for count, offset in zip(counts, offsets))
        header += struct.pack("<II", len(data), data_off)

        tables = b"".join(struct.pack("<I", offset) for offset in string_offs)
        tables += b"".join(struct.pack("<I", string) for string in self.types)
        tables += b"".join(struct.pack("<III", shorty, return_type, params_off)
                           for (shorty, return_type, _), params_off in zip(self.protos, param_offs))
        tables += b"".join(struct.pack("<HHI", *field) for field in self.fields)
        tables += b"".join(struct.pack("<HHI", *method) for method in self.methods)
        tables += b"".join(
            struct.pack("<IIIIIIII", c["class"], c["access"], c["superclass"], interfaces_off,
                        c["source_file"], 0, class_data_off, 0)
            for c, interfaces_off, class_data_off in zip(self.classes, interface_offs, class_data_offs)
        )

        out = bytearray(header + tables + data)
        out[12:32] = hashlib.sha1(bytes(out[32:])).digest()
        out[8:12] = struct.pack("<I", zlib.adler32(bytes(out[12:])))
        return bytes(out)


def build_rectangle_dex():
    """The Rectangle class as d8 lays it out in classes.dex."""
    b = DexBuilder()
    width = b.field("LRectangle;", "width", "D")
    length = b.field("LRectangle;", "length", "D")
    object_init = b.method("Ljava/lang/Object;", "<init>", "V")
    init = b.method("LRectangle;", "<init>", "V", "D", "D")
    get_width = b.method("LRectangle;", "get_width", "D")
    init_code = (5, 5, 1, [
        0x1070, object_init, 0x0000,  # invoke-direct {v0}, Object.<init>
        0x015A, width,                # iput-wide v1, v0, width
        0x035A, length,               # iput-wide v3, v0, length
        0x000E,                       # return-void
    ])
    get_width_code = (3, 1, 0, [
        0x2053, width,                # iget-wide v0, v2, width
        0x0010,                       # return-wide v0
    ])
    b.add_class(
        "LRectangle;",
        source_file="Rectangle.java",
        instance_fields=[(width, 0x0002), (length, 0x0012)],
        direct_methods=[(init, 0x10001, init_code)],
        virtual_methods=[(get_width, 0x0001, get_width_code)],
    )
    return b.build()


@pytest.fixture
def dangling_ref_class_bytes():
    return build_dangling_ref_class()


@pytest.fixture
def dex_builder():
    """The DexBuilder type, for tests that assemble their own DEX file."""
    return DexBuilder


@pytest.fixture
def rectangle_dex_bytes():
    return build_rectangle_dex()


@pytest.fixture
def rectangle_dex_file(tmp_path, rectangle_dex_bytes):
    path = tmp_path / "classes.dex"
    path.write_bytes(rectangle_dex_bytes)
    return path


@pytest.fixture
def class_builder():
    """The ClassBuilder type, for tests that assemble their own class."""
    return ClassBuilder


@pytest.fixture
def rectangle_class_bytes():
    return build_rectangle_class()


@pytest.fixture
def rectangle_class_file(tmp_path, rectangle_class_bytes):
    path = tmp_path / "Rectangle.class"
    path.write_bytes(rectangle_class_bytes)
    return path


@pytest.fixture
def rectangle():
    """Create a test rectangle."""
    return Rectangle(3.5, 7.0)


@pytest.fixture
def app_config(rectangle_class_file):
    return Config(inspector=InspectorConfig(default_path=str(rectangle_class_file), max_size=4096))


@pytest.fixture
async def app(app_config):
    """Create test FastAPI app."""
    return create_app(app_config)


@pytest.fixture
async def client(app):
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

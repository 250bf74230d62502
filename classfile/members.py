"""Field and method tables."""

from classfile.access_flags import AccessFlags
from classfile.attributes import CODE, CONSTANT_VALUE, find_attribute, read_attributes


class MemberInfo:
    __slots__ = ("access_flags", "name_index", "descriptor_index", "name", "descriptor", "attributes")

    flag_context = None

    def __init__(self, access_flags, name_index, descriptor_index, name, descriptor, attributes):
        self.access_flags = access_flags
        self.name_index = name_index
        self.descriptor_index = descriptor_index
        self.name = name
        self.descriptor = descriptor
        self.attributes = attributes

    @classmethod
    def read(cls, reader, pool):
        mask = reader.u2()
        name_index = reader.u2()
        descriptor_index = reader.u2()
        attributes = read_attributes(reader, pool)
        return cls(
            cls.flag_context(mask),
            name_index,
            descriptor_index,
            pool.utf8(name_index),
            pool.utf8(descriptor_index),
            attributes,
        )

    def find(self, name):
        return find_attribute(self.attributes, name)

    def __str__(self):
        text = f"access_flags: {self.access_flags}\tname: {self.name}\tdescriptor: {self.descriptor}"
        if self.attributes:
            text += f"\tattributes({len(self.attributes)}): " + " ".join(a.name for a in self.attributes)
        return text

    def to_dict(self):
        return {
            "name": self.name,
            "descriptor": self.descriptor,
            "access_flags": self.access_flags.to_dict(),
            "attributes": [attribute.name for attribute in self.attributes],
        }


class FieldInfo(MemberInfo):
    __slots__ = ()

    flag_context = staticmethod(AccessFlags.for_field)

    @property
    def constant_value_index(self):
        body = self.find(CONSTANT_VALUE)
        return body.index if body else None


class MethodInfo(MemberInfo):
    __slots__ = ()

    flag_context = staticmethod(AccessFlags.for_method)

    @property
    def code(self):
        return self.find(CODE)

    def render(self, pool=None):
        lines = [str(self)]
        code = self.code
        if code is not None:
            lines.extend("\t" + line for line in code.render(pool))
        return lines

    def to_dict(self, pool=None):
        data = super().to_dict()
        code = self.code
        if code is not None:
            data["code"] = {
                "max_stack": code.max_stack,
                "max_locals": code.max_locals,
                "instructions": [instruction.render(pool) for instruction in code.instructions],
            }
        return data


def read_members(reader, pool, member_cls):
    return [member_cls.read(reader, pool) for _ in range(reader.u2())]

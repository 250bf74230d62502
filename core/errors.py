"""Inspector errors with tracking IDs."""

from utils.ids import format_timestamp, generate_ksuid


class BaseInspectorError(Exception):
    """Base error with unique ID and timestamp for tracking."""

    def __init__(self, message, context=None, cause=None):
        super().__init__(message)
        self.message = message
        self.error_id = generate_ksuid()
        self.timestamp = format_timestamp()
        self.context = context or {}
        self.cause = cause

    def __str__(self):
        return f"[{self.error_id}] {self.message}"

    def to_dict(self):
        return {
            "error": self.message,
            "error_id": self.error_id,
            "timestamp": self.timestamp,
            "context": self.context,
        }


class ClassFormatError(BaseInspectorError):
    """Class file bytes that do not follow the class-file layout."""

    def __init__(self, message, offset=None, **kwargs):
        context = kwargs.pop("context", {})
        if offset is not None:
            context["offset"] = offset
        super().__init__(message, context=context, **kwargs)
        self.offset = offset


class TruncatedInputError(ClassFormatError):
    """A read ran past the end of the input."""

    def __init__(self, offset, wanted, available):
        super().__init__(
            f"unexpected end of input: wanted {wanted} byte(s) at offset {offset}, {available} left",
            offset=offset,
            context={"wanted": wanted, "available": available},
        )


class DexFormatError(ClassFormatError):
    """DEX bytes that do not follow the dex layout."""

    def __init__(self, message, index=None, **kwargs):
        context = kwargs.pop("context", {})
        if index is not None:
            context["index"] = index
        super().__init__(message, context=context, **kwargs)
        self.index = index


class ConstantPoolError(ClassFormatError):
    """Reference to a missing or mistyped constant pool entry."""

    def __init__(self, message, index=None, **kwargs):
        context = kwargs.pop("context", {})
        if index is not None:
            context["index"] = index
        super().__init__(message, context=context, **kwargs)
        self.index = index


class HealthCheckError(BaseInspectorError):
    """Health check failures."""

    def __init__(self, message, component=None, **kwargs):
        context = kwargs.pop("context", {})
        if component:
            context["component"] = component
        super().__init__(message, context=context, **kwargs)

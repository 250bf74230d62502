"""Rectangle defines a plain two-dimension value."""


class Rectangle:
    """Rectangle with a width and a length, both fixed at construction."""

    __slots__ = ("_width", "_length")

    def __init__(self, width, length):
        self._width = width
        self._length = length

    def get_width(self):
        return self._width

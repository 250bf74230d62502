from shapes.rectangle import Rectangle

__all__ = ["Rectangle"]

from dex.dex_file import DexFile, load, parse

__all__ = [
    "DexFile",
    "load",
    "parse",
]

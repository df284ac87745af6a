"""Statement and expression helper modules for the MSX-BASIC runtime."""

__all__ = [
    "common",
    "expr",
    "arrays",
    "fn",
    "let",
    "io",
    "data",
    "control",
    "loops",
]

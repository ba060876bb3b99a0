"""Protocol Buffers wire-format encoding and decoding: varints, scalar codecs, messages, groups, maps and wrapper types."""

__version__ = "0.9.0"

__all__ = ["errors", "wire", "scalars", "message", "maps", "wrappers"]
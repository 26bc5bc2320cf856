"""
Exception hierarchy for texture export.
"""

from typing import Optional


class TextureExportError(Exception):
    """Raised when texture export fails."""
    pass


class TextureIOError(TextureExportError):
    """Input document or output directory is missing or unreadable."""
    pass


class SwfFormatError(TextureExportError):
    """The document container could not be decompressed or parsed."""
    pass


class AbcFormatError(SwfFormatError):
    """An embedded bytecode blob is truncated or inconsistent."""
    pass


class UnsupportedMovieError(TextureExportError):
    """The document needs the legacy (non-ActionScript 3) execution model."""
    pass


class ConstantPoolIndexError(TextureExportError, IndexError):
    """A constant-pool reference is zero or past the end of its table."""

    def __init__(self, table: str, index: int, size: int):
        super().__init__(f"{table} index {index} out of range (1..{size})")
        self.table = table
        self.index = index
        self.size = size


class UnsupportedNameKindError(TextureExportError):
    """A multiname variant other than QName was used where a class name is needed."""

    def __init__(self, kind, index: Optional[int] = None):
        where = f" at multiname {index}" if index is not None else ""
        super().__init__(f"Unsupported multiname kind {kind.name}{where}")
        self.kind = kind
        self.index = index


class TextureResolutionError(TextureExportError):
    """A texture class has no usable symbol id."""

    def __init__(self, class_name: str, message: Optional[str] = None):
        super().__init__(message or f"Texture {class_name} is not linked to any symbol id")
        self.class_name = class_name


class TextureRenderError(TextureExportError):
    """The render capability failed while capturing a texture."""

    def __init__(self, class_name: str, message: str):
        super().__init__(f"Unable to capture {class_name}: {message}")
        self.class_name = class_name

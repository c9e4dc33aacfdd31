"""Document rendering."""

from .docx_renderer import DocxRenderer, Renderer

__all__ = ["DocxRenderer", "Renderer"]

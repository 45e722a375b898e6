"""Document format: frontmatter codec and record/document conversion."""

from .frontmatter import FrontmatterCodec
from .converter import DocumentConverter, FormatCheck, ParsedDocument

__all__ = ["FrontmatterCodec", "DocumentConverter", "FormatCheck", "ParsedDocument"]

"""
Document converter for noteferry.

Turns Records into frontmatter documents and back:

    ---
    id: 6f1c...
    title: Hello World
    tags:
      - a
    created: 2024-05-01T10:00:00.123Z
    updated: 2024-05-01T10:05:00.000Z
    ---

    # Hello World

    some body text
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ParseError
from ..migration.cleaner import DEFAULT_TITLE, RecordCleaner
from ..models import Record
from ..timestamps import epoch_millis, parse_timestamp, utc_now
from .frontmatter import FrontmatterCodec

_DOCUMENT_RE = re.compile(r'\A---\r?\n((?:.*?\r?\n)?)---\r?\n(?:\r?\n)?(.*)\Z', re.DOTALL)
_H1_RE = re.compile(r'^#\s+(.+)$')

MAX_FILE_NAME_LENGTH = 100
MAX_EXTRACTED_TITLE_LENGTH = 50


@dataclass
class ParsedDocument:
    """A document split into its decoded frontmatter and raw body."""
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    body: str = ""


@dataclass
class FormatCheck:
    """Result of a structural format check."""
    is_valid: bool
    error: Optional[str] = None


class DocumentConverter:
    """
    Converts between Records and frontmatter documents.
    """

    def __init__(self, codec: Optional[FrontmatterCodec] = None,
                 cleaner: Optional[RecordCleaner] = None,
                 file_extension: str = ".md"):
        """
        Initialize the converter.

        Args:
            codec: Frontmatter codec (a default one is created when omitted)
            cleaner: Record cleaner used at both conversion boundaries
            file_extension: Extension appended to generated file names
        """
        self.codec = codec or FrontmatterCodec()
        self.cleaner = cleaner or RecordCleaner()
        self.file_extension = file_extension

    def to_document(self, record: Any) -> str:
        """
        Convert a record to document text.

        Args:
            record: A Record or a raw record mapping (cleaned first)

        Returns:
            The document text
        """
        record, fixes = self.cleaner.clean(record)
        for fix in fixes:
            logging.debug(f"Record {record.id}: {fix}")

        fields: Dict[str, Any] = {
            "id": record.id,
            "title": record.title,
            "tags": list(record.tags),
            "created": record.created_at,
            "updated": record.updated_at,
        }
        if record.is_deleted:
            fields["isDeleted"] = True
            fields["deletedAt"] = record.deleted_at

        frontmatter = self.codec.encode(fields)
        body = self._build_body(record.title, record.content)
        return f"---\n{frontmatter}---\n\n{body}"

    def from_document(self, text: str) -> Record:
        """
        Convert document text back into a record.

        Field values are coerced through the cleaner, so this only raises
        when the document has no frontmatter block at all.

        Args:
            text: The document text

        Returns:
            The reconstructed record

        Raises:
            ParseError: If the frontmatter delimiters are missing
        """
        parsed = self.parse_document(text)

        raw = dict(parsed.frontmatter)
        for key in ("id", "title"):
            value = raw.get(key)
            if isinstance(value, (bool, int, float)):
                raw[key] = str(value).lower() if isinstance(value, bool) else str(value)

        tags = raw.get("tags")
        if isinstance(tags, str):
            raw["tags"] = [tags]

        raw["content"] = parsed.body

        record, fixes = self.cleaner.clean(raw)
        for fix in fixes:
            logging.debug(f"Document {record.id}: {fix}")

        content = self.strip_title_heading(record.content, record.title)
        if content != record.content:
            record = record.model_copy(update={"content": content})
        return record

    def parse_document(self, text: str) -> ParsedDocument:
        """
        Split a document into decoded frontmatter and body.

        Raises:
            ParseError: If the text does not start with a '---' delimited block
        """
        if not isinstance(text, str):
            raise ParseError("Document is not text")

        match = _DOCUMENT_RE.match(text)
        if not match:
            raise ParseError("Missing frontmatter delimiters")

        return ParsedDocument(
            frontmatter=self.codec.decode(match.group(1)),
            body=match.group(2)
        )

    @staticmethod
    def strip_title_heading(body: str, title: str) -> str:
        """
        Remove one leading '# <title>' line, plus one blank line after it.

        Only an exact match at the very start of the body is removed; any other
        heading, including a differently cased or later one, is left alone.
        """
        heading = f"# {title}"
        if body == heading:
            return ""

        for newline in ("\n", "\r\n"):
            if body.startswith(heading + newline):
                rest = body[len(heading) + len(newline):]
                if rest.startswith(newline):
                    rest = rest[len(newline):]
                return rest

        return body

    def generate_file_name(self, title: Any) -> str:
        """
        Derive a file name from a title.

        Lowercases, drops everything except ASCII letters, digits, whitespace
        and hyphens, turns whitespace into hyphens and trims the result. An
        empty slug falls back to record-<epochMillis>.

        Args:
            title: The record title

        Returns:
            The file name, including the extension
        """
        slug = str(title or "").lower()
        slug = re.sub(r'[^a-z0-9\s-]', '', slug)
        slug = re.sub(r'\s+', '-', slug)
        slug = re.sub(r'-+', '-', slug)
        slug = slug.strip('-')
        slug = slug[:MAX_FILE_NAME_LENGTH].strip('-')

        if not slug:
            return f"record-{epoch_millis()}{self.file_extension}"
        return f"{slug}{self.file_extension}"

    def validate_document_format(self, text: str) -> FormatCheck:
        """
        Check that a document has the required frontmatter fields.

        The frontmatter must parse and carry non-empty id, title, created and
        updated values, with created and updated parseable as dates.
        """
        try:
            parsed = self.parse_document(text)
        except ParseError as e:
            return FormatCheck(is_valid=False, error=str(e))

        fields = parsed.frontmatter
        for key in ("id", "title", "created", "updated"):
            value = fields.get(key)
            if value is None or (isinstance(value, (str, list)) and not value):
                return FormatCheck(is_valid=False, error=f"Missing required field: {key}")
            if isinstance(value, str) and not value.strip():
                return FormatCheck(is_valid=False, error=f"Missing required field: {key}")

        for key in ("created", "updated"):
            if parse_timestamp(fields[key]) is None:
                return FormatCheck(is_valid=False, error=f"Invalid date in field: {key}")

        return FormatCheck(is_valid=True)

    def create_document(self, title: str, content: str = "",
                        tags: Optional[List[str]] = None) -> Tuple[Record, str]:
        """Create a new record and its document text."""
        now = utc_now()
        record, _ = self.cleaner.clean({
            "id": str(uuid.uuid4()),
            "title": title,
            "content": content,
            "tags": tags or [],
            "created_at": now,
            "updated_at": now,
        })
        return record, self.to_document(record)

    def update_document(self, record: Record, title: Optional[str] = None,
                        content: Optional[str] = None,
                        tags: Optional[List[str]] = None) -> Tuple[Record, str]:
        """
        Apply changes to a record and bump its update time.

        Returns:
            Tuple of (updated record, document text)
        """
        changes: Dict[str, Any] = {"updated_at": max(utc_now(), record.created_at)}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        if tags is not None:
            changes["tags"] = tags

        updated, _ = self.cleaner.clean({**record.model_dump(), **changes})
        return updated, self.to_document(updated)

    @staticmethod
    def extract_title_from_content(content: str) -> str:
        """First H1 heading, else the first text line (shortened), else 'untitled'."""
        lines = [line.strip() for line in (content or "").splitlines()]

        for line in lines:
            match = _H1_RE.match(line)
            if match and match.group(1).strip():
                return match.group(1).strip()

        for line in lines:
            if line and not line.startswith("#"):
                return line[:MAX_EXTRACTED_TITLE_LENGTH].strip()

        return DEFAULT_TITLE

    @staticmethod
    def _build_body(title: str, content: str) -> str:
        heading = f"# {title}"
        if not content:
            return heading + "\n"
        if content.split("\n", 1)[0].rstrip("\r") == heading:
            return content
        return f"{heading}\n\n{content}"

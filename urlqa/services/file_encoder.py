"""Convert knowledge base files into request-ready content fragments"""

import asyncio
import base64
import logging

from urlqa.models import ContentFragment, KnowledgeFile
from urlqa.models.model_config import (
    FALLBACK_MIME_TYPE,
    INLINE_MIME_PREFIXES,
    INLINE_MIME_TYPES,
)
from urlqa.prompts import FILE_TEXT_TEMPLATE

logger = logging.getLogger(__name__)


def is_inline_mime(mime_type: str) -> bool:
    """Images, audio, video and PDFs go inline; the rest is sent as text"""
    mime_type = mime_type or ""
    return mime_type.startswith(INLINE_MIME_PREFIXES) or mime_type in INLINE_MIME_TYPES


async def encode_file(file: KnowledgeFile) -> ContentFragment:
    """Encode one file. Read failures raise FileReadError."""
    if is_inline_mime(file.mime_type):
        raw = await file.read_bytes()
        logger.debug(f"Encoding {file.name} inline ({file.mime_type}, {len(raw)} bytes)")
        return ContentFragment(
            kind="inline",
            mime_type=file.mime_type or FALLBACK_MIME_TYPE,
            data=base64.b64encode(raw).decode("ascii"),
        )

    content = await file.read_text()
    return ContentFragment(
        kind="text",
        text=FILE_TEXT_TEMPLATE.format(name=file.name, content=content),
    )


async def encode_files(files: list[KnowledgeFile]) -> list[ContentFragment]:
    """Read all files concurrently, keeping input order"""
    if not files:
        return []
    return list(await asyncio.gather(*(encode_file(f) for f in files)))

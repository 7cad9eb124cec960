"""Knowledge base entities"""

import asyncio
import mimetypes
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from urlqa.exceptions import FileReadError


class KnowledgeFile(BaseModel):
    """File attached to a knowledge base group.

    Body is either held in memory (`data`) or read lazily from `path`.
    """

    name: str
    mime_type: str = ""
    data: Optional[bytes] = None
    path: Optional[Path] = None
    size: int = 0

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty")
        return v

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: str = "") -> "KnowledgeFile":
        return cls(name=name, mime_type=mime_type or "", data=data, size=len(data))

    @classmethod
    def from_path(cls, path: Path, name: Optional[str] = None) -> "KnowledgeFile":
        path = Path(path)
        detected_type, _ = mimetypes.guess_type(str(path))
        try:
            size = path.stat().st_size
        except OSError as e:
            raise FileReadError(f"Failed to read file {path}: {e}")
        return cls(
            name=name or path.name,
            mime_type=detected_type or "",
            path=path,
            size=size,
        )

    @classmethod
    def from_directory(cls, root: Path) -> list["KnowledgeFile"]:
        """Flatten a directory tree into files named by their relative path"""
        root = Path(root)
        if not root.is_dir():
            raise FileReadError(f"Not a directory: {root}")
        return [
            cls.from_path(p, name=p.relative_to(root).as_posix())
            for p in sorted(root.rglob("*"))
            if p.is_file()
        ]

    async def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise FileReadError(f"File {self.name} has no content")
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise FileReadError(f"Failed to read file {self.name}: {e}")

    async def read_text(self) -> str:
        raw = await self.read_bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FileReadError(f"Failed to decode file {self.name} as text: {e}")


class URLGroup(BaseModel):
    """Named, bounded collection of URLs and files"""

    id: str
    name: str
    urls: list[str] = Field(default_factory=list)
    files: list[KnowledgeFile] = Field(default_factory=list)

    def has_url(self, url: str) -> bool:
        return url in self.urls

    def file_names(self) -> set[str]:
        return {f.name for f in self.files}

"""In-memory knowledge base: URL groups with an active selection"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from urlqa.exceptions import GroupNotFoundError
from urlqa.models import INITIAL_URL_GROUPS, MAX_FILES, MAX_URLS, KnowledgeFile, URLGroup

logger = logging.getLogger(__name__)


class KnowledgeBaseEvent(str, Enum):
    ACTIVE_GROUP_CHANGED = "active_group_changed"
    URLS_CHANGED = "urls_changed"


Listener = Callable[[KnowledgeBaseEvent, URLGroup], None]


class AddUrlResult(str, Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    LIMIT_REACHED = "limit_reached"


@dataclass
class AddFilesResult:
    """Outcome of a bulk file import"""

    added: list[KnowledgeFile] = field(default_factory=list)
    skipped_duplicates: list[str] = field(default_factory=list)
    dropped_over_limit: list[str] = field(default_factory=list)


def seed_groups() -> list[URLGroup]:
    return [
        URLGroup(id=group_id, name=name, urls=list(urls))
        for group_id, name, urls in INITIAL_URL_GROUPS
    ]


class KnowledgeBase:
    """Named URL/file groups; every mutation targets the active group.

    Groups are fixed at construction, none are created or deleted afterwards.
    """

    def __init__(
        self,
        groups: Optional[Iterable[URLGroup]] = None,
        max_urls: int = MAX_URLS,
        max_files: int = MAX_FILES,
    ):
        groups = list(groups) if groups is not None else seed_groups()
        if not groups:
            raise ValueError("knowledge base needs at least one group")

        self.max_urls = max_urls
        self.max_files = max_files
        self._groups: dict[str, URLGroup] = {g.id: g for g in groups}
        self._active_group_id = groups[0].id
        self._listeners: list[Listener] = []

    # ========== QUERIES ==========

    @property
    def groups(self) -> list[URLGroup]:
        return list(self._groups.values())

    @property
    def active_group_id(self) -> str:
        return self._active_group_id

    @property
    def active_group(self) -> URLGroup:
        return self._groups[self._active_group_id]

    def get_group(self, group_id: str) -> URLGroup:
        try:
            return self._groups[group_id]
        except KeyError:
            raise GroupNotFoundError(f"Unknown group: {group_id}")

    # ========== SUBSCRIPTIONS ==========

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self, event: KnowledgeBaseEvent) -> None:
        group = self.active_group
        for listener in list(self._listeners):
            listener(event, group)

    # ========== MUTATIONS ==========

    def set_active_group(self, group_id: str) -> URLGroup:
        group = self.get_group(group_id)
        if group_id == self._active_group_id:
            return group
        self._active_group_id = group_id
        logger.info(f"Active group -> {group_id} ({group.name})")
        self._notify(KnowledgeBaseEvent.ACTIVE_GROUP_CHANGED)
        return group

    def add_url(self, url: str) -> AddUrlResult:
        """Add URL to active group. Syntax must be validated by the caller."""
        group = self.active_group
        if group.has_url(url):
            return AddUrlResult.DUPLICATE
        if len(group.urls) >= self.max_urls:
            return AddUrlResult.LIMIT_REACHED
        group.urls.append(url)
        logger.info(f"[{group.id}] URL added: {url} ({len(group.urls)}/{self.max_urls})")
        self._notify(KnowledgeBaseEvent.URLS_CHANGED)
        return AddUrlResult.ADDED

    def remove_url(self, url: str) -> bool:
        group = self.active_group
        if url not in group.urls:
            return False
        group.urls.remove(url)
        logger.info(f"[{group.id}] URL removed: {url}")
        self._notify(KnowledgeBaseEvent.URLS_CHANGED)
        return True

    def add_files(self, files: Iterable[KnowledgeFile]) -> AddFilesResult:
        """Append files not already present by name, truncating at the limit.

        Existing entries are kept; overflow from this batch is dropped.
        """
        group = self.active_group
        result = AddFilesResult()
        seen = group.file_names()
        unique: list[KnowledgeFile] = []
        for f in files:
            if f.name in seen:
                result.skipped_duplicates.append(f.name)
                continue
            seen.add(f.name)
            unique.append(f)

        room = max(self.max_files - len(group.files), 0)
        result.added = unique[:room]
        result.dropped_over_limit = [f.name for f in unique[room:]]
        group.files.extend(result.added)

        if result.skipped_duplicates:
            logger.info(f"[{group.id}] Skipped {len(result.skipped_duplicates)} duplicate files")
        if result.dropped_over_limit:
            logger.warning(
                f"[{group.id}] File limit {self.max_files} reached, "
                f"dropped {len(result.dropped_over_limit)} files"
            )
        return result

    def remove_file(self, name: str) -> bool:
        group = self.active_group
        remaining = [f for f in group.files if f.name != name]
        if len(remaining) == len(group.files):
            return False
        group.files = remaining
        logger.info(f"[{group.id}] File removed: {name}")
        return True

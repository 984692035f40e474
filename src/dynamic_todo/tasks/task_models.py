# src/dynamic_todo/tasks/task_models.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

UNCHECKED_BOX = "[ ]"
CHECKED_BOXES = ("[x]", "[X]")
COMPLETION_GLYPH = "✅"


def now_ms() -> int:
    return int(time.time() * 1000)


class IdentificationMethod(StrEnum):
    """How a note is recognised as a task note."""

    TAG = "tag"
    HEADER = "header"

    @classmethod
    def parse(cls, raw: str | None) -> IdentificationMethod:
        if not raw:
            return cls.TAG
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.TAG


class SortField(StrEnum):
    NAME = "name"
    CREATED = "created"
    LAST_MODIFIED = "lastModified"

    @classmethod
    def parse(cls, raw: str | None) -> SortField:
        if not raw:
            return cls.NAME
        key = str(raw).strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        if key == "modified":
            return cls.LAST_MODIFIED
        return cls.NAME


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw: str | None) -> SortDirection:
        if raw and str(raw).strip().lower() == "desc":
            return cls.DESC
        return cls.ASC


class ChangeKind(StrEnum):
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(slots=True, frozen=True)
class NoteInfo:
    """One entry of the host's note enumeration."""

    path: str
    display_name: str


@dataclass(slots=True, frozen=True)
class NoteStat:
    created_at: int
    modified_at: int


@dataclass(slots=True, frozen=True)
class NoteRef:
    """Read-only reference to the note a task came from."""

    path: str
    display_name: str
    created_at: int = 0
    modified_at: int = 0

    @classmethod
    def from_host(cls, info: NoteInfo, stat: NoteStat) -> NoteRef:
        return cls(
            path=info.path,
            display_name=info.display_name,
            created_at=int(stat.created_at),
            modified_at=int(stat.modified_at),
        )


@dataclass(slots=True, frozen=True)
class NoteChange:
    kind: ChangeKind
    path: str


@dataclass(slots=True)
class Task:
    source_file: NoteRef
    task_text: str
    line_number: int
    completed: bool
    completion_date: str | None
    source_link: str
    last_updated: int

    # Set only by a local toggle; drives the self-edit grace window.
    last_toggled: int | None = None

    @property
    def path(self) -> str:
        return self.source_file.path

    @property
    def key(self) -> tuple[str, int]:
        return (self.source_file.path, self.line_number)


@dataclass(slots=True, frozen=True)
class FolderFilters:
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class SortPreference:
    field: SortField = SortField.NAME
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, raw: str) -> SortPreference:
        """Parse "field-direction" (e.g. "created-desc") as the settings dropdown stores it."""
        field_raw, _, direction_raw = (raw or "").partition("-")
        return cls(field=SortField.parse(field_raw), direction=SortDirection.parse(direction_raw))

    def __str__(self) -> str:
        return f"{self.field.value}-{self.direction.value}"


@dataclass(slots=True, frozen=True)
class PluginSettings:
    """
    Snapshot of user settings consumed by the engine.

    Never mutated in place: edits produce a new snapshot (dataclasses.replace)
    and a full rebuild.
    """

    note_tag: str = "#tasks"
    task_prefix: str = "- [ ]"
    task_identification_method: IdentificationMethod = IdentificationMethod.TAG
    folder_filters: FolderFilters = field(default_factory=FolderFilters)
    sort_preference: SortPreference = field(default_factory=SortPreference)
    archive_completed_older_than: int = 90
    show_file_headers: bool = True
    show_created_modified_in_file_headers: bool = True
    move_completed_tasks_to_bottom: bool = False
    enable_wiki_links: bool = True
    enable_url_links: bool = True
    open_on_startup: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PluginSettings:
        """
        Build settings from persisted JSON (camelCase keys as the plugin stores them).

        Unknown keys are ignored and bad values fall back to defaults.
        """
        defaults = cls()
        if not isinstance(data, dict):
            return defaults

        def _str(key: str, default: str) -> str:
            v = data.get(key)
            return v if isinstance(v, str) else default

        def _bool(key: str, default: bool) -> bool:
            v = data.get(key)
            return v if isinstance(v, bool) else default

        def _paths(raw: Any) -> tuple[str, ...]:
            if not isinstance(raw, list):
                return ()
            return tuple(p for p in raw if isinstance(p, str))

        folders_raw = data.get("folderFilters")
        folders = defaults.folder_filters
        if isinstance(folders_raw, dict):
            folders = FolderFilters(
                include=_paths(folders_raw.get("include")),
                exclude=_paths(folders_raw.get("exclude")),
            )

        sort_raw = data.get("sortPreference")
        sort = defaults.sort_preference
        if isinstance(sort_raw, dict):
            sort = SortPreference(
                field=SortField.parse(sort_raw.get("field")),
                direction=SortDirection.parse(sort_raw.get("direction")),
            )

        archive = data.get("archiveCompletedOlderThan")
        if isinstance(archive, bool) or not isinstance(archive, int) or archive < 0:
            archive = defaults.archive_completed_older_than

        settings = cls(
            note_tag=_str("noteTag", defaults.note_tag),
            task_prefix=_str("taskPrefix", defaults.task_prefix),
            task_identification_method=IdentificationMethod.parse(data.get("taskIdentificationMethod")),
            folder_filters=folders,
            sort_preference=sort,
            archive_completed_older_than=archive,
            show_file_headers=_bool("showFileHeaders", defaults.show_file_headers),
            show_created_modified_in_file_headers=_bool(
                "showCreatedModifiedInFileHeaders", defaults.show_created_modified_in_file_headers
            ),
            move_completed_tasks_to_bottom=_bool(
                "moveCompletedTasksToBottom", defaults.move_completed_tasks_to_bottom
            ),
            enable_wiki_links=_bool("enableWikiLinks", defaults.enable_wiki_links),
            enable_url_links=_bool("enableUrlLinks", defaults.enable_url_links),
            open_on_startup=_bool("openOnStartup", defaults.open_on_startup),
        )
        if UNCHECKED_BOX not in settings.task_prefix:
            logger.warning("taskPrefix %r has no %r; task matching is undefined", settings.task_prefix, UNCHECKED_BOX)
        return settings

    def to_dict(self) -> dict[str, Any]:
        return {
            "noteTag": self.note_tag,
            "taskPrefix": self.task_prefix,
            "taskIdentificationMethod": self.task_identification_method.value,
            "folderFilters": {
                "include": list(self.folder_filters.include),
                "exclude": list(self.folder_filters.exclude),
            },
            "sortPreference": {
                "field": self.sort_preference.field.value,
                "direction": self.sort_preference.direction.value,
            },
            "archiveCompletedOlderThan": self.archive_completed_older_than,
            "showFileHeaders": self.show_file_headers,
            "showCreatedModifiedInFileHeaders": self.show_created_modified_in_file_headers,
            "moveCompletedTasksToBottom": self.move_completed_tasks_to_bottom,
            "enableWikiLinks": self.enable_wiki_links,
            "enableUrlLinks": self.enable_url_links,
            "openOnStartup": self.open_on_startup,
        }


@dataclass(slots=True, frozen=True)
class TaskFilters:
    search: str | None = None
    hide_completed: bool = False
    archive_completed_older_than: int = 0


@dataclass(slots=True)
class NoteGroup:
    note: NoteRef
    open: list[Task] = field(default_factory=list)
    completed: list[Task] = field(default_factory=list)

    @property
    def is_completed_note(self) -> bool:
        return not self.open and bool(self.completed)

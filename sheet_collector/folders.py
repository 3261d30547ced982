"""Where a submission's spreadsheet lives.

A deployment picks one strategy: a single fixed Drive folder, a label -> folder
mapping selected per request, or (when allowed) a folder id sent by the caller.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional, Protocol

from .config import ConfigError, Settings

logger = logging.getLogger(__name__)


class FolderError(ValueError):
    """The request does not select a known folder or workbook."""


class FolderResolver(Protocol):
    def resolve(self, folder_type: Optional[str] = None, folder_id: Optional[str] = None) -> str: ...


class FixedFolder:
    def __init__(self, folder_id: str):
        self.folder_id = folder_id

    def resolve(self, folder_type=None, folder_id=None) -> str:
        return self.folder_id


class MappedFolder:
    def __init__(self, mapping: Mapping[str, str]):
        self.mapping = dict(mapping)

    def resolve(self, folder_type=None, folder_id=None) -> str:
        if not folder_type:
            raise FolderError("folderType is required")
        try:
            return self.mapping[folder_type]
        except KeyError:
            raise FolderError(f"Invalid folderType: {folder_type}") from None


class CallerFolder:
    """Use the caller's folderId when given, otherwise defer to `fallback`."""

    def __init__(self, fallback: Optional[FolderResolver] = None):
        self.fallback = fallback

    def resolve(self, folder_type=None, folder_id=None) -> str:
        if folder_id:
            return folder_id
        if self.fallback is None:
            raise FolderError("folderId is required")
        return self.fallback.resolve(folder_type, folder_id)


def build_resolver(settings: Settings) -> FolderResolver:
    resolver: Optional[FolderResolver] = None
    if settings.folder_mapping:
        resolver = MappedFolder(settings.folder_mapping)
        logger.info("folder strategy | mapping labels=%s", sorted(settings.folder_mapping))
    elif settings.base_folder_id:
        resolver = FixedFolder(settings.base_folder_id)
        logger.info("folder strategy | fixed folder=%s", settings.base_folder_id)

    if settings.allow_caller_folder_id:
        logger.info("folder strategy | caller-supplied folderId allowed")
        return CallerFolder(resolver)

    if resolver is None:
        raise ConfigError("Set BASE_FOLDER_ID or FOLDER_MAPPING to choose a Drive folder")
    return resolver


def resolve_workbook(settings: Settings, category: str) -> str:
    """Spreadsheet id for a category on the workbook route."""
    mapping = settings.workbook_mapping
    sheet_id = mapping.get(category) or mapping.get("default")
    if not sheet_id:
        raise FolderError(f"No workbook configured for category: {category}")
    return sheet_id

"""Vault access: file identities, note metadata and link resolution."""

from .models import FileMetadata, Heading, LinkOccurrence, Tag, TagSource, VaultFile
from .store import FilesystemVault, VaultStore, sort_files

__all__ = [
    "FileMetadata",
    "FilesystemVault",
    "Heading",
    "LinkOccurrence",
    "Tag",
    "TagSource",
    "VaultFile",
    "VaultStore",
    "sort_files",
]

"""Metadata store for saves, tracked files and users."""

from .metadata_store import MetadataStore
from .models import File, Save, User
from .queries import FileQuery, SaveQuery, UserQuery
from .records import EditFile, EditSave, EditUser, NewFile, NewSave, NewUser

__all__ = [
    "MetadataStore",
    "File",
    "Save",
    "User",
    "FileQuery",
    "SaveQuery",
    "UserQuery",
    "NewFile",
    "NewSave",
    "NewUser",
    "EditFile",
    "EditSave",
    "EditUser",
]

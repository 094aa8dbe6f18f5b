"""SQLite-backed storage for Save, File and User records.

The store performs no business logic: it inserts, queries, edits and
deletes rows. Lifecycle ordering is the job of
:class:`save_sync.sync.save_manager.SaveManager`.
"""

import logging
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Iterator, List, Optional

from sqlalchemy import ColumnElement, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InconsistentStateError, MetadataStoreError, NotFoundError
from .database import create_engine
from .models import File, Save, User
from .queries import FileQuery, SaveQuery, UserQuery
from .records import EditFile, EditSave, EditUser, NewFile, NewSave, NewUser

logger = logging.getLogger(__name__)


class MetadataStore:
    """CRUD access to the saves, files and users tables."""

    def __init__(self, db_location: Path, echo: bool = False):
        """Initialize metadata store.

        Args:
            db_location: SQLite database file, created with its schema if absent
            echo: Log every SQL statement
        """
        self.db_location = Path(db_location)
        self.engine, self._session_factory = create_engine(self.db_location, echo=echo)

    def close(self) -> None:
        """Dispose of the connection pool."""
        self.engine.dispose()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        try:
            with self._session_factory.begin() as session:
                yield session
        except SQLAlchemyError as e:
            raise MetadataStoreError(f"Unable to {action}: {e}") from e

    # Saves

    @staticmethod
    def _save_condition(query: SaveQuery) -> ColumnElement[bool]:
        if query.id is not None:
            return Save.id == query.id
        if query.friendly_name is not None:
            return Save.friendly_name == query.friendly_name
        if query.uuid is not None:
            return Save.uuid == query.uuid
        if query.path is not None:
            return Save.save_path == query.path
        if query.user_id is not None:
            return Save.user_id == query.user_id
        raise ValueError("SaveQuery has no predicate set")

    def create_save(self, new_save: NewSave) -> None:
        """Insert a save unless one already tracks the same original path."""
        with self._transaction(f"create save for {new_save.save_path}") as session:
            existing = session.scalars(
                select(Save.id).where(Save.save_path == new_save.save_path)
            ).first()
            if existing is not None:
                logger.warning(f"Save for {new_save.save_path} already exists, not creating it again")
                return
            session.add(Save(**asdict(new_save)))

    def get_save(self, query: SaveQuery) -> Optional[Save]:
        """Fetch the single save matching ``query``.

        Raises:
            InconsistentStateError: More than one save matched
        """
        with self._transaction("query save") as session:
            saves = session.scalars(select(Save).where(self._save_condition(query))).all()

        if len(saves) > 1:
            raise InconsistentStateError(f"{len(saves)} saves matched {query}, expected at most one")
        return saves[0] if saves else None

    def get_saves(self, query: SaveQuery) -> Optional[List[Save]]:
        """Fetch every save matching ``query``, or ``None`` if there are none."""
        with self._transaction("query saves") as session:
            saves = session.scalars(
                select(Save).where(self._save_condition(query)).order_by(Save.id)
            ).all()
        return list(saves) or None

    def get_all_saves(self) -> List[Save]:
        with self._transaction("list saves") as session:
            return list(session.scalars(select(Save).order_by(Save.id)).all())

    def update_save(self, edit: EditSave) -> None:
        with self._transaction(f"update save {edit.id}") as session:
            save = session.get(Save, edit.id)
            if save is None:
                raise NotFoundError(f"No save with id {edit.id}")
            if edit.friendly_name is not None:
                save.friendly_name = edit.friendly_name
            if edit.save_path is not None:
                save.save_path = edit.save_path
            save.modified_at = edit.modified_at

    def delete_save(self, query: SaveQuery) -> None:
        """Delete the save selected by id, friendly name or path."""
        if query.id is None and query.friendly_name is None and query.path is None:
            raise ValueError("delete_save needs an id, friendly name or path")

        with self._transaction("delete save") as session:
            condition = self._save_condition(query)
            count = len(session.scalars(select(Save.id).where(condition)).all())
            if count > 1:
                raise InconsistentStateError(f"{count} saves matched {query}, refusing to delete")
            session.execute(delete(Save).where(condition))

    def delete_saves(self, query: SaveQuery) -> None:
        """Delete every save owned by ``query.user_id``."""
        if query.user_id is None:
            raise ValueError("delete_saves needs a user id")

        with self._transaction(f"delete saves of user {query.user_id}") as session:
            session.execute(delete(Save).where(Save.user_id == query.user_id))

    # Files

    @staticmethod
    def _file_conditions(query: FileQuery) -> List[ColumnElement[bool]]:
        if query.id is not None:
            return [File.id == query.id]

        conditions = []
        if query.path is not None:
            conditions.append(File.file_path == query.path)
        elif query.hash is not None:
            conditions.append(File.file_hash == query.hash)
        if query.save_id is not None:
            conditions.append(File.save_id == query.save_id)

        if not conditions:
            raise ValueError("FileQuery has no predicate set")
        return conditions

    def create_file(self, new_file: NewFile) -> None:
        """Insert a file unless its save already tracks the same path."""
        with self._transaction(f"create file {new_file.file_path}") as session:
            existing = session.scalars(
                select(File.id).where(
                    File.save_id == new_file.save_id,
                    File.file_path == new_file.file_path,
                )
            ).first()
            if existing is not None:
                logger.warning(f"{new_file.file_path} is already tracked, not creating it again")
                return
            session.add(File(**asdict(new_file)))

    def get_file(self, query: FileQuery) -> Optional[File]:
        with self._transaction("query file") as session:
            files = session.scalars(select(File).where(*self._file_conditions(query))).all()

        if len(files) > 1:
            raise InconsistentStateError(f"{len(files)} files matched {query}, expected at most one")
        return files[0] if files else None

    def get_files(self, query: FileQuery) -> Optional[List[File]]:
        with self._transaction("query files") as session:
            files = session.scalars(
                select(File).where(*self._file_conditions(query)).order_by(File.id)
            ).all()
        return list(files) or None

    def get_all_files(self) -> List[File]:
        with self._transaction("list files") as session:
            return list(session.scalars(select(File).order_by(File.id)).all())

    def update_file(self, edit: EditFile) -> None:
        with self._transaction(f"update file {edit.id}") as session:
            file = session.get(File, edit.id)
            if file is None:
                raise NotFoundError(f"No tracked file with id {edit.id}")
            file.file_hash = bytes(edit.file_hash)
            file.modified_at = edit.modified_at

    def delete_file(self, query: FileQuery) -> None:
        with self._transaction("delete file") as session:
            conditions = self._file_conditions(query)
            count = len(session.scalars(select(File.id).where(*conditions)).all())
            if count > 1:
                raise InconsistentStateError(f"{count} files matched {query}, refusing to delete")
            session.execute(delete(File).where(*conditions))

    def delete_files(self, query: FileQuery) -> None:
        """Delete every file owned by ``query.save_id``."""
        if query.save_id is None:
            raise ValueError("delete_files needs a save id")

        with self._transaction(f"delete files of save {query.save_id}") as session:
            session.execute(delete(File).where(File.save_id == query.save_id))

    # Users

    @staticmethod
    def _user_condition(query: UserQuery) -> ColumnElement[bool]:
        if query.id is not None:
            return User.id == query.id
        if query.username is not None:
            return User.username == query.username
        raise ValueError("UserQuery has no predicate set")

    def create_user(self, new_user: NewUser) -> None:
        with self._transaction(f"create user {new_user.username}") as session:
            existing = session.scalars(
                select(User.id).where(User.username == new_user.username)
            ).first()
            if existing is not None:
                logger.warning(f"User {new_user.username} already exists, not creating it again")
                return
            session.add(User(**asdict(new_user)))

    def get_user(self, query: UserQuery) -> Optional[User]:
        with self._transaction("query user") as session:
            users = session.scalars(select(User).where(self._user_condition(query))).all()

        if len(users) > 1:
            raise InconsistentStateError(f"{len(users)} users matched {query}, expected at most one")
        return users[0] if users else None

    def get_all_users(self) -> Optional[List[User]]:
        with self._transaction("list users") as session:
            users = session.scalars(select(User).order_by(User.id)).all()
        return list(users) or None

    def update_user(self, edit: EditUser) -> None:
        with self._transaction(f"update user {edit.id}") as session:
            user = session.get(User, edit.id)
            if user is None:
                raise NotFoundError(f"No user with id {edit.id}")
            if edit.username is not None:
                user.username = edit.username
            user.modified_at = edit.modified_at

    def delete_user(self, query: UserQuery) -> None:
        with self._transaction("delete user") as session:
            session.execute(delete(User).where(self._user_condition(query)))

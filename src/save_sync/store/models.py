"""ORM models for saves, tracked files and users."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class User(Base):
    """Local actor owning zero or more saves."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    saves: Mapped[List["Save"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r})"


class Save(Base):
    """One tracked backup job."""

    __tablename__ = "saves"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    friendly_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    save_path: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    backup_path: Mapped[str] = mapped_column(Text, nullable=False)
    uuid: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    user: Mapped[User] = relationship(back_populates="saves")
    files: Mapped[List["File"]] = relationship(back_populates="save")

    @property
    def display_name(self) -> str:
        return self.friendly_name or self.save_path

    def __repr__(self) -> str:
        return f"Save(id={self.id!r}, save_path={self.save_path!r}, uuid={self.uuid!r})"


class File(Base):
    """One tracked file inside a save, with its digest at last backup."""

    __tablename__ = "files"
    __table_args__ = (UniqueConstraint("save_id", "file_path"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    file_hash: Mapped[bytes] = mapped_column(LargeBinary(8), nullable=False)
    save_id: Mapped[int] = mapped_column(Integer, ForeignKey("saves.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    save: Mapped[Save] = relationship(back_populates="files")

    def __repr__(self) -> str:
        return f"File(id={self.id!r}, file_path={self.file_path!r}, save_id={self.save_id!r})"

"""Mapping of original save paths into their backup location."""

from pathlib import Path
from typing import Optional, Union

from ..errors import InvalidPathError


def derive_backup_root(data_location: Union[str, Path], uuid: str,
                       save_path: Union[str, Path]) -> Path:
    """Backup root of a save: ``<data_location>/<uuid>/<basename(save_path)>``.

    Raises:
        InvalidPathError: ``save_path`` has no final component
    """
    name = Path(save_path).name
    if not name:
        raise InvalidPathError(f"Unable to determine the name (last part) of {save_path}", save_path)
    return Path(data_location) / uuid / name


def map_backup_path(original_path: Union[str, Path], backup_root: Union[str, Path],
                    save_root: Optional[Union[str, Path]] = None) -> Path:
    """Location of ``original_path`` inside ``backup_root``.

    The backup root is named after the save root, so the first component of
    ``original_path`` equal to that name marks where the save root ends.
    When ``save_root`` is known the search starts at its last component, so
    an ancestor directory sharing the save root's name is not mistaken for it.

    Args:
        original_path: A path inside a save (or the save root itself)
        backup_root: The save's backup root
        save_root: Original root of the save, if known

    Returns:
        ``backup_root`` joined with the part of ``original_path`` below the save root

    Raises:
        InvalidPathError: ``backup_root`` has no name, or that name does not
            occur in ``original_path``
    """
    original_path = Path(original_path)
    backup_root = Path(backup_root)

    anchor = backup_root.name
    if not anchor:
        raise InvalidPathError(f"Unable to determine file / directory name of {backup_root}", backup_root)

    parts = original_path.parts
    start = len(Path(save_root).parts) - 1 if save_root is not None else 0
    for index in range(max(start, 0), len(parts)):
        if parts[index] == anchor:
            return backup_root.joinpath(*parts[index + 1:])

    raise InvalidPathError(
        f"{original_path} does not contain \"{anchor}\", cannot map it into {backup_root}",
        original_path,
    )

"""Recursive enumeration of a save's live filesystem state."""

import os
from pathlib import Path
from typing import List, Union


def crawl(root: Union[str, Path]) -> List[Path]:
    """Every file and directory below ``root``, in no particular order.

    Directories are listed after their descendants. Unreadable directories
    contribute nothing instead of raising.
    """
    paths: List[Path] = []

    try:
        with os.scandir(root) as entries:
            children = [Path(entry.path) for entry in entries]
    except OSError:
        return paths

    for path in children:
        if path.is_dir():
            paths.extend(crawl(path))
        paths.append(path)

    return paths


def save_entries(root: Union[str, Path]) -> List[Path]:
    """Live entries of a save; a single-file save is just its own path."""
    root = Path(root)
    if root.is_file():
        return [root]
    return crawl(root)

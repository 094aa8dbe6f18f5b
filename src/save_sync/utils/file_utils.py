"""File utility functions."""

import os
from pathlib import Path


class FileHelper:
    """Helper class for file operations."""
    
    @staticmethod
    def format_file_size(size_bytes: float) -> str:
        """Format file size in human readable format.
        
        Args:
            size_bytes: Size in bytes
            
        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"
        
        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0
        
        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1
        
        return f"{size_bytes:.1f} {size_names[i]}"
    
    @staticmethod
    def directory_size(path: Path) -> int:
        """Total size in bytes of every regular file below ``path``.
        
        Unreadable entries count as zero. A file path returns its own size.
        """
        if path.is_file():
            return path.stat().st_size
        
        total = 0
        for dirpath, _dirnames, filenames in os.walk(path):
            for name in filenames:
                try:
                    total += os.path.getsize(os.path.join(dirpath, name))
                except OSError:
                    continue
        return total

"""Audio file discovery utilities."""

from pathlib import Path
from typing import List, Optional, Set, Union

# Supported audio formats
AUDIO_EXTENSIONS: Set[str] = {
    '.mp3',
    '.wav',
    '.flac',
    '.m4a',
    '.ogg',
}


def find_audio_files(
    path: Union[str, Path],
    extensions: Optional[Set[str]] = None,
    recursive: bool = True,
    sort: bool = True,
) -> List[Path]:
    """Find all audio files in path.

    Args:
        path: File path or directory to search
        extensions: Set of extensions to match (default: AUDIO_EXTENSIONS)
        recursive: If True, search subdirectories
        sort: If True, sort results by path

    Returns:
        List of Path objects for found audio files

    Examples:
        >>> files = find_audio_files('/path/to/jams')
        >>> files = find_audio_files('/path/to/jams', extensions={'.wav'})
        >>> files = find_audio_files('/path/to/take.mp3')  # Returns single file
    """
    path = Path(path)
    extensions = extensions or AUDIO_EXTENSIONS

    extensions = {
        ext.lower() if ext.startswith('.') else f'.{ext.lower()}'
        for ext in extensions
    }

    if path.is_file():
        if path.suffix.lower() in extensions:
            return [path]
        return []

    if not path.is_dir():
        return []

    search_func = path.rglob if recursive else path.glob
    files = {
        candidate
        for candidate in search_func('*')
        if candidate.is_file() and candidate.suffix.lower() in extensions
    }

    result = list(files)
    if sort:
        result.sort()

    return result


def get_relative_path(file_path: Path, base_path: Path) -> str:
    """Get relative path string from base.

    Args:
        file_path: Full path to file
        base_path: Base directory

    Returns:
        Relative path string (POSIX separators), or filename if not relative
    """
    try:
        return file_path.relative_to(base_path).as_posix()
    except ValueError:
        return file_path.name

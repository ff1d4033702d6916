"""Local dataset loader - audio files of a directory as AudioFileRecords."""

from pathlib import Path
from typing import List, Optional, Set, Union

from soundmap.common.logging import get_logger, find_audio_files, get_relative_path
from soundmap.common.types import AudioFileRecord

logger = get_logger(__name__)


def load_local_dataset(
    directory: Union[str, Path],
    extensions: Optional[Set[str]] = None,
    recursive: bool = True,
) -> List[AudioFileRecord]:
    """
    Snapshot the audio files under a directory.

    Paths are relative to the directory (POSIX separators), so cache keys
    survive moving the whole dataset. Files are sorted by path.

    Args:
        directory: Dataset root (a single file is accepted too)
        extensions: Audio extensions to include
        recursive: Search subdirectories

    Returns:
        List of AudioFileRecord with path, size, name and location set
    """
    root = Path(directory).expanduser()
    base = root.parent if root.is_file() else root

    records = []
    for file_path in find_audio_files(root, extensions=extensions, recursive=recursive):
        try:
            size = file_path.stat().st_size
        except OSError as e:
            logger.warning("Skipping unreadable file", data={"path": str(file_path), "error": str(e)})
            continue
        records.append(AudioFileRecord(
            path=get_relative_path(file_path, base),
            size=size,
            name=file_path.name,
            location=str(file_path),
        ))

    logger.info("Dataset loaded", data={"directory": str(root), "files": len(records)})
    return records

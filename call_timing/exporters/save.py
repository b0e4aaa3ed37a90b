"""
Writes exported text (CSV tables, Markdown diagrams) to the export directory.
"""

import logging
import os
from typing import Optional

from call_timing import config

logger = logging.getLogger(__name__)

EXTENSIONS = {"csv": "csv", "markdown": "md"}


def save_file(content: str, file_name: str, kind: str, directory: str = None) -> Optional[str]:
    """
    Save `content` as <directory>/<file_name>.<ext> and return the path.

    I/O failures are logged and swallowed so that exporting never breaks
    the host application; None is returned in that case.
    """
    try:
        extension = EXTENSIONS[kind]
    except KeyError:
        raise ValueError(f"unknown export kind {kind!r}, expected one of {sorted(EXTENSIONS)}") from None
    file_path = os.path.join(directory or config.export_dir(), f"{file_name}.{extension}")
    try:
        os.makedirs(os.path.dirname(file_path), exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as exc:
        logger.warning("Error saving file %s: %s", file_path, exc)
        return None
    logger.info("Saved file to %s", file_path)
    return file_path

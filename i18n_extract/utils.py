"""
Utility functions used across the CLI and the pipeline.

Functions:
    discover_files: Find source files under an input path
    is_excluded: Match a path against glob exclude patterns
    output_path_for: Where a rewritten file is written
    atomic_write: Write text to a file atomically

Example:
    >>> from i18n_extract.utils import discover_files
    >>> files = discover_files("src", exclude=["**/node_modules/**"])
"""

import fnmatch
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Union

from i18n_extract.config import SUPPORTED_EXTENSIONS
from i18n_extract.errors import IOWriteError

PathLike = Union[str, Path]


def is_excluded(path: PathLike, patterns: Iterable[str]) -> bool:
    """
    Check a path against glob exclude patterns.

    Patterns use fnmatch semantics, where ``*`` also matches ``/``. The
    path is tested both as given and with a leading slash, so
    ``**/node_modules/**`` also excludes a top-level node_modules.

    Example:
        >>> is_excluded("src/node_modules/a.js", ["**/node_modules/**"])
        True
        >>> is_excluded("src/app.js", ["**/node_modules/**"])
        False
    """
    posix = Path(path).as_posix()
    candidates = (posix, "/" + posix.lstrip("/"))
    return any(fnmatch.fnmatch(c, pattern) for pattern in patterns for c in candidates)


def discover_files(
    input_path: PathLike,
    exclude: Iterable[str] = (),
    extensions: Iterable[str] = SUPPORTED_EXTENSIONS,
) -> List[Path]:
    """
    Find source files to process, in a stable sorted order.

    Args:
        input_path: A single file or a directory to walk
        exclude: Glob patterns of paths to skip
        extensions: File extensions to include (without dot)

    Returns:
        Sorted list of file paths

    Raises:
        FileNotFoundError: If input_path does not exist
    """
    root = Path(input_path)
    patterns = list(exclude)
    suffixes = {f".{ext.lstrip('.').lower()}" for ext in extensions}

    if not root.exists():
        raise FileNotFoundError(f"Input path not found: {root}")
    if root.is_file():
        return [root] if root.suffix.lower() in suffixes else []

    files = [
        path for path in root.rglob("*")
        if path.is_file()
        and path.suffix.lower() in suffixes
        and not is_excluded(path, patterns)
    ]
    return sorted(files)


def output_path_for(input_path: PathLike, output: Optional[PathLike], source_file: PathLike) -> Path:
    """
    Path a rewritten source file is written to.

    Without an output, files are rewritten in place. With a directory
    input, the input tree is mirrored under output. With a file input,
    output is the target file (or the directory to put it in, when it
    has no suffix).
    """
    source_file = Path(source_file)
    if not output:
        return source_file

    input_path = Path(input_path)
    output = Path(output)
    if input_path.is_file():
        return output if output.suffix else output / source_file.name
    return output / source_file.relative_to(input_path)


def atomic_write(path: PathLike, text: str) -> None:
    """
    Write text to path atomically.

    The text goes to a temporary file in the same directory, which then
    replaces the target, so a reader never sees a half-written file.

    Raises:
        IOWriteError: If the file cannot be written
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(text)
            if path.exists():
                os.chmod(tmp_name, path.stat().st_mode & 0o777)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise IOWriteError(str(path), str(e)) from e

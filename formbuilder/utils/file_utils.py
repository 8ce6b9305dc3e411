import re
from pathlib import Path
from formbuilder.constants.error import ERROR
from formbuilder.exceptions.custom_exception import ForbiddenException, NotFoundException

SAFE_FILENAME = re.compile(r"^[A-Za-z0-9_.-]+$")

MEDIA_TYPES = {
    ".csv": "text/csv",
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


def ensure_directory(directory: str) -> Path:
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def resolve_safe_path(directory: str, filename: str) -> Path:
    """
    Resolve ``filename`` inside ``directory``.

    Raises 403 for names outside ``[A-Za-z0-9_.-]`` or that resolve outside
    the directory, and 404 when the file does not exist.
    """
    if not SAFE_FILENAME.match(filename or ""):
        raise ForbiddenException(ERROR.INVALID_FILENAME)

    base = Path(directory).resolve()
    path = (base / filename).resolve()
    if path.parent != base:
        raise ForbiddenException(ERROR.ACCESS_DENIED)

    if not path.is_file():
        raise NotFoundException(ERROR.FILE_NOT_FOUND)

    return path


def media_type_for(path: Path) -> str:
    return MEDIA_TYPES.get(path.suffix.lower(), "application/octet-stream")

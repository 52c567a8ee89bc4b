import os
import stat
import logging
import tempfile
from contextlib import suppress

from .errors import FileAccessError, InvalidParameter, NotFound

log = logging.getLogger(__name__)


def read_bytes(path: str) -> bytes:
    if not path or not path.strip():
        raise InvalidParameter("Path not specified.")
    try:
        with open(path, 'rb') as f:
            return f.read()
    except FileNotFoundError as e:
        raise NotFound(f"File '{path}' not found.") from e
    except IsADirectoryError as e:
        raise NotFound(f"'{path}' is a directory, not a file.") from e
    except OSError as e:
        raise FileAccessError(f"Could not read '{path}': {e.strerror or e}") from e


def write_bytes(path: str, data: bytes, *, read_only: bool = False) -> str:
    """Write ``data`` to ``path``, replacing any existing file.

    Content goes to a temporary file in the same directory and is moved into
    place with os.replace, so an existing read-only file is overwritten as well.
    Read-only files keep owner-only permissions and end up as S_IRUSR.
    """
    if not path or not path.strip():
        raise InvalidParameter("Path not specified.")
    directory = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(directory):
        raise NotFound(f"Directory '{directory}' not found.")

    tmp_path = None
    try:
        # mkstemp creates the file with mode 0o600
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{os.path.basename(path)}.", suffix='.tmp')
        with os.fdopen(fd, 'wb') as f_out:
            f_out.write(data)
        if not read_only:
            os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except IsADirectoryError as e:
        raise FileAccessError(f"Could not write '{path}': it is a directory.") from e
    except OSError as e:
        raise FileAccessError(f"Could not write '{path}': {e.strerror or e}") from e
    finally:
        if tmp_path is not None:
            with suppress(FileNotFoundError):
                os.remove(tmp_path)

    if read_only:
        os.chmod(path, stat.S_IRUSR)
    log.debug("Wrote %d bytes to '%s' (read_only=%s)", len(data), path, read_only)
    return path

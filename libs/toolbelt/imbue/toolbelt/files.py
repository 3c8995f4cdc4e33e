import json
import os
import stat
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import IO
from typing import Any
from typing import Final
from typing import TypeVar

import yaml
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError

from imbue.toolbelt.errors import EmptyModelFileError
from imbue.toolbelt.errors import ModelFileError
from imbue.toolbelt.errors import PathExpansionError
from imbue.toolbelt.errors import UnsupportedFileFormatError
from imbue.toolbelt.errors import UsageError
from imbue.toolbelt.pure import pure

ModelT = TypeVar("ModelT", bound=BaseModel)

Encoder = Callable[[Any], str]
Decoder = Callable[[str], Any]

_DIR_MODE: Final[int] = 0o750


def expand_path(path: Path | str) -> Path:
    """Expand ~ and environment variables, then normalize to an absolute path.

    Both $VAR and ${VAR} forms are expanded; unknown variables are left as-is.
    """
    try:
        expanded = str(Path(path).expanduser())
    except RuntimeError as e:
        raise PathExpansionError(f"failed to expand home directory in {path}") from e
    expanded = os.path.expandvars(expanded)
    return Path(os.path.abspath(os.path.normpath(expanded)))


def clean_open(path: Path | str, mode: str = "r", encoding: str = "utf-8") -> IO[Any]:
    """Open a file after expanding its path with expand_path.

    Text modes use encoding; binary modes ignore it.
    """
    return open(expand_path(path), mode, encoding=None if "b" in mode else encoding)


def create_dir_path(path: str, default_path: Path | str) -> Path:
    """Create a directory (and its parents) if it does not exist, returning its expanded path.

    An empty string falls back to default_path. Path("") is the same as Path("."),
    so path is taken as a str.
    """
    resolved = expand_path(path if path else default_path)
    resolved.mkdir(parents=True, exist_ok=True, mode=_DIR_MODE)
    return resolved


def path_exists(path: Path | str) -> bool:
    """Return True if path can be stat-ed. Any stat error, including PermissionError, counts as missing."""
    try:
        Path(path).stat()
    except OSError:
        return False
    return True


def files_exist(*paths: Path | str) -> bool:
    """Return True if every path exists. No paths at all counts as every path existing.

    Every path is checked, even after one is found missing.
    """
    return all([path_exists(p) for p in paths])


def atomic_write(path: Path, content: str) -> None:
    """Write content to a file atomically using a temp file and rename.

    Existing permissions are kept; new files get the tempfile default of 0600.
    The caller is responsible for catching OSError if the write fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True, mode=_DIR_MODE)

    existing_mode: int | None = None
    try:
        existing_mode = path.stat().st_mode
    except FileNotFoundError:
        pass

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        suffix=".tmp",
        delete=False,
    ) as tmp_file:
        tmp_file.write(content)
        tmp_file.flush()
        os.fsync(tmp_file.fileno())
        tmp_path = Path(tmp_file.name)

    try:
        if existing_mode is not None:
            os.chmod(tmp_path, stat.S_IMODE(existing_mode))
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def _encode_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _encode_yaml(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


@pure
def encoder_for_path(path: Path | str) -> Encoder | None:
    """Pick an encoder from the file extension (.yaml, .yml or .json), or None if unsupported."""
    match Path(path).suffix:
        case ".yaml" | ".yml":
            return _encode_yaml
        case ".json":
            return _encode_json
        case _:
            return None


@pure
def decoder_for_path(path: Path | str) -> Decoder | None:
    """Pick a decoder from the file extension (.yaml, .yml or .json), or None if unsupported."""
    match Path(path).suffix:
        case ".yaml" | ".yml":
            return yaml.safe_load
        case ".json":
            return json.loads
        case _:
            return None


def save_model_to_file(model: BaseModel, path: Path | str) -> Path:
    """Save a model to a YAML or JSON file, chosen by extension. Returns the expanded path.

    Missing parent directories are created. The file is replaced atomically.
    Only the empty string counts as an empty path; Path("") is the current directory
    and fails the extension check.
    """
    if not str(path):
        raise UsageError("file path is empty")
    encoder = encoder_for_path(path)
    if encoder is None:
        raise UnsupportedFileFormatError(str(path))

    target = expand_path(path)
    create_dir_path(str(target.parent), "")
    try:
        content = encoder(model.model_dump(mode="json"))
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise ModelFileError(f"failed to encode data to {path}") from e
    try:
        atomic_write(target, content)
    except OSError as e:
        raise ModelFileError(f"failed to write {path}") from e
    logger.trace("Saved {} to {}", type(model).__name__, target)
    return target


def load_model_from_file(model_type: type[ModelT], path: Path | str) -> ModelT:
    """Load a model from a YAML or JSON file, chosen by extension.

    An empty document is an error rather than a default-constructed model. As with
    save_model_to_file, only the empty string counts as an empty path.
    """
    if not str(path):
        raise UsageError("file path is empty")
    decoder = decoder_for_path(path)
    if decoder is None:
        raise UnsupportedFileFormatError(str(path))

    try:
        with clean_open(path) as f:
            raw_text = f.read()
    except OSError as e:
        raise ModelFileError(f"failed to open {path}") from e
    except UnicodeDecodeError as e:
        raise ModelFileError(f"failed to decode data from {path}: not valid UTF-8") from e

    try:
        data = decoder(raw_text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ModelFileError(f"failed to decode data from {path}") from e
    if not data:
        raise EmptyModelFileError(str(path))

    try:
        return model_type.model_validate(data)
    except ValidationError as e:
        raise ModelFileError(f"failed to load data from {path}: {e}") from e

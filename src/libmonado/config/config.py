"""
Runtime discovery for libmonado.

Handles:
- Environment overrides (LIBMONADO_PATH, XR_RUNTIME_JSON)
- Locating the active OpenXR runtime manifest in the XDG config directories
- Parsing the manifest's libmonado entry
- Resolving the library path the way the OpenXR loader does
"""

import os
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
import logging

from cffi import FFI
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.bindings import MonadoError

logger = logging.getLogger(__name__)


# Manifest location relative to each XDG config directory
ACTIVE_RUNTIME_FILE = Path("openxr") / "1" / "active_runtime.json"
DEFAULT_CONFIG_HOME = "~/.config"
DEFAULT_CONFIG_DIRS = "/etc/xdg"


class ConfigError(MonadoError):
    """Raised when libmonado can't be located."""
    pass


class MonadoSettings(BaseSettings):
    """
    Environment configuration.

    Field names map onto the (case-insensitive) variable names.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
    )

    libmonado_path: Optional[Path] = Field(
        default=None,
        description="Load this libmonado directly, skipping runtime discovery.",
    )
    xr_runtime_json: Optional[Path] = Field(
        default=None,
        description="Runtime manifest checked before the XDG directories.",
    )
    xdg_config_home: Optional[str] = Field(
        default=None,
        description="User config directory (defaults to ~/.config).",
    )
    xdg_config_dirs: Optional[str] = Field(
        default=None,
        description="Colon separated system config directories (defaults to /etc/xdg).",
    )

    def config_dirs(self) -> List[Path]:
        """
        XDG config directories in order of decreasing precedence.

        Relative entries are ignored. An unset or fully relative variable
        falls back to its default.
        """
        home = Path(self.xdg_config_home or "")
        if not home.is_absolute():
            home = Path(os.path.expanduser(DEFAULT_CONFIG_HOME))
        dirs = [home]

        system = [Path(entry) for entry in (self.xdg_config_dirs or "").split(":")
                  if entry and Path(entry).is_absolute()]
        dirs.extend(system or [Path(DEFAULT_CONFIG_DIRS)])
        return dirs


class RuntimeInfo(BaseModel):
    """The "runtime" object of an OpenXR runtime manifest."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    library_path: Path
    name: Optional[str] = None
    libmonado_path: Optional[Path] = Field(default=None, alias="MND_libmonado_path")


class RuntimeManifest(BaseModel):
    """An OpenXR runtime manifest (active_runtime.json)."""

    model_config = ConfigDict(extra="ignore")

    file_format_version: Optional[str] = None
    runtime: RuntimeInfo


def candidate_manifests(settings: Optional[MonadoSettings] = None) -> Iterator[Path]:
    """
    Yield runtime manifest paths to try, most important first.

    XR_RUNTIME_JSON is always yielded when set; XDG locations only when
    the file exists.
    """
    settings = settings or MonadoSettings()
    if settings.xr_runtime_json is not None:
        yield settings.xr_runtime_json
    for config_dir in settings.config_dirs():
        path = config_dir / ACTIVE_RUNTIME_FILE
        if path.is_file():
            yield path


def load_manifest(path: Path) -> Optional[RuntimeManifest]:
    """
    Read and validate a runtime manifest.

    Returns:
        The manifest, or None if it can't be read or isn't valid
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Skipping runtime manifest {path}: {e}")
        return None

    try:
        return RuntimeManifest.model_validate_json(text)
    except ValidationError as e:
        logger.debug(f"Skipping invalid runtime manifest {path}: {e}")
        return None


def find_active_runtime(settings: Optional[MonadoSettings] = None) -> Tuple[RuntimeManifest, Path]:
    """
    Find the first usable runtime manifest.

    Returns:
        (manifest, path it was read from)

    Raises:
        ConfigError: If no candidate could be read
    """
    for path in candidate_manifests(settings):
        manifest = load_manifest(path)
        if manifest is not None:
            logger.info(f"Using runtime manifest {path}")
            return manifest, path
    raise ConfigError("Couldn't find the active runtime json")


# dlopen/dlinfo from the C library, used to ask the system loader where it
# finds a bare library name
_dl_ffi = FFI()
_dl_ffi.cdef("""
void *dlopen(const char *filename, int flags);
int dlclose(void *handle);
int dlinfo(void *handle, int request, void *info);

struct link_map {
    uintptr_t l_addr;
    char *l_name;
    void *l_ld;
    struct link_map *l_next;
    struct link_map *l_prev;
};
""")

RTLD_LAZY = 0x1
RTLD_LOCAL = 0x0
RTLD_DI_LINKMAP = 2

_libdl = None


def _open_libdl():
    global _libdl
    if _libdl is None:
        try:
            _libdl = _dl_ffi.dlopen(None)
            getattr(_libdl, "dlinfo")
        except (OSError, AttributeError):
            # glibc before 2.34 keeps the dl* functions in libdl
            _libdl = _dl_ffi.dlopen("libdl.so.2")
    return _libdl


def find_system_library(name: str) -> Optional[Path]:
    """
    Resolve a bare library name through the system loader search path.

    Args:
        name: Library file name, e.g. "libmonado.so"

    Returns:
        Full path of the library the loader would pick, or None
    """
    if not sys.platform.startswith("linux"):
        return None

    try:
        libdl = _open_libdl()
    except OSError as e:
        logger.debug(f"dlinfo unavailable: {e}")
        return None

    handle = libdl.dlopen(name.encode("utf-8"), RTLD_LAZY | RTLD_LOCAL)
    if handle == _dl_ffi.NULL:
        return None

    try:
        link_map = _dl_ffi.new("struct link_map **")
        if libdl.dlinfo(handle, RTLD_DI_LINKMAP, link_map) != 0:
            return None
        if link_map[0] == _dl_ffi.NULL or link_map[0].l_name == _dl_ffi.NULL:
            return None
        raw = _dl_ffi.string(link_map[0].l_name)
        try:
            return Path(raw.decode("utf-8"))
        except UnicodeDecodeError:
            return None
    finally:
        libdl.dlclose(handle)


def resolve_runtime_library(lib: Path, manifest_path: Path) -> Path:
    """
    Resolve a library path found in a runtime manifest.

    Paths with more than one component are relative to the directory of
    the manifest (after following symlinks). Bare file names go through
    the system library search path first and fall back to that directory.

    Raises:
        ConfigError: If the manifest path can't be resolved
    """
    try:
        manifest_dir = Path(manifest_path).resolve(strict=True).parent
    except OSError as e:
        raise ConfigError(f"Failed to canonicalize runtime json path: {e}") from e

    lib = Path(lib)
    path = manifest_dir / lib

    if len(lib.parts) > 1:
        return path

    system_path = find_system_library(str(lib))
    if system_path is not None:
        logger.debug(f"Found {lib} in the system library path: {system_path}")
        return system_path

    return path


def find_libmonado(settings: Optional[MonadoSettings] = None) -> Path:
    """
    Find the libmonado that belongs to the active runtime.

    LIBMONADO_PATH wins if set; otherwise the active runtime manifest's
    MND_libmonado_path entry is resolved.

    Raises:
        ConfigError: If no library can be located
    """
    settings = settings or MonadoSettings()

    if settings.libmonado_path is not None:
        if settings.libmonado_path.is_file():
            return settings.libmonado_path
        raise ConfigError("LIBMONADO_PATH does not point to a valid file")

    manifest, manifest_path = find_active_runtime(settings)
    if manifest.runtime.libmonado_path is None:
        raise ConfigError("Couldn't find libmonado path in active runtime json")

    path = resolve_runtime_library(manifest.runtime.libmonado_path, manifest_path)
    logger.info(f"Resolved libmonado to {path}")
    return path

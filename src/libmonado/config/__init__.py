"""
Configuration module for libmonado.

Locates the libmonado library of the active OpenXR runtime.
"""

from .config import (
    MonadoSettings,
    RuntimeInfo,
    RuntimeManifest,
    ConfigError,
    candidate_manifests,
    load_manifest,
    find_active_runtime,
    find_system_library,
    resolve_runtime_library,
    find_libmonado,
    ACTIVE_RUNTIME_FILE,
)

__all__ = [
    "MonadoSettings",
    "RuntimeInfo",
    "RuntimeManifest",
    "ConfigError",
    "candidate_manifests",
    "load_manifest",
    "find_active_runtime",
    "find_system_library",
    "resolve_runtime_library",
    "find_libmonado",
    "ACTIVE_RUNTIME_FILE",
]

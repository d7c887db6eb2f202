"""
Core module for the libmonado bindings.

This module provides the fundamental building blocks:
- Data models for results, flags, versions and poses
- Raw cffi bindings and library loading
- Monado, the safe wrapper over a root connection
"""

from .models import (
    MndResult,
    ClientState,
    MndProperty,
    DeviceRole,
    ReferenceSpaceType,
    Version,
    Vector3,
    Quaternion,
    Pose,
    BatteryStatus,
)

from .bindings import (
    MonadoApi,
    MonadoError,
    MonadoResultError,
    check_result,
    ffi,
    MONADO_CDEF,
    REQUIRED_API_VERSION,
    REQUIRED_SYMBOLS,
)

from .monado import (
    Monado,
    Client,
    Device,
    TrackingOrigin,
    pose_from_c,
    pose_to_c,
)

__all__ = [
    # Models
    "MndResult",
    "ClientState",
    "MndProperty",
    "DeviceRole",
    "ReferenceSpaceType",
    "Version",
    "Vector3",
    "Quaternion",
    "Pose",
    "BatteryStatus",
    # Bindings
    "MonadoApi",
    "MonadoError",
    "MonadoResultError",
    "check_result",
    "ffi",
    "MONADO_CDEF",
    "REQUIRED_API_VERSION",
    "REQUIRED_SYMBOLS",
    # Wrapper
    "Monado",
    "Client",
    "Device",
    "TrackingOrigin",
    "pose_from_c",
    "pose_to_c",
]

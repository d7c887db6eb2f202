"""
Python bindings to libmonado.

libmonado is the library Monado ships for controlling a running runtime
from other processes. This package loads it at run time through cffi and
wraps it in plain Python objects.

Modules:
- core: Data models, raw bindings and the Monado wrapper
- config: Locating libmonado for the active OpenXR runtime
- cli: The monado-ctl command-line tool
- simulation: An in-process runtime for use without Monado

Example usage:
    from libmonado import Monado, DeviceRole

    with Monado.auto_connect() as monado:
        print(monado.get_api_version())
        for client in monado.clients():
            print(client.name(), client.state())

        head = monado.device_from_role(DeviceRole.HEAD)
        print(head.name, head.serial())
"""

__version__ = "1.3.1"

# Convenience imports
from .core import (
    Monado,
    Client,
    Device,
    TrackingOrigin,
    MonadoError,
    MonadoResultError,
    MndResult,
    MndProperty,
    ClientState,
    DeviceRole,
    ReferenceSpaceType,
    Version,
    Vector3,
    Quaternion,
    Pose,
    BatteryStatus,
)
from .config import ConfigError

__all__ = [
    "__version__",
    "Monado",
    "Client",
    "Device",
    "TrackingOrigin",
    "MonadoError",
    "MonadoResultError",
    "ConfigError",
    "MndResult",
    "MndProperty",
    "ClientState",
    "DeviceRole",
    "ReferenceSpaceType",
    "Version",
    "Vector3",
    "Quaternion",
    "Pose",
    "BatteryStatus",
]

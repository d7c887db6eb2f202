"""
Monado - Safe wrapper over a libmonado root connection.

This is the main entry point of the package. It manages:
- Connecting to a running Monado instance (mnd_root_create)
- Enumerating clients, devices and tracking origins
- Reading and writing reference space / tracking origin offsets
- Tearing the connection down again (mnd_root_destroy)
"""

from typing import List
import logging

from .bindings import (
    MonadoApi,
    MonadoResultError,
    REQUIRED_API_VERSION,
)
from .models import (
    BatteryStatus,
    ClientState,
    DeviceRole,
    MndProperty,
    MndResult,
    Pose,
    Quaternion,
    ReferenceSpaceType,
    Vector3,
    Version,
)

logger = logging.getLogger(__name__)


class Monado:
    """
    A connection to a running Monado instance.

    Clients, devices and tracking origins returned by this object keep a
    reference to it and issue their calls through its root handle.
    Use as a context manager, or call close() when done.
    """

    def __init__(self, api: MonadoApi):
        """
        Connect through an already loaded library.

        Args:
            api: Loaded libmonado API

        Raises:
            MonadoResultError: ERROR_INVALID_VERSION if the library version
                doesn't satisfy REQUIRED_API_VERSION, or the error reported
                by mnd_root_create
        """
        self._api = api
        self._ffi = api.ffi
        self._root = self._ffi.NULL

        version = api.version()
        if not version.matches_caret(REQUIRED_API_VERSION):
            logger.error(f"libmonado {version} doesn't satisfy ^{REQUIRED_API_VERSION}")
            raise MonadoResultError(MndResult.ERROR_INVALID_VERSION, "mnd_api_get_version")

        root_ptr = self._ffi.new("mnd_root_t **")
        api.call("mnd_root_create", root_ptr)
        self._root = root_ptr[0]

        logger.info(f"Connected to Monado (libmonado {version})")

    @classmethod
    def create(cls, libmonado_path: str) -> 'Monado':
        """Load libmonado from a path and connect."""
        return cls(MonadoApi.load(libmonado_path))

    @classmethod
    def auto_connect(cls) -> 'Monado':
        """
        Locate libmonado for the active OpenXR runtime and connect.

        Raises:
            ConfigError: If libmonado can't be located
            MonadoResultError: If loading or connecting fails
        """
        from ..config import find_libmonado

        return cls.create(str(find_libmonado()))

    # === Lifecycle ===

    @property
    def api(self) -> MonadoApi:
        return self._api

    @property
    def is_connected(self) -> bool:
        return self._root != self._ffi.NULL

    def close(self) -> None:
        """Destroy the root handle. Safe to call more than once."""
        if not self.is_connected:
            return
        root_ptr = self._ffi.new("mnd_root_t **", self._root)
        self._api.lib.mnd_root_destroy(root_ptr)
        self._root = self._ffi.NULL
        logger.info("Disconnected from Monado")

    def __enter__(self) -> 'Monado':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _call(self, function: str, *args) -> None:
        if not self.is_connected:
            raise MonadoResultError(MndResult.ERROR_CONNECTING_FAILED, function)
        self._api.call(function, self._root, *args)

    def _to_str(self, c_string, lossy: bool = False) -> str:
        """Copy a C string returned by the runtime."""
        if c_string == self._ffi.NULL:
            raise MonadoResultError(MndResult.ERROR_INVALID_VALUE)
        raw = self._ffi.string(c_string)
        if lossy:
            return raw.decode("utf-8", errors="replace")
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise MonadoResultError(MndResult.ERROR_INVALID_VALUE) from None

    def _read_string(self, function: str, *args, lossy: bool = False) -> str:
        out = self._ffi.new("const char **")
        self._call(function, *args, out)
        return self._to_str(out[0], lossy=lossy)

    # === Runtime ===

    def get_api_version(self) -> Version:
        """Get the API version of the loaded library."""
        return self._api.version()

    def recenter_local_spaces(self) -> None:
        """Recenter the local spaces of all clients."""
        self._call("mnd_root_recenter_local_spaces")

    # === Clients ===

    def _client_ids(self) -> List[int]:
        self._call("mnd_root_update_client_list")
        count = self._ffi.new("uint32_t *")
        self._call("mnd_root_get_number_clients", count)

        ids = []
        client_id = self._ffi.new("uint32_t *")
        for index in range(count[0]):
            self._call("mnd_root_get_client_id_at_index", index, client_id)
            ids.append(client_id[0])
        return ids

    def clients(self) -> List['Client']:
        """
        Refresh the client list and return every connected client.

        Returns:
            Clients in the order the runtime reports them
        """
        return [Client(self, client_id) for client_id in self._client_ids()]

    # === Devices ===

    def _device_info(self, index: int) -> 'Device':
        name_id = self._ffi.new("uint32_t *")
        name = self._ffi.new("const char **")
        self._call("mnd_root_get_device_info", index, name_id, name)
        return Device(self, index, name_id[0], self._to_str(name[0]))

    def devices(self) -> List['Device']:
        """Return every device known to the runtime."""
        count = self._ffi.new("uint32_t *")
        self._call("mnd_root_get_device_count", count)
        return [self._device_info(index) for index in range(count[0])]

    def device_index_from_role(self, role: DeviceRole) -> int:
        """
        Get the index of the device currently assigned to a role.

        Raises:
            MonadoResultError: ERROR_INVALID_VALUE if no device has the role
        """
        out_index = self._ffi.new("int32_t *", -1)
        self._call("mnd_root_get_device_from_role", role.value.encode("utf-8"), out_index)
        if out_index[0] == -1:
            raise MonadoResultError(MndResult.ERROR_INVALID_VALUE,
                                    "mnd_root_get_device_from_role")
        return out_index[0]

    def device_from_role(self, role: DeviceRole) -> 'Device':
        """Get the device currently assigned to a role."""
        return self._device_info(self.device_index_from_role(role))

    # === Spaces ===

    def _read_pose(self, function: str, *args) -> Pose:
        c_pose = self._ffi.new("mnd_pose_t *")
        self._call(function, *args, c_pose)
        return pose_from_c(c_pose)

    def _write_pose(self, function: str, pose: Pose, *args) -> None:
        self._call(function, *args, pose_to_c(self._ffi, pose))

    def tracking_origins(self) -> List['TrackingOrigin']:
        """Return every tracking origin known to the runtime."""
        count = self._ffi.new("uint32_t *")
        self._call("mnd_root_get_tracking_origin_count", count)
        return [
            TrackingOrigin(self, origin_id,
                           self._read_string("mnd_root_get_tracking_origin_name", origin_id))
            for origin_id in range(count[0])
        ]

    def get_reference_space_offset(self, space_type: ReferenceSpaceType) -> Pose:
        """Get the offset of a reference space."""
        return self._read_pose("mnd_root_get_reference_space_offset", int(space_type))

    def set_reference_space_offset(self, space_type: ReferenceSpaceType, pose: Pose) -> None:
        """Set the offset of a reference space."""
        self._write_pose("mnd_root_set_reference_space_offset", pose, int(space_type))

    def __repr__(self) -> str:
        state = "connected" if self.is_connected else "closed"
        return f"Monado(path={self._api.path!r}, {state})"


class Client:
    """An OpenXR application connected to Monado."""

    def __init__(self, monado: Monado, client_id: int):
        self.monado = monado
        self.id = client_id

    def name(self) -> str:
        """Get the application name."""
        return self.monado._read_string("mnd_root_get_client_name", self.id)

    def state(self) -> ClientState:
        """Get the current state flags."""
        flags = self.monado._ffi.new("uint32_t *")
        self.monado._call("mnd_root_get_client_state", self.id, flags)
        return ClientState(flags[0])

    def set_primary(self) -> None:
        """Make this the primary application."""
        self.monado._call("mnd_root_set_client_primary", self.id)

    def set_focused(self) -> None:
        """Give this application focus."""
        self.monado._call("mnd_root_set_client_focused", self.id)

    def set_io_active(self, active: bool) -> None:
        """
        Enable or disable input/output for this application.

        The runtime only offers a toggle, so the current state is read
        first and the toggle is issued only when it differs.
        """
        if (ClientState.IO_ACTIVE in self.state()) != active:
            self.monado._call("mnd_root_toggle_client_io_active", self.id)

    def __eq__(self, other):
        if not isinstance(other, Client):
            return False
        return self.monado is other.monado and self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self) -> str:
        return f"Client(id={self.id})"


class Device:
    """A device tracked by Monado."""

    def __init__(self, monado: Monado, index: int, name_id: int, name: str):
        self.monado = monado
        self.index = index
        self.name_id = name_id                 # Non-unique numeric name, see xrt_device_name
        self.name = name

    def battery_status(self) -> BatteryStatus:
        ffi = self.monado._ffi
        present = ffi.new("bool *")
        charging = ffi.new("bool *")
        charge = ffi.new("float *")
        self.monado._call("mnd_root_get_device_battery_status", self.index,
                          present, charging, charge)
        return BatteryStatus(present=bool(present[0]), charging=bool(charging[0]),
                             charge=charge[0])

    def serial(self) -> str:
        return self.get_info_string(MndProperty.SERIAL_STRING)

    def _get_info(self, function: str, c_type: str, prop: MndProperty):
        out = self.monado._ffi.new(c_type)
        self.monado._call(function, self.index, int(prop), out)
        return out[0]

    def get_info_bool(self, prop: MndProperty) -> bool:
        return bool(self._get_info("mnd_root_get_device_info_bool", "bool *", prop))

    def get_info_u32(self, prop: MndProperty) -> int:
        return self._get_info("mnd_root_get_device_info_u32", "uint32_t *", prop)

    def get_info_i32(self, prop: MndProperty) -> int:
        return self._get_info("mnd_root_get_device_info_i32", "int32_t *", prop)

    def get_info_f32(self, prop: MndProperty) -> float:
        return self._get_info("mnd_root_get_device_info_float", "float *", prop)

    def get_info_string(self, prop: MndProperty) -> str:
        return self.monado._read_string("mnd_root_get_device_info_string",
                                        self.index, int(prop), lossy=True)

    def brightness(self) -> float:
        out = self.monado._ffi.new("float *")
        self.monado._call("mnd_root_get_device_brightness", self.index, out)
        return out[0]

    def set_brightness(self, brightness: float, relative: bool = False) -> None:
        """
        Set the display brightness.

        Args:
            brightness: New brightness, or the amount to add if relative
            relative: Treat brightness as a delta to the current value
        """
        self.monado._call("mnd_root_set_device_brightness", self.index,
                          float(brightness), bool(relative))

    def __repr__(self) -> str:
        return f"Device(id={self.name_id}, name={self.name!r})"


class TrackingOrigin:
    """A tracking origin (the root space of a tracking system)."""

    def __init__(self, monado: Monado, origin_id: int, name: str):
        self.monado = monado
        self.id = origin_id
        self.name = name

    def get_offset(self) -> Pose:
        return self.monado._read_pose("mnd_root_get_tracking_origin_offset", self.id)

    def set_offset(self, pose: Pose) -> None:
        self.monado._write_pose("mnd_root_set_tracking_origin_offset", pose, self.id)

    def __repr__(self) -> str:
        return f"TrackingOrigin(id={self.id}, name={self.name!r})"


def pose_from_c(c_pose) -> Pose:
    """Convert an mnd_pose_t (pointer) into a Pose."""
    o = c_pose.orientation
    p = c_pose.position
    return Pose(
        position=Vector3(p.x, p.y, p.z),
        orientation=Quaternion(o.x, o.y, o.z, o.w),
    )


def pose_to_c(ffi, pose: Pose):
    """Allocate an mnd_pose_t holding pose."""
    return ffi.new("mnd_pose_t *", {
        "orientation": {
            "x": pose.orientation.x,
            "y": pose.orientation.y,
            "z": pose.orientation.z,
            "w": pose.orientation.w,
        },
        "position": {
            "x": pose.position.x,
            "y": pose.position.y,
            "z": pose.position.z,
        },
    })

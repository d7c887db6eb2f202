"""
Simulation framework for using libmonado without a running Monado.

This module provides:
- SimulatedRuntime, an in-process stand-in for the libmonado shared library
  that implements the same mnd_* C API on top of cffi pointers
- Simulated clients, devices and tracking origins it reports
- A call log for checking which C functions a wrapper issued
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..core import (
    ClientState,
    DeviceRole,
    MndProperty,
    MndResult,
    MonadoApi,
    Pose,
    Quaternion,
    ReferenceSpaceType,
    Vector3,
    Version,
    ffi,
    pose_from_c,
)

logger = logging.getLogger(__name__)


@dataclass
class SimulatedCall:
    """A C API call received by the simulated runtime."""
    function: str
    args: Tuple[Any, ...] = ()
    result: int = MndResult.SUCCESS
    timestamp: float = field(default_factory=time.time)


@dataclass
class SimulatedClient:
    """An OpenXR application connected to the simulated runtime."""
    id: int
    name: str
    state: ClientState = ClientState.SESSION_ACTIVE | ClientState.SESSION_VISIBLE | ClientState.IO_ACTIVE


@dataclass
class SimulatedDevice:
    """A device tracked by the simulated runtime."""
    name_id: int                               # xrt_device_name value
    name: str
    serial: str = ""
    roles: List[DeviceRole] = field(default_factory=list)
    battery_present: bool = False
    battery_charging: bool = False
    battery_charge: float = 0.0
    brightness: Optional[float] = None         # None = no display


@dataclass
class SimulatedTrackingOrigin:
    """A tracking origin of the simulated runtime."""
    name: str
    offset: Pose = field(default_factory=Pose)


class SimulatedRuntime:
    """
    Simulated libmonado.

    Exposes every mnd_* function of the C API as a Python callable taking
    the same (cffi) arguments, so Monado can drive it exactly like the
    real shared library.
    """

    def __init__(self, version: Version = Version(1, 3, 1),
                 recentering_supported: bool = True):
        """
        Initialize an empty simulated runtime.

        Args:
            version: API version reported by mnd_api_get_version
            recentering_supported: Whether recentering local spaces succeeds
        """
        self.version = version
        self.recentering_supported = recentering_supported

        self.clients: List[SimulatedClient] = []
        self.devices: List[SimulatedDevice] = []
        self.tracking_origins: List[SimulatedTrackingOrigin] = []
        self.reference_spaces: Dict[ReferenceSpaceType, Pose] = {
            space_type: Pose() for space_type in ReferenceSpaceType
        }

        self.call_log: List[SimulatedCall] = []
        self.recenter_count = 0
        self.open_roots = 0

        self._client_snapshot: List[int] = []
        self._next_root = 1
        self._roots: set = set()
        self._strings: Dict[str, Any] = {}

    def api(self) -> MonadoApi:
        """Wrap this runtime the way MonadoApi.load() wraps the real library."""
        return MonadoApi(self, path="<simulated>")

    # === Population ===

    def add_client(self, name: str, state: Optional[ClientState] = None) -> SimulatedClient:
        """Connect a new client. It shows up after the next client list update."""
        client_id = max((c.id for c in self.clients), default=0) + 1
        client = SimulatedClient(id=client_id, name=name)
        if state is not None:
            client.state = state
        self.clients.append(client)
        logger.info(f"Simulated client '{name}' connected with ID {client_id}")
        return client

    def remove_client(self, client_id: int) -> None:
        """Disconnect a client."""
        self.clients = [c for c in self.clients if c.id != client_id]

    def add_device(self, device: SimulatedDevice) -> int:
        """Add a device and return its index."""
        self.devices.append(device)
        return len(self.devices) - 1

    def add_tracking_origin(self, name: str, offset: Optional[Pose] = None) -> int:
        """Add a tracking origin and return its ID."""
        self.tracking_origins.append(SimulatedTrackingOrigin(name, offset or Pose()))
        return len(self.tracking_origins) - 1

    def get_client(self, client_id: int) -> Optional[SimulatedClient]:
        for client in self.clients:
            if client.id == client_id:
                return client
        return None

    # === Helpers ===

    def _log(self, function: str, args: Tuple[Any, ...], result: int) -> int:
        self.call_log.append(SimulatedCall(function, args, int(result)))
        return int(result)

    def _c_string(self, text: str):
        # Strings stay alive as long as the runtime, like libmonado's own
        if text not in self._strings:
            self._strings[text] = ffi.new("char[]", text.encode("utf-8"))
        return self._strings[text]

    def _valid_root(self, root) -> bool:
        return root != ffi.NULL and int(ffi.cast("uintptr_t", root)) in self._roots

    def _device(self, index: int) -> Optional[SimulatedDevice]:
        if 0 <= index < len(self.devices):
            return self.devices[index]
        return None

    @staticmethod
    def _write_pose(out, pose: Pose) -> None:
        out.orientation.x = pose.orientation.x
        out.orientation.y = pose.orientation.y
        out.orientation.z = pose.orientation.z
        out.orientation.w = pose.orientation.w
        out.position.x = pose.position.x
        out.position.y = pose.position.y
        out.position.z = pose.position.z

    def calls(self, function: str) -> List[SimulatedCall]:
        """Get all logged calls of one function."""
        return [c for c in self.call_log if c.function == function]

    # === C API: version and root ===

    def mnd_api_get_version(self, out_major, out_minor, out_patch) -> None:
        out_major[0] = self.version.major
        out_minor[0] = self.version.minor
        out_patch[0] = self.version.patch
        self.call_log.append(SimulatedCall("mnd_api_get_version"))

    def mnd_root_create(self, out_root) -> int:
        handle = self._next_root
        self._next_root += 1
        self._roots.add(handle)
        self.open_roots += 1
        out_root[0] = ffi.cast("mnd_root_t *", handle)
        return self._log("mnd_root_create", (), MndResult.SUCCESS)

    def mnd_root_destroy(self, root_ptr) -> None:
        handle = int(ffi.cast("uintptr_t", root_ptr[0]))
        if handle in self._roots:
            self._roots.discard(handle)
            self.open_roots -= 1
        root_ptr[0] = ffi.NULL
        self.call_log.append(SimulatedCall("mnd_root_destroy"))

    # === C API: clients ===

    def mnd_root_update_client_list(self, root) -> int:
        if not self._valid_root(root):
            return self._log("mnd_root_update_client_list", (), MndResult.ERROR_INVALID_VALUE)
        self._client_snapshot = [c.id for c in self.clients]
        return self._log("mnd_root_update_client_list", (), MndResult.SUCCESS)

    def mnd_root_get_number_clients(self, root, out_num) -> int:
        if not self._valid_root(root):
            return self._log("mnd_root_get_number_clients", (), MndResult.ERROR_INVALID_VALUE)
        out_num[0] = len(self._client_snapshot)
        return self._log("mnd_root_get_number_clients", (), MndResult.SUCCESS)

    def mnd_root_get_client_id_at_index(self, root, index, out_client_id) -> int:
        if not self._valid_root(root) or not 0 <= index < len(self._client_snapshot):
            return self._log("mnd_root_get_client_id_at_index", (index,),
                             MndResult.ERROR_INVALID_VALUE)
        out_client_id[0] = self._client_snapshot[index]
        return self._log("mnd_root_get_client_id_at_index", (index,), MndResult.SUCCESS)

    def mnd_root_get_client_name(self, root, client_id, out_name) -> int:
        client = self.get_client(client_id)
        if not self._valid_root(root) or client is None:
            return self._log("mnd_root_get_client_name", (client_id,),
                             MndResult.ERROR_INVALID_VALUE)
        out_name[0] = self._c_string(client.name)
        return self._log("mnd_root_get_client_name", (client_id,), MndResult.SUCCESS)

    def mnd_root_get_client_state(self, root, client_id, out_flags) -> int:
        client = self.get_client(client_id)
        if not self._valid_root(root) or client is None:
            return self._log("mnd_root_get_client_state", (client_id,),
                             MndResult.ERROR_INVALID_VALUE)
        out_flags[0] = int(client.state)
        return self._log("mnd_root_get_client_state", (client_id,), MndResult.SUCCESS)

    def _set_exclusive_flag(self, function: str, root, client_id, flag: ClientState) -> int:
        client = self.get_client(client_id)
        if not self._valid_root(root) or client is None:
            return self._log(function, (client_id,), MndResult.ERROR_INVALID_VALUE)
        for other in self.clients:
            other.state = ClientState(int(other.state) & ~int(flag))
        client.state |= flag
        return self._log(function, (client_id,), MndResult.SUCCESS)

    def mnd_root_set_client_primary(self, root, client_id) -> int:
        return self._set_exclusive_flag("mnd_root_set_client_primary", root, client_id,
                                        ClientState.PRIMARY_APP)

    def mnd_root_set_client_focused(self, root, client_id) -> int:
        return self._set_exclusive_flag("mnd_root_set_client_focused", root, client_id,
                                        ClientState.SESSION_FOCUSED)

    def mnd_root_toggle_client_io_active(self, root, client_id) -> int:
        client = self.get_client(client_id)
        if not self._valid_root(root) or client is None:
            return self._log("mnd_root_toggle_client_io_active", (client_id,),
                             MndResult.ERROR_INVALID_VALUE)
        client.state ^= ClientState.IO_ACTIVE
        return self._log("mnd_root_toggle_client_io_active", (client_id,), MndResult.SUCCESS)

    # === C API: devices ===

    def mnd_root_get_device_count(self, root, out_device_count) -> int:
        if not self._valid_root(root):
            return self._log("mnd_root_get_device_count", (), MndResult.ERROR_INVALID_VALUE)
        out_device_count[0] = len(self.devices)
        return self._log("mnd_root_get_device_count", (), MndResult.SUCCESS)

    def mnd_root_get_device_info(self, root, device_index, out_device_id, out_dev_name) -> int:
        device = self._device(device_index)
        if not self._valid_root(root) or device is None:
            return self._log("mnd_root_get_device_info", (device_index,),
                             MndResult.ERROR_INVALID_VALUE)
        out_device_id[0] = device.name_id
        out_dev_name[0] = self._c_string(device.name)
        return self._log("mnd_root_get_device_info", (device_index,), MndResult.SUCCESS)

    def mnd_root_get_device_from_role(self, root, role_name, out_index) -> int:
        if isinstance(role_name, bytes):
            role_name = role_name.decode("utf-8")
        else:
            role_name = ffi.string(role_name).decode("utf-8")

        try:
            role = DeviceRole(role_name)
        except ValueError:
            return self._log("mnd_root_get_device_from_role", (role_name,),
                             MndResult.ERROR_INVALID_VALUE)
        if not self._valid_root(root):
            return self._log("mnd_root_get_device_from_role", (role_name,),
                             MndResult.ERROR_INVALID_VALUE)

        out_index[0] = -1
        for index, device in enumerate(self.devices):
            if role in device.roles:
                out_index[0] = index
                break
        return self._log("mnd_root_get_device_from_role", (role_name,), MndResult.SUCCESS)

    def _no_numeric_property(self, function: str, root, device_index, prop) -> int:
        # Only string properties exist in this API version
        if not self._valid_root(root) or self._device(device_index) is None:
            return self._log(function, (device_index, prop), MndResult.ERROR_INVALID_VALUE)
        return self._log(function, (device_index, prop), MndResult.ERROR_INVALID_PROPERTY)

    def mnd_root_get_device_info_bool(self, root, device_index, prop, out_bool) -> int:
        return self._no_numeric_property("mnd_root_get_device_info_bool",
                                         root, device_index, prop)

    def mnd_root_get_device_info_i32(self, root, device_index, prop, out_i32) -> int:
        return self._no_numeric_property("mnd_root_get_device_info_i32",
                                         root, device_index, prop)

    def mnd_root_get_device_info_u32(self, root, device_index, prop, out_u32) -> int:
        return self._no_numeric_property("mnd_root_get_device_info_u32",
                                         root, device_index, prop)

    def mnd_root_get_device_info_float(self, root, device_index, prop, out_float) -> int:
        return self._no_numeric_property("mnd_root_get_device_info_float",
                                         root, device_index, prop)

    def mnd_root_get_device_info_string(self, root, device_index, prop, out_string) -> int:
        function = "mnd_root_get_device_info_string"
        device = self._device(device_index)
        if not self._valid_root(root) or device is None:
            return self._log(function, (device_index, prop), MndResult.ERROR_INVALID_VALUE)

        if prop == MndProperty.NAME_STRING:
            out_string[0] = self._c_string(device.name)
        elif prop == MndProperty.SERIAL_STRING:
            out_string[0] = self._c_string(device.serial)
        else:
            return self._log(function, (device_index, prop), MndResult.ERROR_INVALID_PROPERTY)
        return self._log(function, (device_index, prop), MndResult.SUCCESS)

    def mnd_root_get_device_battery_status(self, root, device_index,
                                           out_present, out_charging, out_charge) -> int:
        device = self._device(device_index)
        if not self._valid_root(root) or device is None:
            return self._log("mnd_root_get_device_battery_status", (device_index,),
                             MndResult.ERROR_INVALID_VALUE)
        out_present[0] = device.battery_present
        out_charging[0] = device.battery_charging
        out_charge[0] = device.battery_charge
        return self._log("mnd_root_get_device_battery_status", (device_index,),
                         MndResult.SUCCESS)

    def mnd_root_get_device_brightness(self, root, device_index, out_brightness) -> int:
        function = "mnd_root_get_device_brightness"
        device = self._device(device_index)
        if not self._valid_root(root) or device is None:
            return self._log(function, (device_index,), MndResult.ERROR_INVALID_VALUE)
        if device.brightness is None:
            return self._log(function, (device_index,), MndResult.ERROR_OPERATION_FAILED)
        out_brightness[0] = device.brightness
        return self._log(function, (device_index,), MndResult.SUCCESS)

    def mnd_root_set_device_brightness(self, root, device_index, brightness, relative) -> int:
        function = "mnd_root_set_device_brightness"
        args = (device_index, brightness, relative)
        device = self._device(device_index)
        if not self._valid_root(root) or device is None:
            return self._log(function, args, MndResult.ERROR_INVALID_VALUE)
        if device.brightness is None:
            return self._log(function, args, MndResult.ERROR_OPERATION_FAILED)

        value = device.brightness + brightness if relative else brightness
        device.brightness = max(0.0, min(1.0, value))
        return self._log(function, args, MndResult.SUCCESS)

    # === C API: spaces ===

    def mnd_root_recenter_local_spaces(self, root) -> int:
        if not self._valid_root(root):
            return self._log("mnd_root_recenter_local_spaces", (), MndResult.ERROR_INVALID_VALUE)
        if not self.recentering_supported:
            return self._log("mnd_root_recenter_local_spaces", (),
                             MndResult.ERROR_RECENTERING_NOT_SUPPORTED)
        self.recenter_count += 1
        return self._log("mnd_root_recenter_local_spaces", (), MndResult.SUCCESS)

    def _space_type(self, value) -> Optional[ReferenceSpaceType]:
        try:
            return ReferenceSpaceType(value)
        except ValueError:
            return None

    def mnd_root_get_reference_space_offset(self, root, space_type, out_offset) -> int:
        function = "mnd_root_get_reference_space_offset"
        space = self._space_type(space_type)
        if not self._valid_root(root) or space is None:
            return self._log(function, (space_type,), MndResult.ERROR_INVALID_VALUE)
        self._write_pose(out_offset, self.reference_spaces[space])
        return self._log(function, (space_type,), MndResult.SUCCESS)

    def mnd_root_set_reference_space_offset(self, root, space_type, offset) -> int:
        function = "mnd_root_set_reference_space_offset"
        space = self._space_type(space_type)
        if not self._valid_root(root) or space is None:
            return self._log(function, (space_type,), MndResult.ERROR_INVALID_VALUE)
        self.reference_spaces[space] = pose_from_c(offset)
        return self._log(function, (space_type,), MndResult.SUCCESS)

    def mnd_root_get_tracking_origin_count(self, root, out_count) -> int:
        if not self._valid_root(root):
            return self._log("mnd_root_get_tracking_origin_count", (),
                             MndResult.ERROR_INVALID_VALUE)
        out_count[0] = len(self.tracking_origins)
        return self._log("mnd_root_get_tracking_origin_count", (), MndResult.SUCCESS)

    def _origin(self, origin_id: int) -> Optional[SimulatedTrackingOrigin]:
        if 0 <= origin_id < len(self.tracking_origins):
            return self.tracking_origins[origin_id]
        return None

    def mnd_root_get_tracking_origin_name(self, root, origin_id, out_string) -> int:
        origin = self._origin(origin_id)
        if not self._valid_root(root) or origin is None:
            return self._log("mnd_root_get_tracking_origin_name", (origin_id,),
                             MndResult.ERROR_INVALID_VALUE)
        out_string[0] = self._c_string(origin.name)
        return self._log("mnd_root_get_tracking_origin_name", (origin_id,), MndResult.SUCCESS)

    def mnd_root_get_tracking_origin_offset(self, root, origin_id, out_offset) -> int:
        origin = self._origin(origin_id)
        if not self._valid_root(root) or origin is None:
            return self._log("mnd_root_get_tracking_origin_offset", (origin_id,),
                             MndResult.ERROR_INVALID_VALUE)
        self._write_pose(out_offset, origin.offset)
        return self._log("mnd_root_get_tracking_origin_offset", (origin_id,), MndResult.SUCCESS)

    def mnd_root_set_tracking_origin_offset(self, root, origin_id, offset) -> int:
        origin = self._origin(origin_id)
        if not self._valid_root(root) or origin is None:
            return self._log("mnd_root_set_tracking_origin_offset", (origin_id,),
                             MndResult.ERROR_INVALID_VALUE)
        origin.offset = pose_from_c(offset)
        return self._log("mnd_root_set_tracking_origin_offset", (origin_id,), MndResult.SUCCESS)

    # === Summary ===

    def get_state_summary(self) -> str:
        """Get text summary of the simulated runtime."""
        lines = [f"Simulated Monado (libmonado {self.version})", "=" * 40]

        lines.append(f"Clients: {len(self.clients)}")
        for client in self.clients:
            flags = ", ".join(client.state.names()) or "none"
            lines.append(f"  [{client.id}] {client.name}: {flags}")

        lines.append(f"Devices: {len(self.devices)}")
        for index, device in enumerate(self.devices):
            roles = ", ".join(r.value for r in device.roles) or "no role"
            lines.append(f"  [{index}] {device.name} ({roles})")

        lines.append(f"Tracking origins: {len(self.tracking_origins)}")
        for origin_id, origin in enumerate(self.tracking_origins):
            lines.append(f"  [{origin_id}] {origin.name}")

        return "\n".join(lines)


def create_default_runtime() -> SimulatedRuntime:
    """
    Create a simulated runtime with a typical PC VR setup.

    - One HMD with a display, two battery powered controllers
    - One tracking origin shared by all devices
    - Two clients, the first of them primary and focused
    """
    runtime = SimulatedRuntime()

    runtime.add_device(SimulatedDevice(
        name_id=1,
        name="Simulated HMD",
        serial="SIM-HMD-0001",
        roles=[DeviceRole.HEAD, DeviceRole.EYES],
        brightness=1.0,
    ))
    runtime.add_device(SimulatedDevice(
        name_id=2,
        name="Simulated Left Controller",
        serial="SIM-CTRL-L-0001",
        roles=[DeviceRole.LEFT],
        battery_present=True,
        battery_charge=0.8,
    ))
    runtime.add_device(SimulatedDevice(
        name_id=2,
        name="Simulated Right Controller",
        serial="SIM-CTRL-R-0001",
        roles=[DeviceRole.RIGHT],
        battery_present=True,
        battery_charging=True,
        battery_charge=0.45,
    ))

    runtime.add_tracking_origin(
        "Simulated Tracking",
        Pose(position=Vector3(0.0, 1.6, 0.0), orientation=Quaternion()),
    )

    runtime.add_client(
        "hello_xr",
        ClientState.PRIMARY_APP | ClientState.SESSION_ACTIVE | ClientState.SESSION_VISIBLE
        | ClientState.SESSION_FOCUSED | ClientState.IO_ACTIVE,
    )
    runtime.add_client(
        "overlay",
        ClientState.SESSION_ACTIVE | ClientState.SESSION_VISIBLE
        | ClientState.SESSION_OVERLAY | ClientState.IO_ACTIVE,
    )

    return runtime

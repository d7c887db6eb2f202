"""
Unit tests for the Monado wrapper, driven by the simulated runtime.
"""

import unittest
from pathlib import Path
from unittest import mock
from libmonado.config import ConfigError
from libmonado.core import (
    ClientState,
    DeviceRole,
    MndProperty,
    MndResult,
    Monado,
    MonadoApi,
    MonadoResultError,
    Pose,
    Quaternion,
    ReferenceSpaceType,
    Vector3,
    Version,
    ffi,
)
from libmonado.simulation import (
    SimulatedDevice,
    SimulatedRuntime,
    create_default_runtime,
)


class TestMonadoConnection(unittest.TestCase):
    """Tests for connecting and disconnecting."""

    def test_connect(self):
        """Test connecting creates a root handle."""
        runtime = SimulatedRuntime()
        monado = Monado(runtime.api())
        self.assertTrue(monado.is_connected)
        self.assertEqual(runtime.open_roots, 1)
        monado.close()

    def test_close_destroys_root_once(self):
        """Test close() is idempotent."""
        runtime = SimulatedRuntime()
        monado = Monado(runtime.api())
        monado.close()
        monado.close()
        self.assertFalse(monado.is_connected)
        self.assertEqual(runtime.open_roots, 0)
        self.assertEqual(len(runtime.calls("mnd_root_destroy")), 1)

    def test_context_manager(self):
        runtime = SimulatedRuntime()
        with Monado(runtime.api()) as monado:
            self.assertTrue(monado.is_connected)
        self.assertEqual(runtime.open_roots, 0)

    def test_call_after_close(self):
        """Test calls on a closed connection fail cleanly."""
        runtime = SimulatedRuntime()
        monado = Monado(runtime.api())
        monado.close()
        with self.assertRaises(MonadoResultError) as ctx:
            monado.devices()
        self.assertEqual(ctx.exception.result, MndResult.ERROR_CONNECTING_FAILED)

    def test_version_too_old(self):
        """Test libraries older than 1.3.0 are rejected."""
        runtime = SimulatedRuntime(version=Version(1, 2, 0))
        with self.assertRaises(MonadoResultError) as ctx:
            Monado(runtime.api())
        self.assertEqual(ctx.exception.result, MndResult.ERROR_INVALID_VERSION)
        self.assertEqual(runtime.open_roots, 0)

    def test_version_next_major(self):
        runtime = SimulatedRuntime(version=Version(2, 0, 0))
        with self.assertRaises(MonadoResultError) as ctx:
            Monado(runtime.api())
        self.assertEqual(ctx.exception.result, MndResult.ERROR_INVALID_VERSION)

    def test_get_api_version(self):
        runtime = SimulatedRuntime(version=Version(1, 5, 0))
        with Monado(runtime.api()) as monado:
            self.assertEqual(monado.get_api_version(), Version(1, 5, 0))


class TestMonadoClients(unittest.TestCase):
    """Tests for client enumeration and control."""

    def setUp(self):
        self.runtime = create_default_runtime()
        self.monado = Monado(self.runtime.api())

    def tearDown(self):
        self.monado.close()

    def test_list_clients(self):
        """Test clients are listed with names."""
        clients = self.monado.clients()
        self.assertEqual([c.id for c in clients], [1, 2])
        self.assertEqual([c.name() for c in clients], ["hello_xr", "overlay"])

    def test_client_list_is_refreshed(self):
        """Test new clients appear on the next listing."""
        self.assertEqual(len(self.monado.clients()), 2)
        self.runtime.add_client("late_app")
        self.assertEqual(len(self.monado.clients()), 3)
        self.assertEqual(len(self.runtime.calls("mnd_root_update_client_list")), 2)

    def test_client_state(self):
        state = self.monado.clients()[0].state()
        self.assertIn(ClientState.PRIMARY_APP, state)
        self.assertIn(ClientState.SESSION_FOCUSED, state)

    def test_set_primary(self):
        """Test primary moves to the chosen client."""
        first, second = self.monado.clients()
        second.set_primary()
        self.assertIn(ClientState.PRIMARY_APP, second.state())
        self.assertNotIn(ClientState.PRIMARY_APP, first.state())

    def test_set_focused(self):
        first, second = self.monado.clients()
        second.set_focused()
        self.assertIn(ClientState.SESSION_FOCUSED, second.state())
        self.assertNotIn(ClientState.SESSION_FOCUSED, first.state())

    def test_set_io_active_toggles_when_different(self):
        """Test disabling IO issues exactly one toggle."""
        client = self.monado.clients()[0]
        client.set_io_active(False)
        self.assertNotIn(ClientState.IO_ACTIVE, client.state())
        self.assertEqual(len(self.runtime.calls("mnd_root_toggle_client_io_active")), 1)

    def test_set_io_active_noop_when_equal(self):
        """Test no toggle is issued when IO already has the wanted state."""
        client = self.monado.clients()[0]
        client.set_io_active(True)
        self.assertIn(ClientState.IO_ACTIVE, client.state())
        self.assertEqual(len(self.runtime.calls("mnd_root_toggle_client_io_active")), 0)

    def test_vanished_client(self):
        """Test a client that disconnected reports INVALID_VALUE."""
        client = self.monado.clients()[1]
        self.runtime.remove_client(client.id)
        with self.assertRaises(MonadoResultError) as ctx:
            client.name()
        self.assertEqual(ctx.exception.result, MndResult.ERROR_INVALID_VALUE)

    def test_client_equality(self):
        a = self.monado.clients()[0]
        b = self.monado.clients()[0]
        self.assertEqual(a, b)
        self.assertEqual(len({a, b}), 1)

    def test_unknown_state_bits_kept(self):
        """Test state bits without a ClientState name are passed through."""
        self.runtime.get_client(1).state = ClientState(1 | 64)
        state = self.monado.clients()[0].state()
        self.assertEqual(int(state), 65)
        self.assertIn(ClientState.PRIMARY_APP, state)


class TestMonadoDevices(unittest.TestCase):
    """Tests for device enumeration and queries."""

    def setUp(self):
        self.runtime = create_default_runtime()
        self.monado = Monado(self.runtime.api())

    def tearDown(self):
        self.monado.close()

    def test_list_devices(self):
        devices = self.monado.devices()
        self.assertEqual(len(devices), 3)
        self.assertEqual(devices[0].name, "Simulated HMD")
        self.assertEqual(devices[0].name_id, 1)
        self.assertEqual([d.index for d in devices], [0, 1, 2])

    def test_serial(self):
        self.assertEqual(self.monado.devices()[1].serial(), "SIM-CTRL-L-0001")

    def test_info_string_name(self):
        device = self.monado.devices()[2]
        self.assertEqual(device.get_info_string(MndProperty.NAME_STRING),
                         "Simulated Right Controller")

    def test_numeric_info_invalid_property(self):
        """Test numeric getters reject string properties."""
        device = self.monado.devices()[0]
        getters = (device.get_info_bool, device.get_info_u32,
                   device.get_info_i32, device.get_info_f32)
        for getter in getters:
            with self.assertRaises(MonadoResultError) as ctx:
                getter(MndProperty.SERIAL_STRING)
            self.assertEqual(ctx.exception.result, MndResult.ERROR_INVALID_PROPERTY)

    def test_battery_status(self):
        status = self.monado.devices()[2].battery_status()
        self.assertTrue(status.present)
        self.assertTrue(status.charging)
        self.assertAlmostEqual(status.charge, 0.45, places=5)

    def test_no_battery(self):
        status = self.monado.devices()[0].battery_status()
        self.assertFalse(status.present)

    def test_brightness(self):
        """Test absolute and relative brightness changes."""
        hmd = self.monado.devices()[0]
        self.assertAlmostEqual(hmd.brightness(), 1.0)

        hmd.set_brightness(0.5)
        self.assertAlmostEqual(hmd.brightness(), 0.5)

        hmd.set_brightness(-0.25, relative=True)
        self.assertAlmostEqual(hmd.brightness(), 0.25)

    def test_brightness_without_display(self):
        controller = self.monado.devices()[1]
        with self.assertRaises(MonadoResultError) as ctx:
            controller.brightness()
        self.assertEqual(ctx.exception.result, MndResult.ERROR_OPERATION_FAILED)

    def test_device_from_role(self):
        """Test looking up devices by role."""
        self.assertEqual(self.monado.device_index_from_role(DeviceRole.RIGHT), 2)
        head = self.monado.device_from_role(DeviceRole.HEAD)
        self.assertEqual(head.name, "Simulated HMD")
        self.assertEqual(head.index, 0)

    def test_device_from_unassigned_role(self):
        """Test a role without a device raises INVALID_VALUE."""
        with self.assertRaises(MonadoResultError) as ctx:
            self.monado.device_from_role(DeviceRole.GAMEPAD)
        self.assertEqual(ctx.exception.result, MndResult.ERROR_INVALID_VALUE)

    def test_non_utf8_device_name(self):
        """Test a device name that isn't UTF-8 is rejected."""
        runtime = SimulatedRuntime()
        runtime.add_device(SimulatedDevice(name_id=7, name="ok"))
        runtime._strings["ok"] = ffi.new("char[]", b"\xff\xfe")
        with Monado(runtime.api()) as monado:
            with self.assertRaises(MonadoResultError) as ctx:
                monado.devices()
        self.assertEqual(ctx.exception.result, MndResult.ERROR_INVALID_VALUE)

    def test_null_device_name(self):
        """Test a NULL name pointer is rejected."""
        runtime = SimulatedRuntime()
        runtime.add_device(SimulatedDevice(name_id=7, name="ghost"))
        runtime._strings["ghost"] = ffi.NULL
        with Monado(runtime.api()) as monado:
            with self.assertRaises(MonadoResultError) as ctx:
                monado.devices()
        self.assertEqual(ctx.exception.result, MndResult.ERROR_INVALID_VALUE)

    def test_serial_decodes_lossily(self):
        """Test property strings replace invalid UTF-8 instead of failing."""
        self.runtime._strings["SIM-CTRL-L-0001"] = ffi.new("char[]", b"ab\xffc")
        self.assertEqual(self.monado.devices()[1].serial(), "ab\ufffdc")


class TestMonadoSpaces(unittest.TestCase):
    """Tests for tracking origins and reference spaces."""

    def setUp(self):
        self.runtime = create_default_runtime()
        self.monado = Monado(self.runtime.api())

    def tearDown(self):
        self.monado.close()

    def test_tracking_origins(self):
        origins = self.monado.tracking_origins()
        self.assertEqual(len(origins), 1)
        self.assertEqual(origins[0].id, 0)
        self.assertEqual(origins[0].name, "Simulated Tracking")

    def test_tracking_origin_offset(self):
        """Test reading and writing a tracking origin offset."""
        origin = self.monado.tracking_origins()[0]
        self.assertAlmostEqual(origin.get_offset().position.y, 1.6, places=5)

        new_offset = Pose(
            position=Vector3(1.0, 2.0, 3.0),
            orientation=Quaternion(0.0, 0.0, 0.0, 1.0),
        )
        origin.set_offset(new_offset)
        self.assertEqual(origin.get_offset(), new_offset)
        self.assertEqual(self.runtime.tracking_origins[0].offset, new_offset)

    def test_reference_space_round_trip(self):
        """Test every reference space accepts its own offset back."""
        for space_type in ReferenceSpaceType:
            offset = self.monado.get_reference_space_offset(space_type)
            self.monado.set_reference_space_offset(space_type, offset)
            self.assertEqual(self.monado.get_reference_space_offset(space_type), offset)

    def test_set_reference_space_offset(self):
        pose = Pose(position=Vector3(0.0, 0.5, 0.0), orientation=Quaternion(0.0, 1.0, 0.0, 0.0))
        self.monado.set_reference_space_offset(ReferenceSpaceType.STAGE, pose)
        self.assertEqual(self.runtime.reference_spaces[ReferenceSpaceType.STAGE], pose)
        self.assertEqual(self.monado.get_reference_space_offset(ReferenceSpaceType.LOCAL), Pose())

    def test_recenter(self):
        self.monado.recenter_local_spaces()
        self.assertEqual(self.runtime.recenter_count, 1)

    def test_recenter_not_supported(self):
        runtime = SimulatedRuntime(recentering_supported=False)
        with Monado(runtime.api()) as monado:
            with self.assertRaises(MonadoResultError) as ctx:
                monado.recenter_local_spaces()
        self.assertEqual(ctx.exception.result, MndResult.ERROR_RECENTERING_NOT_SUPPORTED)


class TestAutoConnect(unittest.TestCase):
    """Tests for Monado.auto_connect."""

    def test_loads_discovered_library(self):
        """Test the discovered path is handed to MonadoApi.load."""
        runtime = create_default_runtime()
        with mock.patch("libmonado.config.find_libmonado",
                        return_value=Path("/usr/lib/libmonado.so")), \
                mock.patch.object(MonadoApi, "load", return_value=runtime.api()) as load:
            with Monado.auto_connect() as monado:
                self.assertEqual(len(monado.devices()), 3)
        load.assert_called_once_with("/usr/lib/libmonado.so")
        self.assertEqual(runtime.open_roots, 0)

    def test_discovery_failure(self):
        """Test a discovery error reaches the caller and nothing is loaded."""
        with mock.patch("libmonado.config.find_libmonado",
                        side_effect=ConfigError("Couldn't find the active runtime json")), \
                mock.patch.object(MonadoApi, "load") as load:
            with self.assertRaises(ConfigError):
                Monado.auto_connect()
        load.assert_not_called()


if __name__ == "__main__":
    unittest.main()

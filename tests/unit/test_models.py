"""
Unit tests for core data models.
"""

import json
import unittest
from libmonado.core import (
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


class TestMndResult(unittest.TestCase):
    """Tests for MndResult."""

    def test_values(self):
        """Test result codes match the C API."""
        self.assertEqual(MndResult.SUCCESS, 0)
        self.assertEqual(MndResult.ERROR_INVALID_VERSION, -1)
        self.assertEqual(MndResult.ERROR_CONNECTING_FAILED, -3)
        self.assertEqual(MndResult.ERROR_INVALID_PROPERTY, -6)

    def test_is_error(self):
        """Test negative codes are errors."""
        self.assertFalse(MndResult.SUCCESS.is_error)
        self.assertTrue(MndResult.ERROR_OPERATION_FAILED.is_error)

    def test_only_success_is_not_error(self):
        """Test is_error agrees with check_result: any non-zero code fails."""
        for result in MndResult:
            self.assertEqual(result.is_error, int(result) != 0)


class TestClientState(unittest.TestCase):
    """Tests for ClientState flags."""

    def test_combine_flags(self):
        """Test flags combine into one value."""
        state = ClientState.PRIMARY_APP | ClientState.IO_ACTIVE
        self.assertEqual(int(state), 33)
        self.assertIn(ClientState.PRIMARY_APP, state)
        self.assertNotIn(ClientState.SESSION_FOCUSED, state)

    def test_from_raw_value(self):
        """Test parsing a raw u32 from the runtime."""
        state = ClientState(2 | 4 | 8)
        self.assertIn(ClientState.SESSION_ACTIVE, state)
        self.assertIn(ClientState.SESSION_VISIBLE, state)
        self.assertIn(ClientState.SESSION_FOCUSED, state)

    def test_names(self):
        """Test flag names come out lowest bit first."""
        state = ClientState.IO_ACTIVE | ClientState.PRIMARY_APP
        self.assertEqual(state.names(), ["primary_app", "io_active"])
        self.assertEqual(ClientState(0).names(), [])

    def test_unknown_bits_kept(self):
        """Test bits newer runtimes may set survive the conversion."""
        state = ClientState(1 | 64)
        self.assertEqual(int(state), 65)
        self.assertEqual(state.names(), ["primary_app"])


class TestEnums(unittest.TestCase):
    """Tests for property, role and space enums."""

    def test_property_values(self):
        self.assertEqual(MndProperty.NAME_STRING, 1)
        self.assertEqual(MndProperty.SERIAL_STRING, 2)

    def test_role_names(self):
        """Test roles carry the names the runtime expects."""
        self.assertEqual(DeviceRole.HEAD.value, "head")
        self.assertEqual(DeviceRole.HAND_TRACKING_LEFT.value, "hand-tracking-left")
        self.assertEqual(DeviceRole("gamepad"), DeviceRole.GAMEPAD)

    def test_space_from_name(self):
        """Test parsing reference space names."""
        self.assertEqual(ReferenceSpaceType.from_name("local-floor"),
                         ReferenceSpaceType.LOCAL_FLOOR)
        self.assertEqual(ReferenceSpaceType.from_name("STAGE"), ReferenceSpaceType.STAGE)
        self.assertEqual(int(ReferenceSpaceType.UNBOUNDED), 4)

    def test_space_from_unknown_name(self):
        with self.assertRaises(ValueError):
            ReferenceSpaceType.from_name("ceiling")


class TestVersion(unittest.TestCase):
    """Tests for Version."""

    def test_parse(self):
        """Test parsing version strings."""
        self.assertEqual(Version.parse("1.3.1"), Version(1, 3, 1))
        self.assertEqual(Version.parse("v21.0.10"), Version(21, 0, 10))

    def test_parse_invalid(self):
        with self.assertRaises(ValueError):
            Version.parse("1.3")

    def test_str(self):
        self.assertEqual(str(Version(1, 3, 0)), "1.3.0")

    def test_ordering(self):
        self.assertLess(Version(1, 2, 9), Version(1, 3, 0))
        self.assertGreater(Version(2, 0, 0), Version(1, 99, 99))

    def test_caret_major(self):
        """Test ^1.3.0 accepts 1.x from 1.3.0 on."""
        requirement = Version(1, 3, 0)
        self.assertTrue(Version(1, 3, 0).matches_caret(requirement))
        self.assertTrue(Version(1, 9, 2).matches_caret(requirement))
        self.assertFalse(Version(1, 2, 9).matches_caret(requirement))
        self.assertFalse(Version(2, 0, 0).matches_caret(requirement))

    def test_caret_zero_major(self):
        """Test ^0.2.1 binds the minor version."""
        requirement = Version(0, 2, 1)
        self.assertTrue(Version(0, 2, 5).matches_caret(requirement))
        self.assertFalse(Version(0, 3, 0).matches_caret(requirement))

    def test_caret_zero_minor(self):
        """Test ^0.0.3 binds the patch version."""
        requirement = Version(0, 0, 3)
        self.assertTrue(Version(0, 0, 3).matches_caret(requirement))
        self.assertFalse(Version(0, 0, 4).matches_caret(requirement))


class TestPose(unittest.TestCase):
    """Tests for pose math types."""

    def test_identity_defaults(self):
        """Test Pose defaults to identity."""
        pose = Pose()
        self.assertEqual(pose.position, Vector3(0.0, 0.0, 0.0))
        self.assertEqual(pose.orientation, Quaternion(0.0, 0.0, 0.0, 1.0))

    def test_json_round_trip(self):
        """Test Pose survives a trip through JSON."""
        pose = Pose(
            position=Vector3(0.5, 1.6, -2.0),
            orientation=Quaternion(0.0, 0.7071, 0.0, 0.7071),
        )
        restored = Pose.from_dict(json.loads(json.dumps(pose.to_dict())))
        self.assertEqual(restored, pose)

    def test_partial_dict(self):
        """Test missing fields fall back to identity values."""
        pose = Pose.from_dict({"position": {"y": 0.25}})
        self.assertEqual(pose.position, Vector3(0.0, 0.25, 0.0))
        self.assertEqual(pose.orientation.w, 1.0)


class TestBatteryStatus(unittest.TestCase):
    """Tests for BatteryStatus."""

    def test_defaults(self):
        status = BatteryStatus()
        self.assertFalse(status.present)
        self.assertFalse(status.charging)
        self.assertEqual(status.charge, 0.0)

    def test_json_round_trip(self):
        status = BatteryStatus(present=True, charging=True, charge=0.5)
        restored = BatteryStatus.from_dict(json.loads(json.dumps(status.to_dict())))
        self.assertEqual(restored, status)


if __name__ == "__main__":
    unittest.main()

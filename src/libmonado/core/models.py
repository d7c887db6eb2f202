"""
Core data models for the libmonado bindings.

These models mirror the values that cross the libmonado C API:
- MndResult: Result codes returned by every root operation
- ClientState: Bitflags describing an OpenXR client's session
- MndProperty: Device properties that can be queried
- DeviceRole / ReferenceSpaceType: Lookup keys understood by the runtime
- Version: Semantic version of the loaded library
- Vector3 / Quaternion / Pose: Tracking-space math types
- BatteryStatus: Battery state of a tracked device
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import Any, Dict
import re


class MndResult(IntEnum):
    """Result codes for operations. Every code other than SUCCESS is an error."""
    SUCCESS = 0
    ERROR_INVALID_VERSION = -1
    ERROR_INVALID_VALUE = -2
    ERROR_CONNECTING_FAILED = -3
    ERROR_OPERATION_FAILED = -4
    ERROR_RECENTERING_NOT_SUPPORTED = -5
    ERROR_INVALID_PROPERTY = -6

    @property
    def is_error(self) -> bool:
        return self != MndResult.SUCCESS


class ClientState(IntFlag):
    """Bitflags for client application state."""
    PRIMARY_APP = 1
    SESSION_ACTIVE = 2
    SESSION_VISIBLE = 4
    SESSION_FOCUSED = 8
    SESSION_OVERLAY = 16
    IO_ACTIVE = 32

    def names(self) -> list:
        """Names of the known flags that are set, lowest bit first."""
        return [flag.name.lower() for flag in ClientState if flag in self]


class MndProperty(IntEnum):
    """A property to get from a thing (currently only devices)."""
    NAME_STRING = 1
    SERIAL_STRING = 2


class DeviceRole(Enum):
    """Device roles, valued by the name the runtime expects."""
    HEAD = "head"
    EYES = "eyes"
    LEFT = "left"
    RIGHT = "right"
    GAMEPAD = "gamepad"
    HAND_TRACKING_LEFT = "hand-tracking-left"
    HAND_TRACKING_RIGHT = "hand-tracking-right"


class ReferenceSpaceType(IntEnum):
    """OpenXR reference spaces whose offsets the runtime exposes."""
    VIEW = 0
    LOCAL = 1
    LOCAL_FLOOR = 2
    STAGE = 3
    UNBOUNDED = 4

    @classmethod
    def from_name(cls, name: str) -> 'ReferenceSpaceType':
        """Parse 'local-floor', 'LOCAL_FLOOR' and friends."""
        key = name.strip().upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown reference space '{name}'") from None


_VERSION_RE = re.compile(r"^\s*v?(\d+)\.(\d+)\.(\d+)\s*$")


@dataclass(frozen=True, order=True)
class Version:
    """Semantic version (major.minor.patch)."""
    major: int = 0
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, text: str) -> 'Version':
        """Parse a 'major.minor.patch' string."""
        match = _VERSION_RE.match(text)
        if not match:
            raise ValueError(f"Invalid version string '{text}'")
        return cls(*(int(part) for part in match.groups()))

    def matches_caret(self, requirement: 'Version') -> bool:
        """
        Check this version against a caret requirement (^requirement).

        The leftmost non-zero component of the requirement must match
        exactly and the version must not be older than the requirement.
        """
        if self < requirement:
            return False
        if requirement.major > 0:
            return self.major == requirement.major
        if requirement.minor > 0:
            return self.major == 0 and self.minor == requirement.minor
        return (self.major, self.minor, self.patch) == (0, 0, requirement.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass
class Vector3:
    """3D vector in meters."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vector3':
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            z=float(data.get("z", 0.0)),
        )


@dataclass
class Quaternion:
    """Rotation quaternion, vector part (x, y, z) and scalar part w."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z, "w": self.w}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Quaternion':
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            z=float(data.get("z", 0.0)),
            w=float(data.get("w", 1.0)),
        )


@dataclass
class Pose:
    """
    Position and orientation of a space relative to its parent.

    Defaults to the identity pose.
    """
    position: Vector3 = field(default_factory=Vector3)
    orientation: Quaternion = field(default_factory=Quaternion)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            "position": self.position.to_dict(),
            "orientation": self.orientation.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Pose':
        return cls(
            position=Vector3.from_dict(data.get("position", {})),
            orientation=Quaternion.from_dict(data.get("orientation", {})),
        )


@dataclass
class BatteryStatus:
    """Battery state of a device."""
    present: bool = False
    charging: bool = False
    charge: float = 0.0                        # 0.0 - 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "present": self.present,
            "charging": self.charging,
            "charge": self.charge,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BatteryStatus':
        return cls(
            present=bool(data.get("present", False)),
            charging=bool(data.get("charging", False)),
            charge=float(data.get("charge", 0.0)),
        )

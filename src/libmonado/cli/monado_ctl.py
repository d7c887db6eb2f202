#!/usr/bin/env python3
"""
monado-ctl: Command-line tool for inspecting and controlling a running Monado.

Allows:
- Dumping runtime information (clients, devices, tracking origins)
- Changing the primary/focused client and client IO
- Querying batteries and display brightness
- Reading and writing reference space and tracking origin offsets
"""

import argparse
import json
import logging
import sys
from typing import Optional

from ..core import (
    Client,
    DeviceRole,
    Monado,
    MonadoError,
    Pose,
    ReferenceSpaceType,
)

logger = logging.getLogger(__name__)


class MonadoController:
    """
    High-level controller for monado-ctl.

    Bridges between CLI commands and a Monado connection, returning
    JSON-ready dictionaries.
    """

    def __init__(self, monado: Monado):
        self.monado = monado

    @classmethod
    def connect(cls, lib_path: Optional[str] = None,
                simulate: bool = False) -> 'MonadoController':
        """
        Connect to Monado.

        Args:
            lib_path: Load this libmonado instead of discovering it
            simulate: Use an in-process simulated runtime
        """
        if simulate:
            from ..simulation import create_default_runtime

            return cls(Monado(create_default_runtime().api()))
        if lib_path:
            return cls(Monado.create(lib_path))
        return cls(Monado.auto_connect())

    def close(self) -> None:
        self.monado.close()

    def _client(self, client_id: int) -> Client:
        for client in self.monado.clients():
            if client.id == client_id:
                return client
        raise ValueError(f"Client {client_id} not found")

    def list_clients(self) -> list:
        """List all clients with their state."""
        result = []
        for client in self.monado.clients():
            state = client.state()
            result.append({
                "id": client.id,
                "name": client.name(),
                "state": int(state),
                "flags": state.names(),
            })
        return result

    def list_devices(self) -> list:
        """List all devices."""
        result = []
        for device in self.monado.devices():
            try:
                serial = device.serial()
            except MonadoError:
                serial = None
            result.append({
                "index": device.index,
                "name_id": device.name_id,
                "name": device.name,
                "serial": serial,
            })
        return result

    def list_tracking_origins(self) -> list:
        """List all tracking origins with their offsets."""
        return [
            {
                "id": origin.id,
                "name": origin.name,
                "offset": origin.get_offset().to_dict(),
            }
            for origin in self.monado.tracking_origins()
        ]

    def get_info(self) -> dict:
        """Everything monado-ctl knows about the runtime."""
        return {
            "api_version": str(self.monado.get_api_version()),
            "clients": self.list_clients(),
            "devices": self.list_devices(),
            "tracking_origins": self.list_tracking_origins(),
        }

    def set_primary(self, client_id: int) -> None:
        self._client(client_id).set_primary()

    def set_focused(self, client_id: int) -> None:
        self._client(client_id).set_focused()

    def set_io_active(self, client_id: int, active: bool) -> None:
        self._client(client_id).set_io_active(active)

    def recenter(self) -> None:
        self.monado.recenter_local_spaces()

    def device_for_role(self, role: DeviceRole) -> dict:
        device = self.monado.device_from_role(role)
        return {
            "role": role.value,
            "index": device.index,
            "name_id": device.name_id,
            "name": device.name,
        }

    def battery(self, index: int) -> dict:
        return self._device(index).battery_status().to_dict()

    def brightness(self, index: int, value: Optional[float] = None,
                   relative: bool = False) -> float:
        """Get, or set and then get, the brightness of a device."""
        device = self._device(index)
        if value is not None:
            device.set_brightness(value, relative)
        return device.brightness()

    def _device(self, index: int):
        for device in self.monado.devices():
            if device.index == index:
                return device
        raise ValueError(f"Device {index} not found")

    def reference_space_offset(self, space_type: ReferenceSpaceType,
                               pose: Optional[Pose] = None) -> dict:
        """Get, or set and then get, a reference space offset."""
        if pose is not None:
            self.monado.set_reference_space_offset(space_type, pose)
        return self.monado.get_reference_space_offset(space_type).to_dict()

    def tracking_origin_offset(self, origin_id: int,
                               pose: Optional[Pose] = None) -> dict:
        """Get, or set and then get, a tracking origin offset."""
        for origin in self.monado.tracking_origins():
            if origin.id == origin_id:
                if pose is not None:
                    origin.set_offset(pose)
                return origin.get_offset().to_dict()
        raise ValueError(f"Tracking origin {origin_id} not found")


def _format_pose(pose: dict) -> str:
    p = pose["position"]
    o = pose["orientation"]
    return (f"position ({p['x']:.3f}, {p['y']:.3f}, {p['z']:.3f}) "
            f"orientation ({o['x']:.3f}, {o['y']:.3f}, {o['z']:.3f}, {o['w']:.3f})")


def _print_clients(clients: list) -> None:
    print("Clients:")
    if not clients:
        print("  (none)")
    for client in clients:
        flags = ", ".join(client["flags"]) or "none"
        print(f"  [{client['id']}] {client['name']}")
        print(f"    State: {flags}")


def _print_devices(devices: list) -> None:
    print("Devices:")
    if not devices:
        print("  (none)")
    for device in devices:
        serial = device["serial"] if device["serial"] is not None else "(unavailable)"
        print(f"  [{device['index']}] {device['name']}")
        print(f"    Name ID: {device['name_id']}")
        print(f"    Serial: {serial}")


def _print_origins(origins: list) -> None:
    print("Tracking origins:")
    if not origins:
        print("  (none)")
    for origin in origins:
        print(f"  [{origin['id']}] {origin['name']}")
        print(f"    Offset: {_format_pose(origin['offset'])}")


def _output(args, data, text_printer) -> int:
    if args.json:
        print(json.dumps(data, indent=2))
    else:
        text_printer(data)
    return 0


def _parse_pose(text: str) -> Pose:
    try:
        return Pose.from_dict(json.loads(text))
    except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
        raise argparse.ArgumentTypeError(f"Invalid pose JSON: {e}")


def _parse_space(text: str) -> ReferenceSpaceType:
    try:
        return ReferenceSpaceType.from_name(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _parse_on_off(text: str) -> bool:
    value = text.lower()
    if value in ("on", "true", "1", "yes"):
        return True
    if value in ("off", "false", "0", "no"):
        return False
    raise argparse.ArgumentTypeError(f"Expected on/off, got '{text}'")


def cmd_info(args, controller: MonadoController) -> int:
    """Handle 'info' command."""
    def print_info(info):
        print(f"libmonado API version: {info['api_version']}")
        print()
        _print_clients(info["clients"])
        print()
        _print_devices(info["devices"])
        print()
        _print_origins(info["tracking_origins"])

    return _output(args, controller.get_info(), print_info)


def cmd_clients(args, controller: MonadoController) -> int:
    """Handle 'clients' command."""
    return _output(args, controller.list_clients(), _print_clients)


def cmd_devices(args, controller: MonadoController) -> int:
    """Handle 'devices' command."""
    return _output(args, controller.list_devices(), _print_devices)


def cmd_origins(args, controller: MonadoController) -> int:
    """Handle 'origins' command."""
    return _output(args, controller.list_tracking_origins(), _print_origins)


def cmd_primary(args, controller: MonadoController) -> int:
    """Handle 'primary' command."""
    controller.set_primary(args.client)
    print(f"Client {args.client} is now primary")
    return 0


def cmd_focus(args, controller: MonadoController) -> int:
    """Handle 'focus' command."""
    controller.set_focused(args.client)
    print(f"Client {args.client} is now focused")
    return 0


def cmd_io(args, controller: MonadoController) -> int:
    """Handle 'io' command."""
    controller.set_io_active(args.client, args.state)
    print(f"Client {args.client} IO {'active' if args.state else 'inactive'}")
    return 0


def cmd_recenter(args, controller: MonadoController) -> int:
    """Handle 'recenter' command."""
    controller.recenter()
    print("Recentered local spaces")
    return 0


def cmd_role(args, controller: MonadoController) -> int:
    """Handle 'role' command."""
    return _output(
        args,
        controller.device_for_role(DeviceRole(args.role)),
        lambda d: print(f"{d['role']}: [{d['index']}] {d['name']}"),
    )


def cmd_battery(args, controller: MonadoController) -> int:
    """Handle 'battery' command."""
    def print_battery(status):
        if not status["present"]:
            print(f"Device {args.device}: no battery")
            return
        charging = " (charging)" if status["charging"] else ""
        print(f"Device {args.device}: {status['charge'] * 100:.0f}%{charging}")

    return _output(args, controller.battery(args.device), print_battery)


def cmd_brightness(args, controller: MonadoController) -> int:
    """Handle 'brightness' command."""
    value = controller.brightness(args.device, args.value, args.relative)
    return _output(
        args,
        {"device": args.device, "brightness": value},
        lambda d: print(f"Device {d['device']} brightness: {d['brightness']:.2f}"),
    )


def cmd_space(args, controller: MonadoController) -> int:
    """Handle 'space' command."""
    pose = controller.reference_space_offset(args.space, args.set)
    return _output(
        args,
        pose,
        lambda p: print(f"{args.space.name.lower()}: {_format_pose(p)}"),
    )


def cmd_origin_offset(args, controller: MonadoController) -> int:
    """Handle 'origin-offset' command."""
    pose = controller.tracking_origin_offset(args.origin, args.set)
    return _output(
        args,
        pose,
        lambda p: print(f"Tracking origin {args.origin}: {_format_pose(p)}"),
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="monado-ctl",
        description="Inspect and control a running Monado XR runtime",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  monado-ctl info                       Dump clients, devices and origins
  monado-ctl primary 2                  Make client 2 the primary app
  monado-ctl io 2 off                   Disable input/output of client 2
  monado-ctl brightness 0 0.5           Set display brightness of device 0
  monado-ctl space stage --set '{"position": {"y": 0.1}}'

libmonado is located through LIBMONADO_PATH or the active OpenXR runtime
manifest unless --lib is given.
""",
    )

    parser.add_argument(
        "--lib",
        metavar="PATH",
        help="Path to libmonado (skips runtime discovery)",
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Use an in-process simulated runtime",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("info", help="Show version, clients, devices and tracking origins")
    subparsers.add_parser("clients", help="List clients")
    subparsers.add_parser("devices", help="List devices")
    subparsers.add_parser("origins", help="List tracking origins")

    # client control
    p = subparsers.add_parser("primary", help="Make a client the primary app")
    p.add_argument("client", type=int, help="Client ID")

    p = subparsers.add_parser("focus", help="Focus a client")
    p.add_argument("client", type=int, help="Client ID")

    p = subparsers.add_parser("io", help="Enable or disable client input/output")
    p.add_argument("client", type=int, help="Client ID")
    p.add_argument("state", type=_parse_on_off, help="on or off")

    subparsers.add_parser("recenter", help="Recenter local spaces")

    # devices
    p = subparsers.add_parser("role", help="Show the device assigned to a role")
    p.add_argument("role", choices=[r.value for r in DeviceRole], help="Device role")

    p = subparsers.add_parser("battery", help="Show battery status of a device")
    p.add_argument("device", type=int, help="Device index")

    p = subparsers.add_parser("brightness", help="Get or set display brightness")
    p.add_argument("device", type=int, help="Device index")
    p.add_argument("value", type=float, nargs="?", help="New brightness")
    p.add_argument("--relative", action="store_true",
                   help="Add value to the current brightness")

    # spaces
    p = subparsers.add_parser("space", help="Get or set a reference space offset")
    p.add_argument("space", type=_parse_space,
                   help="view, local, local-floor, stage or unbounded")
    p.add_argument("--set", type=_parse_pose, metavar="POSE_JSON",
                   help="New offset as JSON")

    p = subparsers.add_parser("origin-offset", help="Get or set a tracking origin offset")
    p.add_argument("origin", type=int, help="Tracking origin ID")
    p.add_argument("--set", type=_parse_pose, metavar="POSE_JSON",
                   help="New offset as JSON")

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "info": cmd_info,
        "clients": cmd_clients,
        "devices": cmd_devices,
        "origins": cmd_origins,
        "primary": cmd_primary,
        "focus": cmd_focus,
        "io": cmd_io,
        "recenter": cmd_recenter,
        "role": cmd_role,
        "battery": cmd_battery,
        "brightness": cmd_brightness,
        "space": cmd_space,
        "origin-offset": cmd_origin_offset,
    }

    handler = commands.get(args.command)
    if not handler:
        parser.print_help()
        return 1

    try:
        controller = MonadoController.connect(args.lib, args.simulate)
    except MonadoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return handler(args, controller)
    except (MonadoError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        controller.close()


if __name__ == "__main__":
    sys.exit(main())

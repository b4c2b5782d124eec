#!/usr/bin/env python3
"""
Terminal GreenGrid: connexion d'un véhicule et dashboard opérateur
"""

import argparse
import asyncio
import logging
import math
import sys

from greengrid.config import settings
from greengrid.core.exceptions import ControllerStateError
from greengrid.models.session import ChargingMode
from greengrid.models.telemetry import TelemetrySnapshot
from greengrid.services.auth_gate import AuthGate, AuthStatus
from greengrid.services.credential_store import initialize_credential_store
from greengrid.services.http_client import HttpClient
from greengrid.services.notifications import Notification, Notifier
from greengrid.services.session_controller import SessionRequestController
from greengrid.services.telemetry_poller import TelemetryPoller

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def finite_float(value: str) -> float:
    """Type argparse: refuse nan et inf"""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if not math.isfinite(number):
        raise argparse.ArgumentTypeError(f"must be a finite number: {value!r}")
    return number


def print_notification(notification: Notification):
    print(f"[{notification.level.value.upper()}] {notification.message}")


def print_snapshot(snapshot: TelemetrySnapshot):
    mix = snapshot.energy_mix
    gen = snapshot.generation
    print("=" * 70)
    print(f"Grid load:    {snapshot.load.value:.1f}/{snapshot.load.capacity:.1f} kW "
          f"({snapshot.load.percentage:.1f}%, {snapshot.load_level})")
    print(f"Green score:  {snapshot.health_score:.0f}/100")
    print(f"Energy mix:   {mix.renewable_users} green / {mix.conventional_users} grid / "
          f"{mix.paused_users} paused")
    print(f"Generation:   solar {gen.solar_kw:.1f} kW, wind {gen.wind_kw:.1f} kW, "
          f"net green {gen.net_green_available_kw:.1f} kW{' (DEFICIT)' if gen.is_deficit else ''}")
    print(f"Live sessions ({len(snapshot.live_sessions)}):")
    for session in snapshot.live_sessions:
        source = session.power_source.value if session.power_source else session.source
        print(f"  {session.slot}  {session.vehicle}  {session.mode:<12} {source}")


async def connect(http: HttpClient, notifier: Notifier, args: argparse.Namespace) -> int:
    controller = SessionRequestController(http, notifier)
    controller.composer.fill(args.vehicle_id)

    try:
        controller.select_mode(ChargingMode(args.mode))
        if controller.mode == ChargingMode.CUSTOM:
            controller.set_custom_quantity(args.kwh)
    except (ControllerStateError, ValueError) as e:
        logger.error(str(e))
        return 1

    result = await controller.submit()
    if result is None:
        return 1

    print(f"Slot:           {result.slot_id}")
    print(f"Power source:   {result.badge or result.initial_source}")
    print(f"Estimated bill: {result.estimated_bill:.2f}")
    return 0


async def login(gate: AuthGate, args: argparse.Namespace) -> int:
    status = await gate.login(args.username, args.password)
    return 0 if status == AuthStatus.AUTHENTICATED else 1


async def dashboard(http: HttpClient, notifier: Notifier, gate: AuthGate, args: argparse.Namespace) -> int:
    if gate.check_access() == AuthStatus.UNAUTHENTICATED:
        print("Not signed in. Run: python -m greengrid.main login --username ... --password ...")
        return 1

    poller = TelemetryPoller(http, notifier, interval=args.interval)
    updates = asyncio.Queue()
    poller.add_listener(print_snapshot)
    poller.add_listener(updates.put_nowait)

    poller.start()
    try:
        received = 0
        while args.updates == 0 or received < args.updates:
            await updates.get()
            received += 1
    finally:
        await poller.aclose()
    return 0


async def run(args: argparse.Namespace) -> int:
    notifier = Notifier()
    notifier.add_handler(print_notification)
    credentials = initialize_credential_store()

    async with HttpClient(credentials, base_url=args.api_url) as http:
        gate = AuthGate(credentials, http, notifier)

        if args.cmd == "connect":
            return await connect(http, notifier, args)
        if args.cmd == "login":
            return await login(gate, args)
        if args.cmd == "logout":
            gate.logout()
            return 0
        return await dashboard(http, notifier, gate, args)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="GreenGrid charging terminal")
    parser.add_argument("--api-url", default=settings.API_BASE_URL, help="Backend base URL")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_connect = sub.add_parser("connect", help="connect a vehicle and start a session")
    p_connect.add_argument("vehicle_id", help="Vehicle number, e.g. MH-12-AB-1234")
    p_connect.add_argument("--mode", choices=[m.value for m in ChargingMode],
                           default=ChargingMode.CHARGE_NOW.value)
    p_connect.add_argument("--kwh", type=finite_float, default=settings.CUSTOM_KWH_DEFAULT,
                           help="Energy limit for CUSTOM mode")

    p_login = sub.add_parser("login", help="operator login")
    p_login.add_argument("--username", required=True)
    p_login.add_argument("--password", required=True)

    sub.add_parser("logout", help="forget the stored operator credential")

    p_dash = sub.add_parser("dashboard", help="live grid telemetry")
    p_dash.add_argument("--updates", type=int, default=0, help="Stop after N snapshots (0 = forever)")
    p_dash.add_argument("--interval", type=float, default=settings.POLL_INTERVAL_SECONDS)

    return parser.parse_args()


def main():
    args = parse_args()
    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()

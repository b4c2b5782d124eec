import argparse

import pytest
from pydantic import ValidationError

from greengrid.main import finite_float, print_snapshot
from greengrid.models.session import (
    ChargingMode,
    EnergyLimitRange,
    PowerSource,
    SessionRequest,
    SessionResult,
)
from greengrid.models.telemetry import TelemetrySnapshot
from greengrid.services.notifications import NotificationLevel, Notifier


def test_session_request_zeroes_quantity_outside_custom():
    request = SessionRequest.build("MH-12-AB-1234", ChargingMode.FULL_CHARGE, 75)

    assert request.to_payload() == {"vehicle_id": "MH-12-AB-1234", "mode": "FULL_CHARGE", "custom_kwh": 0}


def test_session_request_is_immutable():
    request = SessionRequest.build("MH-12-AB-1234", ChargingMode.CUSTOM, 75)

    with pytest.raises(ValidationError):
        request.custom_kwh = 10


def test_session_request_rejects_malformed_vehicle_id():
    with pytest.raises(ValidationError):
        SessionRequest.build("MH12AB1234", ChargingMode.CHARGE_NOW, 0)


@pytest.mark.parametrize("label, source, badge", [
    ("RENEWABLE", PowerSource.RENEWABLE, "Powered by Green Energy"),
    ("CONVENTIONAL_GRID", PowerSource.CONVENTIONAL, "Grid Power (High Load)"),
    ("PAUSED_WAITING", PowerSource.PAUSED, "Waiting for Solar Peak"),
    ("SOMETHING_ELSE", None, None),
])
def test_session_result_source_badge(label, source, badge):
    result = SessionResult.model_validate({"Slot_ID": "S1", "Initial_Source": label, "Est_Bill": 3.14159})

    assert result.power_source == source
    assert result.badge == badge
    assert result.estimated_bill == 3.14


@pytest.mark.parametrize("kwargs", [
    {"min": 100, "max": 10},
    {"min": 10, "max": 100, "step": 7},
    {"min": 10, "max": 100, "step": 5, "default": 52},
])
def test_energy_range_validates_envelope(kwargs):
    with pytest.raises(ValidationError):
        EnergyLimitRange(**kwargs)


@pytest.mark.parametrize("quantity", [float("nan"), float("inf"), float("-inf")])
def test_energy_range_rejects_non_finite_quantity(quantity):
    with pytest.raises(ValueError):
        EnergyLimitRange().clamp(quantity)


@pytest.mark.parametrize("value", ["nan", "inf", "-Infinity", "lots"])
def test_cli_rejects_non_finite_kwh(value):
    with pytest.raises(argparse.ArgumentTypeError):
        finite_float(value)


@pytest.mark.parametrize("percentage, level", [(10.0, "normal"), (55.0, "elevated"), (70.0, "critical")])
def test_snapshot_load_level(percentage, level, dashboard_payload):
    snapshot = TelemetrySnapshot.model_validate(
        dashboard_payload(current_load={"value": percentage, "capacity": 100.0, "percentage": percentage})
    )

    assert snapshot.load_level == level


def test_snapshot_maps_wire_names(dashboard_payload):
    snapshot = TelemetrySnapshot.model_validate(dashboard_payload())

    assert snapshot.generation.wind_kw == 18.5
    assert snapshot.energy_mix.total_users == 3
    assert [s.power_source for s in snapshot.live_sessions] == [
        PowerSource.RENEWABLE, PowerSource.RENEWABLE, PowerSource.CONVENTIONAL,
    ]


@pytest.mark.parametrize("net_kw, deficit", [(-12.5, True), (0.0, False), (27.5, False)])
def test_generation_deficit_flag(net_kw, deficit, dashboard_payload, capsys):
    predictions = {"solar_now_kw": 5.0, "wind_now_kw": 2.0, "net_green_available_kw": net_kw}
    snapshot = TelemetrySnapshot.model_validate(dashboard_payload(predictions=predictions))
    print_snapshot(snapshot)

    assert snapshot.generation.is_deficit is deficit
    assert ("DEFICIT" in capsys.readouterr().out) is deficit


def test_snapshot_rejects_out_of_range_health(dashboard_payload):
    with pytest.raises(ValidationError):
        TelemetrySnapshot.model_validate(dashboard_payload(system_health={"green_score": 140}))


def test_notifier_history_is_bounded():
    notifier = Notifier(history_size=2)

    notifier.info("one")
    notifier.success("two")
    notifier.error("three")

    assert notifier.messages() == ["two", "three"]
    assert notifier.last.level == NotificationLevel.ERROR


def test_notifier_handler_failure_does_not_propagate():
    notifier = Notifier()
    received = []

    def broken(notification):
        raise RuntimeError("display offline")

    notifier.add_handler(broken)
    notifier.add_handler(received.append)
    notifier.error("Failed to fetch dashboard data")

    assert [n.message for n in received] == ["Failed to fetch dashboard data"]

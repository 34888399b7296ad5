from __future__ import annotations

import pytest

from hvacbridge._constants import convert_temperature, scale_fan_speed


def test_convert_temperature_endpoints() -> None:
    assert convert_temperature(15) == 0x10
    assert convert_temperature(30) == 0xF0


def test_convert_temperature_is_monotonic_over_supported_span() -> None:
    values = [convert_temperature(t) for t in range(15, 31)]
    assert values == sorted(values)
    assert len(set(values)) == len(values)


@pytest.mark.parametrize(("temperature", "expected"), [(0, 0x10), (14, 0x10), (31, 0xF0), (255, 0xF0)])
def test_convert_temperature_saturates_outside_span(temperature: int, expected: int) -> None:
    assert convert_temperature(temperature) == expected


def test_scale_fan_speed() -> None:
    assert scale_fan_speed(0) == 0
    assert scale_fan_speed(100) == 255
    # 127.5 rounds half up
    assert scale_fan_speed(50) == 128
    assert scale_fan_speed(1) == 3

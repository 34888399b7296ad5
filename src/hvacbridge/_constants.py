"""Internal constants shared across the bridge."""

DEFAULT_APP_NAME = "agl-service-hvac"
DEFAULT_BROKER_HOST = "localhost"
DEFAULT_BROKER_PORT = 55555
DEFAULT_CA_CERT_FILE = "/etc/kuksa-val/CA.pem"
DEFAULT_CAN_PORT = "can0"
DEFAULT_CAN_INTERFACE = "socketcan"
DEFAULT_LED_RED = "/sys/class/leds/blinkm-3-9-red/brightness"
DEFAULT_LED_GREEN = "/sys/class/leds/blinkm-3-9-green/brightness"
DEFAULT_LED_BLUE = "/sys/class/leds/blinkm-3-9-blue/brightness"

#: Delay before reissuing a subscription that ended without cancellation.
RESUBSCRIBE_DELAY_S: float = 0.1

# ------------------------------------------------------------------
# VSS signal paths
# ------------------------------------------------------------------

DRIVER_TEMPERATURE = "Vehicle.Cabin.HVAC.Station.Row1.Driver.Temperature"
PASSENGER_TEMPERATURE = "Vehicle.Cabin.HVAC.Station.Row1.Passenger.Temperature"
DRIVER_FAN_SPEED = "Vehicle.Cabin.HVAC.Station.Row1.Driver.FanSpeed"
PASSENGER_FAN_SPEED = "Vehicle.Cabin.HVAC.Station.Row1.Passenger.FanSpeed"
AIR_CONDITIONING_ACTIVE = "Vehicle.Cabin.HVAC.IsAirConditioningActive"
FRONT_DEFROSTER_ACTIVE = "Vehicle.Cabin.HVAC.IsFrontDefrosterActive"
REAR_DEFROSTER_ACTIVE = "Vehicle.Cabin.HVAC.IsRearDefrosterActive"
RECIRCULATION_ACTIVE = "Vehicle.Cabin.HVAC.IsRecirculationActive"

# ------------------------------------------------------------------
# HVAC CAN frame
# ------------------------------------------------------------------

CAN_FRAME_ID = 0x30
CAN_FRAME_LENGTH = 8

_HW_MIN = 0x10
_HW_MAX = 0xF0
TEMP_MIN_C = 15
TEMP_MAX_C = 30
_TEMP_SPAN = TEMP_MAX_C - TEMP_MIN_C  # 15


def convert_temperature(value: int) -> int:
    """Map a temperature in °C onto the HVAC controller's byte range.

    15 °C maps to ``0x10`` and 30 °C to ``0xF0``; anything outside the
    supported span saturates at the nearest endpoint.
    """
    result = (_HW_MAX - _HW_MIN) * (int(value) - TEMP_MIN_C) // _TEMP_SPAN + _HW_MIN
    return max(_HW_MIN, min(_HW_MAX, result))


def scale_fan_speed(percent: int) -> int:
    """Scale a 0-100 VSS fan speed to the 0-255 range the hardware expects."""
    return int(int(percent) * 255.0 / 100.0 + 0.5)

"""Shared constants for the configuration module.

The metric registry drives labels, units, report formatting and default
threshold rules, so adding a metric is a change here and nowhere else.
"""

from dataclasses import dataclass

from campussense.lib.config.enums import AlertRate, Direction, Metric


@dataclass(frozen=True, slots=True)
class MetricSpec:
    """Presentation and default-rule data for one metric."""

    label: str
    unit: str
    digits: int = 1
    direction: Direction = Direction.ABOVE
    default_limit: float | None = None  # None: no alert rule by default


METRICS: dict[Metric, MetricSpec] = {
    Metric.BMP_TEMP: MetricSpec("BMP Temp", "°C", default_limit=28.0),
    Metric.DHT_TEMP: MetricSpec("DHT Temp", "°C"),
    Metric.HUMIDITY: MetricSpec("Humidity", "%", default_limit=80.0),
    Metric.AQI: MetricSpec("AQI", " PPM", digits=0, default_limit=450.0),
    Metric.UV: MetricSpec("UV", "", default_limit=7.0),
    Metric.LIGHT_LEVEL: MetricSpec("Light", "%"),
    Metric.RAIN_PERCENTAGE: MetricSpec("Rain", "%", default_limit=70.0),
    Metric.PRESSURE: MetricSpec(
        "Pressure", " hPa", direction=Direction.BELOW, default_limit=990.0
    ),
}

# Metrics that carry an alert rule, in evaluation order
ALERTABLE_METRICS: tuple[Metric, ...] = tuple(
    metric for metric, spec in METRICS.items() if spec.default_limit is not None
)

# Device payload keys mapped to metric identifiers
DEVICE_KEYS: dict[str, Metric] = {
    "bmp_temp": Metric.BMP_TEMP,
    "dht_temp": Metric.DHT_TEMP,
    "humidity": Metric.HUMIDITY,
    "pressure": Metric.PRESSURE,
    "co2_ppm": Metric.AQI,
    "aqi": Metric.AQI,
    "uv_index": Metric.UV,
    "uv": Metric.UV,
    "light_pcnt": Metric.LIGHT_LEVEL,
    "light_level": Metric.LIGHT_LEVEL,
    "rain_pcnt": Metric.RAIN_PERCENTAGE,
    "rain_percentage": Metric.RAIN_PERCENTAGE,
}

# Alert confirmation: consecutive crossing readings required to latch
DEFAULT_CONFIRMATION_COUNT = 2

DEFAULT_REPORT_TIMES: tuple[str, ...] = ("09:00", "12:00", "18:00")
DEFAULT_ALERT_RATE = AlertRate.IMMEDIATE
DEFAULT_TIMEZONE = "Asia/Kolkata"

"""
Interaction features.

Products of two base features scaled by fixed constants. A null operand
makes the interaction null.
"""

from forecasting.config import FeatureConfig, config


def _product(a: float | None, b: float | None, scale: float) -> float | None:
    if a is None or b is None:
        return None
    return a * b / scale


class InteractionFeatures:
    """Pairwise interactions between calendar, weather and supply features."""

    names = (
        "wind_hour_interaction",
        "temp_demand_interaction",
        "gas_price_gas_gen_interaction",
        "weekend_hour_interaction",
        "temp_extreme_hour_interaction",
    )

    def __init__(self, cfg: FeatureConfig | None = None) -> None:
        cfg = cfg or config.features
        self._comfort = cfg.comfort_temperature_c

    def compute(self, values: dict[str, float | None]) -> dict[str, float | None]:
        hour = values.get("hour_of_day")
        temp = values.get("temperature_c")
        extreme = abs(temp - self._comfort) if temp is not None else None
        return {
            "wind_hour_interaction": _product(values.get("wind_mw"), hour, 24.0),
            "temp_demand_interaction": _product(temp, values.get("demand_mw"), 1000.0),
            "gas_price_gas_gen_interaction": _product(
                values.get("natural_gas_price"), values.get("gas_mw"), 1000.0
            ),
            "weekend_hour_interaction": _product(values.get("is_weekend"), hour, 1.0),
            "temp_extreme_hour_interaction": _product(extreme, hour, 24.0),
        }

"""Weather provider abstractions, the OpenWeather client and styling guidance."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import requests
from pydantic import BaseModel, ValidationError

from stylist_app.errors import LocationNotFoundError, ServiceNotConfiguredError, WeatherServiceError
from stylist_app.logging_config import get_logger, log_event
from tools.observability import instrument_call

LOGGER = get_logger(__name__)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"


class _WeatherCondition(BaseModel):
    main: str = "unknown"
    icon: str = ""


class _Wind(BaseModel):
    speed: float = 0.0


class _Main(BaseModel):
    temp: float
    feels_like: float
    humidity: float = 0.0


class _CurrentWeatherResponse(BaseModel):
    main: _Main
    wind: _Wind = _Wind()
    weather: List[_WeatherCondition] = []


@dataclass
class WeatherData:
    """Current conditions in Fahrenheit and mph."""

    temperature: int
    conditions: str
    humidity: float
    feels_like: int
    wind_speed: int
    icon: str

    def to_dict(self) -> Dict[str, object]:
        payload = asdict(self)
        return {
            "temperature": payload["temperature"],
            "conditions": payload["conditions"],
            "humidity": payload["humidity"],
            "feelsLike": payload["feels_like"],
            "windSpeed": payload["wind_speed"],
            "icon": payload["icon"],
        }


class WeatherProvider(ABC):
    """Abstract weather provider interface."""

    @abstractmethod
    def get_current_weather(self, city: str, state: str, country: str = "US") -> WeatherData:
        """Return current conditions for a location."""


class OpenWeatherProvider(WeatherProvider):
    """OpenWeather current-conditions client with schema validation."""

    def __init__(self, api_key: str | None = None, timeout_seconds: float = 5.0, units: str = "imperial") -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.units = units

    @instrument_call("weather.get_current")
    def get_current_weather(self, city: str, state: str, country: str = "US") -> WeatherData:
        if not city or not state:
            raise ValueError("city and state are required for weather lookups")
        if not self.api_key:
            raise ServiceNotConfiguredError("Weather service not configured")

        params = {
            "q": f"{city},{state},{country}",
            "appid": self.api_key,
            "units": self.units,
        }
        try:
            response = requests.get(OPENWEATHER_URL, params=params, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            log_event(LOGGER, logging.ERROR, "weather_api_unreachable", error=str(exc))
            raise WeatherServiceError() from exc

        if response.status_code == 404:
            raise LocationNotFoundError()
        if not response.ok:
            log_event(LOGGER, logging.ERROR, "weather_api_error", status_code=response.status_code)
            raise WeatherServiceError()

        try:
            parsed = _CurrentWeatherResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            log_event(LOGGER, logging.ERROR, "weather_payload_invalid", error=str(exc))
            raise WeatherServiceError() from exc

        condition = parsed.weather[0] if parsed.weather else _WeatherCondition()
        return WeatherData(
            temperature=round(parsed.main.temp),
            conditions=condition.main.lower(),
            humidity=parsed.main.humidity,
            feels_like=round(parsed.main.feels_like),
            wind_speed=round(parsed.wind.speed),
            icon=condition.icon,
        )


class MockWeatherProvider(WeatherProvider):
    """Offline deterministic weather provider for tests."""

    def __init__(self, weather: WeatherData | None = None) -> None:
        self.weather = weather or WeatherData(
            temperature=68,
            conditions="clear",
            humidity=40,
            feels_like=67,
            wind_speed=5,
            icon="01d",
        )

    def get_current_weather(self, city: str, state: str, country: str = "US") -> WeatherData:
        LOGGER.info("Returning mock weather", extra={"city": city, "state": state})
        return self.weather


def describe_weather(temperature: float, conditions: str) -> str:
    """Human readable one-liner such as ``"72°F, clear"``."""

    return f"{round(temperature)}°F, {conditions}"


def temperature_guidance(temperature: float) -> str:
    if temperature < 40:
        return "Very cold: heavy outerwear, closed-toe shoes and warm layers are essential."
    if temperature < 55:
        return "Cold: bring a coat or warm jacket and consider tights or long sleeves."
    if temperature < 65:
        return "Cool: a light jacket, cardigan or wrap is recommended."
    if temperature < 80:
        return "Mild: most fabrics work; keep a light layer for the evening."
    if temperature < 90:
        return "Warm: breathable fabrics and open-toe shoes work well."
    return "Hot: lightweight breathable fabrics, minimal layers and sun protection."


def needs_rain_protection(conditions: str) -> bool:
    lowered = conditions.lower()
    return any(word in lowered for word in ("rain", "drizzle", "thunderstorm", "snow"))


def style_suggestions(temperature: float, conditions: str, wind_speed: Optional[float] = None) -> List[str]:
    """Concrete outfit adjustments for the weather; empty when nothing stands out."""

    suggestions: List[str] = []
    if temperature < 55:
        suggestions.append("Add a structured coat that works with the dress code")
    elif temperature < 65:
        suggestions.append("Pack a light layer such as a blazer or pashmina")
    if temperature >= 85:
        suggestions.append("Favor linen, cotton or silk over synthetic fabrics")
    if needs_rain_protection(conditions):
        suggestions.append("Choose water-resistant shoes and avoid suede")
        suggestions.append("Bring a compact umbrella that fits the bag")
    if wind_speed is not None and wind_speed >= 15:
        suggestions.append("Avoid very full or short skirts in the wind")
    return suggestions


__all__ = [
    "WeatherData",
    "WeatherProvider",
    "OpenWeatherProvider",
    "MockWeatherProvider",
    "describe_weather",
    "temperature_guidance",
    "needs_rain_protection",
    "style_suggestions",
]

"""Abstract base for weather providers, plus the snapshot value they return."""

import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WeatherSnapshot:
    """Current-conditions payload passed through from the provider unchanged.

    The gateway only checks that the payload is a JSON object; the fields
    (name, main, weather, wind, sys, coord, ...) are the provider's.
    """

    data: Mapping[str, Any]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "WeatherSnapshot":
        return cls(data=copy.deepcopy(dict(payload)))

    @property
    def city(self) -> str:
        return self.data.get("name", "")

    @property
    def country(self) -> str:
        return self.data.get("sys", {}).get("country", "")

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(dict(self.data))


class WeatherProvider(ABC):
    """Base class for weather provider implementations."""

    @abstractmethod
    async def current_weather(self, city: str) -> WeatherSnapshot:
        """Fetch current conditions for a city.

        Raises:
            WeatherError: NOT_FOUND, UPSTREAM_UNAUTHORIZED, RATE_LIMITED or
                EXTERNAL_SERVICE depending on how the upstream call failed.
        """
        ...

    async def close(self) -> None:
        """Cleanup resources. Override if provider holds connections."""
        pass

"""
Data models for the travel explorer application.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from storage import HISTORY_PREFIX


@dataclass(frozen=True)
class Country:
    """Country record as returned by REST Countries (identity = common name)."""
    name: str
    population: int = 0
    region: str = ""
    capital: Optional[str] = None
    currencies: List[str] = field(default_factory=list)
    flag: str = ""
    latlng: Optional[Tuple[float, float]] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'Country':
        """Build a record from a REST Countries v3.1 item."""
        flags = payload.get("flags") or {}
        capitals = payload.get("capital") or []
        latlng = payload.get("latlng") or []
        return cls(
            name=(payload.get("name") or {}).get("common", ""),
            population=int(payload.get("population") or 0),
            region=payload.get("region") or "",
            capital=capitals[0] if capitals else None,
            currencies=list((payload.get("currencies") or {}).keys()),
            flag=flags.get("svg") or flags.get("png") or "",
            latlng=(float(latlng[0]), float(latlng[1])) if len(latlng) >= 2 else None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Country':
        latlng = data.get("latlng")
        return cls(
            name=data["name"],
            population=int(data.get("population") or 0),
            region=data.get("region") or "",
            capital=data.get("capital"),
            currencies=list(data.get("currencies") or []),
            flag=data.get("flag") or "",
            latlng=tuple(latlng) if latlng else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "population": self.population,
            "region": self.region,
            "capital": self.capital,
            "currencies": list(self.currencies),
            "flag": self.flag,
            "latlng": list(self.latlng) if self.latlng else None,
        }

    @property
    def primary_currency(self) -> Optional[str]:
        return self.currencies[0] if self.currencies else None

    def __repr__(self) -> str:
        return f"Country({self.name})"


@dataclass(frozen=True)
class FlightWatch:
    """A persisted route/date/flexibility combination whose price is tracked."""
    origin: str
    destination: str
    depart_date: str
    return_date: Optional[str] = None
    window_days: int = 0
    currency: str = "USD"

    @property
    def identity(self) -> Tuple[str, str, str, Optional[str], int]:
        """Everything except the currency."""
        return (self.origin, self.destination, self.depart_date, self.return_date, self.window_days)

    @property
    def history_key(self) -> str:
        """history-ORIG-DEST-departDate[-rt-returnDate][-wd-windowDays]"""
        return history_key_for(self.identity)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FlightWatch':
        return cls(
            origin=data["origin"],
            destination=data["destination"],
            depart_date=data["depart_date"],
            return_date=data.get("return_date") or None,
            window_days=int(data.get("window_days") or 0),
            currency=data.get("currency") or "USD",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin,
            "destination": self.destination,
            "depart_date": self.depart_date,
            "return_date": self.return_date,
            "window_days": self.window_days,
            "currency": self.currency,
        }

    @property
    def route(self) -> str:
        return f"{self.origin} → {self.destination}"

    def __repr__(self) -> str:
        return f"FlightWatch({self.route}, {self.depart_date})"


def history_key_for(identity: Tuple[str, str, str, Optional[str], int]) -> str:
    origin, destination, depart_date, return_date, window_days = identity
    parts = [origin, destination, depart_date]
    if return_date:
        parts += ["rt", return_date]
    if window_days:
        parts += ["wd", str(window_days)]
    return HISTORY_PREFIX + "-".join(parts)


@dataclass
class Airport:
    """Airport entry used by the route autocomplete."""
    iata: str
    city: str
    country: str
    country_code: str
    airport_name: str = ""

    @property
    def flag_emoji(self) -> str:
        """Convert country code to flag emoji."""
        if not self.country_code or len(self.country_code) != 2:
            return "🌍"
        code_points = [ord(char) + 127397 for char in self.country_code.upper()]
        return chr(code_points[0]) + chr(code_points[1])

    @property
    def display_name(self) -> str:
        """Format airport for display: 🇺🇸 JFK — John F. Kennedy International Airport"""
        return f"{self.flag_emoji} {self.iata} — {self.airport_name or self.city}"

    def __repr__(self) -> str:
        return f"Airport({self.iata})"

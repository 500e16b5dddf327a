"""Airport database loader.

This module provides `get_airport_db()`, which the watches page uses to
suggest IATA codes for the origin and destination inputs.

Data source: `airports.json` next to this module (see airports_validator.py
for how it is generated).
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from models import Airport

MAX_SUGGESTIONS = 8


class AirportDB:
    """In-memory airport database loaded from airports.json."""

    def __init__(self, airports: Iterable[Airport]):
        self._by_iata: Dict[str, Airport] = {}
        for a in airports:
            code = (a.iata or "").strip().upper()
            if len(code) != 3:
                continue
            # keep first occurrence
            self._by_iata.setdefault(code, a)

    def get_airport(self, iata: str) -> Optional[Airport]:
        return self._by_iata.get((iata or "").strip().upper())

    def search(self, query: str, limit: int = MAX_SUGGESTIONS) -> List[Airport]:
        """Airports whose code starts with, or whose name contains, `query`."""
        q = (query or "").strip().upper()
        if not q:
            return []
        matches = [
            a for a in self._by_iata.values()
            if a.iata.startswith(q) or q in a.airport_name.upper()
        ]
        return matches[:limit]


_db_lock = threading.Lock()
_db_singleton: Optional[AirportDB] = None


def _load_airports_json(path: Path) -> List[Airport]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError("airports.json must contain a JSON list")

    airports: List[Airport] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        airports.append(
            Airport(
                iata=str(item.get("iata") or "").strip().upper(),
                city=str(item.get("city") or "").strip(),
                country=str(item.get("country") or "").strip(),
                country_code=str(item.get("country_code") or "").strip().upper(),
                airport_name=str(item.get("airport_name") or "").strip(),
            )
        )
    return airports


def get_airport_db() -> AirportDB:
    """Return a cached AirportDB instance (loads airports.json once)."""

    global _db_singleton
    if _db_singleton is not None:
        return _db_singleton

    with _db_lock:
        if _db_singleton is not None:
            return _db_singleton

        path = Path(__file__).parent / "airports.json"
        if not path.exists():
            raise FileNotFoundError(f"airports.json not found at {path}")

        _db_singleton = AirportDB(_load_airports_json(path))
        return _db_singleton

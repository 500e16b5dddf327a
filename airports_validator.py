'''
Airport dataset validator and generator utility.
Run this to check the integrity of airports.json, or with --generate to
rebuild it from the OurAirports CSV export.
'''
import csv
import io
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List

import requests

logger = logging.getLogger(__name__)

OURAIRPORTS_CSV_URL = 'https://ourairports.com/data/airports.csv'
HUB_TYPES = ('large_airport', 'medium_airport')
MAX_HUBS = 500
REQUIRED_FIELDS = ['iata', 'airport_name', 'city', 'country_code']


def validate_airports(airports: list) -> List[str]:
    '''Return the list of problems found in an airports dataset.'''
    errors = []
    iata_codes = set()

    for idx, airport in enumerate(airports):
        if not isinstance(airport, dict):
            errors.append(f"Airport {idx}: Not a dictionary")
            continue

        for field in REQUIRED_FIELDS:
            if field not in airport:
                errors.append(f"Airport {idx}: Missing required field '{field}'")

        iata = airport.get('iata', '')
        if iata:
            if len(iata) != 3 or not iata.isalpha() or not iata.isupper():
                errors.append(f"Airport {idx} ({iata}): IATA code must be 3 uppercase letters")
            if iata in iata_codes:
                errors.append(f"Airport {idx} ({iata}): Duplicate IATA code")
            iata_codes.add(iata)

        country_code = airport.get('country_code', '')
        if country_code and len(country_code) != 2:
            errors.append(f"Airport {idx} ({iata}): Country code must be 2 characters")

    return errors


def hubs_from_rows(rows: Iterable[Dict[str, str]], limit: int = MAX_HUBS) -> List[dict]:
    '''Keep large and medium airports that have an IATA code.'''
    hubs = []
    seen = set()
    for row in rows:
        iata = (row.get('iata_code') or '').strip().upper()
        if row.get('type') not in HUB_TYPES or not iata or iata in seen:
            continue
        seen.add(iata)
        hubs.append({
            'iata': iata,
            'airport_name': (row.get('name') or '').strip(),
            'city': (row.get('municipality') or '').strip(),
            'country': '',
            'country_code': (row.get('iso_country') or '').strip().upper(),
        })
        if len(hubs) >= limit:
            break
    return hubs


def generate_airports(out_path: str = 'airports.json', url: str = OURAIRPORTS_CSV_URL) -> int:
    '''Download the OurAirports CSV and write the hub list to `out_path`.'''
    response = requests.get(url, timeout=60)
    response.raise_for_status()

    hubs = hubs_from_rows(csv.DictReader(io.StringIO(response.text)))
    Path(out_path).write_text(json.dumps(hubs, indent=2, ensure_ascii=False), encoding='utf-8')
    logger.info(f"Wrote {len(hubs)} entries to {out_path}")
    return len(hubs)


def main(argv: List[str]) -> int:
    generate = '--generate' in argv
    args = [a for a in argv if a != '--generate']
    file_path = args[0] if args else str(Path(__file__).parent / 'airports.json')

    if generate:
        generate_airports(file_path)

    if not Path(file_path).exists():
        print(f"❌ Error: {file_path} not found")
        return 1

    airports = json.loads(Path(file_path).read_text(encoding='utf-8'))
    if not isinstance(airports, list):
        print("❌ Error: Root element must be a list")
        return 1

    errors = validate_airports(airports)

    print(f"\n📊 Statistics:")
    print(f"   Total airports: {len(airports)}")
    country_counts = Counter(a.get('country_code', 'Unknown') for a in airports if isinstance(a, dict))
    print(f"\n🌐 Top countries:")
    for country, count in country_counts.most_common(10):
        print(f"   {country}: {count}")

    if errors:
        print(f"\n❌ Found {len(errors)} errors:")
        for error in errors[:20]:
            print(f"   - {error}")
        if len(errors) > 20:
            print(f"   ... and {len(errors) - 20} more")
        return 1

    print("\n✅ Validation passed!")
    return 0


if __name__ == '__main__':
    import sys

    logging.basicConfig(level=logging.INFO)
    sys.exit(main(sys.argv[1:]))

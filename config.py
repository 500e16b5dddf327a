from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


APP_NAME = 'Travel Explorer'

_CREDENTIAL_KEYS = ('AMADEUS_CLIENT_ID', 'AMADEUS_CLIENT_SECRET', 'EXCHANGE_RATE_API_KEY')


def project_root_dir() -> Path:
    # For dev runs, keep config.env next to the source files.
    return Path(__file__).resolve().parent


def _candidate_dotenv_paths() -> list[Path]:
    """Return candidate locations for config.env.

    Precedence rule (first existing file wins):
    1) next to the sources
    2) current working directory
    """
    candidates = [project_root_dir() / 'config.env', Path.cwd() / 'config.env']

    # De-dup while preserving order
    out: list[Path] = []
    seen: set[str] = set()
    for p in candidates:
        key = str(p.resolve())
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out


def dotenv_path() -> Path:
    """Return the first existing config.env candidate, otherwise the dev default."""
    for p in _candidate_dotenv_paths():
        if p.is_file():
            return p
    return project_root_dir() / 'config.env'


def _is_placeholder(value: str) -> bool:
    v = (value or '').strip()
    if not v:
        return True
    # Only reject obvious placeholders, not values that could be real credentials
    return v.lower() in {'x', 'y', 'your_client_id', 'your_client_secret', 'your_api_key',
                         'youramadeusclientidhere', 'youramadeusclientsecrethere',
                         'placeholder', 'example', 'changeme'}


def load_dotenv_once() -> Optional[Path]:
    """Load config.env if present.

    The file overrides the environment only when a credential in the
    environment is missing or a placeholder.
    """
    env_path = dotenv_path()
    if not env_path.is_file():
        return None

    should_override = any(_is_placeholder(os.getenv(k) or '') for k in _CREDENTIAL_KEYS)
    load_dotenv(dotenv_path=str(env_path), override=should_override)
    return env_path


@dataclass(frozen=True)
class LoadedConfig:
    amadeus_client_id: str
    amadeus_client_secret: str
    exchange_rate_api_key: str
    loaded_from: Optional[Path]
    amadeus_env: str = 'test'
    storage_secret: str = 'travel-explorer-dev'
    store_backend: str = 'browser'
    store_path: str = 'travel_store.db'
    port: int = 8080

    @property
    def has_amadeus(self) -> bool:
        return bool(self.amadeus_client_id and self.amadeus_client_secret)

    @property
    def has_exchange_rates(self) -> bool:
        return bool(self.exchange_rate_api_key)

    @property
    def amadeus_base_url(self) -> str:
        if self.amadeus_env == 'production':
            return 'https://api.amadeus.com'
        return 'https://test.api.amadeus.com'


def _clean_credential(name: str) -> str:
    value = (os.getenv(name) or '').strip()
    if _is_placeholder(value):
        return ''
    return value


def load_config() -> LoadedConfig:
    """Load settings from environment variables and/or config.env.

    Keys:
      - AMADEUS_CLIENT_ID / AMADEUS_CLIENT_SECRET
      - AMADEUS_API_ENV=test|production
      - EXCHANGE_RATE_API_KEY
      - STORAGE_SECRET, STORE_BACKEND=browser|sqlite, STORE_PATH, PORT

    We only read config.env; we never modify it.
    """
    loaded_from = load_dotenv_once()

    backend = (os.getenv('STORE_BACKEND') or 'browser').strip().lower()
    if backend not in {'browser', 'sqlite'}:
        backend = 'browser'

    try:
        port = int(os.getenv('PORT') or 8080)
    except ValueError:
        port = 8080

    return LoadedConfig(
        amadeus_client_id=_clean_credential('AMADEUS_CLIENT_ID'),
        amadeus_client_secret=_clean_credential('AMADEUS_CLIENT_SECRET'),
        exchange_rate_api_key=_clean_credential('EXCHANGE_RATE_API_KEY'),
        loaded_from=loaded_from,
        amadeus_env=(os.getenv('AMADEUS_API_ENV') or 'test').strip().lower(),
        storage_secret=(os.getenv('STORAGE_SECRET') or 'travel-explorer-dev').strip(),
        store_backend=backend,
        store_path=(os.getenv('STORE_PATH') or 'travel_store.db').strip(),
        port=port,
    )


def _mask(s: str) -> str:
    if not s:
        return ''
    if len(s) <= 6:
        return '*' * len(s)
    return f"{s[:3]}***{s[-3:]}"


def config_diagnostics() -> str:
    """Human-readable diagnostics for config/env loading (no secrets leaked)."""
    cfg = load_config()

    lines = []
    lines.append(f"CWD: {Path.cwd()}")
    lines.append(f"Resolved config.env: {dotenv_path()}")
    lines.append("Candidates searched:")
    for p in _candidate_dotenv_paths():
        lines.append(f"  - {p} (exists={p.is_file()})")

    lines.append(f"Loaded from: {cfg.loaded_from}")
    lines.append(f"Amadeus environment: {cfg.amadeus_env} ({cfg.amadeus_base_url})")
    lines.append(f"AMADEUS_CLIENT_ID: {_mask(cfg.amadeus_client_id)}")
    lines.append(f"AMADEUS_CLIENT_SECRET: {_mask(cfg.amadeus_client_secret)}")
    lines.append(f"EXCHANGE_RATE_API_KEY: {_mask(cfg.exchange_rate_api_key)}")
    lines.append(f"Store backend: {cfg.store_backend}")
    return "\n".join(lines)


def config_help_text() -> str:
    return (
        'Missing API credentials. Create a config.env file with:\n\n'
        '  AMADEUS_CLIENT_ID=...\n'
        '  AMADEUS_CLIENT_SECRET=...\n'
        '  EXCHANGE_RATE_API_KEY=...\n\n'
        f'config.env location (first found): {dotenv_path()}\n'
    )


if __name__ == '__main__':
    print(config_diagnostics())

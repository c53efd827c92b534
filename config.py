# config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from domain.enums import StorageBackend


ROOT = Path(__file__).resolve().parent


def _maybe_load_env_file() -> None:
    """
    Load .env from the project root (same folder as this config.py).
    Never overwrites already-set environment variables.
    """
    dotenv_path = ROOT / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


@dataclass(frozen=True)
class MySqlConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


@dataclass(frozen=True)
class WheelConfig:
    storage: StorageBackend = StorageBackend.FILE
    state_file: Path = ROOT / "wheel_state.json"
    storage_key: str = "choices"
    storage_scope: str = "default"
    spin_ms: int = 2000
    extra_rotations: int = 6
    effect_cap_ms: int = 5000
    image_size: int = 512


@dataclass(frozen=True)
class BotConfig:
    token: str
    dev_guild_id: int | None
    command_prefix: str
    log_level: str
    wheel: WheelConfig
    mysql: MySqlConfig


def _getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _int_or_none(value: str | None, var_name: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def _int(value: str | None, var_name: str, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def load_wheel_config() -> WheelConfig:
    raw_storage = (_getenv("WHEEL_STORAGE", StorageBackend.FILE.value) or StorageBackend.FILE.value).lower()
    try:
        storage = StorageBackend(raw_storage)
    except ValueError as e:
        raise ValueError(f"WHEEL_STORAGE must be 'file' or 'mysql', got: {raw_storage!r}") from e

    state_file = Path(_getenv("WHEEL_STATE_FILE", "wheel_state.json") or "wheel_state.json")
    if not state_file.is_absolute():
        state_file = ROOT / state_file

    spin_ms = _int(_getenv("WHEEL_SPIN_MS"), "WHEEL_SPIN_MS", 2000)
    extra_rotations = _int(_getenv("WHEEL_EXTRA_ROTATIONS"), "WHEEL_EXTRA_ROTATIONS", 6)
    effect_cap_ms = _int(_getenv("WHEEL_EFFECT_CAP_MS"), "WHEEL_EFFECT_CAP_MS", 5000)
    image_size = _int(_getenv("WHEEL_IMAGE_SIZE"), "WHEEL_IMAGE_SIZE", 512)

    if spin_ms < 0:
        raise ValueError("WHEEL_SPIN_MS must be >= 0")
    if extra_rotations < 1:
        raise ValueError("WHEEL_EXTRA_ROTATIONS must be >= 1")
    if effect_cap_ms < 0:
        raise ValueError("WHEEL_EFFECT_CAP_MS must be >= 0")
    if image_size < 64:
        raise ValueError("WHEEL_IMAGE_SIZE must be >= 64")

    return WheelConfig(
        storage=storage,
        state_file=state_file,
        storage_key=_getenv("WHEEL_STORAGE_KEY", "choices") or "choices",
        storage_scope=_getenv("WHEEL_STORAGE_SCOPE", "default") or "default",
        spin_ms=spin_ms,
        extra_rotations=extra_rotations,
        effect_cap_ms=effect_cap_ms,
        image_size=image_size,
    )


def load_mysql_config() -> MySqlConfig:
    minsize = _int(_getenv("DB_POOL_MIN"), "DB_POOL_MIN", 1)
    maxsize = _int(_getenv("DB_POOL_MAX"), "DB_POOL_MAX", 5)

    if minsize < 1:
        raise ValueError("DB_POOL_MIN must be >= 1")
    if maxsize < minsize:
        raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")

    return MySqlConfig(
        host=_getenv("DB_HOST", "127.0.0.1") or "127.0.0.1",
        port=_int(_getenv("DB_PORT"), "DB_PORT", 3306),
        user=_getenv("DB_USER", "root") or "root",
        password=_getenv("DB_PASSWORD", "") or "",
        database=_getenv("DB_NAME", "prize_wheel") or "prize_wheel",
        minsize=minsize,
        maxsize=maxsize,
        connect_timeout=_int(_getenv("DB_CONNECT_TIMEOUT"), "DB_CONNECT_TIMEOUT", 10),
    )


def load_config() -> BotConfig:
    _maybe_load_env_file()

    token = (_getenv("DISCORD_TOKEN") or "").strip()
    if not token:
        raise RuntimeError("Missing DISCORD_TOKEN environment variable.")

    return BotConfig(
        token=token,
        dev_guild_id=_int_or_none(_getenv("DEV_GUILD_ID"), "DEV_GUILD_ID"),
        command_prefix=_getenv("COMMAND_PREFIX", "!") or "!",
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        wheel=load_wheel_config(),
        mysql=load_mysql_config(),
    )

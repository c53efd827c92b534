# domain/enums.py
from __future__ import annotations

from enum import Enum


class SpinPhase(str, Enum):
    IDLE = "idle"
    SPINNING = "spinning"
    LANDED = "landed"


class StorageBackend(str, Enum):
    FILE = "file"     # local JSON file next to the bot
    MYSQL = "mysql"   # kv_store table

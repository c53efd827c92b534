# domain/models.py
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Optional

from domain.enums import SpinPhase


MIN_WEIGHT = 1
MAX_WEIGHT = 100
DEFAULT_WEIGHT = 50
DEFAULT_ADD_QUANTITY = 1


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_weight(value: Any) -> int:
    """
    Weight is a relative draw weight in [1, 100].
    Missing / unparseable input falls back to 50.
    """
    w = _as_int(value, DEFAULT_WEIGHT)
    return max(MIN_WEIGHT, min(MAX_WEIGHT, w))


def clamp_add_quantity(value: Any) -> int:
    # new choices always start with at least one prize
    return max(1, _as_int(value, DEFAULT_ADD_QUANTITY))


def clamp_edit_quantity(value: Any) -> int:
    # editing may empty a choice
    return max(0, _as_int(value, 0))


@dataclass(frozen=True)
class ImageRef:
    """
    Opaque image payload carried by a choice.
    The core never decodes `data`; renderers do.
    """

    mime: str
    data: bytes

    def to_data_url(self) -> str:
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime};base64,{payload}"

    @classmethod
    def from_data_url(cls, url: str) -> "ImageRef":
        """
        Split `data:<mime>;base64,<payload>`.
        Raises ValueError if the URL is not a base64 data URL.
        """
        if not isinstance(url, str) or not url.startswith("data:") or "," not in url:
            raise ValueError("image must be a base64 data URL")
        header, payload = url[5:].split(",", 1)
        mime, _, encoding = header.partition(";")
        if encoding != "base64":
            raise ValueError("image data URL must be base64 encoded")
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("image payload is not valid base64") from e
        return cls(mime=mime or "application/octet-stream", data=data)


@dataclass(frozen=True)
class Choice:
    label: str
    quantity: int
    weight: int
    image: Optional[ImageRef] = None

    @property
    def eligible(self) -> bool:
        return self.quantity > 0


@dataclass
class SpinSession:
    token: int
    winning_index: int
    target_angle: float
    snapshot: tuple[Choice, ...] = field(repr=False)
    phase: SpinPhase = SpinPhase.SPINNING

    @property
    def winner(self) -> Choice:
        return self.snapshot[self.winning_index]


def default_choices() -> list[Choice]:
    return [
        Choice(label="yes", quantity=5, weight=50),
        Choice(label="no", quantity=5, weight=50),
    ]

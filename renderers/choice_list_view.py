# renderers/choice_list_view.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from domain.models import Choice
from services.draw_engine import selection_odds


def _pad(s: str, width: int) -> str:
    s = s or ""
    if len(s) > width:
        return s[: max(0, width - 1)] + "…" if width >= 2 else s[:width]
    return s + (" " * (width - len(s)))


def _pct(p: float) -> str:
    return f"{p * 100:.1f}%"


@dataclass(frozen=True)
class ChoiceListOptions:
    title: str = "Wheel"
    name_width: int = 18
    max_rows: int = 40
    show_odds: bool = True


class ChoiceListView:
    """
    Monospace table of the wheel's choices for Discord.

    Columns: index (as used by /wheel edit|delete), label, quantity left,
    weight, current odds. Empty choices stay listed (they stay on the wheel).
    """

    def render(
        self,
        choices: Sequence[Choice],
        *,
        opts: ChoiceListOptions | None = None,
        editing_index: Optional[int] = None,
    ) -> str:
        o = opts or ChoiceListOptions()
        data = list(choices)[: o.max_rows]
        odds = selection_odds(choices)

        idx_w = 3
        name_w = max(o.name_width, min(28, max((len(c.label) + (2 if c.image else 0) for c in data), default=o.name_width)))
        num_w = 5
        pct_w = 7

        lines: list[str] = []
        lines.append(f"=== {o.title} ===")
        header = f"{_pad('#', idx_w)} {_pad('Choice', name_w)} {_pad('Qty', num_w)} {_pad('W', num_w)}"
        if o.show_odds:
            header += f" {_pad('Odds', pct_w)}"
        lines.append(header)
        lines.append("-" * (idx_w + 1 + name_w + 1 + num_w + 1 + num_w + (pct_w + 1 if o.show_odds else 0)))

        if not data:
            lines.append("(no choices yet, add one with /wheel add)")

        for i, c in enumerate(data):
            name = c.label + (" 🖼" if c.image else "")
            mark = "*" if editing_index == i else ""
            line = (
                f"{_pad(str(i) + mark, idx_w)} "
                f"{_pad(name, name_w)} "
                f"{_pad(str(c.quantity), num_w)} "
                f"{_pad(str(c.weight), num_w)}"
            )
            if o.show_odds:
                line += f" {_pad(_pct(odds[i]), pct_w)}"
            lines.append(line)

        if len(choices) > len(data):
            lines.append(f"… {len(choices) - len(data)} more")

        return "```text\n" + "\n".join(lines).rstrip() + "\n```"

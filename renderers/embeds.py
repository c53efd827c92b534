# renderers/embeds.py
from __future__ import annotations

from dataclasses import dataclass

import discord

from domain.models import Choice


@dataclass(frozen=True)
class EmbedTheme:
    primary: int = 0xE74C3C   # wheel red
    success: int = 0x2ECC71
    warning: int = 0xF1C40F
    danger: int = 0xC0392B
    neutral: int = 0x2980B9   # wheel blue


class Embeds:
    """
    Centralized embed styling so every wheel message looks consistent.
    """

    def __init__(self, *, theme: EmbedTheme | None = None, footer: str = "Prize Wheel") -> None:
        self._theme = theme or EmbedTheme()
        self._footer = footer

    def base(
        self,
        *,
        title: str,
        description: str | None = None,
        color: int | None = None,
    ) -> discord.Embed:
        e = discord.Embed(
            title=title,
            description=description,
            color=color if color is not None else self._theme.primary,
        )
        e.set_footer(text=self._footer)
        return e

    def info(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.neutral)

    def success(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.success)

    def warning(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.warning)

    def error(self, *, title: str, description: str | None = None) -> discord.Embed:
        return self.base(title=title, description=description, color=self._theme.danger)

    # -------------------------
    # Wheel phases
    # -------------------------

    def idle(self, *, choices_left: int, total: int) -> discord.Embed:
        if total == 0:
            desc = "The wheel is empty. Add choices with `/wheel add`."
        elif choices_left == 0:
            desc = "Every prize has been won. Refill quantities with `/wheel quantity`."
        else:
            desc = f"**{choices_left}** of **{total}** choices still have prizes. Press **Spin**!"
        return self.base(title="🎡 Prize Wheel", description=desc)

    def spinning(self) -> discord.Embed:
        return self.base(title="🎡 Spinning…", description="Good luck!", color=self._theme.neutral)

    def landed(self, *, winner: Choice, remaining: int | None) -> discord.Embed:
        e = self.base(title="🎉 Winner!", description=f"# {winner.label}", color=self._theme.success)
        if remaining is not None:
            e.add_field(name="Left", value=str(remaining), inline=True)
        e.add_field(name="Next", value="Press **OK** to spin again.", inline=True)
        return e

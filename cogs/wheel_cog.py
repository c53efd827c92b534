# cogs/wheel_cog.py
from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from typing import Optional, Sequence

import discord
from discord import app_commands
from discord.ext import commands

from domain.enums import SpinPhase
from domain.models import Choice, ImageRef, SpinSession
from renderers.choice_list_view import ChoiceListView
from renderers.embeds import Embeds
from renderers.wheel_renderer import WheelRenderer
from services.choice_store import ChoiceStore
from services.spin_service import SpinStateMachine


log = logging.getLogger(__name__)

CELEBRATION = ("🎉", "🎊", "🥳")
MAX_IMAGE_BYTES = 2 * 1024 * 1024


class ReactionEffects:
    """
    Celebrates a win by reacting to the spin's message; stop() clears the reactions.
    The state machine decides when stop() is called. A celebrate() that arrives
    before the spin message exists is held until bind() supplies it.
    """

    def __init__(self) -> None:
        self.message: Optional[discord.Message] = None
        self._held = False
        self._reacted = False
        self._tasks: set[asyncio.Task] = set()

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def reset(self) -> None:
        """Forget the previous spin's message."""
        self.message = None
        self._held = False
        self._reacted = False

    def bind(self, message: Optional[discord.Message]) -> None:
        self.message = message
        if self._held and message is not None:
            self._held = False
            self._reacted = True
            self._spawn(self._react(message))

    def celebrate(self) -> None:
        if self.message is None:
            self._held = True
            return
        self._reacted = True
        self._spawn(self._react(self.message))

    def stop(self) -> None:
        self._held = False
        if self._reacted and self.message is not None:
            self._reacted = False
            self._spawn(self._clear(self.message))

    async def _react(self, message: discord.Message) -> None:
        try:
            for emoji in CELEBRATION:
                await message.add_reaction(emoji)
        except discord.HTTPException as e:
            log.debug("Could not add celebration reactions: %s", e)

    async def _clear(self, message: discord.Message) -> None:
        try:
            for emoji in CELEBRATION:
                await message.remove_reaction(emoji, message.guild.me if message.guild else message.author)
        except discord.HTTPException as e:
            log.debug("Could not clear celebration reactions: %s", e)


class WheelView(discord.ui.View):
    def __init__(self, cog: "WheelCog") -> None:
        super().__init__(timeout=None)
        self.cog = cog

    @discord.ui.button(label="Spin", style=discord.ButtonStyle.primary, emoji="🎡", custom_id="prize_wheel:spin")
    async def spin_button(self, interaction: discord.Interaction, _: discord.ui.Button) -> None:
        await self.cog.handle_spin(interaction, from_button=True)

    @discord.ui.button(label="OK", style=discord.ButtonStyle.secondary, custom_id="prize_wheel:ok")
    async def ok_button(self, interaction: discord.Interaction, _: discord.ui.Button) -> None:
        await self.cog.handle_ok(interaction)


class EditChoiceModal(discord.ui.Modal, title="Edit choice"):
    def __init__(self, cog: "WheelCog", *, index: int) -> None:
        super().__init__(timeout=300)
        self.cog = cog
        self.index = index

        current = cog.store[index]
        self._image = current.image

        self.label_input = discord.ui.TextInput(label="Label", default=current.label, max_length=80)
        self.quantity_input = discord.ui.TextInput(label="Quantity (0 or more)", default=str(current.quantity), max_length=6)
        self.weight_input = discord.ui.TextInput(label="Weight (1-100)", default=str(current.weight), max_length=3)
        self.add_item(self.label_input)
        self.add_item(self.quantity_input)
        self.add_item(self.weight_input)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        store = self.cog.store
        if store.editing_index != self.index:
            await interaction.response.send_message(
                embed=self.cog.embeds.warning(title="Edit cancelled", description="The list changed while you were editing."),
                ephemeral=True,
            )
            return

        ok = store.save_edit(
            self.label_input.value,
            self.quantity_input.value,
            self.weight_input.value,
            self._image,
        )
        if not ok:
            await interaction.response.send_message(
                embed=self.cog.embeds.error(title="Not saved", description="Label must be non-empty and not used by another choice."),
                ephemeral=True,
            )
            return

        await interaction.response.send_message(
            embed=self.cog.embeds.success(title="Choice updated", description=f"**{self.label_input.value.strip()}** saved."),
            ephemeral=True,
        )

    async def on_timeout(self) -> None:
        if self.cog.store.editing_index == self.index:
            self.cog.store.cancel_edit()

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        self.cog.store.cancel_edit()
        log.exception("Edit modal failed", exc_info=error)


class WheelCog(commands.Cog):
    wheel = app_commands.Group(name="wheel", description="Spin the prize wheel and manage its choices.")

    def __init__(
        self,
        bot: commands.Bot,
        *,
        store: ChoiceStore,
        machine: SpinStateMachine,
        embeds: Embeds,
        renderer: WheelRenderer,
        list_view: ChoiceListView,
    ) -> None:
        self.bot = bot
        self.store = store
        self.machine = machine
        self.embeds = embeds
        self.renderer = renderer
        self.list_view = list_view

        self.effects = ReactionEffects()
        self.machine.set_effects(self.effects)
        self.machine.add_listener(self._on_phase)

        self._message: Optional[discord.Message] = None
        self._posted: dict[int, asyncio.Event] = {}
        self._tasks: set[asyncio.Task] = set()

    async def cog_load(self) -> None:
        # Spin / OK keep working on messages posted before a restart
        self.bot.add_view(WheelView(self))

    async def cog_unload(self) -> None:
        self.machine.close()

    # -----------------------------
    # Helpers
    # -----------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _can_manage(self, interaction: discord.Interaction) -> bool:
        if not interaction.guild:
            return False
        if isinstance(interaction.user, discord.Member):
            return interaction.user.guild_permissions.manage_guild or interaction.user.guild_permissions.manage_messages
        return False

    def _idle_embed(self) -> discord.Embed:
        choices = self.store.choices
        return self.embeds.idle(choices_left=sum(1 for c in choices if c.quantity > 0), total=len(choices))

    async def _png(
        self,
        angle: float,
        highlight: int | None = None,
        *,
        choices: Sequence[Choice] | None = None,
    ) -> Optional[discord.File]:
        segments = self.store.choices if choices is None else choices
        try:
            data = await asyncio.to_thread(self.renderer.render_frame, segments, angle, highlight=highlight)
        except (OSError, ValueError):
            log.exception("Wheel frame rendering failed")
            return None
        return discord.File(BytesIO(data), filename="wheel.png")

    async def _attach(self, embed: discord.Embed, file: Optional[discord.File]) -> list[discord.File]:
        if file is None:
            return []
        embed.set_image(url=f"attachment://{file.filename}")
        return [file]

    # -----------------------------
    # Spin lifecycle
    # -----------------------------

    def _on_phase(self, phase: SpinPhase, session: Optional[SpinSession]) -> None:
        if phase == SpinPhase.LANDED and session is not None:
            self._spawn(self._show_landed(session))
        elif phase == SpinPhase.IDLE:
            self._posted.clear()

    async def handle_spin(self, interaction: discord.Interaction, *, from_button: bool = False) -> None:
        session = self.machine.request_spin()
        if session is None:
            if self.machine.phase != SpinPhase.IDLE:
                desc = "The wheel is busy. Wait for it to stop and press **OK**."
            elif len(self.store) == 0:
                desc = "The wheel has no choices yet."
            else:
                desc = "No prizes left. Refill a quantity first."
            await interaction.response.send_message(embed=self.embeds.warning(title="Can't spin", description=desc), ephemeral=True)
            return

        posted = asyncio.Event()
        self._posted[session.token] = posted
        self.effects.reset()

        message: Optional[discord.Message] = None
        try:
            await interaction.response.defer(ephemeral=False)
            embed = self.embeds.spinning()
            try:
                gif = await asyncio.to_thread(
                    self.renderer.render_spin,
                    session.snapshot,
                    0.0,
                    session.target_angle,
                    duration_s=self.machine.duration_s,
                )
                files = await self._attach(embed, discord.File(BytesIO(gif), filename="spin.gif"))
            except (OSError, ValueError):
                log.exception("Spin animation rendering failed")
                files = []

            if from_button:
                message = await interaction.edit_original_response(embed=embed, attachments=files, view=WheelView(self))
            else:
                message = await interaction.followup.send(embed=embed, files=files, view=WheelView(self), wait=True)
        finally:
            self._message = message
            self.effects.bind(message)
            posted.set()

    async def _show_landed(self, session: SpinSession) -> None:
        posted = self._posted.get(session.token)
        if posted is not None:
            await posted.wait()
        if self.machine.session is not session or self._message is None:
            return

        current = self.store.index_of(session.winner.label)
        remaining = self.store[current].quantity if current is not None else None
        embed = self.embeds.landed(winner=session.winner, remaining=remaining)
        # the reveal uses the layout that was spun
        png = await self._png(session.target_angle, highlight=session.winning_index, choices=session.snapshot)
        files = await self._attach(embed, png)
        try:
            await self._message.edit(embed=embed, attachments=files, view=WheelView(self))
        except discord.HTTPException:
            log.exception("Could not post spin result")

    async def handle_ok(self, interaction: discord.Interaction) -> None:
        if not self.machine.acknowledge():
            await interaction.response.send_message(
                embed=self.embeds.info(title="Nothing to confirm", description="There is no result waiting."),
                ephemeral=True,
            )
            return

        embed = self._idle_embed()
        files = await self._attach(embed, await self._png(self.machine.angle))
        await interaction.response.edit_message(embed=embed, attachments=files, view=WheelView(self))

    # -----------------------------
    # Commands
    # -----------------------------

    @wheel.command(name="show", description="Show the wheel with Spin / OK buttons.")
    async def show(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=False)
        embed = self._idle_embed()
        files = await self._attach(embed, await self._png(self.machine.angle, highlight=self.machine.result))
        await interaction.followup.send(embed=embed, files=files, view=WheelView(self))

    @wheel.command(name="spin", description="Spin the wheel.")
    async def spin(self, interaction: discord.Interaction) -> None:
        await self.handle_spin(interaction)

    @wheel.command(name="ok", description="Confirm the result and get the wheel ready again.")
    async def ok(self, interaction: discord.Interaction) -> None:
        if not self.machine.acknowledge():
            await interaction.response.send_message(
                embed=self.embeds.info(title="Nothing to confirm", description="There is no result waiting."),
                ephemeral=True,
            )
            return
        await interaction.response.send_message(embed=self._idle_embed())

    @wheel.command(name="list", description="List the wheel's choices with quantities and odds.")
    async def list_choices(self, interaction: discord.Interaction) -> None:
        text = self.list_view.render(self.store.choices, editing_index=self.store.editing_index)
        await interaction.response.send_message(content=text, ephemeral=True)

    @wheel.command(name="add", description="Add a choice to the wheel.")
    @app_commands.describe(
        label="Unique label shown on the wheel",
        quantity="How many times it can be won (default 1)",
        weight="Relative draw weight 1..100 (default 50)",
        image="Optional picture shown on the segment",
    )
    async def add(
        self,
        interaction: discord.Interaction,
        label: str,
        quantity: app_commands.Range[int, 1, 100000] = 1,
        weight: app_commands.Range[int, 1, 100] = 50,
        image: Optional[discord.Attachment] = None,
    ) -> None:
        if not await self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage the wheel here.", ephemeral=True)
            return
        await interaction.response.defer(ephemeral=True)

        ref: ImageRef | None = None
        if image is not None:
            ref = await self._read_image(image)
            if ref is None:
                await interaction.followup.send(
                    embed=self.embeds.error(title="Bad image", description="Attach a PNG/JPEG/GIF under 2 MB."),
                    ephemeral=True,
                )
                return

        if not self.store.add(label, quantity, weight, ref):
            await interaction.followup.send(
                embed=self.embeds.error(title="Not added", description="Label must be non-empty and unique."),
                ephemeral=True,
            )
            return

        await interaction.followup.send(
            embed=self.embeds.success(title="Choice added", description=f"**{label.strip()}** x{quantity} (weight {weight})"),
            ephemeral=True,
        )

    @wheel.command(name="edit", description="Edit a choice (opens a form).")
    @app_commands.describe(index="Choice number from /wheel list")
    async def edit(self, interaction: discord.Interaction, index: int) -> None:
        if not await self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage the wheel here.", ephemeral=True)
            return
        if self.store.begin_edit(index) is None:
            await interaction.response.send_message(
                embed=self.embeds.error(title="Not found", description=f"No choice #{index}."), ephemeral=True
            )
            return
        await interaction.response.send_modal(EditChoiceModal(self, index=index))

    @wheel.command(name="delete", description="Remove a choice from the wheel.")
    @app_commands.describe(index="Choice number from /wheel list")
    async def delete(self, interaction: discord.Interaction, index: int) -> None:
        if not await self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage the wheel here.", ephemeral=True)
            return
        label = self.store[index].label if 0 <= index < len(self.store) else None
        if label is None or not self.store.delete(index):
            await interaction.response.send_message(
                embed=self.embeds.error(title="Not found", description=f"No choice #{index}."), ephemeral=True
            )
            return
        await interaction.response.send_message(
            embed=self.embeds.success(title="Choice removed", description=f"**{label}** removed."), ephemeral=True
        )

    @wheel.command(name="quantity", description="Set how many times a choice can still be won.")
    async def quantity(self, interaction: discord.Interaction, index: int, value: app_commands.Range[int, 0, 100000]) -> None:
        if not await self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage the wheel here.", ephemeral=True)
            return
        if not self.store.set_quantity(index, value):
            await interaction.response.send_message(
                embed=self.embeds.error(title="Not found", description=f"No choice #{index}."), ephemeral=True
            )
            return
        c = self.store[index]
        await interaction.response.send_message(
            embed=self.embeds.success(title="Quantity set", description=f"**{c.label}**: {c.quantity} left."), ephemeral=True
        )

    @wheel.command(name="weight", description="Set a choice's relative draw weight (1..100).")
    async def weight(self, interaction: discord.Interaction, index: int, value: app_commands.Range[int, 1, 100]) -> None:
        if not await self._can_manage(interaction):
            await interaction.response.send_message("Missing permission to manage the wheel here.", ephemeral=True)
            return
        if not self.store.set_weight(index, value):
            await interaction.response.send_message(
                embed=self.embeds.error(title="Not found", description=f"No choice #{index}."), ephemeral=True
            )
            return
        c = self.store[index]
        await interaction.response.send_message(
            embed=self.embeds.success(title="Weight set", description=f"**{c.label}**: weight {c.weight}."), ephemeral=True
        )

    async def _read_image(self, attachment: discord.Attachment) -> Optional[ImageRef]:
        mime = attachment.content_type or ""
        if not mime.startswith("image/") or attachment.size > MAX_IMAGE_BYTES:
            return None
        try:
            data = await attachment.read()
        except discord.HTTPException:
            log.warning("Could not download attachment %s", attachment.filename)
            return None
        return ImageRef(mime=mime.split(";")[0], data=data)


async def setup(
    bot: commands.Bot,
    *,
    store: ChoiceStore,
    machine: SpinStateMachine,
    embeds: Embeds,
    renderer: WheelRenderer,
    list_view: ChoiceListView,
) -> None:
    await bot.add_cog(
        WheelCog(
            bot,
            store=store,
            machine=machine,
            embeds=embeds,
            renderer=renderer,
            list_view=list_view,
        )
    )

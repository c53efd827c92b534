"""Tests for the /wheel cog with mocked Discord interactions."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from cogs.wheel_cog import CELEBRATION, ReactionEffects, WheelCog, WheelView
from conftest import ScriptedRandom
from domain.enums import SpinPhase
from domain.models import Choice
from renderers.choice_list_view import ChoiceListView
from renderers.embeds import Embeds
from renderers.wheel_renderer import WheelRenderer
from services.choice_store import ChoiceStore
from services.spin_service import SpinStateMachine


def _interaction(*, manager: bool = True) -> MagicMock:
    interaction = MagicMock()
    interaction.guild = MagicMock()
    interaction.user = MagicMock(spec=discord.Member)
    interaction.user.guild_permissions.manage_guild = manager
    interaction.user.guild_permissions.manage_messages = manager
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.response.send_modal = AsyncMock()
    interaction.followup.send = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    return interaction


def _cog(choices, rng_values=(0,), *, duration_ms: int = 60_000) -> WheelCog:
    store = ChoiceStore(choices)
    machine = SpinStateMachine(store, rng=ScriptedRandom(list(rng_values)), duration_ms=duration_ms, effect_cap_ms=60_000)
    return WheelCog(
        MagicMock(),
        store=store,
        machine=machine,
        embeds=Embeds(),
        renderer=WheelRenderer(size=64, fps=4),
        list_view=ChoiceListView(),
    )


async def _drain(cog: WheelCog) -> None:
    while cog._tasks or cog.effects._tasks:
        await asyncio.gather(*cog._tasks, *cog.effects._tasks)


async def test_spin_on_empty_wheel_is_refused():
    cog = _cog([])
    interaction = _interaction()

    await cog.spin.callback(cog, interaction)

    interaction.response.send_message.assert_awaited_once()
    kwargs = interaction.response.send_message.call_args.kwargs
    assert kwargs["ephemeral"] is True
    assert "no choices" in kwargs["embed"].description
    assert cog.machine.phase == SpinPhase.IDLE


async def test_spin_posts_animation_then_result():
    cog = _cog([Choice("A", 1, 50), Choice("B", 2, 50)], rng_values=[70])
    interaction = _interaction()
    message = MagicMock()
    message.edit = AsyncMock()
    message.add_reaction = AsyncMock()
    interaction.followup.send = AsyncMock(return_value=message)

    await cog.spin.callback(cog, interaction)

    assert cog.machine.phase == SpinPhase.SPINNING
    interaction.response.defer.assert_awaited_once()
    sent = interaction.followup.send.call_args.kwargs
    assert sent["files"][0].filename == "spin.gif"
    assert sent["embed"].title.startswith("🎡 Spinning")

    assert cog.machine.settle()
    await _drain(cog)

    assert cog.store[1].quantity == 1
    message.edit.assert_awaited_once()
    edited = message.edit.call_args.kwargs
    assert "B" in edited["embed"].description
    assert edited["attachments"][0].filename == "wheel.png"
    assert [c.args[0] for c in message.add_reaction.await_args_list] == list(CELEBRATION)


async def test_second_spin_while_spinning_is_refused():
    cog = _cog([Choice("A", 3, 50)])
    first = _interaction()
    first.followup.send = AsyncMock(return_value=MagicMock())
    await cog.spin.callback(cog, first)

    second = _interaction()
    await cog.spin.callback(cog, second)

    kwargs = second.response.send_message.call_args.kwargs
    assert "busy" in kwargs["embed"].description
    assert cog.store[0].quantity == 3


async def test_celebration_waits_for_slow_post():
    cog = _cog([Choice("A", 1, 50), Choice("B", 2, 50)], rng_values=[70], duration_ms=10)
    interaction = _interaction()
    message = MagicMock()
    message.edit = AsyncMock()
    message.add_reaction = AsyncMock()

    async def slow_send(*args, **kwargs):
        await asyncio.sleep(0.1)
        return message

    interaction.followup.send = AsyncMock(side_effect=slow_send)

    await cog.spin.callback(cog, interaction)
    assert cog.machine.phase == SpinPhase.LANDED
    await _drain(cog)

    message.edit.assert_awaited_once()
    assert [c.args[0] for c in message.add_reaction.await_args_list] == list(CELEBRATION)


async def test_failed_spin_post_does_not_leave_result_waiting():
    cog = _cog([Choice("A", 1, 50)])
    interaction = _interaction()
    interaction.response.defer = AsyncMock(side_effect=RuntimeError("gateway hiccup"))

    with pytest.raises(RuntimeError):
        await cog.spin.callback(cog, interaction)

    assert cog.machine.settle()
    await asyncio.wait_for(_drain(cog), timeout=1)
    assert cog.effects.message is None
    assert cog.store[0].quantity == 0


async def test_landed_result_follows_winner_after_list_shift():
    cog = _cog([Choice("A", 1, 10), Choice("B", 5, 45), Choice("C", 5, 45)], rng_values=[30])
    interaction = _interaction()
    message = MagicMock()
    message.edit = AsyncMock()
    message.add_reaction = AsyncMock()
    interaction.followup.send = AsyncMock(return_value=message)

    await cog.spin.callback(cog, interaction)
    cog.store.delete(0)
    assert cog.machine.settle()
    await _drain(cog)

    assert cog.store.choices == (Choice("B", 4, 45), Choice("C", 5, 45))
    embed = message.edit.call_args.kwargs["embed"]
    assert "B" in embed.description
    assert any(f.name == "Left" and f.value == "4" for f in embed.fields)


async def test_buttons_survive_restart():
    cog = _cog([Choice("A", 1, 50)])

    await cog.cog_load()

    cog.bot.add_view.assert_called_once()
    view = cog.bot.add_view.call_args.args[0]
    assert isinstance(view, WheelView)
    assert view.is_persistent()
    assert {item.custom_id for item in view.children} == {"prize_wheel:spin", "prize_wheel:ok"}


async def test_ok_button_only_after_landing():
    cog = _cog([Choice("A", 3, 50)])
    interaction = _interaction()

    await cog.handle_ok(interaction)
    assert interaction.response.send_message.call_args.kwargs["ephemeral"] is True

    cog.machine.request_spin()
    cog.machine.settle()
    await _drain(cog)

    interaction = _interaction()
    await cog.handle_ok(interaction)
    interaction.response.edit_message.assert_awaited_once()
    assert cog.machine.phase == SpinPhase.IDLE


async def test_add_requires_permission():
    cog = _cog([])
    interaction = _interaction(manager=False)

    await cog.add.callback(cog, interaction, "Prize", 1, 50, None)

    assert len(cog.store) == 0
    assert interaction.response.send_message.call_args.kwargs["ephemeral"] is True


async def test_add_and_duplicate():
    cog = _cog([Choice("A", 1, 50)])

    ok = _interaction()
    await cog.add.callback(cog, ok, "Prize", 3, 20, None)
    assert cog.store[1] == Choice("Prize", 3, 20)
    assert ok.followup.send.call_args.kwargs["embed"].title == "Choice added"

    dup = _interaction()
    await cog.add.callback(cog, dup, "A", 3, 20, None)
    assert len(cog.store) == 2
    assert dup.followup.send.call_args.kwargs["embed"].title == "Not added"


async def test_add_rejects_non_image_attachment():
    cog = _cog([])
    attachment = MagicMock(spec=discord.Attachment)
    attachment.content_type = "text/plain"
    attachment.size = 10
    interaction = _interaction()

    await cog.add.callback(cog, interaction, "Prize", 1, 50, attachment)

    assert len(cog.store) == 0
    assert interaction.followup.send.call_args.kwargs["embed"].title == "Bad image"


async def test_delete_and_quantity_commands():
    cog = _cog([Choice("A", 1, 50), Choice("B", 0, 50)])

    interaction = _interaction()
    await cog.quantity.callback(cog, interaction, 1, 4)
    assert cog.store[1].quantity == 4

    interaction = _interaction()
    await cog.delete.callback(cog, interaction, 0)
    assert [c.label for c in cog.store.choices] == ["B"]

    interaction = _interaction()
    await cog.delete.callback(cog, interaction, 7)
    assert interaction.response.send_message.call_args.kwargs["embed"].title == "Not found"


async def test_edit_opens_modal_and_tracks_edit_state():
    cog = _cog([Choice("A", 1, 50)])
    interaction = _interaction()

    await cog.edit.callback(cog, interaction, 0)

    interaction.response.send_modal.assert_awaited_once()
    modal = interaction.response.send_modal.call_args.args[0]
    assert cog.store.editing_index == 0
    assert modal.label_input.default == "A"

    await modal.on_timeout()
    assert cog.store.editing_index is None


async def test_reaction_effects_without_message_do_nothing():
    effects = ReactionEffects()
    effects.celebrate()
    effects.stop()
    assert not effects._tasks


@pytest.mark.parametrize("manager", [True, False])
async def test_list_is_open_to_everyone(manager):
    cog = _cog([Choice("A", 1, 50)])
    interaction = _interaction(manager=manager)
    await cog.list_choices.callback(cog, interaction)
    assert "A" in interaction.response.send_message.call_args.kwargs["content"]

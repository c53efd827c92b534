# main.py
from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

import discord
from discord.ext import commands

from config import BotConfig, load_config
from db.pool import DbPool
from domain.enums import StorageBackend

from repositories.file_kv_repo import FileKeyValueRepo
from repositories.kv_repo import KeyValueRepo

from services.choice_store import ChoiceStore
from services.persistence import KeyValueStore, PersistenceBridge
from services.spin_service import SpinStateMachine

from renderers.choice_list_view import ChoiceListView
from renderers.embeds import Embeds
from renderers.wheel_renderer import WheelRenderer

from cogs.wheel_cog import setup as setup_wheel_cog


class PrizeWheelBot(commands.Bot):
    def __init__(self, cfg: BotConfig) -> None:
        self.cfg = cfg

        intents = discord.Intents.default()
        super().__init__(
            command_prefix=self.cfg.command_prefix,
            intents=intents,
            allowed_mentions=discord.AllowedMentions.none(),
        )

        self.db: Optional[DbPool] = None
        self.persistence: Optional[PersistenceBridge] = None
        self.machine: Optional[SpinStateMachine] = None

    async def _open_kv(self) -> KeyValueStore:
        wheel = self.cfg.wheel
        if wheel.storage == StorageBackend.MYSQL:
            self.db = DbPool()
            await self.db.start(self.cfg.mysql)
            repo = KeyValueRepo(self.db, scope=wheel.storage_scope)
            await repo.ensure_table()
            logging.info("Wheel storage: MySQL %s/%s", self.cfg.mysql.host, self.cfg.mysql.database)
            return repo

        logging.info("Wheel storage: file %s", wheel.state_file)
        return FileKeyValueRepo(wheel.state_file)

    async def setup_hook(self) -> None:
        logging.info("Starting setup_hook...")
        wheel = self.cfg.wheel

        # --- Storage + choices ---
        kv = await self._open_kv()
        self.persistence = PersistenceBridge(kv, key=wheel.storage_key)
        store = ChoiceStore(await self.persistence.load())
        self.persistence.attach(store)
        logging.info("Loaded %d choices", len(store))

        # --- Spin engine ---
        self.machine = SpinStateMachine(
            store,
            duration_ms=wheel.spin_ms,
            extra_rotations=wheel.extra_rotations,
            effect_cap_ms=wheel.effect_cap_ms,
        )

        # --- Renderers ---
        embeds = Embeds()
        renderer = WheelRenderer(size=wheel.image_size)
        list_view = ChoiceListView()

        # --- Cogs ---
        await setup_wheel_cog(
            self,
            store=store,
            machine=self.machine,
            embeds=embeds,
            renderer=renderer,
            list_view=list_view,
        )

        # --- Slash sync ---
        if self.cfg.dev_guild_id:
            guild = discord.Object(id=self.cfg.dev_guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logging.info("Slash commands synced to DEV guild %s", self.cfg.dev_guild_id)
        else:
            await self.tree.sync()
            logging.info("Slash commands synced globally")

        logging.info("setup_hook complete.")

    async def close(self) -> None:
        try:
            if self.machine:
                self.machine.close()
            if self.persistence:
                await self.persistence.flush()
            await super().close()
        finally:
            if self.db:
                await self.db.close()
                self.db = None


async def _run_bot() -> None:
    cfg = load_config()

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bot = PrizeWheelBot(cfg)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _request_stop(*_args) -> None:
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            pass

    async with bot:
        bot_task = asyncio.create_task(bot.start(cfg.token))
        stop_task = asyncio.create_task(stop_event.wait())
        await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        stop_task.cancel()
        await bot.close()
        if bot_task.done() and bot_task.exception():
            raise bot_task.exception()


def main() -> None:
    asyncio.run(_run_bot())


if __name__ == "__main__":
    main()

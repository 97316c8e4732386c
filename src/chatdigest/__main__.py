# __main__.py
import asyncio
import logging
import os

import discord
import uvicorn
from discord.ext import commands
from dotenv import load_dotenv

from chatdigest.cogs.message_listener import MessageListener
from chatdigest.digest_db import DigestStore
from chatdigest.http_api import create_app
from chatdigest.pipeline import Pipeline, supervise
from chatdigest.settings import Settings
from chatdigest.summarization import Summarizer
from chatdigest.text_generators import get_text_generator

load_dotenv()

logger = logging.getLogger("chatdigest")
logging.basicConfig(level=logging.INFO)

intents = discord.Intents.default()
intents.message_content = True


async def main() -> None:
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise SystemExit("No DISCORD_TOKEN provided")

    settings = Settings.from_env()
    store = DigestStore(settings.db_path)
    store.init_db()

    llm = get_text_generator(settings.summarizer_api, settings.summarizer_model)
    pipeline = Pipeline(settings, store, Summarizer(llm))
    # Missing segment directory is a configuration problem: let OSError end startup.
    tasks = await pipeline.start()

    server = uvicorn.Server(
        uvicorn.Config(create_app(store), host=settings.api_host, port=settings.api_port, log_level="info")
    )
    tasks.append(asyncio.create_task(supervise(f"http api on port {settings.api_port}", server.serve())))

    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)
    async with bot:
        await bot.add_cog(MessageListener(bot, pipeline.messages, settings.channel_ids))
        # discord.py reconnects with exponential backoff on its own.
        tasks.append(asyncio.create_task(supervise("discord client", bot.start(token))))
        await asyncio.gather(*tasks)


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()

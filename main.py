import os
import asyncio
import logging

from aiogram import Bot, Dispatcher, F
from aiogram.types import Message
from aiogram.filters import Command
from aiogram.utils.formatting import Bold, Text

from aiohttp import web
from dotenv import load_dotenv

from terabox_client import DEFAULT_API_BASE, extract_short_url, fetch_terabox
from utils import format_error_message, format_file_message

# ---------- Config / Env ----------
load_dotenv()

BOT_TOKEN = os.getenv("BOT_TOKEN")
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "@admin")
TERABOX_API_BASE = os.getenv("TERABOX_API_BASE", DEFAULT_API_BASE)

HEALTH_PORT = int(os.getenv("PORT", "8080"))

log = logging.getLogger("terabox-bot")

dp = Dispatcher()

WELCOME_TEXT = Text(
    "👋 ", Bold("Welcome to Terabox Link Bot!"), "\n\n",
    "Send me a Terabox share link or its short code and I will reply with "
    "the file name, size and a direct download link.\n\n"
    "ℹ️ Only the first file of a share is resolved."
)


# ---------- Health Server ----------
async def health_handler(_):
    return web.Response(text="ok", status=200)


def create_health_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/health", health_handler)
    return app


async def start_health_server():
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", HEALTH_PORT)
    await site.start()
    log.info(f"Health server listening on :{HEALTH_PORT}")


# ---------- Bot Handlers ----------
@dp.message(Command("start"))
async def cmd_start(message: Message):
    await message.answer(**WELCOME_TEXT.as_kwargs())


@dp.message(F.text)
async def handle_link(message: Message):
    text = (message.text or "").strip()
    if not text or not extract_short_url(text):
        await message.reply("❌ Please send a valid Terabox share link or short code.")
        return

    status = await message.reply("🔍 Fetching file info...")

    try:
        info = await fetch_terabox(text, api_base=TERABOX_API_BASE)
        await status.edit_text(**format_file_message(info).as_kwargs())
    except Exception as e:
        logging.exception("Error handling link")
        msg = format_error_message(e, ADMIN_USERNAME).as_kwargs()
        try:
            await status.edit_text(**msg)
        except Exception:
            await message.reply(**msg)


# ---------- Entrypoint ----------
async def main():
    if not BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is required")

    bot = Bot(BOT_TOKEN)
    await asyncio.gather(
        start_health_server(),
        dp.start_polling(bot)
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())

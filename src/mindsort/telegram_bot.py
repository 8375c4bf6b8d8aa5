"""
Telegram bot for Mindsort.

Mobile capture and review via Telegram. A text message is classified into
proposed chunks; nothing is stored until the user sends /save.
"""

import asyncio
import io
import logging
import os
from typing import Any

from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from mindsort.config import LOG_FORMAT, ensure_dirs, load_config
from mindsort.errors import MindsortError
from mindsort.export import export_filename
from mindsort.models import IMPORTANCE_TIERS
from mindsort.ranking import pinned_chunk
from mindsort.service import ChunkService
from mindsort.surfacing import format_chunk_line, format_chunks, format_priority_view, format_proposals

# Configure logging
logging.basicConfig(format=LOG_FORMAT, level=logging.INFO)
logger = logging.getLogger(__name__)

PENDING_KEY = "pending_proposals"


def get_bot_config(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get bot configuration."""
    config = config or load_config()
    bot_config = config.get("telegram", {})

    # Token from config or environment
    token = bot_config.get("token") or os.environ.get("MINDSORT_TELEGRAM_TOKEN")
    if not token:
        raise ValueError(
            "Telegram bot token not found. "
            "Set MINDSORT_TELEGRAM_TOKEN env var or add to config.toml"
        )

    # Authorized user IDs (comma-separated in env, list in config)
    authorized = bot_config.get("authorized_users", [])
    if not authorized:
        env_users = os.environ.get("MINDSORT_TELEGRAM_USERS", "")
        if env_users:
            authorized = [int(uid.strip()) for uid in env_users.split(",") if uid.strip()]

    return {
        "token": token,
        "authorized_users": set(authorized),
    }


def is_authorized(user_id: int, authorized_users: set[int]) -> bool:
    """Check if user is authorized."""
    # If no users configured, deny all (secure default)
    if not authorized_users:
        return False
    return user_id in authorized_users


def owner_for(user_id: int) -> str:
    """Chunk owner id for a Telegram user."""
    return f"telegram:{user_id}"


async def _check_user(update: Update, context: ContextTypes.DEFAULT_TYPE) -> str | None:
    """Return the owner id for an authorized sender, replying otherwise."""
    if not update.effective_user or not update.message:
        return None

    user_id = update.effective_user.id
    authorized_users = context.bot_data.get("authorized_users", set())

    if not is_authorized(user_id, authorized_users):
        logger.warning("Unauthorized message attempt from user %s", user_id)
        await update.message.reply_text(f"Unauthorized. Your ID: {user_id}")
        return None

    return owner_for(user_id)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    if await _check_user(update, context):
        await update.message.reply_text(
            "Mindsort bot ready. Send any text and I'll split it into notes.\n\n"
            "Use /help to see all commands."
        )


async def id_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /id command - show user's Telegram ID."""
    if not update.effective_user:
        return

    user_id = update.effective_user.id
    await update.message.reply_text(f"Your Telegram user ID: {user_id}")


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    if not update.effective_user:
        return

    await update.message.reply_text(
        "Mindsort Commands:\n\n"
        "/save - Save the proposed chunks\n"
        "/discard - Drop the proposed chunks\n"
        "/list - Notes grouped by category\n"
        "/pinned - Show the pinned note\n"
        "/ranked [category] - Notes by priority\n"
        "/pin <id> - Pin a note\n"
        "/unpin <id> - Unpin a note\n"
        "/star <id> - Star a note\n"
        "/rank <id> <1|2|3|deprioritized|none> - Set priority\n"
        "/delete <id> - Delete a note\n"
        "/export - Download notes as CSV\n"
        "/id - Show your user ID\n"
        "/help - Show this message\n\n"
        "Send any text to sort it."
    )


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle incoming messages - classify into proposals."""
    owner = await _check_user(update, context)
    if not owner:
        return

    text = update.message.text
    if not text:
        await update.message.reply_text("Only text messages are supported.")
        return

    service: ChunkService = context.bot_data["service"]
    try:
        # Classification is a network call; keep the event loop free
        proposals = await asyncio.to_thread(service.classify, text)
    except MindsortError as e:
        logger.error("Classification failed for %s: %s", owner, e.code)
        await update.message.reply_text(f"Error: {e.message}")
        return

    context.chat_data[PENDING_KEY] = proposals
    reply = format_proposals(proposals, service.registry)
    if proposals:
        reply += "\n\n/save to keep them, /discard to drop them."
    await update.message.reply_text(reply)


async def save_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /save command - confirm pending proposals."""
    owner = await _check_user(update, context)
    if not owner:
        return

    proposals = context.chat_data.get(PENDING_KEY)
    if not proposals:
        await update.message.reply_text("Nothing to save. Send some text first.")
        return

    service: ChunkService = context.bot_data["service"]
    try:
        chunks = service.confirm(owner, proposals)
    except MindsortError as e:
        await update.message.reply_text(f"Error: {e.message}")
        return

    context.chat_data.pop(PENDING_KEY, None)
    await update.message.reply_text(f"Saved {len(chunks)} notes.")


async def discard_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /discard command."""
    if await _check_user(update, context):
        context.chat_data.pop(PENDING_KEY, None)
        await update.message.reply_text("Discarded.")


async def list_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /list command."""
    owner = await _check_user(update, context)
    if not owner:
        return

    service: ChunkService = context.bot_data["service"]
    try:
        chunks = service.list_chunks(owner)
        await update.message.reply_text(format_chunks(chunks, service.registry, color=False))
    except MindsortError as e:
        await update.message.reply_text(f"Error: {e.message}")


async def pinned_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pinned command."""
    owner = await _check_user(update, context)
    if not owner:
        return

    service: ChunkService = context.bot_data["service"]
    try:
        chunks = service.list_chunks(owner)
    except MindsortError as e:
        await update.message.reply_text(f"Error: {e.message}")
        return

    pinned = pinned_chunk(chunks)
    if pinned:
        await update.message.reply_text(f"📌 {pinned.content}")
    else:
        await update.message.reply_text("No pinned note.")


async def ranked_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /ranked [category] command."""
    owner = await _check_user(update, context)
    if not owner:
        return

    service: ChunkService = context.bot_data["service"]
    category = context.args[0] if context.args else None
    if category and not service.registry.is_valid_key(category):
        await update.message.reply_text(f"Unknown category: {category}")
        return

    try:
        partitions = service.priority_view(owner, category)
        await update.message.reply_text(
            format_priority_view(partitions, category, service.registry, color=False)
        )
    except MindsortError as e:
        await update.message.reply_text(f"Error: {e.message}")


async def _mutate(update: Update, context: ContextTypes.DEFAULT_TYPE, action: str) -> None:
    """Shared body of /pin, /unpin, /star, /unstar, /rank and /delete."""
    owner = await _check_user(update, context)
    if not owner:
        return

    args = context.args or []
    if not args:
        await update.message.reply_text(f"Usage: /{action} <id>")
        return

    service: ChunkService = context.bot_data["service"]
    try:
        chunk_id = service.resolve_id(owner, args[0])

        if action == "delete":
            service.delete(owner, chunk_id)
            await update.message.reply_text("Deleted.")
            return

        if action == "rank":
            tier = args[1].lower() if len(args) > 1 else "none"
            tier = None if tier == "none" else tier
            if tier is not None and tier not in IMPORTANCE_TIERS:
                await update.message.reply_text("Usage: /rank <id> <1|2|3|deprioritized|none>")
                return
            chunk = service.rank(owner, chunk_id, tier)
        elif action in ("pin", "unpin"):
            chunk = service.pin(owner, chunk_id, action == "pin")
        else:
            chunk = service.star(owner, chunk_id, action == "star")

        await update.message.reply_text(format_chunk_line(chunk, color=False))
    except MindsortError as e:
        await update.message.reply_text(f"Error: {e.message}")


async def pin_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _mutate(update, context, "pin")


async def unpin_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _mutate(update, context, "unpin")


async def star_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _mutate(update, context, "star")


async def unstar_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _mutate(update, context, "unstar")


async def rank_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _mutate(update, context, "rank")


async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _mutate(update, context, "delete")


async def export_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /export command - send notes as a CSV document."""
    owner = await _check_user(update, context)
    if not owner:
        return

    service: ChunkService = context.bot_data["service"]
    try:
        csv_text = service.export(owner)
    except MindsortError as e:
        await update.message.reply_text(f"Error: {e.message}")
        return

    document = io.BytesIO(csv_text.encode("utf-8"))
    await update.message.reply_document(document=document, filename=export_filename())


def build_application(config: dict[str, Any] | None = None) -> Application:
    """Create the bot application with all handlers registered."""
    config = config or load_config()
    bot_config = get_bot_config(config)

    app = Application.builder().token(bot_config["token"]).build()

    # Store authorized users and the service in bot_data
    app.bot_data["authorized_users"] = bot_config["authorized_users"]
    app.bot_data["service"] = ChunkService(config=config)

    # Add handlers
    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("id", id_command))
    app.add_handler(CommandHandler("save", save_command))
    app.add_handler(CommandHandler("discard", discard_command))
    app.add_handler(CommandHandler("list", list_command))
    app.add_handler(CommandHandler("pinned", pinned_command))
    app.add_handler(CommandHandler("ranked", ranked_command))
    app.add_handler(CommandHandler("pin", pin_command))
    app.add_handler(CommandHandler("unpin", unpin_command))
    app.add_handler(CommandHandler("star", star_command))
    app.add_handler(CommandHandler("unstar", unstar_command))
    app.add_handler(CommandHandler("rank", rank_command))
    app.add_handler(CommandHandler("delete", delete_command))
    app.add_handler(CommandHandler("export", export_command))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))

    # Log startup info
    if bot_config["authorized_users"]:
        logger.info("Bot starting. Authorized users: %s", bot_config["authorized_users"])
    else:
        logger.warning("No authorized users configured! Bot will deny all messages.")

    return app


def run_bot() -> None:
    """Run the Telegram bot."""
    ensure_dirs()
    app = build_application()
    try:
        app.run_polling(allowed_updates=Update.ALL_TYPES)
    finally:
        app.bot_data["service"].close()


def main() -> int:
    """Entry point for CLI."""
    try:
        run_bot()
        return 0
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nBot stopped.")
        return 0


if __name__ == "__main__":
    import sys
    sys.exit(main())

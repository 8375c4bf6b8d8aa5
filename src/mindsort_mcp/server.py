"""
MCP Server for Mindsort.

Exposes mindsort functionality as tools for AI assistants. All tools act
on behalf of the local owner from config.toml.
"""

import json

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

# Import mindsort modules
from mindsort.config import ensure_dirs, get_local_owner
from mindsort.errors import InvalidInput, MindsortError
from mindsort.models import IMPORTANCE_TIERS, ChunkProposal
from mindsort.service import ChunkService
from mindsort.surfacing import format_chunk_line, format_chunks, format_priority_view

# Create MCP server
server = Server("mindsort")

_service: ChunkService | None = None


def get_service() -> ChunkService:
    """Lazily build the shared service."""
    global _service
    if _service is None:
        ensure_dirs()
        _service = ChunkService()
    return _service


def set_service(service: ChunkService | None) -> None:
    """Replace the shared service (used by tests and embedding apps)."""
    global _service
    _service = service


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _chunk_id_schema(description: str = "Chunk ID (a unique prefix is enough)") -> dict:
    return {"type": "string", "description": description}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="mindsort_categorize",
            description="Split free text into categorized note chunks. Nothing is saved; pass the result to mindsort_save after review.",
            inputSchema={
                "type": "object",
                "properties": {
                    "text": {"type": "string", "description": "The text to sort"},
                    "emotional_intensity": {
                        "type": "string",
                        "enum": ["low", "medium", "high"],
                        "description": "Optional intensity applied to every chunk",
                    },
                },
                "required": ["text"],
            },
        ),
        Tool(
            name="mindsort_save",
            description="Save reviewed chunks. Every chunk needs content and a valid category; one bad chunk rejects the whole batch.",
            inputSchema={
                "type": "object",
                "properties": {
                    "chunks": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "content": {"type": "string"},
                                "category": {"type": "string"},
                                "emotional_intensity": {"type": "string"},
                            },
                            "required": ["content", "category"],
                        },
                    },
                },
                "required": ["chunks"],
            },
        ),
        Tool(
            name="mindsort_list",
            description="List saved notes grouped by category, pinned note first.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="mindsort_ranked",
            description="Show notes by priority tier, optionally for one category.",
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {"type": "string", "description": "Category key (optional)"},
                },
            },
        ),
        Tool(
            name="mindsort_pin",
            description="Pin or unpin a note. Pinning unpins any other note.",
            inputSchema={
                "type": "object",
                "properties": {
                    "chunk_id": _chunk_id_schema(),
                    "pinned": {"type": "boolean", "default": True},
                },
                "required": ["chunk_id"],
            },
        ),
        Tool(
            name="mindsort_star",
            description="Star or unstar a note.",
            inputSchema={
                "type": "object",
                "properties": {
                    "chunk_id": _chunk_id_schema(),
                    "starred": {"type": "boolean", "default": True},
                },
                "required": ["chunk_id"],
            },
        ),
        Tool(
            name="mindsort_rank",
            description="Set a note's priority tier, or clear it with null.",
            inputSchema={
                "type": "object",
                "properties": {
                    "chunk_id": _chunk_id_schema(),
                    "importance": {
                        "type": ["string", "null"],
                        "enum": [*IMPORTANCE_TIERS, None],
                    },
                },
                "required": ["chunk_id", "importance"],
            },
        ),
        Tool(
            name="mindsort_delete",
            description="Delete a note.",
            inputSchema={
                "type": "object",
                "properties": {"chunk_id": _chunk_id_schema()},
                "required": ["chunk_id"],
            },
        ),
        Tool(
            name="mindsort_export",
            description="Export all notes as CSV text.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    handlers = {
        "mindsort_categorize": tool_categorize,
        "mindsort_save": tool_save,
        "mindsort_list": tool_list,
        "mindsort_ranked": tool_ranked,
        "mindsort_pin": tool_pin,
        "mindsort_star": tool_star,
        "mindsort_rank": tool_rank,
        "mindsort_delete": tool_delete,
        "mindsort_export": tool_export,
    }
    handler = handlers.get(name)
    if handler is None:
        return _text(f"Unknown tool: {name}")

    try:
        return await handler(arguments or {})
    except MindsortError as e:
        return _text(f"Error ({e.code}): {e.message}")
    except ValueError as e:
        return _text(f"Error: {e}")


async def tool_categorize(args: dict) -> list[TextContent]:
    """Propose chunks for text."""
    text = args.get("text", "")
    proposals = get_service().classify(text, args.get("emotional_intensity"))
    payload = [p.model_dump(exclude_none=True) for p in proposals]
    return _text(json.dumps({"chunks": payload}, indent=2))


async def tool_save(args: dict) -> list[TextContent]:
    """Save reviewed chunks."""
    items = args.get("chunks")
    if not isinstance(items, list) or not items:
        raise InvalidInput("Chunks array is required")

    proposals = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidInput("Each chunk must be an object")
        proposals.append(ChunkProposal(
            content=str(item.get("content", "")),
            category=str(item.get("category", "")),
            emotional_intensity=item.get("emotional_intensity"),
        ))

    chunks = get_service().confirm(get_local_owner(), proposals)
    lines = [f"Saved {len(chunks)} chunks:"]
    lines.extend(f"  {format_chunk_line(chunk, color=False)}" for chunk in chunks)
    return _text("\n".join(lines))


async def tool_list(args: dict) -> list[TextContent]:
    """List notes."""
    service = get_service()
    chunks = service.list_chunks(get_local_owner())
    return _text(format_chunks(chunks, service.registry, color=False))


async def tool_ranked(args: dict) -> list[TextContent]:
    """Priority view."""
    service = get_service()
    category = args.get("category") or None
    if category and not service.registry.is_valid_key(category):
        raise InvalidInput(f"Unknown category: {category}")

    partitions = service.priority_view(get_local_owner(), category)
    return _text(format_priority_view(partitions, category, service.registry, color=False))


def _flag(args: dict, key: str) -> bool:
    value = args.get(key, True)
    if not isinstance(value, bool):
        raise InvalidInput(f"{key.capitalize()} status must be a boolean")
    return value


def _resolve(args: dict) -> tuple[ChunkService, str, str]:
    service = get_service()
    owner = get_local_owner()
    return service, owner, service.resolve_id(owner, str(args.get("chunk_id", "")))


async def tool_pin(args: dict) -> list[TextContent]:
    """Pin or unpin."""
    service, owner, chunk_id = _resolve(args)
    chunk = service.pin(owner, chunk_id, _flag(args, "pinned"))
    return _text(format_chunk_line(chunk, color=False))


async def tool_star(args: dict) -> list[TextContent]:
    """Star or unstar."""
    service, owner, chunk_id = _resolve(args)
    chunk = service.star(owner, chunk_id, _flag(args, "starred"))
    return _text(format_chunk_line(chunk, color=False))


async def tool_rank(args: dict) -> list[TextContent]:
    """Set the importance tier."""
    service, owner, chunk_id = _resolve(args)
    chunk = service.rank(owner, chunk_id, args.get("importance"))
    return _text(format_chunk_line(chunk, color=False))


async def tool_delete(args: dict) -> list[TextContent]:
    """Delete a note."""
    service, owner, chunk_id = _resolve(args)
    service.delete(owner, chunk_id)
    return _text(f"Deleted: {chunk_id}")


async def tool_export(args: dict) -> list[TextContent]:
    """Export as CSV."""
    return _text(get_service().export(get_local_owner()))


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run() -> None:
    """Console script entry point."""
    import asyncio
    asyncio.run(main())


if __name__ == "__main__":
    run()

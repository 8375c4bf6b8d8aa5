"""
CLI for Mindsort.

Minimal CLI using stdlib for fast startup.
Subcommands are imported lazily to avoid startup overhead.

Usage:
    mindsort "your text here"          # Propose chunks (nothing saved)
    mindsort --save "your text here"   # Propose and save
    mindsort list                      # Show saved notes
    mindsort --help                    # Show help
"""

import sys

TIER_ALIASES = {"none": None, "clear": None, "-": None, "d": "deprioritized"}
FLAG_DONE = {"pin": "Pinned", "unpin": "Unpinned", "star": "Starred", "unstar": "Unstarred"}


def print_help() -> None:
    """Print help message."""
    print("""mindsort - AI-sorted personal notes

Usage:
    mindsort "your text here"       Split text into categorized chunks (preview)

Options for text:
    --save, -s                      Save the proposed chunks
    --intensity, -i <level>         Emotional intensity: low, medium, high

Commands:
    mindsort list                   Show notes grouped by category
    mindsort ranked [category]      Show notes by priority tier
    mindsort edit <id> <category> <text>
                                    Replace a note's text and category
    mindsort rank <id> <tier>       Set tier: 1, 2, 3, deprioritized, none
    mindsort pin <id>               Pin a note (unpins any other)
    mindsort unpin <id>             Unpin a note
    mindsort star <id>              Star a note
    mindsort unstar <id>            Unstar a note
    mindsort delete <id>            Delete a note
    mindsort export [path]          Export notes as CSV (stdout if no path)
    mindsort categories             List categories
    mindsort stats                  Show statistics
    mindsort health                 Check configuration and services
    mindsort serve                  Run the HTTP API

Options:
    mindsort --help, -h             Show this help
    mindsort --version, -v          Show version

Ids can be shortened to any unique prefix (as shown by `list`).

Examples:
    mindsort "I feel grateful for my family today. Idea: a plant-watering app."
    mindsort --save -i high "Worried about the deadline"
    mindsort ranked ideas
    mindsort rank 3fa9c2d1 1""")


def print_version() -> None:
    """Print version."""
    from mindsort import __version__
    print(f"mindsort {__version__}")


def _service():
    from mindsort.service import ChunkService
    return ChunkService()


def _owner() -> str:
    from mindsort.config import get_local_owner
    return get_local_owner()


def _run(func) -> int:
    """Run a command body, turning domain errors into exit code 1."""
    from mindsort.errors import MindsortError

    try:
        return func()
    except MindsortError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        # Configuration problems (missing API key, unknown provider)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_capture(args: list[str]) -> int:
    """Classify text, optionally saving the proposals."""
    from mindsort.surfacing import format_chunk_line, format_proposals

    save = False
    intensity = None
    words = []

    # Parse arguments
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("--save", "-s"):
            save = True
            i += 1
        elif arg in ("--intensity", "-i") and i + 1 < len(args):
            intensity = args[i + 1]
            i += 2
        else:
            words.append(arg)
            i += 1

    text = " ".join(words)
    if not text.strip() and not sys.stdin.isatty():
        text = sys.stdin.read()

    if not text.strip():
        print("Error: Empty text", file=sys.stderr)
        return 1

    def run() -> int:
        service = _service()
        try:
            proposals = service.classify(text, intensity)
            print(format_proposals(proposals, service.registry))

            if save and proposals:
                chunks = service.confirm(_owner(), proposals)
                print(f"\nSaved {len(chunks)} chunks.")
                for chunk in chunks:
                    print(f"  {format_chunk_line(chunk)}")
            elif proposals:
                print("\nNot saved. Re-run with --save to keep them.")
            return 0
        finally:
            service.close()

    return _run(run)


def cmd_list() -> int:
    """Show notes grouped by category."""
    from mindsort.surfacing import format_chunks

    def run() -> int:
        service = _service()
        print(format_chunks(service.list_chunks(_owner()), service.registry))
        return 0

    return _run(run)


def cmd_ranked(args: list[str]) -> int:
    """Show notes by priority tier."""
    from mindsort.surfacing import format_priority_view

    category = args[0] if args else None

    def run() -> int:
        service = _service()
        if category and not service.registry.is_valid_key(category):
            print(f"Unknown category: {category}", file=sys.stderr)
            return 1
        partitions = service.priority_view(_owner(), category)
        print(format_priority_view(partitions, category, service.registry))
        return 0

    return _run(run)


def cmd_edit(args: list[str]) -> int:
    """Replace a note's text and category."""
    from mindsort.surfacing import format_chunk_line

    if len(args) < 3:
        print("Usage: mindsort edit <id> <category> <text>", file=sys.stderr)
        return 1

    def run() -> int:
        service = _service()
        owner = _owner()
        chunk_id = service.resolve_id(owner, args[0])
        chunk = service.edit(owner, chunk_id, " ".join(args[2:]), args[1])
        print(f"Updated: {format_chunk_line(chunk)}")
        return 0

    return _run(run)


def cmd_rank(args: list[str]) -> int:
    """Set a note's importance tier."""
    from mindsort.surfacing import format_chunk_line

    if len(args) < 2:
        print("Usage: mindsort rank <id> <1|2|3|deprioritized|none>", file=sys.stderr)
        return 1

    tier = args[1].lower()
    tier = TIER_ALIASES.get(tier, tier)

    def run() -> int:
        service = _service()
        owner = _owner()
        chunk_id = service.resolve_id(owner, args[0])
        chunk = service.rank(owner, chunk_id, tier)
        print(f"Ranked: {format_chunk_line(chunk)}")
        return 0

    return _run(run)


def cmd_flag(args: list[str], flag: str, value: bool) -> int:
    """Pin/unpin/star/unstar a note."""
    from mindsort.surfacing import format_chunk_line

    verb = ("" if value else "un") + flag
    if not args:
        print(f"Usage: mindsort {verb} <id>", file=sys.stderr)
        return 1

    def run() -> int:
        service = _service()
        owner = _owner()
        chunk_id = service.resolve_id(owner, args[0])
        if flag == "pin":
            chunk = service.pin(owner, chunk_id, value)
        else:
            chunk = service.star(owner, chunk_id, value)
        print(f"{FLAG_DONE[verb]}: {format_chunk_line(chunk)}")
        return 0

    return _run(run)


def cmd_delete(args: list[str]) -> int:
    """Delete a note."""
    if not args:
        print("Usage: mindsort delete <id>", file=sys.stderr)
        return 1

    def run() -> int:
        service = _service()
        owner = _owner()
        chunk_id = service.resolve_id(owner, args[0])
        service.delete(owner, chunk_id)
        print(f"Deleted: {chunk_id}")
        return 0

    return _run(run)


def cmd_export(args: list[str]) -> int:
    """Export notes as CSV."""
    from pathlib import Path

    def run() -> int:
        csv_text = _service().export(_owner())
        if not args:
            sys.stdout.write(csv_text)
            return 0
        path = Path(args[0])
        path.write_text(csv_text, encoding="utf-8")
        print(f"Exported to {path}")
        return 0

    return _run(run)


def cmd_categories() -> int:
    """List categories."""
    from mindsort.categories import CategoryRegistry
    from mindsort.config import load_config

    registry = CategoryRegistry.from_config(load_config())
    for category in registry:
        marker = " (rankable)" if category.rankable else ""
        print(f"{category.key:16} {category.label}{marker}")
        print(f"{'':16} {category.description}")
    return 0


def cmd_stats() -> int:
    """Show database statistics."""
    from mindsort.surfacing import format_stats

    def run() -> int:
        service = _service()
        print(format_stats(service.db.get_stats(_owner()), service.registry))
        return 0

    return _run(run)


def cmd_health() -> int:
    """Check configuration and services."""
    from mindsort.health import format_health_report, run_health_check

    checks = run_health_check()
    print(format_health_report(checks))
    return 1 if any(status == "✗" for status, _ in checks.values()) else 0


def cmd_serve() -> int:
    """Run the HTTP API."""
    from mindsort.api import run_server
    from mindsort.config import ensure_dirs

    ensure_dirs()
    run_server()
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point.

    Optimized for minimal startup time.
    """
    args = sys.argv[1:] if argv is None else argv

    # No args - check for piped input
    if not args:
        if not sys.stdin.isatty():
            return cmd_capture([])
        print_help()
        return 0

    # Handle flags and commands
    first_arg = args[0]

    if first_arg in ("--help", "-h", "help"):
        print_help()
        return 0

    if first_arg in ("--version", "-v", "version"):
        print_version()
        return 0

    # Subcommands (lazy import to keep startup fast)
    if first_arg == "list":
        return cmd_list()

    if first_arg == "ranked":
        return cmd_ranked(args[1:])

    if first_arg == "edit":
        return cmd_edit(args[1:])

    if first_arg == "rank":
        return cmd_rank(args[1:])

    if first_arg in ("pin", "unpin"):
        return cmd_flag(args[1:], "pin", first_arg == "pin")

    if first_arg in ("star", "unstar"):
        return cmd_flag(args[1:], "star", first_arg == "star")

    if first_arg == "delete":
        return cmd_delete(args[1:])

    if first_arg == "export":
        return cmd_export(args[1:])

    if first_arg == "categories":
        return cmd_categories()

    if first_arg == "stats":
        return cmd_stats()

    if first_arg == "health":
        return cmd_health()

    if first_arg == "serve":
        return cmd_serve()

    # Everything else is text to classify
    return cmd_capture(args)


if __name__ == "__main__":
    sys.exit(main())

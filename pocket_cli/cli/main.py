"""Command line interface for the Pocket client."""

import argparse
import logging
import sys
from typing import Optional

from ..api.models import ItemState, RetrieveFilter
from ..config import default_index_dir, get_config_dir
from ..core.processor import PocketApp
from ..errors import FormatError, PocketError
from ..export.spotlight import FILENAME_POLICIES
from ..state.credentials import CredentialStore
from ..ui.formatting import fields_help, validate_template

logger = logging.getLogger(__name__)

STATE_CHOICES = {state.value: state for state in ItemState}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pocket",
        description="A Pocket <getpocket.com> client.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  pocket list --tag python                    # Items tagged 'python'
  pocket list --format '{{item_id}} {{url}}'      # Custom output
  pocket archive 123456                       # Move an item to the archive
  pocket add https://example.com --tags a,b   # Save a URL
  pocket spotlight                            # Mac OS X: index bookmarks in Spotlight

Fields for --format:
  {fields_help()}

Environment Variables:
  POCKET_CONFIG_DIR    - Where consumer_key and auth.json live (default: ~/.config/pocket)
  POCKET_CONSUMER_KEY  - Consumer key, overrides the consumer_key file
        """,
    )

    parser.add_argument(
        "--config-dir", help="Configuration directory (overrides POCKET_CONFIG_DIR)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command", metavar="command")

    p_list = sub.add_parser("list", help="Shows your pocket list")
    p_list.add_argument("--format", "-f", help="A str.format template to show items")
    p_list.add_argument("--domain", "-d", help="Filter items by its domain")
    p_list.add_argument("--tag", "-t", help="Filter items by a tag")
    p_list.add_argument("--search", "-s", help="Search query")
    p_list.add_argument(
        "--state",
        choices=sorted(STATE_CHOICES),
        help="Filter items by read state (default: unread)",
    )

    p_archive = sub.add_parser("archive", help="Moves an item to archive")
    p_archive.add_argument("item_id", type=int, metavar="item-id")

    p_add = sub.add_parser("add", help="Adds a new URL to pocket")
    p_add.add_argument("url")
    p_add.add_argument("--title", help="A manually specified title for the article")
    p_add.add_argument("--tags", help="A comma-separated list of tags")

    p_spotlight = sub.add_parser(
        "spotlight",
        help="On Mac OS X, adds the pocket bookmarks to spotlight index",
        description=(
            "Export all items as .webloc files and index them with Spotlight. "
            "CAUTION: everything under the index directory is deleted."
        ),
    )
    p_spotlight.add_argument(
        "--indexdir",
        help="Where the spotlight metadata should be saved; must not contain "
        "hidden ('.' prefixed) directories",
    )
    p_spotlight.add_argument(
        "--names",
        choices=FILENAME_POLICIES,
        default="title",
        help="Name files by sanitized title or by SHA-256 of the URL (default: title)",
    )
    p_spotlight.add_argument(
        "--with-title",
        action="store_true",
        help="Store the title in each bookmark file as well as the URL",
    )

    sub.add_parser("logout", help="Forget the saved authorization")

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "list" and args.format:
        try:
            validate_template(args.format)
        except FormatError as e:
            parser.error(str(e))

    if args.command == "spotlight" and sys.platform != "darwin":
        print("This command is only meaningful on Mac OS X", file=sys.stderr)
        return 1

    try:
        if args.command == "logout":
            store = CredentialStore(get_config_dir(args.config_dir))
            if store.clear_access_credential():
                print("👋 Saved authorization removed", file=sys.stderr)
            else:
                print("📝 No saved authorization found", file=sys.stderr)
            return 0

        app = PocketApp(config_dir=args.config_dir)

        if args.command == "list":
            _command_list(app, args)
        elif args.command == "archive":
            result = app.archive(args.item_id)
            print(f"📦 Archived {args.item_id}: {result.get('action_results')}")
        elif args.command == "add":
            app.add(args.url, title=args.title, tags=args.tags)
            print(f"✅ Added {args.url}", file=sys.stderr)
        elif args.command == "spotlight":
            _command_spotlight(app, args)

    except KeyboardInterrupt:
        print("\n⏹️  Interrupted by user", file=sys.stderr)
        return 130
    except PocketError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    return 0


def _command_list(app: PocketApp, args) -> None:
    options = RetrieveFilter(
        domain=args.domain,
        tag=args.tag,
        search=args.search,
        state=STATE_CHOICES[args.state] if args.state else None,
    )
    app.list_items(options, template=args.format)


def _command_spotlight(app: PocketApp, args) -> None:
    index_dir = args.indexdir or default_index_dir()
    written = app.spotlight(
        index_dir, filename_policy=args.names, include_title=args.with_title
    )
    print(f"🔍 Indexed {len(set(written))} bookmarks in {index_dir}", file=sys.stderr)


if __name__ == "__main__":
    sys.exit(main())

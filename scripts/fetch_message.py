# scripts/fetch_message.py
"""List, download and inspect Gmail messages from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys

from easy_gmail import GmailClient, GmailError, load_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fetch Gmail messages via the Gmail API.")
    parser.add_argument(
        "--message-id",
        help="Explicit message ID to download. If omitted, downloads the newest message.",
    )
    parser.add_argument(
        "--output",
        "-o",
        default="message.json",
        help="Where to store the downloaded message (use '-' for stdout; default: %(default)s).",
    )
    parser.add_argument(
        "--labels",
        nargs="*",
        default=None,
        help="Optional list of label IDs to filter when picking the newest message.",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List recent message IDs instead of downloading (honors --max-results/--labels).",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=5,
        help="How many IDs to list when using --list (default: %(default)s).",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print sender, subject and body of the message instead of saving its JSON.",
    )
    parser.add_argument(
        "--attachments",
        metavar="DIR",
        help="Also download every attachment of the message into DIR.",
    )
    parser.add_argument("--token", help="OAuth token file (default: token.json).")
    parser.add_argument("--client-secret", help="OAuth client secret file (default: client_secret.json).")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser


async def run(args: argparse.Namespace) -> int:
    config = load_config(token_path=args.token, client_secret_path=args.client_secret)
    gmail = await GmailClient().init(config)

    if args.list:
        ids = await gmail.list_message_ids(max_results=args.max_results, label_ids=args.labels)
        if not ids:
            print("No messages returned.")
            return 0
        print("Recent message IDs:")
        for mid in ids:
            print(f"  {mid}")
        return 0

    message_id = args.message_id
    if not message_id:
        ids = await gmail.list_message_ids(max_results=1, label_ids=args.labels)
        if not ids:
            raise SystemExit("No messages found to download. Try adjusting labels or mailbox contents.")
        message_id = ids[0]
        print(f"No --message-id provided; using newest message {message_id}.")

    message = await gmail.get_message(message_id)

    if args.summary:
        print(message)
        print(message.body or "(no plain text body)")
        if message.attachments:
            print("Attachments: " + ", ".join(message.attachments))
    elif args.output == "-":
        json.dump(message.raw, sys.stdout)
        sys.stdout.flush()
    else:
        Path(args.output).write_text(json.dumps(message.raw, indent=2))
        print(f"Saved message to {args.output}")

    if args.attachments:
        written = await gmail.download_all_attachments(message, args.attachments)
        print(f"Downloaded {len(written)} attachment(s) to {args.attachments}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except GmailError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

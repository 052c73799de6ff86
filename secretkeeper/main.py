"""
Main entry point for the SecretKeeper console front end.

LEGAL NOTICE:
This tool is for personal use only. It must operate only on the device where
it is installed and only with the explicit consent of the device owner.
"""

import sys
import argparse
import getpass
import logging
from typing import List, Optional

from secretkeeper import config
from secretkeeper.errors import (
    DecryptionError,
    EntryNotFoundError,
    InvalidCredentialError,
    VaultError,
)
from secretkeeper.models import CredentialRecord
from secretkeeper.session import VaultSession
from secretkeeper.storage import VaultStorage
from secretkeeper.utils import get_default_vault_path

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secretkeeper",
        description=config.APP_DESCRIPTION,
    )
    parser.add_argument("--vault", help="path to the vault database (default: ~/.secretkeeper/vault.db)")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"{config.APP_NAME} {config.APP_VERSION}")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init", help="create a new vault and set its master password")

    add = commands.add_parser("add", help="add an entry")
    edit = commands.add_parser("edit", help="edit an entry")
    edit.add_argument("id", type=int)
    for sub in (add, edit):
        sub.add_argument("--title")
        sub.add_argument("--username")
        sub.add_argument("--url")
        sub.add_argument("--notes")
        sub.add_argument("--category")
    edit.add_argument("--password", action="store_true", help="prompt for a new password")

    listing = commands.add_parser("list", help="list entries without passwords")
    listing.add_argument("--search", default="", help="filter by title, username, URL or category")

    show = commands.add_parser("show", help="show an entry including its password")
    show.add_argument("id", type=int)

    delete = commands.add_parser("delete", help="delete an entry")
    delete.add_argument("id", type=int)

    categories = commands.add_parser("categories", help="list or add categories")
    categories.add_argument("--add", metavar="NAME")

    return parser


class ConsoleApp:
    """Runs one command against a vault database."""

    def __init__(self, vault_path: str):
        self.vault_path = vault_path
        self.storage = VaultStorage(vault_path).open()
        self.session = VaultSession(self.storage)

    def _prompt_new_secret(self, label: str) -> Optional[str]:
        secret = getpass.getpass(f"{label}: ")
        confirm = getpass.getpass(f"Confirm {label.lower()}: ")
        if secret != confirm:
            print(f"{label}s do not match.", file=sys.stderr)
            return None
        return secret

    def _unlock(self) -> bool:
        if not self.session.is_initialized:
            print("No master password set. Run 'secretkeeper init' first.", file=sys.stderr)
            return False
        for attempt in range(1, config.MAX_UNLOCK_ATTEMPTS + 1):
            try:
                self.session.unlock(getpass.getpass("Master password: "))
                return True
            except InvalidCredentialError:
                logger.debug("Unlock attempt %d of %d failed", attempt, config.MAX_UNLOCK_ATTEMPTS)
                print("Incorrect master password.", file=sys.stderr)
        return False

    def cmd_init(self, args: argparse.Namespace) -> int:
        if self.session.is_initialized:
            print(f"Vault {self.vault_path} already has a master password.", file=sys.stderr)
            return EXIT_FAILURE
        secret = self._prompt_new_secret("Master password")
        if secret is None:
            return EXIT_FAILURE
        if not secret:
            print("Master password cannot be empty.", file=sys.stderr)
            return EXIT_FAILURE
        self.session.set_master_password(secret)
        print(f"Created vault {self.vault_path}")
        return EXIT_OK

    def cmd_add(self, args: argparse.Namespace) -> int:
        title = args.title or input("Title: ")
        password = self._prompt_new_secret("Password")
        if password is None:
            return EXIT_FAILURE
        entry = CredentialRecord(
            title=title,
            password=password,
            username=args.username or "",
            url=args.url or "",
            notes=args.notes or "",
            category=args.category or "",
        )
        try:
            stored = self.session.add_entry(entry)
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return EXIT_FAILURE
        print(f"Added entry {stored.id}")
        return EXIT_OK

    def cmd_edit(self, args: argparse.Namespace) -> int:
        entry = self.session.get_entry(args.id)
        for name in ("title", "username", "url", "notes", "category"):
            value = getattr(args, name)
            if value is not None:
                setattr(entry, name, value)
        if args.password:
            password = self._prompt_new_secret("Password")
            if password is None:
                return EXIT_FAILURE
            entry.password = password
        try:
            self.session.update_entry(entry)
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return EXIT_FAILURE
        print(f"Updated entry {entry.id}")
        return EXIT_OK

    def cmd_list(self, args: argparse.Namespace) -> int:
        entries = self.session.list_entries(args.search)
        for entry in entries:
            print(f"{entry.id:>4}  {entry.title:<30} {entry.username:<25} "
                  f"{config.TABLE_PASSWORD_HIDDEN_TEXT}  {entry.category}")
        if not entries:
            print("No entries.")
        return EXIT_OK

    def cmd_show(self, args: argparse.Namespace) -> int:
        entry = self.session.get_entry(args.id)
        print(f"Title:    {entry.title}")
        print(f"Username: {entry.username}")
        print(f"Password: {entry.password}")
        print(f"URL:      {entry.url}")
        print(f"Category: {entry.category}")
        print(f"Notes:    {entry.notes}")
        print(f"Updated:  {entry.updated_at}")
        return EXIT_OK

    def cmd_delete(self, args: argparse.Namespace) -> int:
        if not self.session.delete_entry(args.id):
            print(f"No entry with id {args.id}.", file=sys.stderr)
            return EXIT_FAILURE
        print(f"Deleted entry {args.id}")
        return EXIT_OK

    def cmd_categories(self, args: argparse.Namespace) -> int:
        if args.add:
            category = self.session.add_category(args.add)
            print(f"Added category {category.name}")
            return EXIT_OK
        for category in self.session.categories():
            print(category.name)
        return EXIT_OK

    def run(self, args: argparse.Namespace) -> int:
        handler = getattr(self, f"cmd_{args.command}")
        if args.command != "init" and not self._unlock():
            return EXIT_FAILURE
        try:
            return handler(args)
        except EntryNotFoundError as e:
            print(str(e), file=sys.stderr)
            return EXIT_FAILURE
        except DecryptionError as e:
            logger.error("Stored password could not be decrypted: %s", e)
            print("The stored password is corrupted or was encrypted with another key.", file=sys.stderr)
            return EXIT_FAILURE

    def cleanup(self):
        """Clean up resources."""
        self.session.end_session()
        self.storage.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=config.LOG_FORMAT,
    )

    try:
        app = ConsoleApp(args.vault or get_default_vault_path())
    except VaultError as e:
        print(f"Cannot open vault: {e}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        return app.run(args)
    except VaultError as e:
        logger.error("Vault error: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        app.cleanup()


if __name__ == "__main__":
    sys.exit(main())

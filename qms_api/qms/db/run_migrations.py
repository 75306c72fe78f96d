"""
Programmatic Alembic migration runner for the QMS schema.

No alembic.ini is needed: the script location is this package's migrations directory
and the database URL comes from qms.db.config.

Usage examples:
    python -m qms.db.run_migrations upgrade head
    python -m qms.db.run_migrations downgrade -1
    python -m qms.db.run_migrations current
"""

import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from qms.db.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Alembic Config pointing at the bundled migrations and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # env.py uses the async URL for online runs; this one serves offline (--sql) mode.
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


COMMANDS: Dict[str, Callable[[Config, List[str]], None]] = {
    "upgrade": lambda cfg, rest: command.upgrade(cfg, *(rest or ["head"])),
    "downgrade": lambda cfg, rest: command.downgrade(cfg, *(rest or ["-1"])),
    "current": lambda cfg, rest: command.current(cfg, *rest),
    "history": lambda cfg, rest: command.history(cfg, *rest),
    "heads": lambda cfg, rest: command.heads(cfg, *rest),
    "stamp": lambda cfg, rest: command.stamp(cfg, *(rest or ["head"])),
}


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run one Alembic command, e.g. `main(["upgrade", "head"])`."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(f"No Alembic command given. Supported: {', '.join(COMMANDS)}")
        sys.exit(1)

    name, rest = args[0], args[1:]
    handler = COMMANDS.get(name)
    if handler is None:
        print(f"Unsupported Alembic command: {name}")
        sys.exit(2)
    handler(build_config(), rest)


if __name__ == "__main__":
    main()

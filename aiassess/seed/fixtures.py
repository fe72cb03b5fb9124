import json
from pathlib import Path
from typing import Any

FIXTURES_DIR = Path(__file__).parent / "data"

# Seeding order: questions reference subcategories, which reference domains.
FIXTURE_NAMES = ("frameworks", "domains", "subcategories", "questions")


def load_fixture(name: str) -> list[dict[str, Any]]:
    """Read one of the bundled JSON fixtures as a list of row dicts."""
    if name not in FIXTURE_NAMES:
        raise ValueError(f"Unknown fixture: {name}")
    with (FIXTURES_DIR / f"{name}.json").open(encoding="utf-8") as fh:
        return json.load(fh)

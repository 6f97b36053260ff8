"""Identity seeding for the in-process directory.

Loads actors (id, role, department, display name) and any existing
submitter standing from ``identities.json`` and registers them with an
:class:`~jansunwai.services.identity.InMemoryIdentityDirectory`.  Runs
once at application startup; a deployment backed by the real identity
service does not need it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from jansunwai.models.identity import Actor, SubmitterStanding

if TYPE_CHECKING:
    from jansunwai.services.identity import InMemoryIdentityDirectory

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

_DATA_DIR: Path = Path(__file__).resolve().parent
_IDENTITIES_PATH: Path = _DATA_DIR / "identities.json"


@dataclass(slots=True)
class IdentitySeed:
    actors: list[Actor] = field(default_factory=list)
    standings: list[SubmitterStanding] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_identities(path: Path | None = None) -> IdentitySeed:
    """Parse the seed file.

    Parameters
    ----------
    path:
        JSON file with ``actors`` and optional ``standings`` arrays.
        Defaults to the bundled ``identities.json``.

    Raises
    ------
    FileNotFoundError
        The file does not exist.
    pydantic.ValidationError
        An entry has an unknown role or a missing id.
    """
    target = path or _IDENTITIES_PATH
    with target.open(encoding="utf-8") as fh:
        raw = json.load(fh)

    seed = IdentitySeed(
        actors=[Actor.model_validate(entry) for entry in raw.get("actors", [])],
        standings=[SubmitterStanding.model_validate(entry) for entry in raw.get("standings", [])],
    )
    logger.info(
        "seed.identities_loaded",
        path=str(target),
        actors=len(seed.actors),
        standings=len(seed.standings),
    )
    return seed


async def seed_identities(
    directory: InMemoryIdentityDirectory,
    path: Path | None = None,
) -> IdentitySeed:
    """Register every seeded actor and standing with *directory*."""
    seed = load_identities(path)
    for actor in seed.actors:
        directory.register(actor)
    for standing in seed.standings:
        await directory.save_standing(standing)
    return seed

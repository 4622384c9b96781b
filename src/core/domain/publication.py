"""Publication states understood by the REST API.

Lives in the domain layer so the query builder, the client and the CLI share a
single source of truth.
"""

from __future__ import annotations

from enum import Enum


class PublicationState(str, Enum):
    """Which version of draft-enabled content the API should return."""

    LIVE = "live"
    PREVIEW = "preview"

    @classmethod
    def from_bool(cls, preview: bool) -> "PublicationState":
        """Derive a state from a boolean `--preview` flag."""

        return cls.PREVIEW if preview else cls.LIVE

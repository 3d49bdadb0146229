"""Process-local user preferences: favourite events and a remembered login email.

Stored as a small JSON document::

    {"version": 1, "favorites": [3, 7], "rememberedEmail": "ana@example.com"}

Older installs wrote a bare JSON list of favourite event ids. ``load`` detects
that shape on first run, migrates it to the versioned document and writes the
migrated file back, so the conversion happens exactly once.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

CURRENT_VERSION = 1


@dataclass(frozen=True)
class Preferences:
    favorites: frozenset = field(default_factory=frozenset)
    remembered_email: Optional[str] = None
    version: int = CURRENT_VERSION

    def is_favorite(self, event_id: int) -> bool:
        return event_id in self.favorites

    def toggle_favorite(self, event_id: int) -> "Preferences":
        if event_id in self.favorites:
            return replace(self, favorites=self.favorites - {event_id})
        return replace(self, favorites=self.favorites | {event_id})

    def remember_email(self, email: Optional[str]) -> "Preferences":
        return replace(self, remembered_email=email or None)

    def to_document(self) -> dict:
        return {
            "version": self.version,
            "favorites": sorted(self.favorites),
            "rememberedEmail": self.remembered_email,
        }

    @classmethod
    def from_document(cls, document: dict) -> "Preferences":
        return cls(
            favorites=frozenset(int(event_id) for event_id in document.get("favorites", [])),
            remembered_email=document.get("rememberedEmail"),
            version=int(document.get("version", CURRENT_VERSION)),
        )


class PreferenceStore:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Preferences:
        if not self.path.exists():
            return Preferences()

        with self.path.open("r", encoding="utf-8") as f:
            document = json.load(f)

        if isinstance(document, list):
            preferences = Preferences(favorites=frozenset(int(event_id) for event_id in document))
            self.save(preferences)
            logger.info(f"Migrated {len(document)} legacy favourite(s) in {self.path}")
            return preferences

        if not isinstance(document, dict):
            raise ValueError(f"Unrecognised preferences file: {self.path}")
        return Preferences.from_document(document)

    def save(self, preferences: Preferences) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(preferences.to_document(), f, indent=2)
        tmp_path.replace(self.path)

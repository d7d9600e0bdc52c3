"""Detached, in-memory views of persisted rows.

The controller never holds ORM instances; the store converts rows into these
plain dataclasses so the mirror survives session commits and request ends.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Dict, List, Optional

from ..services.modules import AnalysisModule


class Step(IntEnum):
    INPUT = 1
    CORRECTION = 2
    INSIGHT = 3


def _iso(dt):
    return dt.isoformat() if dt else None


@dataclass
class RecordSnapshot:
    id: int
    title: str
    raw_transcript: str
    metadata: Dict[str, str]
    created_at: Optional[datetime] = None

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'raw_transcript': self.raw_transcript,
            'metadata': dict(self.metadata),
            'created_at': _iso(self.created_at),
        }


@dataclass
class TranscriptSnapshot:
    id: int
    version_number: int
    corrected_transcript: str
    correction_log: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self):
        return {
            'id': self.id,
            'version_number': self.version_number,
            'corrected_transcript': self.corrected_transcript,
            'correction_log': self.correction_log,
            'created_at': _iso(self.created_at),
        }


@dataclass
class ChatTurn:
    role: str  # user/model
    text: str
    created_at: Optional[datetime] = None
    id: Optional[int] = None

    def to_dict(self):
        return {'id': self.id, 'role': self.role, 'text': self.text, 'created_at': _iso(self.created_at)}


@dataclass
class ModuleThread:
    id: int
    module: AnalysisModule
    version_number: int
    created_at: Optional[datetime] = None
    messages: List[ChatTurn] = field(default_factory=list)

    def to_dict(self):
        return {
            'id': self.id,
            'module_id': self.module.value,
            'version_number': self.version_number,
            'created_at': _iso(self.created_at),
            'messages': [m.to_dict() for m in self.messages],
        }


class ModuleVersionMap:
    """Module -> ascending list of its analysis threads for one record."""

    def __init__(self):
        self._versions: Dict[AnalysisModule, List[ModuleThread]] = {}

    def clear(self):
        self._versions = {}

    def load(self, threads):
        """Replace the whole map; threads may arrive in any order."""
        self.clear()
        for t in sorted(threads, key=lambda t: (t.module.value, t.version_number)):
            self._versions.setdefault(t.module, []).append(t)

    def versions(self, module: AnalysisModule) -> List[ModuleThread]:
        return list(self._versions.get(module, []))

    def count(self, module: AnalysisModule) -> int:
        return len(self._versions.get(module, []))

    def next_number(self, module: AnalysisModule) -> int:
        return self.count(module) + 1

    def latest(self, module: AnalysisModule) -> Optional[ModuleThread]:
        versions = self._versions.get(module)
        return versions[-1] if versions else None

    def find(self, module: AnalysisModule, version_number: int) -> Optional[ModuleThread]:
        for t in self._versions.get(module, []):
            if t.version_number == version_number:
                return t
        return None

    def append(self, thread: ModuleThread):
        self._versions.setdefault(thread.module, []).append(thread)

    def modules(self):
        return [m for m in AnalysisModule if m in self._versions]

    def to_dict(self):
        return {m.value: [t.to_dict() for t in self._versions.get(m, [])] for m in AnalysisModule}

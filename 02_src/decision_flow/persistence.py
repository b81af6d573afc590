"""Durable storage for graph snapshots."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from .errors import PersistenceReadFailed
from .graph_model import GraphSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    success: bool
    message: str = ""


class PersistenceGateway(ABC):
    @abstractmethod
    def load(self) -> GraphSnapshot:
        raise NotImplementedError

    @abstractmethod
    def save(self, snapshot: GraphSnapshot) -> SaveResult:
        raise NotImplementedError


class JsonFilePersistence(PersistenceGateway):
    """Keeps the whole graph in one pretty-printed JSON file.

    Writes go to a temporary sibling file which then replaces the target, so a
    reader never observes a half-written document.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> GraphSnapshot:
        if not self.path.exists():
            logger.info("No graph file at %s, starting with an empty tree", self.path)
            return GraphSnapshot()
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return GraphSnapshot.from_json(payload)
        except (OSError, ValueError) as error:
            raise PersistenceReadFailed(f"Failed to read graph file {self.path}: {error}") from error

    def save(self, snapshot: GraphSnapshot) -> SaveResult:
        text = json.dumps(snapshot.to_json(), ensure_ascii=False, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, self.path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as error:
            return SaveResult(success=False, message=f"Failed to update file: {error}")
        return SaveResult(success=True)

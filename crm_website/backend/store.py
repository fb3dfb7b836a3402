import contextlib
import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, Iterator, List

from .domain import ALL_COLLECTIONS, StoreCorruptError, StoreWriteError

logger = logging.getLogger(__name__)

Document = Dict[str, List[Dict[str, Any]]]


def empty_document() -> Document:
    return {name: [] for name in ALL_COLLECTIONS}


class DocumentStore:
    """
    Persists every collection as one JSON document on disk.

    Each mutation is a full read-modify-write of the file. ``transaction()``
    holds the store lock for the whole cycle so writers in this process never
    interleave, and ``save()`` swaps a temp file into place so a reader never
    sees a half-written document.
    """

    def __init__(self, path: str = "db.json"):
        self.path = path
        self.lock = threading.RLock()

    def load(self) -> Document:
        """Read the document, creating or widening it on disk when needed."""
        if not os.path.exists(self.path):
            document = empty_document()
            self.save(document)
            logger.info(f"Created new data file: {self.path}")
            return document

        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                document = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Error reading data file {self.path}: {e}")
            raise StoreCorruptError(f"Data file {self.path} is unreadable") from e

        if not isinstance(document, dict):
            logger.error(f"Data file {self.path} does not hold a JSON object")
            raise StoreCorruptError(f"Data file {self.path} has an invalid layout")

        missing = [name for name in ALL_COLLECTIONS if name not in document]
        for name in ALL_COLLECTIONS:
            if name in missing:
                document[name] = []
            elif not isinstance(document[name], list):
                logger.error(f"Collection '{name}' in {self.path} is not a list")
                raise StoreCorruptError(f"Data file {self.path} has an invalid layout")

        if missing:
            logger.info(f"Adding missing collections to {self.path}: {', '.join(missing)}")
            self.save(document)
        return document

    def save(self, document: Document) -> None:
        """Overwrite the whole document."""
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".db-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing data file {self.path}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                with contextlib.suppress(OSError):
                    os.remove(tmp_path)
            raise StoreWriteError(f"Failed to write data file {self.path}") from e

    def read(self) -> Document:
        with self.lock:
            return self.load()

    @contextlib.contextmanager
    def transaction(self) -> Iterator[Document]:
        """
        Load the document under the store lock and save it on clean exit.

        If the block raises, nothing is written and the error propagates.

        Usage:
            with store.transaction() as doc:
                doc["contacts"].append(record)
        """
        with self.lock:
            document = self.load()
            yield document
            self.save(document)

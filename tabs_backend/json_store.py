"""Small embedded document store: one JSON file per document, atomic replace on write.

Single-instance only. Two processes sharing a data directory can still lose
updates; that deployment needs a real database.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import Callable, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from tabs_backend.errors import PersistFailure

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


class JsonDocumentStore(Generic[M]):
    def __init__(self, path: str, model: Type[M], default_factory: Optional[Callable[[], M]] = None):
        self.path = path
        self.model = model
        self.default_factory = default_factory or model
        # held around every read-modify-write of this document
        self.lock = threading.RLock()

    def load(self) -> M:
        """Read the document; a missing or corrupt file yields the default."""
        if not os.path.isfile(self.path):
            return self.default_factory()
        try:
            with open(self.path, 'r', encoding='utf-8') as fh:
                raw = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning('json_store.unreadable %s: %s; using default', self.path, exc)
            return self.default_factory()
        try:
            return self.model.model_validate(raw)
        except ValidationError as exc:
            logger.warning('json_store.invalid %s: %d errors; using default', self.path, exc.error_count())
            return self.default_factory()

    def save(self, doc: M) -> None:
        payload = doc.model_dump(mode='json')
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=os.path.basename(self.path) + '.', suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(payload, fh, indent=2, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            if tmp_path and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
            raise PersistFailure(f'could not write {self.path}: {exc}') from exc

    def ensure_exists(self) -> None:
        if not os.path.isfile(self.path):
            self.save(self.default_factory())

"""
Durable cache of provisioned resources, one JSON document per resource kind.
"""

import json
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union

from errors import CacheCorruption
from models import CachedResource

_KIND_PATTERN = re.compile(r'^[a-z0-9_]+$')


class ResourceCache:
    """
    Stores created resource addresses keyed by resource kind.

    A record is only returned when its identity fields equal the identity the
    caller expects. Mismatched or unreadable records are deleted on lookup.
    Single writer; there is no locking.
    """

    def __init__(self, cache_dir: Union[str, Path] = 'cache', prefix: str = '', verbose: bool = True):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory holding the cache documents
            prefix: File name prefix, typically naming the network ('sepolia_')
            verbose: Whether to print cache decisions
        """
        self.cache_dir = Path(cache_dir)
        self.prefix = prefix
        self.verbose = verbose

    def path_for(self, kind: str) -> Path:
        if not _KIND_PATTERN.match(kind):
            raise ValueError(f"invalid resource kind for cache: {kind!r}")
        return self.cache_dir / f"{self.prefix}{kind}.json"

    def has(self, kind: str) -> bool:
        """Whether any record, matching or not, is stored for `kind`."""
        return self.path_for(kind).exists()

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[CACHE] {message}")

    def _read(self, kind: str) -> Optional[CachedResource]:
        path = self.path_for(kind)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
            record = CachedResource.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise CacheCorruption(f"unreadable cache file {path}: {e}")
        if record.kind != kind:
            raise CacheCorruption(f"cache file {path} holds a {record.kind!r} record, expected {kind!r}")
        return record

    def lookup(self, kind: str, expected_identity: Dict[str, str]) -> Optional[CachedResource]:
        """
        Return the cached record for `kind` if its identity matches exactly.

        Args:
            kind: Resource kind ('market', 'pool')
            expected_identity: Identity fields the caller currently expects

        Returns:
            The cached record, or None on a miss. Stale and corrupt records
            are deleted before returning None.
        """
        expected = {str(k): str(v) for k, v in expected_identity.items()}
        try:
            record = self._read(kind)
        except CacheCorruption as e:
            self._log(f"WARNING: {e}, discarding")
            self.delete(kind)
            return None

        if record is None:
            self._log(f"No cached {kind} at {self.path_for(kind)}")
            return None

        if record.identity != expected:
            self._log(f"Cached {kind} identity {record.identity} does not match {expected}, discarding")
            self.delete(kind)
            return None

        self._log(f"{kind} loaded from cache: {record.address}")
        return record

    def store(self, kind: str, record: CachedResource) -> CachedResource:
        """Persist `record` for `kind`, replacing any previous record."""
        if record.kind != kind:
            raise ValueError(f"record kind {record.kind!r} does not match {kind!r}")
        if not record.created_at:
            record.created_at = datetime.now(timezone.utc).isoformat()

        path = self.path_for(kind)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(record.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self._log(f"{kind} saved to cache: {path}")
        return record

    def delete(self, kind: str) -> bool:
        """Delete the record for `kind`. Returns True if a file was removed."""
        path = self.path_for(kind)
        if not path.exists():
            return False
        path.unlink()
        self._log(f"Cache file deleted: {path}")
        return True

"""
Content-hash cache used to skip unchanged source directories on rebuild.
"""

import hashlib
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from .files import PathLike, absolute

logger = logging.getLogger(__name__)


class ContentCache:
    """SHA-256 digests of source files keyed by absolute path.

    Hashes are taken from file bytes rather than mtimes so the cache stays
    valid across fresh checkouts.
    """

    VERSION = 1

    def __init__(self, cache_file: PathLike):
        self.cache_file = Path(cache_file)
        self.files: Dict[str, str] = {}

    def load_cache(self):
        """Load hashes from disk. Any problem leaves the cache empty."""
        self.files = {}
        if not self.cache_file.exists():
            logger.info(f"No existing cache file found at {self.cache_file}")
            return

        try:
            raw = self.cache_file.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as error:
            logger.warning(f"Cache file unreadable: {self.cache_file} ({error})")
            return
        if not raw.strip():
            logger.warning(f"Cache file found but empty: {self.cache_file}")
            return

        try:
            parsed = json.loads(raw)
        except ValueError as error:
            logger.warning(f"Failed to parse cache file {self.cache_file}: {error}")
            return

        if not self._is_valid(parsed):
            logger.warning('Cache file version mismatch or corrupt. Ignoring existing cache.')
            return

        self.files = dict(parsed['files'])
        logger.info(f"Loaded cache from {self.cache_file}")

    def _is_valid(self, parsed) -> bool:
        if not isinstance(parsed, dict) or parsed.get('version') != self.VERSION:
            return False
        files = parsed.get('files')
        if not isinstance(files, dict):
            return False
        return all(isinstance(k, str) and isinstance(v, str) for k, v in files.items())

    def _hash_file(self, path: Path) -> Optional[str]:
        try:
            with open(path, 'rb') as f:
                return hashlib.sha256(f.read()).hexdigest()
        except OSError:
            return None

    def has_changed(self, path: PathLike) -> bool:
        """True unless the file's bytes match the recorded hash."""
        key = str(absolute(path))
        current = self._hash_file(Path(key))
        if current is None:
            logger.warning(f"Cannot determine if file changed: {path}")
            return True
        return self.files.get(key) != current

    def mark_processed(self, path: PathLike):
        """Record the current hash of ``path``."""
        key = str(absolute(path))
        current = self._hash_file(Path(key))
        if current is None:
            logger.warning(f"Cannot mark file as processed: {path}")
            return
        self.files[key] = current

    def persist(self):
        """Write the cache file. Failures are logged, not raised."""
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_file, 'w', encoding='utf-8') as f:
                json.dump({'version': self.VERSION, 'files': self.files}, f, indent=2)
        except OSError as error:
            logger.error(f"Failed to persist cache to {self.cache_file}: {error}")
            return
        logger.info(f"Persisted cache to {self.cache_file}")

    def clear(self):
        """Forget every hash and remove the cache file."""
        self.files = {}
        try:
            self.cache_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as error:
            logger.error(f"Failed to remove cache file {self.cache_file}: {error}")

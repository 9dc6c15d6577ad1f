# mediaplayer
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Credential cache for OAuth codes and access tokens.

Entries live in one JSON-serialisable dict per namespace inside a store:

    {"<sha256 key>": {"value": {...}, "expires_at": 1760000000.0}, ...}

Expired entries are not evicted by timers; they are dropped on the next
read.  Stores are either in-memory (tests, one-shot CLI runs) or a JSON
file written atomically (temp file + rename) so a crash mid-write never
corrupts it.

There is no lock around refreshes.  Two callers missing the cache at the
same time both fetch a new token and both write; the last write wins.
"""

import hashlib
import json
import logging
import os
import tempfile
import time
from dataclasses import asdict, dataclass
from typing import Callable

log = logging.getLogger(__name__)


def derive_cache_key(namespace: str, instance_id: int, **credentials) -> str:
    """sha256 over namespace, player id and credential fields (sorted by name)."""
    lines = [namespace, f"id: {instance_id}"]
    for name in sorted(credentials):
        value = credentials[name]
        lines.append(f"{name}: {'' if value is None else value}")
    lines.append(namespace[::-1])
    return hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()


@dataclass
class AccessToken:
    authorization_code: str | None = None
    bearer_token: str | None = None
    expires_at: float = 0.0

    def is_valid(self, now: float | None = None) -> bool:
        if not self.bearer_token:
            return False
        return self.expires_at > (time.time() if now is None else now)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data) -> "AccessToken | None":
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                authorization_code=data.get("authorization_code"),
                bearer_token=data.get("bearer_token"),
                expires_at=float(data.get("expires_at") or 0),
            )
        except (TypeError, ValueError):
            return None


# ── Stores ──

class MemoryStore:
    """Key/value store kept in process memory."""

    def __init__(self, data: dict | None = None):
        self._data = dict(data or {})

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def update(self, key: str, value) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value


class JsonFileStore:
    """Key/value store backed by one JSON file."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict:
        try:
            with open(self.path) as f:
                data = json.load(f)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            log.warning("Ignoring corrupt token store %s: %s", self.path, e)
            return {}

    def get(self, key: str, default=None):
        return self._load().get(key, default)

    def update(self, key: str, value) -> None:
        data = self._load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

        # Atomic write: temp file in same directory, then rename
        d = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(d, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=d, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except Exception:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise


# ── Cache ──

class CredentialCache:
    """TTL cache on top of a store, scoped by namespace."""

    def __init__(self, store, namespace: str, clock: Callable[[], float] = time.time):
        self.store = store
        self.namespace = namespace
        self.clock = clock

    def _repository(self) -> dict:
        repo = self.store.get(self.namespace)
        return dict(repo) if isinstance(repo, dict) else {}

    def _save(self, repo: dict) -> None:
        self.store.update(self.namespace, repo or None)

    def get(self, key: str, default=None):
        repo = self._repository()
        entry = repo.get(key)
        if not isinstance(entry, dict):
            return default
        expires_at = entry.get("expires_at")
        if not isinstance(expires_at, (int, float)) or expires_at <= self.clock():
            del repo[key]
            self._save(repo)
            log.debug("Cache entry %s… expired", key[:8])
            return default
        return entry.get("value", default)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def set(self, key: str, value, ttl: float | None) -> bool:
        """Store ``value`` for ``ttl`` seconds. Empty value or ttl removes the entry."""
        if not value or not ttl or ttl <= 0:
            self.remove(key)
            return False
        repo = self._repository()
        repo[key] = {"value": value, "expires_at": self.clock() + ttl}
        self._save(repo)
        return True

    def remove(self, key: str) -> bool:
        repo = self._repository()
        if key not in repo:
            return False
        del repo[key]
        self._save(repo)
        return True

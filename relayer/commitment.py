"""
Per-epoch dataset commitment: load it from the cache dir, or build it once.

The resolver is a small state machine::

    (initial load) ── ok ──────────────────────────────> LOADED
          │
          └─ miss ─> MISSING ─> REBUILDING ─ ok ─> (reload) ─ ok ─> LOADED
                                     │                 └─ miss ─> FAILED (CacheUnavailable)
                                     └─ error ─> FAILED (RebuildFailed)

There is exactly one rebuild and one reload per miss; nothing else retries.
"""
import enum, json, os, pathlib, tempfile
from typing import Any, Dict, List, NamedTuple, Optional, Protocol

from .config import CACHE_FILE_MODE, HASH_LENGTH
from .encoding import decode_bytes, encode_hash
from .errors import CacheUnavailable, RebuildFailed


def _uint(doc: Dict[str, Any], key: str, default: Optional[int] = None) -> int:
    v = doc.get(key, default)
    if not isinstance(v, int) or isinstance(v, bool) or v < 0:
        raise ValueError(f"{key} must be an unsigned integer, got {v!r}")
    return v


class Commitment(NamedTuple):
    epoch: int
    root_hash: bytes
    proof_length: int
    cache_length: int = 0

    def to_json(self) -> Dict[str, Any]:
        return {
            "epoch":        self.epoch,
            "proof_length": self.proof_length,
            "cache_length": self.cache_length,
            "root_hash":    encode_hash(self.root_hash),
        }

    @classmethod
    def from_json(cls, doc: Dict[str, Any]) -> "Commitment":
        root = decode_bytes(doc["root_hash"])
        if len(root) != HASH_LENGTH:
            raise ValueError(f"root_hash must be {HASH_LENGTH} bytes, got {len(root)}")
        return cls(
            epoch=_uint(doc, "epoch"),
            root_hash=root,
            proof_length=_uint(doc, "proof_length"),
            cache_length=_uint(doc, "cache_length", 0),
        )


class CommitmentBuilder(Protocol):
    def build_commitment(self, epoch: int, dataset_dir: str) -> Commitment: ...


class CommitmentStore(Protocol):
    def load(self, epoch: int) -> Commitment: ...
    def rebuild(self, epoch: int) -> None: ...


# ──────────────────────────────────────────────────────────────────────────────
# on-disk store
# ──────────────────────────────────────────────────────────────────────────────
class FileCommitmentStore:
    """``<cache_dir>/<epoch>.json`` files; ``rebuild`` delegates the heavy work."""

    def __init__(self, cache_dir: str, dataset_dir: str, builder: CommitmentBuilder):
        self.cache_dir = pathlib.Path(cache_dir)
        self.dataset_dir = str(dataset_dir)
        self.builder = builder

    def path_for(self, epoch: int) -> pathlib.Path:
        return self.cache_dir / f"{int(epoch)}.json"

    def load(self, epoch: int) -> Commitment:
        with open(self.path_for(epoch), "r", encoding="utf-8") as f:
            c = Commitment.from_json(json.load(f))
        if c.epoch != epoch:
            raise ValueError(f"cache file for epoch {epoch} holds epoch {c.epoch}")
        return c

    def save(self, c: Commitment) -> pathlib.Path:
        # readers only ever see a complete file
        dst = self.path_for(c.epoch)
        fd, tmp = tempfile.mkstemp(prefix=f".{c.epoch}-", suffix=".tmp", dir=str(self.cache_dir))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(c.to_json(), f)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp, CACHE_FILE_MODE)
            os.replace(tmp, dst)
        except BaseException:
            if os.path.exists(tmp): os.unlink(tmp)
            raise
        return dst

    def rebuild(self, epoch: int) -> None:
        c = self.builder.build_commitment(epoch, self.dataset_dir)
        if c.epoch != epoch:
            raise ValueError(f"builder returned epoch {c.epoch}, wanted {epoch}")
        print(f"   [cache] epoch {epoch} root={encode_hash(c.root_hash)} proof_length={c.proof_length}")
        self.save(c)


# ──────────────────────────────────────────────────────────────────────────────
# resolver
# ──────────────────────────────────────────────────────────────────────────────
class ResolveState(enum.Enum):
    MISSING    = "missing"
    REBUILDING = "rebuilding"
    LOADED     = "loaded"
    FAILED     = "failed"


class CommitmentResolver:
    def __init__(self, store: CommitmentStore):
        self.store = store
        self.history: List[ResolveState] = []
        self.load_attempts = 0
        self.rebuild_attempts = 0

    @property
    def state(self) -> Optional[ResolveState]:
        return self.history[-1] if self.history else None

    def _enter(self, s: ResolveState) -> None:
        self.history.append(s)

    def _try_load(self, epoch: int):
        self.load_attempts += 1
        try:
            return self.store.load(epoch), None
        except Exception as e:  # any load failure is a miss
            return None, e

    def resolve(self, epoch: int) -> Commitment:
        self.history = []
        c, miss = self._try_load(epoch)
        if c is not None:
            self._enter(ResolveState.LOADED)
            return c

        self._enter(ResolveState.MISSING)
        print(f"   [cache] load failed for epoch {epoch}: {miss}")
        print("Cache is missing, calculate dataset merkle tree to create the cache first...")

        self._enter(ResolveState.REBUILDING)
        self.rebuild_attempts += 1
        try:
            self.store.rebuild(epoch)
        except Exception as e:
            self._enter(ResolveState.FAILED)
            raise RebuildFailed(epoch, e) from e

        c, miss = self._try_load(epoch)
        if c is None:
            self._enter(ResolveState.FAILED)
            raise CacheUnavailable(epoch, miss) from miss
        self._enter(ResolveState.LOADED)
        return c


def resolve_commitment(epoch: int, cache_dir: str, dataset_dir: str,
                       builder: CommitmentBuilder) -> Commitment:
    return CommitmentResolver(FileCommitmentStore(cache_dir, dataset_dir, builder)).resolve(epoch)

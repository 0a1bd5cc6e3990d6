import os, pathlib, re
from typing import Optional

from .errors import ConfigError, DirectorySetupFailed

# ──────────────────────────────────────────────────────────────────────────────
# ENV
# ──────────────────────────────────────────────────────────────────────────────
def _env(*names: str, default: str) -> str:
    """
    Read a setting from env and sanitize it:
    - first non-empty name wins
    - trim quotes/outer whitespace
    """
    val = None
    for n in names:
        v = os.getenv(n)
        if v and v.strip():
            val = v
            break
    if val is None:
        val = default
    return val.strip().strip('"').strip("'")

def _env_dir(*names: str, default: str) -> str:
    return str(pathlib.Path(_env(*names, default=default)).expanduser())

RPC_URL       = _env("RPC_URL", default="http://127.0.0.1:8545")
DATASET_DIR   = _env_dir("ETHASH_DIR", default="~/.ethash")
CACHE_DIR     = _env_dir("ETHASHPROOF_DIR", default="~/.ethashproof")
ETHASHPROOF   = _env("ETHASHPROOF_BIN", default="ethashproof")
TOOL_TIMEOUT  = _env("ETHASHPROOF_TIMEOUT", default="")   # parsed by tool_timeout()

# ──────────────────────────────────────────────────────────────────────────────
# CONSTANTS
# ──────────────────────────────────────────────────────────────────────────────
EPOCH_LENGTH  = 30000
ELEMENT_WIDTH = 4       # 128-byte dataset element = 4 x uint256
HASH_LENGTH   = 32
DIR_MODE      = 0o755
CACHE_FILE_MODE = 0o644

def epoch_of(block_number: int) -> int:
    if block_number < 0: raise ValueError(f"negative block number {block_number}")
    return block_number // EPOCH_LENGTH

def tool_timeout(raw: Optional[str] = None) -> Optional[float]:
    raw = TOOL_TIMEOUT if raw is None else raw.strip()
    if not raw: return None
    if not re.fullmatch(r"[0-9]+(\.[0-9]+)?", raw):
        raise ConfigError(f"ETHASHPROOF_TIMEOUT must be a number of seconds, got {raw!r}")
    return float(raw)

def ensure_dirs(*dirs: str) -> None:
    for d in dirs:
        try:
            pathlib.Path(d).mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise DirectorySetupFailed(d, e) from e

"""
Adapter for the external ethashproof helper binary.

The helper owns everything ethash: dataset generation, the dataset Merkle
tree, index selection from (seal hash, nonce) and per-index branches. We only
shell out to it and parse its JSON answers.
"""
import json, os, shlex, subprocess
from typing import Any, List, Optional, Tuple

from web3 import Web3

from .commitment import Commitment
from .encoding import int_to_hash
from .errors import ConfigError, ToolError


def _hex2int(x) -> int:
    if isinstance(x, int) and not isinstance(x, bool) and x >= 0: return x
    if isinstance(x, str) and x.startswith("0x"): return int(x, 16)
    if isinstance(x, str) and x.isdigit(): return int(x)
    raise ValueError(f"not an unsigned integer: {x!r}")

def _hex2hash(x) -> bytes:
    # helper may print either full 32-byte data or a trimmed quantity
    if isinstance(x, str) and x.startswith("0x") and len(x) == 66:
        return bytes.fromhex(x[2:])
    return int_to_hash(_hex2int(x))


class EthashproofTool:
    def __init__(self, binary: str, timeout: Optional[float] = None):
        try:
            self.argv0 = shlex.split(binary)
        except ValueError as e:
            raise ConfigError(f"ETHASHPROOF_BIN cannot be parsed: {e}") from e
        if not self.argv0: raise ConfigError("ETHASHPROOF_BIN is empty")
        self.timeout = timeout

    def _run(self, *args: Any) -> Tuple[str, Any]:
        """Run one helper subcommand; returns (printable cmd, parsed JSON)."""
        argv = self.argv0 + [str(a) for a in args]
        cmd = " ".join(shlex.quote(a) for a in argv)
        print("   [tool] $", cmd)
        try:
            c = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ToolError(cmd, None, str(e)) from e
        if c.returncode != 0:
            print(c.stdout); print(c.stderr)
            raise ToolError(cmd, c.returncode, c.stderr.strip())
        try:
            return cmd, json.loads(c.stdout)
        except json.JSONDecodeError as e:
            raise ToolError(cmd, c.returncode, f"unparsable output: {e}") from e

    # CommitmentBuilder
    def build_commitment(self, epoch: int, dataset_dir: str) -> Commitment:
        cmd, doc = self._run("cache", "--epoch", epoch, "--dataset-dir", dataset_dir)
        if not isinstance(doc, dict):
            raise ToolError(cmd, None, f"expected an object, got {type(doc).__name__}")
        return Commitment.from_json(doc)

    # IndexSource
    def verification_indices(self, block_number: int, seal_hash: bytes, nonce: int) -> List[int]:
        cmd, doc = self._run("indices", "--block", block_number,
                             "--seal-hash", Web3.to_hex(seal_hash), "--nonce", nonce)
        if not isinstance(doc, list):
            raise ToolError(cmd, None, f"expected a list, got {type(doc).__name__}")
        try:
            return [_hex2int(i) for i in doc]
        except ValueError as e:
            raise ToolError(cmd, None, str(e)) from e

    # ProofSource
    def element_proof(self, block_number: int, index: int, commitment: Commitment,
                      dataset_dir: str, cache_file: Optional[str] = None) -> Tuple[List[int], List[bytes]]:
        args: List[Any] = ["proof", "--block", block_number, "--index", index,
                           "--dataset-dir", dataset_dir]
        if cache_file: args += ["--cache-file", cache_file]
        cmd, doc = self._run(*args)
        if not isinstance(doc, dict) or "element" not in doc or "proof" not in doc:
            raise ToolError(cmd, None, "expected {element, proof}")
        element = [_hex2int(w) for w in doc["element"]]
        siblings = [_hex2hash(h) for h in doc["proof"]]
        return element, siblings


class CachedProofSource:
    """Binds the cache file location so the helper reuses the persisted tree cache."""

    def __init__(self, tool: EthashproofTool, cache_dir: str):
        self.tool = tool
        self.cache_dir = cache_dir

    def element_proof(self, block_number: int, index: int, commitment: Commitment,
                      dataset_dir: str) -> Tuple[List[int], List[bytes]]:
        cache_file = os.path.join(self.cache_dir, f"{commitment.epoch}.json")
        return self.tool.element_proof(block_number, index, commitment, dataset_dir, cache_file)


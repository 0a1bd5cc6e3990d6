from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set

import pytest
from hexbytes import HexBytes

from relayer.commitment import Commitment
from relayer.config import ELEMENT_WIDTH
from relayer.errors import HeaderFetchFailed
from relayer.header import Header

ROOT_ONE = b"\x00" * 31 + b"\x01"


def make_block(number: int = 300000, **extra) -> Dict[str, object]:
    block = {
        "parentHash":       HexBytes("0x" + "11" * 32),
        "sha3Uncles":       HexBytes("0x1dcc4de8dec75d7aab85b567b6ccd41ad312451b948a7413f0a142fd40d49347"),
        "miner":            "0x52bc44d5378309EE2abF1539BF71dE1b7d7bE3b5",
        "stateRoot":        HexBytes("0x" + "33" * 32),
        "transactionsRoot": HexBytes("0x" + "44" * 32),
        "receiptsRoot":     HexBytes("0x" + "55" * 32),
        "logsBloom":        HexBytes("0x" + "00" * 256),
        "difficulty":       6_022_643_743_806,
        "number":           number,
        "gasLimit":         3_141_592,
        "gasUsed":          21_000,
        "timestamp":        1_443_469_840,
        "extraData":        HexBytes("0x476574682f76312e302e312f6c696e75782f676f312e342e32"),
        "mixHash":          HexBytes("0x" + "66" * 32),
        "nonce":            HexBytes("0x0123456789abcdef"),
        "hash":             HexBytes("0x" + "77" * 32),
    }
    block.update(extra)
    return block


def sibling(i: int, j: int) -> bytes:
    return (i * 1000 + j + 1).to_bytes(32, "big")


def element_for(index: int) -> tuple:
    return tuple(index * 10 + k for k in range(ELEMENT_WIDTH))


class FakeHeaderSource:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[int] = []

    def header_by_number(self, number: int) -> Header:
        self.calls.append(number)
        if self.fail:
            raise HeaderFetchFailed(number, ConnectionError("connection refused"))
        return Header(make_block(number))


class FakeCommitmentStore:
    """In-memory store; ``present`` epochs load, ``rebuild`` adds the epoch."""

    def __init__(self, present: Sequence[int] = (), proof_length: int = 24,
                 rebuild_error: Optional[Exception] = None, rebuild_persists: bool = True):
        self.present: Set[int] = set(present)
        self.proof_length = proof_length
        self.rebuild_error = rebuild_error
        self.rebuild_persists = rebuild_persists
        self.calls: List[tuple] = []

    def load(self, epoch: int) -> Commitment:
        self.calls.append(("load", epoch))
        if epoch not in self.present:
            raise FileNotFoundError(f"no cache for epoch {epoch}")
        return Commitment(epoch, ROOT_ONE, self.proof_length, 4096)

    def rebuild(self, epoch: int) -> None:
        self.calls.append(("rebuild", epoch))
        if self.rebuild_error is not None:
            raise self.rebuild_error
        if self.rebuild_persists:
            self.present.add(epoch)


class FakeIndexSource:
    def __init__(self, indices: Sequence[int]):
        self.indices = list(indices)
        self.calls: List[tuple] = []

    def verification_indices(self, block_number: int, seal_hash: bytes, nonce: int) -> List[int]:
        self.calls.append((block_number, seal_hash, nonce))
        return list(self.indices)


class FakeProofSource:
    def __init__(self, fail_on: Optional[int] = None, short_proof: bool = False):
        self.fail_on = fail_on
        self.short_proof = short_proof
        self.calls: List[int] = []

    def element_proof(self, block_number: int, index: int, commitment: Commitment, dataset_dir: str):
        self.calls.append(index)
        if index == self.fail_on:
            raise RuntimeError(f"dataset item {index} unreadable")
        n = commitment.proof_length - (1 if self.short_proof else 0)
        return element_for(index), [sibling(index, j) for j in range(n)]


@pytest.fixture
def header() -> Header:
    return Header(make_block())


@pytest.fixture
def commitment() -> Commitment:
    return Commitment(epoch=10, root_hash=ROOT_ONE, proof_length=24, cache_length=4096)

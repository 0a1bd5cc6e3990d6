from typing import List, NamedTuple, Protocol, Sequence, Tuple

from .commitment import Commitment
from .config import ELEMENT_WIDTH, HASH_LENGTH
from .errors import IndexProofFailed


class ElementProof(NamedTuple):
    index: int
    element: Tuple[int, ...]     # ELEMENT_WIDTH words
    siblings: Tuple[bytes, ...]  # proof_length 32-byte hashes, leaf to root


class ProofSource(Protocol):
    def element_proof(self, block_number: int, index: int, commitment: Commitment,
                      dataset_dir: str) -> Tuple[Sequence[int], Sequence[bytes]]: ...


class IndexSource(Protocol):
    def verification_indices(self, block_number: int, seal_hash: bytes, nonce: int) -> List[int]: ...


def _check_shape(element: Sequence[int], siblings: Sequence[bytes], proof_length: int) -> None:
    if len(element) != ELEMENT_WIDTH:
        raise ValueError(f"element has {len(element)} words, expected {ELEMENT_WIDTH}")
    if len(siblings) != proof_length:
        raise ValueError(f"proof has {len(siblings)} siblings, expected {proof_length}")
    for h in siblings:
        if len(h) != HASH_LENGTH:
            raise ValueError(f"sibling hash is {len(h)} bytes, expected {HASH_LENGTH}")


class IndexProofCollector:
    """Fetch element+proof for each index, strictly in the given order.

    The first failure aborts the whole collection; nothing collected so far
    is returned.
    """

    def __init__(self, source: ProofSource):
        self.source = source

    def collect(self, block_number: int, indices: Sequence[int], commitment: Commitment,
                dataset_dir: str) -> List[ElementProof]:
        out: List[ElementProof] = []
        for index in indices:
            try:
                element, siblings = self.source.element_proof(block_number, index, commitment, dataset_dir)
                element = tuple(int(w) for w in element)
                siblings = tuple(bytes(h) for h in siblings)
                _check_shape(element, siblings, commitment.proof_length)
            except Exception as e:
                raise IndexProofFailed(index, e) from e
            out.append(ElementProof(index, element, siblings))
        return out

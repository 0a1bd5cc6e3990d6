import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence

from .commitment import Commitment
from .config import ELEMENT_WIDTH, HASH_LENGTH
from .encoding import (decode_big, decode_bytes, encode_bytes, encode_element, encode_hash,
                       encode_proof_siblings)
from .errors import HeaderEncodeFailed, RecordInvariantError
from .header import Header, rlp_header
from .proofs import ElementProof

RECORD_FIELDS = ("header_rlp", "merkle_root", "elements", "merkle_proofs", "proof_length")


@dataclass
class OutputRecord:
    header_rlp: str
    merkle_root: str
    proof_length: int
    elements: List[str] = field(default_factory=list)
    merkle_proofs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header_rlp":    self.header_rlp,
            "merkle_root":   self.merkle_root,
            "elements":      list(self.elements),
            "merkle_proofs": list(self.merkle_proofs),
            "proof_length":  self.proof_length,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


def check_record(rec: OutputRecord, n_indices: int) -> None:
    if len(rec.elements) != n_indices * ELEMENT_WIDTH:
        raise RecordInvariantError(
            f"elements: {len(rec.elements)} != {n_indices} indices x {ELEMENT_WIDTH}")
    if len(rec.merkle_proofs) != n_indices * rec.proof_length:
        raise RecordInvariantError(
            f"merkle_proofs: {len(rec.merkle_proofs)} != {n_indices} indices x {rec.proof_length}")
    try:
        root = decode_bytes(rec.merkle_root)
    except ValueError as e:
        raise RecordInvariantError(f"merkle_root: {e}") from e
    if len(root) != HASH_LENGTH:
        raise RecordInvariantError(f"merkle_root is {len(root)} bytes, expected {HASH_LENGTH}")


def decode_record(text: str) -> Dict[str, Any]:
    """Parse a printed record back to bytes/ints, rejecting non-canonical hex."""
    doc = json.loads(text)
    if not isinstance(doc, dict) or set(doc) != set(RECORD_FIELDS):
        raise RecordInvariantError(f"record must have exactly the fields {', '.join(RECORD_FIELDS)}")
    try:
        return {
            "header_rlp":    decode_bytes(doc["header_rlp"]),
            "merkle_root":   decode_bytes(doc["merkle_root"]),
            "elements":      [decode_big(x) for x in doc["elements"]],
            "merkle_proofs": [decode_big(x) for x in doc["merkle_proofs"]],
            "proof_length":  int(doc["proof_length"]),
        }
    except (TypeError, ValueError) as e:
        raise RecordInvariantError(str(e)) from e


class RecordAssembler:
    def __init__(self, serialize_header: Callable[[Header], bytes] = rlp_header):
        self.serialize_header = serialize_header

    def encode_header(self, header: Header) -> str:
        try:
            raw = self.serialize_header(header)
        except Exception as e:
            raise HeaderEncodeFailed(e) from e
        return encode_bytes(raw)

    def assemble(self, header: Header, commitment: Commitment,
                 element_proofs: Sequence[ElementProof]) -> OutputRecord:
        try:
            header_rlp = self.encode_header(header)
        except HeaderEncodeFailed as e:
            # proofs are the payload; a missing header field is tolerated
            print(e)
            header_rlp = encode_bytes(b"")

        rec = OutputRecord(
            header_rlp=header_rlp,
            merkle_root=encode_hash(commitment.root_hash),
            proof_length=commitment.proof_length,
        )
        for ep in element_proofs:
            rec.elements.extend(encode_element(ep.element))
            rec.merkle_proofs.extend(encode_proof_siblings(ep.siblings))

        check_record(rec, len(element_proofs))
        return rec

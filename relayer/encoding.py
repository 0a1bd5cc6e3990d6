"""
Canonical hex encoding of the output record.

Big integers use the quantity form ("0x" + lowercase hex, no leading zeros,
zero is "0x0"); byte strings use the data form ("0x" + two hex digits per
byte). Decoders only accept what the encoders produce, so every value in a
record survives decode -> encode unchanged.
"""
import re
from typing import Iterable, List, Sequence, Tuple

from hexbytes import HexBytes
from web3 import Web3

from .config import ELEMENT_WIDTH, HASH_LENGTH

_QUANTITY = re.compile(r"0x(0|[1-9a-f][0-9a-f]*)")
_DATA     = re.compile(r"0x([0-9a-f]{2})*")

Element = Tuple[int, ...]

# ──────────────────────────────────────────────────────────────────────────────
# scalars
# ──────────────────────────────────────────────────────────────────────────────
def encode_big(x: int) -> str:
    x = int(x)
    if x < 0: raise ValueError(f"cannot encode negative integer {x}")
    return Web3.to_hex(x)

def decode_big(s: str) -> int:
    if not isinstance(s, str) or not _QUANTITY.fullmatch(s):
        raise ValueError(f"not a canonical hex quantity: {s!r}")
    return int(s, 16)

def encode_bytes(b: bytes) -> str:
    return Web3.to_hex(bytes(b))

def decode_bytes(s: str) -> bytes:
    if not isinstance(s, str) or not _DATA.fullmatch(s):
        raise ValueError(f"not canonical hex data: {s!r}")
    return bytes(HexBytes(s))

def encode_hash(h: bytes) -> str:
    if len(h) != HASH_LENGTH:
        raise ValueError(f"hash must be {HASH_LENGTH} bytes, got {len(h)}")
    return encode_bytes(h)

def hash_to_int(h: bytes) -> int:
    if len(h) != HASH_LENGTH:
        raise ValueError(f"hash must be {HASH_LENGTH} bytes, got {len(h)}")
    return int.from_bytes(h, "big", signed=False)

def int_to_hash(x: int) -> bytes:
    return int(x).to_bytes(HASH_LENGTH, "big", signed=False)

# ──────────────────────────────────────────────────────────────────────────────
# elements / sibling lists
# ──────────────────────────────────────────────────────────────────────────────
def encode_element(element: Sequence[int]) -> List[str]:
    if len(element) != ELEMENT_WIDTH:
        raise ValueError(f"element must have {ELEMENT_WIDTH} words, got {len(element)}")
    return [encode_big(w) for w in element]

def encode_proof_siblings(siblings: Iterable[bytes]) -> List[str]:
    return [encode_big(hash_to_int(bytes(h))) for h in siblings]

def unflatten_elements(flat: Sequence[int]) -> List[Element]:
    """Inverse of concatenating encode_element outputs (after decode_big)."""
    if len(flat) % ELEMENT_WIDTH:
        raise ValueError(f"{len(flat)} words is not a multiple of {ELEMENT_WIDTH}")
    return [tuple(flat[i:i + ELEMENT_WIDTH]) for i in range(0, len(flat), ELEMENT_WIDTH)]

def unflatten_proofs(flat: Sequence[int], proof_length: int) -> List[List[bytes]]:
    if proof_length <= 0:
        if flat: raise ValueError("non-empty proofs with proof_length 0")
        return []
    if len(flat) % proof_length:
        raise ValueError(f"{len(flat)} siblings is not a multiple of {proof_length}")
    return [[int_to_hash(x) for x in flat[i:i + proof_length]]
            for i in range(0, len(flat), proof_length)]

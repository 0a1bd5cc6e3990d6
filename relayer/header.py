from typing import Any, List, Mapping, Optional, Protocol

import rlp
from hexbytes import HexBytes
from web3 import Web3, HTTPProvider

from .errors import HeaderFetchFailed

# https://github.com/ethereum/go-ethereum/blob/master/core/types/block.go
SEAL_FIELDS = (
    "parentHash",
    "sha3Uncles",
    "miner",
    "stateRoot",
    "transactionsRoot",
    "receiptsRoot",
    "logsBloom",
    "difficulty",
    "number",
    "gasLimit",
    "gasUsed",
    "timestamp",
    "extraData",
)
POW_FIELDS = ("mixHash", "nonce")
# appended by later forks, only when the node returns them
OPTIONAL_FIELDS = (
    "baseFeePerGas",
    "withdrawalsRoot",
    "blobGasUsed",
    "excessBlobGas",
    "parentBeaconBlockRoot",
)
INT_FIELDS = {"difficulty", "number", "gasLimit", "gasUsed", "timestamp",
              "baseFeePerGas", "blobGasUsed", "excessBlobGas"}


def _rlp_value(key: str, v: Any):
    if key in INT_FIELDS:
        if isinstance(v, bool): raise TypeError("bool is not a quantity")
        n = int(v, 16) if isinstance(v, str) else int(v)
        if n < 0: raise ValueError(f"negative quantity {n}")
        return n
    return bytes(HexBytes(v))


class Header:
    """Immutable view of one block header as returned by eth_getBlockByNumber."""

    def __init__(self, fields: Mapping[str, Any]):
        missing = [k for k in SEAL_FIELDS + POW_FIELDS if k not in fields]
        if missing:
            raise ValueError(f"header is missing fields: {', '.join(missing)}")
        self._fields = {}
        for k in SEAL_FIELDS + POW_FIELDS + OPTIONAL_FIELDS:
            if k not in fields or fields[k] is None: continue
            try:
                self._fields[k] = _rlp_value(k, fields[k])
            except (TypeError, ValueError) as e:
                raise ValueError(f"header field {k} is malformed: {e}") from e

    @property
    def number(self) -> int:
        return self._fields["number"]

    @property
    def nonce(self) -> int:
        return int.from_bytes(self._fields["nonce"], "big")

    def __getitem__(self, key: str):
        return self._fields[key]

    def __contains__(self, key: str) -> bool:
        return key in self._fields

    def __repr__(self) -> str:
        return f"Header(number={self.number}, nonce={self.nonce:#x})"

    def rlp_list(self, keys) -> List[Any]:
        return [self._fields[k] for k in keys if k in self._fields]


def rlp_header(header: Header) -> bytes:
    """Canonical RLP of the full header (the bytes whose keccak is the block hash)."""
    return rlp.encode(header.rlp_list(SEAL_FIELDS + POW_FIELDS + OPTIONAL_FIELDS))

def seal_hash(header: Header) -> bytes:
    """keccak256 of the header without mixHash/nonce; the ethash seed input."""
    keys = SEAL_FIELDS + (("baseFeePerGas",) if "baseFeePerGas" in header else ())
    return bytes(Web3.keccak(rlp.encode(header.rlp_list(keys))))


# ──────────────────────────────────────────────────────────────────────────────
# sources
# ──────────────────────────────────────────────────────────────────────────────
class HeaderSource(Protocol):
    def header_by_number(self, number: int) -> Header: ...


class Web3HeaderSource:
    def __init__(self, rpc_url: str, w3: Optional[Web3] = None):
        self.rpc_url = rpc_url
        self.w3 = w3 if w3 is not None else Web3(HTTPProvider(rpc_url))

    def header_by_number(self, number: int) -> Header:
        try:
            block = self.w3.eth.get_block(number)
            return Header(block)
        except Exception as e:
            raise HeaderFetchFailed(number, e) from e

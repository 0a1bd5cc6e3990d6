"""
block number -> header -> epoch commitment -> indices -> proofs -> record.

Strictly sequential; the first fatal error ends the run and nothing is
emitted.
"""
from typing import Optional

from . import config
from .commitment import CommitmentResolver, CommitmentStore, FileCommitmentStore
from .header import HeaderSource, Web3HeaderSource, seal_hash
from .proofs import IndexProofCollector, IndexSource, ProofSource
from .record import OutputRecord, RecordAssembler
from .tool import CachedProofSource, EthashproofTool


class Pipeline:
    def __init__(self, headers: HeaderSource, store: CommitmentStore, indices: IndexSource,
                 proofs: ProofSource, dataset_dir: str,
                 assembler: Optional[RecordAssembler] = None):
        self.headers = headers
        self.resolver = CommitmentResolver(store)
        self.indices = indices
        self.collector = IndexProofCollector(proofs)
        self.dataset_dir = dataset_dir
        self.assembler = assembler or RecordAssembler()

    def run(self, block_number: int) -> OutputRecord:
        print("Getting block header")
        header = self.headers.header_by_number(block_number)
        blockno = header.number
        epoch = config.epoch_of(blockno)
        print(f"   [header] block {blockno} nonce={header.nonce:#x} epoch={epoch}")

        commitment = self.resolver.resolve(epoch)

        idxs = self.indices.verification_indices(blockno, seal_hash(header), header.nonce)
        print(f"   [proof] {len(idxs)} verification indices")
        print(f"Proof length: {commitment.proof_length}")

        proofs = self.collector.collect(blockno, idxs, commitment, self.dataset_dir)
        return self.assembler.assemble(header, commitment, proofs)


def default_pipeline(rpc_url: str = config.RPC_URL, cache_dir: str = config.CACHE_DIR,
                     dataset_dir: str = config.DATASET_DIR, binary: str = config.ETHASHPROOF,
                     timeout: Optional[float] = None) -> Pipeline:
    if timeout is None:
        timeout = config.tool_timeout()
    tool = EthashproofTool(binary, timeout=timeout)
    return Pipeline(
        headers=Web3HeaderSource(rpc_url),
        store=FileCommitmentStore(cache_dir, dataset_dir, tool),
        indices=tool,
        proofs=CachedProofSource(tool, cache_dir),
        dataset_dir=dataset_dir,
    )

import pytest

from conftest import FakeCommitmentStore, FakeHeaderSource, FakeIndexSource, FakeProofSource
from relayer.config import EPOCH_LENGTH, epoch_of
from relayer.errors import HeaderFetchFailed, IndexProofFailed, RebuildFailed
from relayer.header import seal_hash
from relayer.pipeline import Pipeline


def _pipeline(store=None, indices=(3, 8), proofs=None, headers=None):
    return Pipeline(
        headers=headers or FakeHeaderSource(),
        store=store if store is not None else FakeCommitmentStore(present=[10]),
        indices=FakeIndexSource(indices),
        proofs=proofs or FakeProofSource(),
        dataset_dir="/ds",
    )


def test_epoch_of():
    assert epoch_of(0) == 0
    assert epoch_of(EPOCH_LENGTH - 1) == 0
    assert epoch_of(300000) == 10
    assert epoch_of(329999) == 10
    assert epoch_of(330000) == 11
    with pytest.raises(ValueError):
        epoch_of(-1)


def test_block_300000_end_to_end(capsys):
    p = _pipeline()
    rec = p.run(300000)
    assert (len(rec.elements), len(rec.merkle_proofs), rec.proof_length) == (8, 48, 24)
    assert rec.merkle_root == "0x" + "00" * 31 + "01"
    out = capsys.readouterr().out
    assert "Getting block header" in out
    assert "Proof length: 24" in out


def test_indices_derived_from_seal_hash_and_nonce():
    p = _pipeline()
    p.run(300000)
    (blockno, sh, nonce), = p.indices.calls
    header = p.headers.header_by_number(300000)
    assert (blockno, sh, nonce) == (300000, seal_hash(header), header.nonce)


def test_same_epoch_uses_same_commitment():
    store = FakeCommitmentStore(present=[10])
    a = _pipeline(store=store).run(300000)
    b = _pipeline(store=store).run(329999)
    assert a.merkle_root == b.merkle_root
    assert store.calls == [("load", 10), ("load", 10)]


def test_header_failure_touches_no_cache():
    store = FakeCommitmentStore()
    with pytest.raises(HeaderFetchFailed):
        _pipeline(store=store, headers=FakeHeaderSource(fail=True)).run(1)
    assert store.calls == []


def test_cache_miss_then_rebuild(capsys):
    store = FakeCommitmentStore()
    rec = _pipeline(store=store).run(300000)
    assert store.calls == [("load", 10), ("rebuild", 10), ("load", 10)]
    assert len(rec.elements) == 8
    assert "Cache is missing" in capsys.readouterr().out


def test_rebuild_failure_stops_before_proofs():
    proofs = FakeProofSource()
    with pytest.raises(RebuildFailed):
        _pipeline(store=FakeCommitmentStore(rebuild_error=OSError("no space")), proofs=proofs).run(1)
    assert proofs.calls == []


def test_third_of_five_failing_emits_nothing():
    proofs = FakeProofSource(fail_on=33)
    p = _pipeline(indices=[11, 22, 33, 44, 55], proofs=proofs)
    with pytest.raises(IndexProofFailed) as ei:
        p.run(300000)
    assert ei.value.index == 33
    assert proofs.calls == [11, 22, 33]


def test_permuted_indices_reorder_record():
    a = _pipeline(indices=[1, 2]).run(300000)
    b = _pipeline(indices=[2, 1]).run(300000)
    assert b.elements == a.elements[4:] + a.elements[:4]
    assert b.merkle_proofs == a.merkle_proofs[24:] + a.merkle_proofs[:24]

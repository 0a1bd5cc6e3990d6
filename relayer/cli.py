import argparse, re, sys
from typing import Callable, List, Optional

from . import config
from .errors import RelayerError, UsageError
from .pipeline import Pipeline, default_pipeline

USAGE_HINT = "Please run ethashproof-relayer <blocknumber> instead."


class _ArgParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def _block_number(s: str) -> int:
    if not re.fullmatch(r"\+?[0-9]+", s):
        raise argparse.ArgumentTypeError(f"Please pass a number as a block number, got {s!r}")
    return int(s, 10)


def build_parser() -> argparse.ArgumentParser:
    ap = _ArgParser(
        prog="ethashproof-relayer",
        description="Print the ethash proof record (header RLP, dataset merkle root, "
                    "elements and merkle proofs) for one block.",
        epilog="env: RPC_URL, ETHASH_DIR, ETHASHPROOF_DIR, ETHASHPROOF_BIN, ETHASHPROOF_TIMEOUT",
    )
    ap.add_argument("block", nargs="?", type=_block_number, help="block number (non-negative integer)")
    return ap


def main(argv: Optional[List[str]] = None,
         pipeline_factory: Callable[[], Pipeline] = default_pipeline) -> int:
    ap = build_parser()
    try:
        args = ap.parse_args(argv)
    except UsageError as e:
        print(f"Error: {e}")
        print(USAGE_HINT)
        return 2
    if args.block is None:
        print(f"Block number param is missing. {USAGE_HINT}")
        return 0

    try:
        config.ensure_dirs(config.DATASET_DIR, config.CACHE_DIR)
        record = pipeline_factory().run(args.block)
    except RelayerError as e:
        print(f"Error: {e}")
        return 1

    print("Json output:\n")
    print(record.to_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())

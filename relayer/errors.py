"""Failure taxonomy of a relayer run.

Everything fatal derives from :class:`RelayerError`; the CLI prints the message
and exits. ``HeaderEncodeFailed`` is the one non-fatal member: the assembler
catches it and degrades the ``header_rlp`` field.
"""
from typing import Optional


class RelayerError(Exception):
    pass


class UsageError(RelayerError):
    pass


class ConfigError(RelayerError):
    pass


class DirectorySetupFailed(RelayerError):
    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"cannot set up directory {path}: {cause}")


class HeaderFetchFailed(RelayerError):
    def __init__(self, number: int, cause: BaseException):
        self.number = number
        self.cause = cause
        super().__init__(f"Getting header failed for block {number}: {cause}")


class CacheUnavailable(RelayerError):
    def __init__(self, epoch: int, cause: Optional[BaseException]):
        self.epoch = epoch
        self.cause = cause
        super().__init__(
            f"Getting cache failed after trying to create it (epoch {epoch}): {cause}. Abort.")


class RebuildFailed(RelayerError):
    def __init__(self, epoch: int, cause: BaseException):
        self.epoch = epoch
        self.cause = cause
        super().__init__(f"Creating cache failed (epoch {epoch}): {cause}")


class IndexProofFailed(RelayerError):
    def __init__(self, index: int, cause: BaseException):
        self.index = index
        self.cause = cause
        super().__init__(f"calculating the proofs failed for index: {index}, error: {cause}")


class HeaderEncodeFailed(RelayerError):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Can't rlp encode the header: {cause}")


class ToolError(RelayerError):
    """The external ethashproof helper exited non-zero or answered garbage."""

    def __init__(self, cmd: str, returncode: Optional[int], detail: str):
        self.cmd = cmd
        self.returncode = returncode
        self.detail = detail
        rc = "" if returncode is None else f" (exit {returncode})"
        msg = f"tool cmd failed{rc}: {cmd}"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class RecordInvariantError(RelayerError):
    pass

from __future__ import annotations


class IndexerError(Exception):
    """Base class for every error raised by the indexer core."""


class NodeUnavailableError(IndexerError):
    """
    Transport-level failure talking to the node (connection refused, timeout,
    HTTP error). Always transient from the sync loop's point of view.
    """


class NodeRpcError(IndexerError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, code: int | None, message: str, *, method: str | None = None) -> None:
        self.code = code
        self.message = message
        self.method = method
        prefix = f"{method}: " if method else ""
        super().__init__(f"{prefix}[{code}] {message}")


class BlockNotFoundError(NodeRpcError):
    """The node does not know the requested block (height out of range / unknown hash)."""


class DecodeError(IndexerError):
    """A node payload did not have the shape the indexer expects."""


class StoreError(IndexerError):
    """Database failure while reading or committing indexed rows."""

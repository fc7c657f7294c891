"""
Binary persistence for MarkovChain.

Layout (big-endian, compatible with java.io.DataOutputStream):
    int32 version
    int32 node count
    per node:  uint16 length + UTF-8 content, int32 connection count
    per node:  int32 connection count, then (int64 weight, int32 target index)*
    int32 beginning count, then int32 node index*

A target index of -1 is the terminal. Indices are positions in the node
table, so a node may refer to one written after it.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
import struct
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from .exceptions import FormatError, VersionError
from .markov import TERMINAL, Connection, MarkovChain, Node
from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)

MARKOV_IO_VERSION = 1

_INT = struct.Struct(">i")
_LONG = struct.Struct(">q")
_USHORT = struct.Struct(">H")

_MAX_UTF_LENGTH = 0xFFFF
_MAX_WEIGHT = 0xFFFFFFFF

PathLike = Union[str, Path]


# ----------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------
def serialize_to_stream(chain: MarkovChain, stream: BinaryIO) -> None:
    """
    Write the chain to a binary stream.
    The stream is neither flushed nor closed.
    """
    nodes, beginnings = chain._export()

    out = bytearray()
    out += _INT.pack(MARKOV_IO_VERSION)
    out += _INT.pack(len(nodes))

    # contents and connection counts are enough to create the node shells
    for content, connections in nodes:
        encoded = content.encode("utf-8")
        if len(encoded) > _MAX_UTF_LENGTH:
            raise FormatError(f"Node content is too long to encode: {len(encoded)} bytes")
        out += _USHORT.pack(len(encoded))
        out += encoded
        out += _INT.pack(len(connections))

    for _, connections in nodes:
        # repeated so the reader can stream the second table
        out += _INT.pack(len(connections))
        for weight, target in connections:
            out += _LONG.pack(weight)
            out += _INT.pack(target)

    out += _INT.pack(len(beginnings))
    for index in beginnings:
        out += _INT.pack(index)

    stream.write(bytes(out))
    logger.debug(f"[MarkovIO] Serialized {len(nodes)} nodes ({len(out)} bytes)")


def serialize_to_bytes(chain: MarkovChain) -> bytes:
    buffer = io.BytesIO()
    serialize_to_stream(chain, buffer)
    return buffer.getvalue()


def serialize_to_string(chain: MarkovChain) -> str:
    """Serialize to base64 text for transports that only carry strings."""
    return base64.b64encode(serialize_to_bytes(chain)).decode("ascii")


def serialize_to_file(chain: MarkovChain, path: PathLike) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        serialize_to_stream(chain, f)
    logger.info(f"[MarkovIO] Saved chain to {path}")
    return path


# ----------------------------------------------------------------------
# Deserialization
# ----------------------------------------------------------------------
class _Reader:
    """Reads fixed-width fields, turning short reads into FormatError."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def _read(self, size: int) -> bytes:
        data = self.stream.read(size)
        if data is None or len(data) != size:
            raise FormatError("Unexpected end of serialized chain")
        return data

    def read_int(self) -> int:
        return _INT.unpack(self._read(_INT.size))[0]

    def read_long(self) -> int:
        return _LONG.unpack(self._read(_LONG.size))[0]

    def read_count(self, what: str) -> int:
        count = self.read_int()
        if count < 0:
            raise FormatError(f"Negative {what} count: {count}")
        return count

    def read_utf(self) -> str:
        length = _USHORT.unpack(self._read(_USHORT.size))[0]
        try:
            return self._read(length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError(f"Invalid node content: {e}") from e


def deserialize_from_stream(stream: BinaryIO, tokenizer: Optional[Tokenizer] = None) -> MarkovChain:
    """
    Read a chain written by serialize_to_stream.
    Always returns a new chain.

    Raises:
        VersionError: The data was written by a newer format version.
        FormatError: The data is truncated or inconsistent.
    """
    reader = _Reader(stream)

    version = reader.read_int()
    if version > MARKOV_IO_VERSION:
        raise VersionError(
            f"The version of this markov chain is greater than that of the deserializer: "
            f"{version} > {MARKOV_IO_VERSION}."
        )
    if version < 1:
        raise FormatError(f"Invalid markov chain version: {version}")

    node_count = reader.read_count("node")
    nodes: List[Node] = []
    declared: List[int] = []
    keys = set()
    for _ in range(node_count):
        content = reader.read_utf()
        key = content.lower()
        if key in keys:
            raise FormatError(f"Duplicate node content: {content!r}")
        keys.add(key)
        nodes.append(Node(content))
        declared.append(reader.read_count("connection"))

    for index, node in enumerate(nodes):
        connection_count = reader.read_count("connection")
        if connection_count != declared[index]:
            raise FormatError(
                f"Connection count mismatch for node {index}: {connection_count} != {declared[index]}"
            )
        targets = set()
        for _ in range(connection_count):
            weight = reader.read_long()
            if not 0 <= weight <= _MAX_WEIGHT:
                raise FormatError(f"Invalid connection weight: {weight}")
            target = reader.read_int()
            if target != TERMINAL and not 0 <= target < node_count:
                raise FormatError(f"Connection target out of range: {target}")
            if target in targets:
                raise FormatError(f"Duplicate connection from node {index} to {target}")
            targets.add(target)
            node.connections.append(Connection(target, weight))

    beginning_count = reader.read_count("beginning")
    beginnings = []
    for _ in range(beginning_count):
        index = reader.read_int()
        if not 0 <= index < node_count:
            raise FormatError(f"Beginning index out of range: {index}")
        beginnings.append(index)

    logger.debug(f"[MarkovIO] Deserialized {node_count} nodes, {len(beginnings)} beginnings")
    return MarkovChain._restore(nodes, beginnings, tokenizer)


def deserialize_from_bytes(data: bytes, tokenizer: Optional[Tokenizer] = None) -> MarkovChain:
    return deserialize_from_stream(io.BytesIO(data), tokenizer)


def deserialize_from_string(data: str, tokenizer: Optional[Tokenizer] = None) -> MarkovChain:
    """Read a chain from the base64 text produced by serialize_to_string."""
    try:
        raw = base64.b64decode(data.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise FormatError(f"Invalid base64 chain data: {e}") from e
    return deserialize_from_bytes(raw, tokenizer)


def deserialize_from_file(path: PathLike, tokenizer: Optional[Tokenizer] = None) -> MarkovChain:
    path = Path(path)
    with path.open("rb") as f:
        chain = deserialize_from_stream(f, tokenizer)
    logger.info(f"[MarkovIO] Loaded chain from {path}")
    return chain

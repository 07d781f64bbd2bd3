"""
UnixFS payload envelope.

Object payloads returned by the IPFS API are protobuf ``Data`` messages that
tag each node as a directory, file, raw block, ... This module decodes them
into a small tagged union: ``Tree`` for directory-like nodes and ``Leaf`` for
everything that carries bytes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union
import logging

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError

from ipfsgate.errors import InvalidPayload

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    """UnixFS data types, numbered as on the wire."""
    RAW = 0
    DIRECTORY = 1
    FILE = 2
    METADATA = 3
    SYMLINK = 4
    HAMT_SHARD = 5


DIRECTORY_KINDS = (NodeKind.DIRECTORY, NodeKind.HAMT_SHARD)


@dataclass(frozen=True)
class Tree:
    """Directory marker: has links, no payload of its own."""
    kind: NodeKind = NodeKind.DIRECTORY


@dataclass(frozen=True)
class Leaf:
    """Node carrying payload bytes."""
    data: bytes
    kind: NodeKind = NodeKind.FILE


ResolvedNode = Union[Tree, Leaf]


def _build_data_message():
    """Build the ``unixfs.pb.Data`` message class from a runtime descriptor."""
    fields = descriptor_pb2.FieldDescriptorProto
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="ipfsgate/unixfs.proto",
        package="unixfs.pb",
        syntax="proto2",
    )
    message = file_proto.message_type.add(name="Data")
    data_type = message.enum_type.add(name="DataType")
    for kind in NodeKind:
        data_type.value.add(name=kind.name, number=kind.value)

    message.field.add(
        name="Type", number=1, label=fields.LABEL_REQUIRED,
        type=fields.TYPE_ENUM, type_name=".unixfs.pb.Data.DataType",
    )
    message.field.add(name="Data", number=2, label=fields.LABEL_OPTIONAL, type=fields.TYPE_BYTES)
    message.field.add(name="filesize", number=3, label=fields.LABEL_OPTIONAL, type=fields.TYPE_UINT64)
    message.field.add(name="blocksizes", number=4, label=fields.LABEL_REPEATED, type=fields.TYPE_UINT64)
    message.field.add(name="hashType", number=5, label=fields.LABEL_OPTIONAL, type=fields.TYPE_UINT64)
    message.field.add(name="fanout", number=6, label=fields.LABEL_OPTIONAL, type=fields.TYPE_UINT64)

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return message_factory.GetMessageClass(pool.FindMessageTypeByName("unixfs.pb.Data"))


UnixFSData = _build_data_message()


def unmarshal(envelope: bytes) -> ResolvedNode:
    """
    Decode a UnixFS envelope.

    Args:
        envelope: Raw object payload from the IPFS API

    Returns:
        ``Tree`` for directories and HAMT shards, ``Leaf`` otherwise

    Raises:
        InvalidPayload: If the bytes are not a UnixFS ``Data`` message
    """
    message = UnixFSData()
    try:
        message.ParseFromString(envelope)
    except DecodeError as e:
        raise InvalidPayload(f"Invalid UnixFS envelope: {e}") from e
    if not message.HasField("Type"):
        raise InvalidPayload("UnixFS envelope has no data type")

    kind = NodeKind(message.Type)
    if kind in DIRECTORY_KINDS:
        return Tree(kind=kind)
    if not message.Data and len(message.blocksizes):
        # chunked file: content lives in child blocks, only inline data is served
        logger.warning(
            f"UnixFS file has {len(message.blocksizes)} blocks and no inline data; serving empty payload"
        )
    return Leaf(data=message.Data, kind=kind)


def marshal(node: ResolvedNode) -> bytes:
    """Encode a node as a UnixFS envelope."""
    message = UnixFSData()
    message.Type = node.kind.value
    if isinstance(node, Leaf):
        message.Data = node.data
        message.filesize = len(node.data)
    return message.SerializeToString()

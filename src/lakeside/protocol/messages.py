"""Protobuf message schemas for the Lakeside wire protocol.

The descriptors are assembled at import time from the table below instead of
a protoc-generated module. Every top-level packet shares the same envelope
(``sequence`` = 1, ``code`` = 2, ``ping`` = 3) and carries its
device-specific body at field 4, which is why a ping reply from any model
decodes cleanly as ``T1012Packet``.

Equivalent ``.proto`` for the envelope::

    message T1012Packet {
      optional int32 sequence = 1;
      optional string code = 2;
      optional Ping ping = 3;
      optional BulbInfo bulbinfo = 4;
    }
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message

__all__ = [
    "PACKET_CLASSES",
    "Message",
    "T1012Packet",
    "T1013Packet",
    "T1201Packet",
]

_PACKAGE = "lakeside"

_FieldType = descriptor_pb2.FieldDescriptorProto
_SCALAR_TYPES: dict[str, int] = {
    "int32": _FieldType.TYPE_INT32,
    "string": _FieldType.TYPE_STRING,
}

# message name -> [(field name, field number, scalar type or message name)]
# Field numbers are provisional: they must be checked against the vendor
# lakeside.proto before these messages are sent to real hardware.
_SCHEMA: dict[str, list[tuple[str, int, str]]] = {
    "Ping": [("type", 1, "int32")],
    # white bulbs (T1011, T1012)
    "BulbState": [("power", 1, "int32"), ("brightness", 2, "int32"), ("temperature", 3, "int32")],
    "BulbSet": [("command", 1, "int32"), ("state", 2, "BulbState")],
    "BulbPacket": [("unknown1", 1, "int32"), ("bulbset", 2, "BulbSet"), ("bulbstate", 3, "BulbState")],
    "BulbInfo": [("type", 1, "int32"), ("packet", 2, "BulbPacket")],
    "T1012Packet": [("sequence", 1, "int32"), ("code", 2, "string"), ("ping", 3, "Ping"), ("bulbinfo", 4, "BulbInfo")],
    # color bulb (T1013)
    "WhiteValues": [("brightness", 1, "int32"), ("temperature", 2, "int32")],
    "ColorValues": [("red", 1, "int32"), ("green", 2, "int32"), ("blue", 3, "int32"), ("brightness", 4, "int32")],
    "ColorBulbState": [
        ("power", 1, "int32"),
        ("mode", 2, "int32"),
        ("white", 3, "WhiteValues"),
        ("color", 4, "ColorValues"),
    ],
    "ColorBulbControl": [("command", 1, "int32"), ("state", 2, "ColorBulbState")],
    "ColorBulbPacket": [("unknown1", 1, "int32"), ("control", 2, "ColorBulbControl"), ("state", 3, "ColorBulbState")],
    "ColorBulbInfo": [("type", 1, "int32"), ("packet", 2, "ColorBulbPacket")],
    "T1013Packet": [
        ("sequence", 1, "int32"),
        ("code", 2, "string"),
        ("ping", 3, "Ping"),
        ("bulbinfo", 4, "ColorBulbInfo"),
    ],
    # plugs and switches (T1201, T1202, T1203, T1211)
    "SwitchState": [("power", 1, "int32")],
    "SwitchSet": [("command", 1, "int32"), ("state", 2, "SwitchState")],
    "SwitchPacket": [("unknown1", 1, "int32"), ("switchset", 2, "SwitchSet"), ("switchstatus", 3, "SwitchState")],
    "SwitchInfo": [("type", 1, "int32"), ("packet", 2, "SwitchPacket")],
    "T1201Packet": [
        ("sequence", 1, "int32"),
        ("code", 2, "string"),
        ("ping", 3, "Ping"),
        ("switchinfo", 4, "SwitchInfo"),
    ],
}


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(name="lakeside.proto", package=_PACKAGE, syntax="proto2")
    for message_name, fields in _SCHEMA.items():
        message_proto = file_proto.message_type.add(name=message_name)
        for field_name, number, field_type in fields:
            field_proto = message_proto.field.add(name=field_name, number=number, label=_FieldType.LABEL_OPTIONAL)
            if field_type in _SCALAR_TYPES:
                field_proto.type = _SCALAR_TYPES[field_type]
            else:
                field_proto.type = _FieldType.TYPE_MESSAGE
                field_proto.type_name = f".{_PACKAGE}.{field_type}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_ = _pool.AddSerializedFile(_build_file_descriptor().SerializeToString())


def message_class(name: str) -> type[Message]:
    """Return the generated message class for a schema entry."""
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{_PACKAGE}.{name}"))


T1012Packet: type[Message] = message_class("T1012Packet")
T1013Packet: type[Message] = message_class("T1013Packet")
T1201Packet: type[Message] = message_class("T1201Packet")

PACKET_CLASSES: dict[str, type[Message]] = {
    "T1012Packet": T1012Packet,
    "T1013Packet": T1013Packet,
    "T1201Packet": T1201Packet,
}

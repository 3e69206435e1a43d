"""
Chronik protobuf wire format.

Chronik's HTTP API answers with protobuf bodies (application/x-protobuf). The
message types needed here (TxHistoryPage, BlockchainInfo and what they embed)
are declared as a FileDescriptorProto and turned into message classes at import,
so no generated *_pb2 module or protoc step is needed. Only the fields this
package reads are declared; unknown fields in Chronik's responses are skipped
by the protobuf parser.

Decoded messages are rendered as dicts in the shape chronik-client produces:
camelCase keys, txids and block hashes as byte-reversed hex, int64 as strings.
"""

from __future__ import annotations

from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError

_F = descriptor_pb2.FieldDescriptorProto

# message name -> [(field name, number, type, message type name or None, repeated)]
_MESSAGES: dict[str, list[tuple[str, int, int, str | None, bool]]] = {
    "OutPoint": [
        ("txid", 1, _F.TYPE_BYTES, None, False),
        ("out_idx", 2, _F.TYPE_UINT32, None, False),
    ],
    "TxInput": [
        ("prev_out", 1, _F.TYPE_MESSAGE, "OutPoint", False),
        ("input_script", 2, _F.TYPE_BYTES, None, False),
        ("output_script", 3, _F.TYPE_BYTES, None, False),
        ("value", 4, _F.TYPE_INT64, None, False),
        ("sequence_no", 5, _F.TYPE_UINT32, None, False),
    ],
    "TxOutput": [
        ("value", 1, _F.TYPE_INT64, None, False),
        ("output_script", 2, _F.TYPE_BYTES, None, False),
    ],
    "BlockMetadata": [
        ("height", 1, _F.TYPE_INT32, None, False),
        ("hash", 2, _F.TYPE_BYTES, None, False),
        ("timestamp", 3, _F.TYPE_INT64, None, False),
    ],
    "Tx": [
        ("txid", 1, _F.TYPE_BYTES, None, False),
        ("version", 2, _F.TYPE_INT32, None, False),
        ("inputs", 3, _F.TYPE_MESSAGE, "TxInput", True),
        ("outputs", 4, _F.TYPE_MESSAGE, "TxOutput", True),
        ("lock_time", 5, _F.TYPE_UINT32, None, False),
        ("block", 8, _F.TYPE_MESSAGE, "BlockMetadata", False),
        ("time_first_seen", 9, _F.TYPE_INT64, None, False),
        ("size", 11, _F.TYPE_UINT32, None, False),
        ("is_coinbase", 12, _F.TYPE_BOOL, None, False),
    ],
    "TxHistoryPage": [
        ("txs", 1, _F.TYPE_MESSAGE, "Tx", True),
        ("num_pages", 2, _F.TYPE_UINT32, None, False),
        ("num_txs", 3, _F.TYPE_UINT32, None, False),
    ],
    "BlockchainInfo": [
        ("tip_hash", 1, _F.TYPE_BYTES, None, False),
        ("tip_height", 2, _F.TYPE_INT32, None, False),
    ],
}


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="alias_server/chronik.proto", package="chronik", syntax="proto3"
    )
    for message_name, fields in _MESSAGES.items():
        message = file_proto.message_type.add(name=message_name)
        for name, number, field_type, type_name, repeated in fields:
            field = message.field.add(
                name=name,
                number=number,
                type=field_type,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if type_name is not None:
                field.type_name = f".chronik.{type_name}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())

TxHistoryPage = message_factory.GetMessageClass(_pool.FindMessageTypeByName("chronik.TxHistoryPage"))
BlockchainInfo = message_factory.GetMessageClass(_pool.FindMessageTypeByName("chronik.BlockchainInfo"))


def _hex_rev(raw: bytes) -> str:
    return raw[::-1].hex()


def _tx_to_dict(tx: Any) -> dict[str, Any]:
    out: dict[str, Any] = {
        "txid": _hex_rev(tx.txid),
        "version": tx.version,
        "inputs": [
            {
                "prevOut": {"txid": _hex_rev(i.prev_out.txid), "outIdx": i.prev_out.out_idx},
                "inputScript": i.input_script.hex(),
                "outputScript": i.output_script.hex(),
                "value": str(i.value),
                "sequenceNo": i.sequence_no,
            }
            for i in tx.inputs
        ],
        "outputs": [
            {"value": str(o.value), "outputScript": o.output_script.hex()}
            for o in tx.outputs
        ],
        "lockTime": tx.lock_time,
        "timeFirstSeen": str(tx.time_first_seen),
        "size": tx.size,
        "isCoinbase": tx.is_coinbase,
    }
    # Unconfirmed txs carry no block
    if tx.HasField("block"):
        out["block"] = {
            "height": tx.block.height,
            "hash": _hex_rev(tx.block.hash),
            "timestamp": str(tx.block.timestamp),
        }
    return out


def decode_tx_history_page(body: bytes) -> dict[str, Any]:
    """Decode a TxHistoryPage body to {"txs": [...], "numPages": n, "numTxs": n}."""
    page = TxHistoryPage()
    try:
        page.ParseFromString(body)
    except DecodeError as e:
        raise ValueError(f"undecodable TxHistoryPage: {e}") from e
    return {
        "txs": [_tx_to_dict(tx) for tx in page.txs],
        "numPages": page.num_pages,
        "numTxs": page.num_txs,
    }


def decode_blockchain_info(body: bytes) -> dict[str, Any]:
    """Decode a BlockchainInfo body to {"tipHash": hex, "tipHeight": n}."""
    info = BlockchainInfo()
    try:
        info.ParseFromString(body)
    except DecodeError as e:
        raise ValueError(f"undecodable BlockchainInfo: {e}") from e
    return {"tipHash": _hex_rev(info.tip_hash), "tipHeight": info.tip_height}

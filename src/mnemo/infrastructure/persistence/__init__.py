# Infrastructure Persistence Package
from .codec import JsonStateCodec, decode_state, encode_state
from .file_gateway import JsonFileGateway
from .memory_gateway import MemoryGateway

__all__ = [
    "encode_state",
    "decode_state",
    "JsonStateCodec",
    "JsonFileGateway",
    "MemoryGateway",
]

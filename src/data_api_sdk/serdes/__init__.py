"""
Ser/des (serialization/deserialization) for Data API documents.

Exports codecs, contexts and the collection/table engines.
"""

from .big_numbers import NumRep, coerce_nums, num_rep_fn_from_config
from .codecs import Codec, CodecKind, CodecRegistry, Codecs, path_matches
from .collections import CollectionCodecs, CollectionSerDes
from .ctx import NEVERMIND, UNSET, DesCtx, SerCtx, SerDesTarget, Signal, SignalKind
from .engine import MAX_DEPTH, SerDes
from .key_transformer import Camel2SnakeCase, KeyTransformer
from .tables import TableCodecs, TableDesCtx, TableSerDes

__all__ = [
    # Codecs
    "Codec",
    "CodecKind",
    "CodecRegistry",
    "Codecs",
    "CollectionCodecs",
    "TableCodecs",
    "path_matches",
    # Contexts
    "SerCtx",
    "DesCtx",
    "TableDesCtx",
    "SerDesTarget",
    "Signal",
    "SignalKind",
    "NEVERMIND",
    "UNSET",
    # Engines
    "SerDes",
    "CollectionSerDes",
    "TableSerDes",
    "MAX_DEPTH",
    # Key transformers
    "KeyTransformer",
    "Camel2SnakeCase",
    # Big numbers
    "NumRep",
    "coerce_nums",
    "num_rep_fn_from_config",
]

"""Collection-level data access over a DocumentStore"""
from .itineraries import ItineraryRepository
from .users import UserRepository
from .connections import ConnectionRepository
from .rpc_server import LocalRpcClient

__all__ = [
    "ItineraryRepository",
    "UserRepository",
    "ConnectionRepository",
    "LocalRpcClient",
]

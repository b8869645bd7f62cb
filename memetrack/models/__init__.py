from memetrack.models.base import Base
from memetrack.models.price import Price
from memetrack.models.token import Token

__all__ = [
    "Base",
    "Price",
    "Token",
]

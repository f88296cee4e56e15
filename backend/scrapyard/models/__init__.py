from .storage import StoreRecord

__all__ = [
    'StoreRecord',
]

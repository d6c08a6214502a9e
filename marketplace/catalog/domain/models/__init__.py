from .card import Card, CollectionItem


__all__ = [
    "Card",
    "CollectionItem",
]

from .block import Block
from .report import Report
from .review import Review


__all__ = [
    "Review",
    "Report",
    "Block",
]

from .mixins import SoftDeleteMixin
from .records import Record
from .tallies import Tally

__all__ = [
    'SoftDeleteMixin',
    'Record',
    'Tally',
]

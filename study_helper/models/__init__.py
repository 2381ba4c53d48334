from study_helper.models.user import Account
from study_helper.models.history import HistoryEntry

__all__ = [
    "Account",
    "HistoryEntry",
]

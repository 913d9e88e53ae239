from .progress import UserProgress
from .completion import DailyCompletion
from .token_transaction import TokenTransaction, TokenType, TransactionKind
from .achievement import UserAchievement
from .store import StoreItem, StoreCategory, UserPurchase
from .challenge import DailyChallenge, UserChallengeCompletion

__all__ = [
    "UserProgress",
    "DailyCompletion",
    "TokenTransaction",
    "TokenType",
    "TransactionKind",
    "UserAchievement",
    "StoreItem",
    "StoreCategory",
    "UserPurchase",
    "DailyChallenge",
    "UserChallengeCompletion",
]

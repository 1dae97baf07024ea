from .user import User
from .tokens import TokenBalanceResponse, TokenTransactionEntry, TokenTransactionResult
from .redemption import RedeemableKind, RedemptionQuote, RedemptionResponse
from .rewards import UserEarningsResponse

class PurchaseError(Exception):
    pass


class TierNotFoundError(PurchaseError):
    pass


class PurchaseSessionConfirmedError(PurchaseError):
    pass


class PurchaseConfirmationError(PurchaseError):
    pass


class NotAuthenticatedError(PurchaseConfirmationError):
    pass


class TierNotSelectedError(PurchaseConfirmationError):
    pass


class InvalidQuantityError(PurchaseConfirmationError):
    pass


class ZeroPriceError(PurchaseConfirmationError):
    pass


class PurchaseVerificationError(PurchaseError):
    pass


class InsufficientSeatsError(PurchaseVerificationError):
    pass


class QuantityLimitExceededError(PurchaseVerificationError):
    pass


class CouponUnavailableError(PurchaseVerificationError):
    pass


class PromotionUnavailableError(PurchaseVerificationError):
    pass


class InsufficientPointsError(PurchaseVerificationError):
    pass


class PriceMismatchError(PurchaseVerificationError):
    pass


class StagedIntentMismatchError(PurchaseError):
    pass


class StagedIntentMissingError(PurchaseError):
    pass

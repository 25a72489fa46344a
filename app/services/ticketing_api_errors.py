PROMO_NOT_FOUND_MESSAGE = "Invalid promotional code"


class TicketingApiError(Exception):
    pass


class UserDataFetchError(TicketingApiError):
    pass


class PromotionLookupError(TicketingApiError):
    pass


class PromotionNotFoundError(PromotionLookupError):
    pass


class TransactionCreationError(TicketingApiError):
    pass

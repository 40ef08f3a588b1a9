"""
Error taxonomy shared by the cart, promo, order and checkout services.

Every error carries a `user_message` meant to be shown as-is by a screen.
Validation errors are raised before the store is touched; StorageUnavailable
wraps failures of the store itself.
"""


class MarketplaceError(Exception):
    user_message = "Something went wrong."

    def __init__(self, message: str = None):
        self.user_message = message or self.user_message
        super().__init__(self.user_message)


class ValidationError(MarketplaceError):
    user_message = "Invalid input."


class InvalidQuantity(ValidationError):
    user_message = "Quantity must be at least 1."


class PromoAlreadyApplied(ValidationError):
    user_message = "A promo code is already applied."


class InsufficientStock(MarketplaceError):
    def __init__(self, available: int, message: str = None):
        self.available = available
        super().__init__(message or f"Only {available} available.")


class InvalidTransition(MarketplaceError):
    user_message = "This order can no longer be changed."


class UnknownPromoCode(MarketplaceError):
    user_message = "That promo code is not recognized."


class EmptyCart(MarketplaceError):
    user_message = "Add items before checking out."


class ActiveOrderExists(MarketplaceError):
    def __init__(self, order_id: str, message: str = None):
        self.order_id = order_id
        super().__init__(message or "You already have an active order for this product.")


class NotFound(MarketplaceError):
    user_message = "Not found."


class ProductNotFound(NotFound):
    user_message = "Product not found."


class CartItemNotFound(NotFound):
    user_message = "Cart item not found."


class OrderNotFound(NotFound):
    user_message = "Order not found."


class NotOrderParticipant(MarketplaceError):
    user_message = "You cannot change this order."


class OperationInProgress(MarketplaceError):
    user_message = "Please wait, the previous request is still running."


class StorageUnavailable(MarketplaceError):
    user_message = "The store is unavailable, try again."

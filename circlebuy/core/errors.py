"""
Domain errors raised by services and converted to JSON responses in main.py.

Every error carries a stable machine-readable code and the HTTP status it maps
to. Messages are safe to show to end users; they never echo secrets such as
group access codes.
"""


class CircleBuyError(Exception):
    """Base exception for all business rule violations."""

    code = "CIRCLEBUY_ERROR"
    http_status = 400

    def __init__(self, message: str, code: str = None, http_status: int = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status

    def to_response(self) -> dict:
        return {"detail": self.message, "code": self.code}


# Lookups

class NotFoundError(CircleBuyError):
    code = "NOT_FOUND"
    http_status = 404


class GroupNotFound(NotFoundError):
    code = "GROUP_NOT_FOUND"

    def __init__(self, message: str = "Group not found"):
        super().__init__(message)


class ProductNotFound(NotFoundError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, message: str = "Product not found"):
        super().__init__(message)


class ProfileNotFound(NotFoundError):
    code = "PROFILE_NOT_FOUND"

    def __init__(self, message: str = "Profile not found"):
        super().__init__(message)


class JoinRequestNotFound(NotFoundError):
    code = "JOIN_REQUEST_NOT_FOUND"

    def __init__(self, message: str = "No pending join request found"):
        super().__init__(message)


class CheckoutNotFound(NotFoundError):
    code = "CHECKOUT_NOT_FOUND"

    def __init__(self, message: str = "Checkout not found"):
        super().__init__(message)


class KycNotFound(NotFoundError):
    code = "KYC_NOT_FOUND"

    def __init__(self, message: str = "KYC record not found"):
        super().__init__(message)


class CartItemNotFound(NotFoundError):
    code = "CART_ITEM_NOT_FOUND"

    def __init__(self, message: str = "Cart item not found"):
        super().__init__(message)


class OrderNotFound(NotFoundError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, message: str = "Order not found"):
        super().__init__(message)


class WishlistItemNotFound(NotFoundError):
    code = "WISHLIST_ITEM_NOT_FOUND"

    def __init__(self, message: str = "Product is not in your wishlist"):
        super().__init__(message)


# Membership

class AlreadyMember(CircleBuyError):
    code = "ALREADY_MEMBER"
    http_status = 409

    def __init__(self, message: str = "You are already a member of this group"):
        super().__init__(message)


class DuplicateJoinRequest(CircleBuyError):
    code = "DUPLICATE_JOIN_REQUEST"
    http_status = 409

    def __init__(self, message: str = "You already have a pending request to join this group"):
        super().__init__(message)


class NotMember(CircleBuyError):
    code = "NOT_MEMBER"
    http_status = 409

    def __init__(self, message: str = "You are not a member of this group"):
        super().__init__(message)


class GroupFull(CircleBuyError):
    code = "GROUP_FULL"
    http_status = 409

    def __init__(self, message: str = "This group has reached its member limit"):
        super().__init__(message)


class CreatorCannotLeave(CircleBuyError):
    code = "CREATOR_CANNOT_LEAVE"
    http_status = 409

    def __init__(self, message: str = "The group creator cannot leave; delete the group instead"):
        super().__init__(message)


class InviteRequired(CircleBuyError):
    code = "INVITE_REQUIRED"
    http_status = 403

    def __init__(self, message: str = "This group is invite-only. Please ask for an invitation."):
        super().__init__(message)


class InvalidAccessCode(CircleBuyError):
    code = "INVALID_ACCESS_CODE"
    http_status = 403

    def __init__(self):
        super().__init__("The access code is not valid for this group")


class JoinRequestAlreadyReviewed(CircleBuyError):
    code = "JOIN_REQUEST_REVIEWED"
    http_status = 409

    def __init__(self, status: str):
        super().__init__(f"Join request has already been {status}")


# Authorization

class PermissionDenied(CircleBuyError):
    code = "PERMISSION_DENIED"
    http_status = 403


class KycNotApproved(PermissionDenied):
    code = "KYC_NOT_APPROVED"

    def __init__(self, message: str = "Your KYC must be approved before listing products"):
        super().__init__(message)


# Pricing / checkout

class InvalidDiscountTier(CircleBuyError):
    code = "INVALID_DISCOUNT_TIER"
    http_status = 422


class InvalidPaymentTransition(CircleBuyError):
    code = "INVALID_PAYMENT_TRANSITION"
    http_status = 409

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change payment status from {current} to {target}")
        self.current = current
        self.target = target


class CheckoutNotAllowed(CircleBuyError):
    code = "CHECKOUT_NOT_ALLOWED"
    http_status = 409


# Orders

class EmptyCart(CircleBuyError):
    code = "EMPTY_CART"
    http_status = 409

    def __init__(self, message: str = "Your cart is empty"):
        super().__init__(message)


class InvalidOrderTransition(CircleBuyError):
    code = "INVALID_ORDER_TRANSITION"
    http_status = 409

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move an order from {current} to {target}")
        self.current = current
        self.target = target

from __future__ import annotations


class StorefrontError(Exception):
    """Base class for errors surfaced to API callers with a specific reason."""

    status_code = 400
    code = "storefront_error"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ValidationFailed(StorefrontError):
    code = "validation_error"


class NotFound(StorefrontError):
    status_code = 404
    code = "not_found"


class OrderNotFound(NotFound):
    code = "order_not_found"

    def __init__(self, order_id: str):
        super().__init__(f"order {order_id} not found")
        self.order_id = order_id


class ProductNotFound(NotFound):
    code = "product_not_found"

    def __init__(self, product_id: str):
        super().__init__(f"product {product_id} not found")
        self.product_id = product_id


class CartItemNotFound(NotFound):
    code = "cart_item_not_found"

    def __init__(self, item_id: str):
        super().__init__(f"cart item {item_id} not found")
        self.item_id = item_id


class BusinessRuleViolation(StorefrontError):
    code = "business_rule_violation"


class EmptyCart(BusinessRuleViolation):
    code = "empty_cart"

    def __init__(self):
        super().__init__("cart is empty")


class ProductInactive(BusinessRuleViolation):
    code = "product_inactive"

    def __init__(self, product_id: str, name: str):
        super().__init__(f"product {name} is no longer on sale")
        self.product_id = product_id


class InsufficientStock(BusinessRuleViolation):
    code = "insufficient_stock"

    def __init__(self, product_id: str, name: str, available: int, requested: int):
        super().__init__(
            f"product {name} insufficient stock, available: {available}, requested: {requested}"
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class DuplicateSku(BusinessRuleViolation):
    code = "duplicate_sku"
    status_code = 409


class IllegalTransition(BusinessRuleViolation):
    code = "illegal_transition"
    status_code = 409


class PaymentAmountMismatch(BusinessRuleViolation):
    code = "payment_amount_mismatch"

    def __init__(self, computed: int, paid: int):
        super().__init__(f"order total {computed} does not match paid amount {paid}")
        self.computed = computed
        self.paid = paid


class PaymentAlreadyUsed(BusinessRuleViolation):
    code = "payment_already_used"
    status_code = 409

    def __init__(self, gateway_payment_id: str):
        super().__init__(f"payment {gateway_payment_id} is already recorded against an order")
        self.gateway_payment_id = gateway_payment_id


class DiscountNotAllowed(BusinessRuleViolation):
    code = "discount_not_allowed"
    status_code = 403

    def __init__(self):
        super().__init__("only staff may apply a discount")


class PaymentVerificationFailed(StorefrontError):
    code = "payment_verification_failed"


class OrderNumberConflict(StorefrontError):
    status_code = 422
    code = "duplicate_order_number"

    def __init__(self):
        super().__init__("could not allocate a unique order number, please retry")


class GatewayConfigurationError(RuntimeError):
    """Server-side payment gateway credentials are missing or unusable."""

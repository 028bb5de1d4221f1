from storefront.payments.gateway import GatewayPayment, IamportClient, PaymentGatewayError
from storefront.payments.verifier import (
    GatewayPaymentVerifier,
    PaymentReference,
    PaymentVerifier,
    VerificationResult,
    build_payment_verifier,
    check_payment,
    get_payment_verifier,
)

__all__ = [
    "GatewayPayment",
    "GatewayPaymentVerifier",
    "IamportClient",
    "PaymentGatewayError",
    "PaymentReference",
    "PaymentVerifier",
    "VerificationResult",
    "build_payment_verifier",
    "check_payment",
    "get_payment_verifier",
]

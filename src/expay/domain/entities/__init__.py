"""Domain entities for ExPay.

Exports:
    Payment:
        - Payment: The payment resource
        - PaymentAttributes: Properties of a payment
        - BeneficiaryParty, DebtorParty, SponsorParty: Parties involved
        - ChargesInformation, Charge: Charges applied to a payment
        - Fx: Foreign exchange details
"""

from expay.domain.entities.payment import (
    BeneficiaryParty,
    Charge,
    ChargesInformation,
    DebtorParty,
    Fx,
    Payment,
    PaymentAttributes,
    SponsorParty,
)

__all__ = [
    "Payment",
    "PaymentAttributes",
    "BeneficiaryParty",
    "DebtorParty",
    "SponsorParty",
    "ChargesInformation",
    "Charge",
    "Fx",
]

"""Payment resource model.

Field names match the public JSON representation one to one, so a payment
is stored in the ``payment`` bucket exactly as clients send it. Every field
defaults to its empty value: a request body may omit anything, and
``verify`` decides what is actually required.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from expay.domain.errors import InvalidPaymentError


class _Resource(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BeneficiaryParty(_Resource):
    """Beneficiary party of a payment."""

    account_name: str = ""
    account_number: str = ""
    account_number_code: str = ""
    account_type: int = 0
    address: str = ""
    bank_id: str = ""
    bank_id_code: str = ""
    name: str = ""


class Charge(_Resource):
    """Amount and currency of a single charge."""

    amount: str = ""
    currency: str = ""


class ChargesInformation(_Resource):
    """Charges information of a payment."""

    bearer_code: str = ""
    sender_charges: list[Charge] | None = None
    receiver_charges_amount: str = ""
    receiver_charges_currency: str = ""


class DebtorParty(_Resource):
    """Debtor party of a payment."""

    account_name: str = ""
    account_number: str = ""
    account_number_code: str = ""
    address: str = ""
    bank_id: str = ""
    bank_id_code: str = ""
    name: str = ""


class Fx(_Resource):
    """Foreign exchange details of a payment."""

    contract_reference: str = ""
    exchange_rate: str = ""
    original_amount: str = ""
    original_currency: str = ""


class SponsorParty(_Resource):
    """Sponsor party of a payment."""

    account_number: str = ""
    bank_id: str = ""
    bank_id_code: str = ""


class PaymentAttributes(_Resource):
    """Properties of a payment."""

    amount: str = ""
    beneficiary_party: BeneficiaryParty = Field(default_factory=BeneficiaryParty)
    charges_information: ChargesInformation = Field(default_factory=ChargesInformation)
    currency: str = ""
    debtor_party: DebtorParty = Field(default_factory=DebtorParty)
    end_to_end_reference: str = ""
    fx: Fx = Field(default_factory=Fx)
    numeric_reference: str = ""
    payment_id: str = ""
    payment_purpose: str = ""
    payment_scheme: str = ""
    payment_type: str = ""
    processing_date: str = ""
    reference: str = ""
    scheme_payment_sub_type: str = ""
    scheme_payment_type: str = ""
    sponsor_party: SponsorParty = Field(default_factory=SponsorParty)


class Payment(_Resource):
    """A payment resource."""

    id: str = ""
    type: str = ""
    version: int = 0
    organisation_id: str = ""
    attributes: PaymentAttributes = Field(default_factory=PaymentAttributes)

    def verify(self) -> None:
        """Check that the payment is in a valid format.

        Raises:
            InvalidPaymentError: If the payment has no amount.
        """
        # TODO: add field-specific errors once the payment scheme rules are agreed
        if self.attributes.amount == "":
            raise InvalidPaymentError()

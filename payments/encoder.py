"""
Request encoder: AuthorizationRequest -> gateway JSON payload.

Three key policies coexist and must not be merged:

- wire-contract keys are always present, null when the caller left them unset;
- address keys are sent when non-null;
- `paymentTypeCountryCode` and `bic` are sent only when the caller explicitly
  provided a non-empty value.
"""

import json
from typing import Any

from payments.errors import EncodeError
from payments.models import AuthorizationRequest

INTENT_KEY = "intent"
RETURN_URL_KEY = "returnUrl"
CANCEL_URL_KEY = "cancelUrl"
EXPERIENCE_PROFILE_KEY = "experienceProfile"
NO_SHIPPING_KEY = "noShipping"
FUNDING_SOURCE_KEY = "fundingSource"
AMOUNT_KEY = "amount"
CURRENCY_CODE_KEY = "currencyIsoCode"
GIVEN_NAME_KEY = "firstName"
SURNAME_KEY = "lastName"
EMAIL_KEY = "payerEmail"
PHONE_KEY = "phone"
STREET_ADDRESS_KEY = "line1"
EXTENDED_ADDRESS_KEY = "line2"
LOCALITY_KEY = "city"
REGION_KEY = "state"
POSTAL_CODE_KEY = "postalCode"
COUNTRY_CODE_KEY = "countryCode"
MERCHANT_ACCOUNT_ID_KEY = "merchantAccountId"
PAYMENT_TYPE_COUNTRY_CODE_KEY = "paymentTypeCountryCode"
BIC_KEY = "bic"
OFFER_CREDIT_KEY = "offerPaypalCredit"
OFFER_PAY_LATER_KEY = "offerPayLater"

EncodedPayload = dict[str, Any]


def _explicitly_provided(request: AuthorizationRequest, field: str) -> str | None:
    if field not in request.model_fields_set:
        return None
    value = getattr(request, field)
    return value or None


def encode(
    request: AuthorizationRequest, return_url: str, cancel_url: str
) -> EncodedPayload:
    """Build the gateway payload for `request`.

    Raises EncodeError when the payload cannot be rendered as UTF-8 JSON.
    """
    payload: EncodedPayload = {
        INTENT_KEY: request.intent,
        RETURN_URL_KEY: return_url,
        CANCEL_URL_KEY: cancel_url,
        FUNDING_SOURCE_KEY: request.payment_type,
        AMOUNT_KEY: request.amount,
        CURRENCY_CODE_KEY: request.currency_code,
        GIVEN_NAME_KEY: request.given_name,
        SURNAME_KEY: request.surname,
        EMAIL_KEY: request.email,
        PHONE_KEY: request.phone,
        MERCHANT_ACCOUNT_ID_KEY: request.merchant_account_id,
    }

    for key, field in (
        (PAYMENT_TYPE_COUNTRY_CODE_KEY, "payment_type_country_code"),
        (BIC_KEY, "bic"),
    ):
        value = _explicitly_provided(request, field)
        if value is not None:
            payload[key] = value

    if request.address is not None:
        address = request.address
        for key, value in (
            (STREET_ADDRESS_KEY, address.street_address),
            (EXTENDED_ADDRESS_KEY, address.extended_address),
            (LOCALITY_KEY, address.locality),
            (REGION_KEY, address.region),
            (POSTAL_CODE_KEY, address.postal_code),
            (COUNTRY_CODE_KEY, address.country_code_alpha2),
        ):
            if value is not None:
                payload[key] = value

    if request.offer_credit:
        payload[OFFER_CREDIT_KEY] = True
    if request.offer_pay_later:
        payload[OFFER_PAY_LATER_KEY] = True

    payload[EXPERIENCE_PROFILE_KEY] = {
        NO_SHIPPING_KEY: not request.shipping_address_required
    }

    # Fail here rather than at send time
    dumps(payload)
    return payload


def dumps(payload: EncodedPayload) -> bytes:
    """Render a payload as stable UTF-8 JSON bytes."""
    try:
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode(
            "utf-8"
        )
    except (TypeError, ValueError, UnicodeEncodeError) as e:
        raise EncodeError(f"Payload is not encodable: {e}") from e


def encode_json(request: AuthorizationRequest, return_url: str, cancel_url: str) -> bytes:
    return dumps(encode(request, return_url, cancel_url))

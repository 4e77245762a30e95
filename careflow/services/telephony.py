"""
Twilio voice-call trigger used for appointment reminder calls.
"""

import logging

import httpx

from careflow.core import config

logger = logging.getLogger(__name__)


class TelephonyError(Exception):
    """Raised when a reminder call could not be placed."""


def normalize_phone_number(phone_number: str | None, default_country_code: str | None = None) -> str | None:
    """Return the number in E.164 form, prefixing the default country code if needed."""
    if not phone_number:
        return None

    digits = "".join(ch for ch in phone_number if ch.isdigit() or ch == "+")
    if not digits:
        return None
    if digits.startswith("+"):
        return digits

    country_code = default_country_code if default_country_code is not None else config.DEFAULT_COUNTRY_CODE
    return f"{country_code}{digits}"


def trigger_call(phone_number: str, announcement_url: str, client: httpx.Client | None = None) -> str:
    """
    Place an outbound call that plays a recorded announcement.

    Args:
        phone_number: Recipient phone number in E.164 format
        announcement_url: TwiML or recording URL Twilio fetches when the call connects
        client: Optional HTTP client, mainly for tests

    Returns:
        The Twilio call SID
    """
    if not config.TWILIO_ACCOUNT_SID or not config.TWILIO_AUTH_TOKEN or not config.TWILIO_PHONE_NUMBER:
        raise TelephonyError("Twilio credentials are not configured")
    if not announcement_url:
        raise TelephonyError("No announcement URL configured")

    url = f"{config.TWILIO_API_BASE_URL}/Accounts/{config.TWILIO_ACCOUNT_SID}/Calls.json"
    data = {
        "To": phone_number,
        "From": config.TWILIO_PHONE_NUMBER,
        "Url": announcement_url,
    }

    owns_client = client is None
    client = client or httpx.Client(timeout=config.TWILIO_TIMEOUT_SECONDS)
    try:
        logger.info(f"Placing reminder call to {phone_number}")
        response = client.post(url, data=data, auth=(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN))
    except httpx.HTTPError as exc:
        raise TelephonyError(f"Twilio request failed: {exc}") from exc
    finally:
        if owns_client:
            client.close()

    if response.status_code >= 400:
        try:
            message = response.json().get("message", response.text)
        except ValueError:
            message = response.text
        raise TelephonyError(f"Twilio rejected call ({response.status_code}): {message}")

    try:
        call_sid = response.json().get("sid", "")
    except ValueError as exc:
        raise TelephonyError(f"Twilio returned an unreadable response ({response.status_code})") from exc
    logger.info(f"Reminder call queued: sid={call_sid}, to={phone_number}")
    return call_sid

# promptpay.py
"""PromptPay QR payloads (tag-length-value) and their QR rendering."""
import re
from decimal import Decimal, InvalidOperation
from io import BytesIO

import qrcode

from .errors import ValidationError

PAYLOAD_FORMAT = '000201'
STATIC_QR = '010211'
MERCHANT_ACCOUNT_TAG = '2937'
COUNTRY_CODE = '5802TH'
CURRENCY_THB = '5303764'
AMOUNT_TAG = '54'
CRC_TAG = '6304'

ACCOUNT_NUMBER_RE = re.compile(r'^(\d{10}|\d{13})$')


def validate_account_number(account_number: str) -> str:
    account_number = (account_number or '').strip()
    if not ACCOUNT_NUMBER_RE.match(account_number):
        raise ValidationError(
            "Account number must be a 10 digit phone number or a 13 digit tax ID")
    return account_number


def crc16_ccitt_false(data: str) -> int:
    crc = 0xFFFF
    for byte in data.encode('ascii'):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


def tlv(tag: str, value: str) -> str:
    return f"{tag}{len(value):02d}{value}"


def parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {amount}")
    if not value.is_finite() or value < 0:
        raise ValidationError(f"Invalid amount: {amount}")
    return value


def format_amount(amount) -> str:
    """Decimal text without exponent or trailing zeros: 100 -> '100', 1.50 -> '1.5'."""
    return format(parse_amount(amount).normalize(), 'f')


def build_payload(account_number: str, amount=None, checksum: bool = True) -> str:
    """Build the PromptPay payload for a merchant account.

    The amount field is only emitted for a non-zero amount. With
    ``checksum=False`` the payload ends in the bare ``6304`` tag, which is how
    older saved payloads look.
    """
    merchant_info = f"{MERCHANT_ACCOUNT_TAG}{len(account_number):02d}{account_number}"
    amount_field = ''
    if amount is not None and parse_amount(amount):
        amount_field = tlv(AMOUNT_TAG, format_amount(amount))

    payload = (f"{PAYLOAD_FORMAT}{STATIC_QR}{merchant_info}{COUNTRY_CODE}"
               f"{CURRENCY_THB}{amount_field}{CRC_TAG}")
    if not checksum:
        return payload
    return f"{payload}{crc16_ccitt_false(payload):04X}"


def render_qr_png(payload: str) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()

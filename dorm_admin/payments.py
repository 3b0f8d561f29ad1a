# payments.py
import os
from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.utils import secure_filename

from . import repository
from .errors import NotFoundError, ValidationError, text_field
from .promptpay import build_payload, render_qr_png, validate_account_number
from .records import PaymentProfile, utc_now_iso
from .store import get_store

payments_bp = Blueprint('payments', __name__, url_prefix='/api/properties')


def _amount_arg():
    amount = request.args.get('amount', '').strip()
    return amount or None


def _configured_profile(property_id) -> PaymentProfile:
    profile = repository.load_payment_profile(get_store(), property_id)
    if profile is None or not profile.account_number:
        raise NotFoundError('PromptPay is not configured for this property')
    return profile


@payments_bp.route('/<property_id>/promptpay', methods=['GET'])
def get_promptpay(property_id):
    profile = repository.load_payment_profile(get_store(), property_id)
    return jsonify({'data': profile.to_dict() if profile else None})


@payments_bp.route('/<property_id>/promptpay', methods=['PUT'])
def save_promptpay(property_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON object')

    store = get_store()
    current = repository.load_payment_profile(store, property_id) or PaymentProfile(property_id)
    profile = current.with_changes(
        account_name=text_field(data, 'account_name', current.account_name),
        account_number=text_field(data, 'account_number', current.account_number),
        is_active=bool(data.get('is_active', current.is_active)),
    )
    if not profile.account_name:
        raise ValidationError('Account name is required')
    validate_account_number(profile.account_number)

    filename = secure_filename(f"promptpay_{property_id}.png")
    profile = profile.with_changes(property_id=property_id, qr_code_url=f'/uploads/{filename}',
                                   updated_at=utc_now_iso())
    repository.save_payment_profile(store, profile)

    # Render the QR once the profile is stored so it can be served as a static file
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], filename)
    with open(filepath, 'wb') as f:
        f.write(render_qr_png(build_payload(profile.account_number)))
    current_app.logger.info("Saved PromptPay settings for %s", property_id)
    return jsonify({'data': profile.to_dict()})


@payments_bp.route('/<property_id>/promptpay/payload', methods=['GET'])
def promptpay_payload(property_id):
    profile = _configured_profile(property_id)
    return jsonify({'payload': build_payload(profile.account_number, _amount_arg())})


@payments_bp.route('/<property_id>/promptpay/qr.png', methods=['GET'])
def promptpay_qr(property_id):
    profile = _configured_profile(property_id)
    png = render_qr_png(build_payload(profile.account_number, _amount_arg()))
    return send_file(BytesIO(png), mimetype='image/png')

"""
OTPURI API ROUTES - FLASK BLUEPRINT

JSON endpoints over the otpuri core. All endpoints are POST with a JSON body.

EXAMPLES:
curl -X POST http://localhost:5000/api/parse -H "Content-Type: application/json" \
     -d '{"uri": "otpauth://totp/Acme:bob?secret=JBSWY3DPEHPK3PXP&issuer=Acme"}'
curl -X POST http://localhost:5000/api/code -H "Content-Type: application/json" \
     -d '{"uri": "otpauth://totp/Acme:bob?secret=JBSWY3DPEHPK3PXP", "split": true}'
"""

import base64
import io
import logging

import qrcode
from flask import Blueprint, current_app, jsonify, request

from otpuri import codec, engine
from otpuri.descriptor import Assume, DescriptorBuilder
from otpuri.errors import OtpUriError

logger = logging.getLogger(__name__)

otpuri_bp = Blueprint('otpuri', __name__, url_prefix='/api')


class InvalidRequest(Exception):
    """Request body is missing a key or carries an unknown option value."""


@otpuri_bp.errorhandler(OtpUriError)
def handle_otpuri_error(e):
    logger.info("rejected request: %s", e)
    return jsonify({"error": str(e), "field": e.field}), 400


@otpuri_bp.errorhandler(InvalidRequest)
def handle_invalid_request(e):
    return jsonify({"error": str(e)}), 400


def _body(*required) -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest("JSON body required")
    missing = [key for key in required if key not in data]
    if missing:
        raise InvalidRequest(f"{', '.join(missing)} required")
    return data


def _assume(data: dict) -> Assume:
    value = data.get('assume', current_app.config['ASSUME'])
    try:
        return Assume(value)
    except ValueError:
        raise InvalidRequest(f"assume must be 'username' or 'issuer' (got {value!r})") from None


def _encoding(data: dict) -> engine.SecretEncoding:
    value = data.get('secret_encoding', current_app.config['SECRET_ENCODING'])
    try:
        return engine.SecretEncoding(value)
    except ValueError:
        raise InvalidRequest(f"secret_encoding must be 'base32' or 'raw' (got {value!r})") from None


def _timestamp(data: dict):
    value = data.get('timestamp')
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise InvalidRequest(f"timestamp must be a non-negative number (got {value!r})")
    return value


def _window(data: dict) -> int:
    value = data.get('window', 1)
    if type(value) is not int or value < 0:
        raise InvalidRequest(f"window must be a non-negative integer (got {value!r})")
    return value


def _descriptor(data: dict):
    return codec.parse(data['uri'], assume=_assume(data))


def _uri_payload(d) -> dict:
    return {"uri": codec.serialize(d), "decoded": codec.serialize_decoded(d)}


@otpuri_bp.route('/parse', methods=['POST'])
def parse_uri():
    """
    PARSE AN OTPAUTH URI

    Input:  {"uri": "otpauth://totp/...", "assume": "username" | "issuer"}
    Output: all Descriptor fields plus "issuer" (the resolved issuer)
    """
    data = _body('uri')
    d = _descriptor(data)
    fields = d.to_dict()
    fields["issuer"] = d.issuer
    return jsonify(fields)


def _builder_from_body(data: dict) -> DescriptorBuilder:
    builder = DescriptorBuilder()
    issuer = data.get('issuer') or current_app.config['DEFAULT_ISSUER']
    builder.issuer(issuer)
    if 'label_issuer' in data:
        builder.label_issuer(data['label_issuer'])
    if 'param_issuer' in data:
        builder.param_issuer(data['param_issuer'])
    builder.account_name(data.get('account', ''))
    if 'algorithm' in data:
        builder.algorithm(data['algorithm'])
    if 'digits' in data:
        builder.digits(data['digits'])
    if 'period' in data:
        builder.period(data['period'])
    return builder


@otpuri_bp.route('/serialize', methods=['POST'])
def serialize_fields():
    """
    BUILD A CANONICAL URI

    Input:  {"secret": "...", "issuer": "...", "account": "...",
             "algorithm": "SHA1", "digits": 6, "period": 30}
    Output: {"uri": "...", "decoded": "..."}
    """
    data = _body('secret')
    d = _builder_from_body(data).secret(data['secret']).build()
    return jsonify(_uri_payload(d))


@otpuri_bp.route('/generate', methods=['POST'])
def generate():
    """
    NEW RECORD WITH A RANDOM BASE32 SECRET

    Input:  same as /serialize without "secret"
    Output: {"secret": "...", "uri": "...", "decoded": "..."}
    """
    data = request.get_json(silent=True) or {}
    secret = engine.generate_base32_secret()
    d = _builder_from_body(data).secret(secret).build()
    logger.info("generated new secret for issuer=%r", d.issuer)
    return jsonify({"secret": secret, **_uri_payload(d)}), 201


@otpuri_bp.route('/code', methods=['POST'])
def get_code():
    """
    TOTP CODE FOR A URI

    Input:  {"uri": "...", "timestamp": 1234567890, "split": false,
             "secret_encoding": "base32" | "raw"}
    Output: {"code": "123456", "remaining": 12, "period": 30}
    """
    data = _body('uri')
    d = _descriptor(data)
    code, remaining = engine.totp(d, _timestamp(data), encoding=_encoding(data))
    if data.get('split'):
        code = engine.split_code(code)
    return jsonify({"code": code, "remaining": remaining, "period": d.period})


@otpuri_bp.route('/verify', methods=['POST'])
def verify_code():
    """
    VERIFY A TOTP CODE

    Input:  {"uri": "...", "code": "123456", "window": 1, "timestamp": ...}
    Output: {"valid": true} or {"valid": false}
    """
    data = _body('uri', 'code')
    d = _descriptor(data)
    valid = engine.verify(
        d,
        str(data['code']),
        window=_window(data),
        timestamp=_timestamp(data),
        encoding=_encoding(data),
    )
    return jsonify({"valid": valid})


@otpuri_bp.route('/qr_code', methods=['POST'])
def get_qr_code():
    """
    QR CODE IMAGE OF THE CANONICAL URI

    Input:  {"uri": "..."}
    Output: {"qr_code": "data:image/png;base64,...", "uri": "..."}
    """
    data = _body('uri')
    uri = codec.serialize(_descriptor(data))

    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    img_str = base64.b64encode(buffer.getvalue()).decode()

    return jsonify({"qr_code": f"data:image/png;base64,{img_str}", "uri": uri})

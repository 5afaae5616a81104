from flask import jsonify


def respond_error(message_or_dict, status=400, code=None):
    """Return a standardized error response."""
    if isinstance(message_or_dict, dict):
        body = {'success': False, 'errors': message_or_dict}
    else:
        body = {'success': False, 'error': message_or_dict}
    if code:
        body['code'] = code
    return jsonify(body), status


def respond_success(payload=None, status=200):
    if payload is None:
        payload = {}
    body = {'success': True}
    if isinstance(payload, dict):
        body.update(payload)
    else:
        body['data'] = payload
    return jsonify(body), status


def get_json_body(req):
    """Return the request JSON body as a dict (empty when missing or malformed)."""
    data = req.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_limit(value, default, maximum=100):
    try:
        limit = int(value) if value is not None else default
    except (TypeError, ValueError):
        return default
    return max(1, min(limit, maximum))
